# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
CacheGraph: Cached Graph Model Runtime

Loads serialized computation-graph models (a JSON topology document and
a flat weight blob) from a local key/value cache, builds them into
executable graphs and runs them, including a one-time initializer graph
that populates shared stateful resources such as lookup tables.

Example:
    import asyncio
    import cachegraph

    async def main():
        model = await cachegraph.load_graph_model(
            "encoder/model.json", "encoder/weights.bin"
        )
        print(model.predict(x))
        model.dispose()

    asyncio.run(main())
"""

__version__ = "0.1.0"
__author__ = "Wahyu Ardiansyah"

from .core import DataType, Shape, TensorInfo, Node, Graph

from .config import LoadOptions

from .io import (
    ArtifactCache,
    MemoryArtifactCache,
    LocalArtifactCache,
    CacheArtifactLoader,
    ModelArtifacts,
    WeightSpec,
    decode_weights,
    encode_weights,
)

from .converter import OperationMapper

from .execution import GraphExecutor, ResourceManager, OperatorRegistry

from .models import GraphModel, load_graph_model

# Observability
from .observability import set_verbosity, Verbosity

# Errors
from .errors import (
    CacheGraphError,
    ValidationError,
    ConfigurationError,
    NotFoundError,
    DeserializationError,
    UnsupportedOperationError,
    ExecutionError,
)

__all__ = [
    # Core types
    "DataType",
    "Shape",
    "TensorInfo",
    "Node",
    "Graph",
    # Configuration
    "LoadOptions",
    # IO
    "ArtifactCache",
    "MemoryArtifactCache",
    "LocalArtifactCache",
    "CacheArtifactLoader",
    "ModelArtifacts",
    "WeightSpec",
    "decode_weights",
    "encode_weights",
    # Building and execution
    "OperationMapper",
    "GraphExecutor",
    "ResourceManager",
    "OperatorRegistry",
    # Models
    "GraphModel",
    "load_graph_model",
    # Observability
    "set_verbosity",
    "Verbosity",
    # Errors
    "CacheGraphError",
    "ValidationError",
    "ConfigurationError",
    "NotFoundError",
    "DeserializationError",
    "UnsupportedOperationError",
    "ExecutionError",
    # Version
    "__version__",
    "__author__",
]
