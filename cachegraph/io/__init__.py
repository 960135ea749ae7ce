# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
CacheGraph IO

Components:
- ArtifactCache: Local key/value stores holding serialized model files
- CacheArtifactLoader: Reads a model from a cache into ModelArtifacts
- decode_weights / encode_weights: Weight blob codec
"""

from .artifacts import (
    Quantization,
    WeightSpec,
    ModelArtifacts,
    ModelArtifactsInfo,
    artifacts_info,
    flatten_weights_manifest,
)
from .cache import ArtifactCache, MemoryArtifactCache, LocalArtifactCache
from .loader import CacheArtifactLoader, cache_artifact_request
from .weights import decode_weights, encode_weights

__all__ = [
    "Quantization",
    "WeightSpec",
    "ModelArtifacts",
    "ModelArtifactsInfo",
    "artifacts_info",
    "flatten_weights_manifest",
    "ArtifactCache",
    "MemoryArtifactCache",
    "LocalArtifactCache",
    "CacheArtifactLoader",
    "cache_artifact_request",
    "decode_weights",
    "encode_weights",
]
