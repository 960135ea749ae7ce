# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Pytest configuration for CacheGraph Python tests.
"""

import base64
import json
import sys
from pathlib import Path

import numpy as np
import pytest

# Add the project root to sys.path so we can import cachegraph
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from cachegraph.io import MemoryArtifactCache, encode_weights  # noqa: E402
from cachegraph.observability import GraphLogger, reset_metrics_collector  # noqa: E402

# Skip test modules that require optional dependencies not installed
collect_ignore = []

# Check for hypothesis
try:
    import hypothesis  # noqa: F401
except ImportError:
    collect_ignore.append("test_property_based.py")


TOPOLOGY_KEY = "models/test/model.json"
WEIGHTS_KEY = "models/test/weights.bin"


class ModelFiles:
    """Builds model.json documents and weight blobs for tests."""

    topology_key = TOPOLOGY_KEY
    weights_key = WEIGHTS_KEY

    @staticmethod
    def placeholder(name, dtype="DT_FLOAT", dims=None):
        attr = {"dtype": {"type": dtype}}
        if dims is not None:
            attr["shape"] = {"shape": {"dim": [{"size": str(d)} for d in dims]}}
        return {"name": name, "op": "Placeholder", "attr": attr}

    @staticmethod
    def const(name, dtype="DT_FLOAT"):
        return {"name": name, "op": "Const", "attr": {"dtype": {"type": dtype}}}

    @staticmethod
    def op(name, op_type, inputs=(), **attr):
        node = {"name": name, "op": op_type, "input": list(inputs)}
        if attr:
            node["attr"] = attr
        return node

    @staticmethod
    def text(value):
        """AttrValue string payloads are base64 encoded."""
        return {"s": base64.b64encode(value.encode("utf-8")).decode("ascii")}

    @staticmethod
    def document(
        nodes,
        tensors=None,
        initializer=None,
        signature=None,
        versions=None,
        metadata=None,
    ):
        """Return (model.json bytes, weight blob)."""
        blob, specs = encode_weights(tensors or {})
        model_json = {
            "format": "graph-model",
            "generatedBy": "2.12.0",
            "convertedBy": "TensorFlow.js Converter v4.10.0",
            "modelTopology": {
                "node": nodes,
                "versions": (
                    versions
                    if versions is not None
                    else {"producer": 1395, "minConsumer": 12}
                ),
            },
            "weightsManifest": [
                {"paths": ["weights.bin"], "weights": [s.to_json() for s in specs]}
            ],
        }
        if initializer is not None:
            model_json["modelInitializer"] = {"node": initializer}
        if signature is not None:
            model_json["signature"] = signature
        if metadata is not None:
            model_json["userDefinedMetadata"] = metadata
        return json.dumps(model_json).encode("utf-8"), blob

    def cache(self, nodes, tensors=None, **kwargs):
        """A MemoryArtifactCache holding one model under the default keys."""
        topology, blob = self.document(nodes, tensors, **kwargs)
        return MemoryArtifactCache(
            {self.topology_key: topology, self.weights_key: blob}
        )


@pytest.fixture(autouse=True)
def reset_observability():
    """Fresh logger and metrics collector for every test."""
    GraphLogger.reset()
    reset_metrics_collector()
    yield
    GraphLogger.reset()
    reset_metrics_collector()


@pytest.fixture
def model_files():
    return ModelFiles()


@pytest.fixture
def dense_graph(model_files):
    """out = x @ w + b with x: [-1, 2]."""
    mf = model_files
    nodes = [
        mf.placeholder("x", dims=[-1, 2]),
        mf.const("w"),
        mf.const("b"),
        mf.op("mm", "MatMul", ["x", "w"], transpose_a={"b": False}),
        mf.op("out", "BiasAdd", ["mm", "b"], data_format=mf.text("NHWC")),
    ]
    tensors = {
        "w": np.array([[1.0, 2.0], [3.0, 4.0]], dtype=np.float32),
        "b": np.array([0.5, -0.5], dtype=np.float32),
    }
    return nodes, tensors


@pytest.fixture
def add_graph(model_files):
    """out = a + b, two inputs and one output."""
    mf = model_files
    nodes = [
        mf.placeholder("a", dims=[3]),
        mf.placeholder("b", dims=[3]),
        mf.op("out", "AddV2", ["a", "b"]),
    ]
    return nodes, {}


@pytest.fixture
def multi_output_graph(model_files):
    """Two outputs: sum = a + b and prod = a * b."""
    mf = model_files
    nodes = [
        mf.placeholder("a"),
        mf.placeholder("b"),
        mf.op("sum", "AddV2", ["a", "b"]),
        mf.op("prod", "Mul", ["a", "b"]),
    ]
    return nodes, {}


@pytest.fixture
def vocab_graph(model_files):
    """
    Token lookup backed by a table that the initializer fills.

    Returns (nodes, tensors, initializer_nodes).
    """
    mf = model_files
    table_attr = {
        "key_dtype": {"type": "DT_STRING"},
        "value_dtype": {"type": "DT_INT32"},
        "shared_name": mf.text("vocab"),
    }
    initializer = [
        mf.op("vocab", "HashTableV2", **table_attr),
        mf.const("vocab_keys", "DT_STRING"),
        mf.const("vocab_values", "DT_INT32"),
        mf.op("vocab_init", "LookupTableImportV2", ["vocab", "vocab_keys", "vocab_values"]),
    ]
    nodes = [
        mf.placeholder("tokens", "DT_STRING", dims=[-1]),
        mf.op("vocab", "HashTableV2", **table_attr),
        mf.const("unknown_id", "DT_INT32"),
        mf.op("ids", "LookupTableFindV2", ["vocab", "tokens", "unknown_id"]),
    ]
    tensors = {
        "vocab_keys": np.array(["hello", "world"], dtype=object),
        "vocab_values": np.array([7, 9], dtype=np.int32),
        "unknown_id": np.array(-1, dtype=np.int32),
    }
    return nodes, tensors, initializer
