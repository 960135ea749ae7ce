# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Tests for the weight blob codec and manifest types.
"""

import struct

import numpy as np
import pytest

from cachegraph.errors import DeserializationError
from cachegraph.io import (
    Quantization,
    WeightSpec,
    decode_weights,
    encode_weights,
    flatten_weights_manifest,
)


class TestDecodeWeights:
    """Tests for decode_weights."""

    def test_offsets_follow_manifest_order(self):
        blob = np.array([1, 2, 3], dtype="<f4").tobytes() + np.array(
            [4, 5], dtype="<i4"
        ).tobytes()
        specs = [
            WeightSpec("a", (3,), "float32"),
            WeightSpec("b", (2,), "int32"),
        ]
        weights = decode_weights(blob, specs)
        np.testing.assert_array_equal(weights["a"], [1.0, 2.0, 3.0])
        np.testing.assert_array_equal(weights["b"], [4, 5])
        assert weights["a"].dtype == np.float32
        assert weights["b"].dtype == np.int32

    def test_scalar_and_matrix_shapes(self):
        blob = np.arange(7, dtype="<f4").tobytes()
        specs = [WeightSpec("s", (), "float32"), WeightSpec("m", (2, 3), "float32")]
        weights = decode_weights(blob, specs)
        assert weights["s"].shape == ()
        assert weights["m"].shape == (2, 3)
        assert weights["m"][1, 2] == 6.0

    def test_bool(self):
        weights = decode_weights(bytes([1, 0, 1]), [WeightSpec("f", (3,), "bool")])
        np.testing.assert_array_equal(weights["f"], [True, False, True])

    def test_strings(self):
        blob = b"".join(
            struct.pack("<I", len(s)) + s for s in ["héllo".encode("utf-8"), b""]
        )
        weights = decode_weights(blob, [WeightSpec("s", (2,), "string")])
        assert list(weights["s"]) == ["héllo", ""]
        assert weights["s"].dtype == object

    def test_uint8_quantization(self):
        spec = WeightSpec(
            "q", (3,), "float32", Quantization("uint8", scale=0.5, min=-1.0)
        )
        weights = decode_weights(bytes([0, 2, 4]), [spec])
        np.testing.assert_allclose(weights["q"], [-1.0, 0.0, 1.0])

    def test_float16_quantization(self):
        spec = WeightSpec("h", (2,), "float32", Quantization("float16"))
        blob = np.array([1.5, -2.0], dtype="<f2").tobytes()
        weights = decode_weights(blob, [spec])
        assert weights["h"].dtype == np.float32
        np.testing.assert_array_equal(weights["h"], [1.5, -2.0])

    def test_quantized_int32_rounds(self):
        spec = WeightSpec("i", (2,), "int32", Quantization("uint8", scale=0.6, min=0.0))
        weights = decode_weights(bytes([1, 4]), [spec])
        assert weights["i"].dtype == np.int32
        np.testing.assert_array_equal(weights["i"], [1, 2])

    def test_short_blob(self):
        with pytest.raises(DeserializationError, match="too short"):
            decode_weights(b"\x00\x00", [WeightSpec("a", (1,), "float32")])

    def test_unknown_dtype(self):
        with pytest.raises(DeserializationError, match="unsupported weight dtype"):
            decode_weights(b"", [WeightSpec("a", (0,), "float128")])

    def test_invalid_utf8(self):
        blob = struct.pack("<I", 1) + b"\xff"
        with pytest.raises(DeserializationError, match="UTF-8"):
            decode_weights(blob, [WeightSpec("s", (1,), "string")])


class TestEncodeWeights:
    """Tests for encode_weights."""

    def test_specs_describe_arrays(self):
        blob, specs = encode_weights(
            {
                "w": np.ones((2, 2), dtype=np.float32),
                "ids": np.array([1, 2], dtype=np.int64),
                "names": np.array(["a", "bc"]),
            }
        )
        assert [s.name for s in specs] == ["w", "ids", "names"]
        assert [s.dtype for s in specs] == ["float32", "int32", "string"]
        assert specs[0].shape == (2, 2)
        assert len(blob) == 16 + 8 + (4 + 1) + (4 + 2)

    def test_group_order(self):
        _, specs = encode_weights(
            {"a": np.zeros(1, np.float32), "b": np.zeros(1, np.float32)},
            group=["b", "a"],
        )
        assert [s.name for s in specs] == ["b", "a"]


class TestManifest:
    """Tests for manifest parsing."""

    def test_flatten_preserves_order_across_groups(self):
        manifest = [
            {"paths": ["p1"], "weights": [{"name": "a", "shape": [1], "dtype": "float32"}]},
            {
                "paths": ["p2"],
                "weights": [
                    {"name": "b", "shape": [], "dtype": "int32"},
                    {
                        "name": "c",
                        "shape": [2],
                        "dtype": "float32",
                        "quantization": {"dtype": "uint8", "scale": 0.1, "min": 0},
                    },
                ],
            },
        ]
        specs = flatten_weights_manifest(manifest)
        assert [s.name for s in specs] == ["a", "b", "c"]
        assert specs[1].shape == ()
        assert specs[2].quantization == Quantization("uint8", 0.1, 0.0)

    def test_spec_json(self):
        spec = WeightSpec("q", (2,), "float32", Quantization("uint16", 2.0, 1.0))
        assert WeightSpec.from_json(spec.to_json()) == spec

    @pytest.mark.parametrize(
        "manifest",
        [
            {"weights": []},
            [{"paths": []}],
            [{"weights": [{"shape": [1], "dtype": "float32"}]}],
        ],
    )
    def test_invalid_manifest(self, manifest):
        with pytest.raises(DeserializationError):
            flatten_weights_manifest(manifest)
