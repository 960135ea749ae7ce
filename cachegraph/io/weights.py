# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Weight Codec

Slices a flat weight blob into named numpy arrays following the
flattened weight manifest, and the inverse used to produce blobs.

Blob layout:
- weights are stored back to back in manifest order, no padding
- numeric values are little-endian
- a string tensor stores each element as a uint32 byte length
  followed by the UTF-8 bytes
- quantized weights store uint8/uint16 codes (value = code * scale + min)
  or float16 values
"""

from __future__ import annotations

import struct
from typing import Iterable, Mapping, Optional

import numpy as np

from ..core.types import DataType, dtype_from_string, dtype_size, to_numpy_dtype
from ..errors import DeserializationError
from .artifacts import Quantization, WeightSpec


_QUANTIZED_DTYPES = {
    "uint8": np.dtype("<u1"),
    "uint16": np.dtype("<u2"),
    "float16": np.dtype("<f2"),
}

_STORED_DTYPES = {
    DataType.Float32: np.dtype("<f4"),
    DataType.Int32: np.dtype("<i4"),
    DataType.Bool: np.dtype("u1"),
    DataType.Complex64: np.dtype("<c8"),
}


def _numel(shape: Iterable[int]) -> int:
    size = 1
    for d in shape:
        size *= int(d)
    return size


def _parse_dtype(spec: WeightSpec) -> DataType:
    try:
        return dtype_from_string(spec.dtype)
    except ValueError:
        raise DeserializationError(
            f"unsupported weight dtype '{spec.dtype}'", weight_name=spec.name
        ) from None


def _take(buffer: memoryview, offset: int, size: int, spec: WeightSpec) -> memoryview:
    if offset + size > len(buffer):
        raise DeserializationError(
            f"weight blob is too short: needs {offset + size} bytes, "
            f"has {len(buffer)}",
            weight_name=spec.name,
        )
    return buffer[offset : offset + size]


def _decode_strings(
    buffer: memoryview, offset: int, spec: WeightSpec
) -> tuple[np.ndarray, int]:
    values = []
    for _ in range(_numel(spec.shape)):
        header = _take(buffer, offset, 4, spec)
        (length,) = struct.unpack("<I", header)
        offset += 4
        raw = _take(buffer, offset, length, spec)
        offset += length
        try:
            values.append(bytes(raw).decode("utf-8"))
        except UnicodeDecodeError as e:
            raise DeserializationError(
                f"string weight is not valid UTF-8: {e}", weight_name=spec.name
            ) from e
    array = np.empty(len(values), dtype=object)
    array[:] = values
    return array.reshape(spec.shape), offset


def _dequantize(
    codes: np.ndarray, quantization: Quantization, dtype: DataType
) -> np.ndarray:
    if quantization.dtype == "float16":
        values = codes.astype(np.float32)
    else:
        values = codes.astype(np.float32) * np.float32(quantization.scale) + np.float32(
            quantization.min
        )
    if dtype == DataType.Int32:
        return np.rint(values).astype(np.int32)
    return values


def decode_weights(
    weight_data: bytes, weight_specs: Iterable[WeightSpec]
) -> dict[str, np.ndarray]:
    """
    Decode a weight blob into a name -> array map.

    Args:
        weight_data: Raw blob, weights stored in manifest order.
        weight_specs: Flattened manifest entries.

    Returns:
        Dictionary of numpy arrays shaped as their spec.

    Raises:
        DeserializationError: Unknown dtype, or blob shorter than the
            manifest requires.
    """
    buffer = memoryview(bytes(weight_data))
    offset = 0
    weights: dict[str, np.ndarray] = {}

    for spec in weight_specs:
        dtype = _parse_dtype(spec)

        if spec.quantization is not None:
            stored = _QUANTIZED_DTYPES.get(spec.quantization.dtype)
            if stored is None:
                raise DeserializationError(
                    f"unsupported quantization dtype '{spec.quantization.dtype}'",
                    weight_name=spec.name,
                )
            size = _numel(spec.shape) * stored.itemsize
            raw = _take(buffer, offset, size, spec)
            codes = np.frombuffer(raw, dtype=stored).reshape(spec.shape)
            weights[spec.name] = _dequantize(codes, spec.quantization, dtype)
            offset += size
            continue

        if dtype == DataType.String:
            weights[spec.name], offset = _decode_strings(buffer, offset, spec)
            continue

        stored = _STORED_DTYPES[dtype]
        size = _numel(spec.shape) * dtype_size(dtype)
        raw = _take(buffer, offset, size, spec)
        array = np.frombuffer(raw, dtype=stored).reshape(spec.shape)
        weights[spec.name] = array.astype(to_numpy_dtype(dtype))
        offset += size

    return weights


def _manifest_dtype(array: np.ndarray) -> str:
    if array.dtype == np.bool_:
        return DataType.Bool.value
    if array.dtype.kind in ("U", "S", "O"):
        return DataType.String.value
    if array.dtype.kind == "c":
        return DataType.Complex64.value
    if array.dtype.kind in ("i", "u"):
        return DataType.Int32.value
    return DataType.Float32.value


def encode_weights(
    tensors: Mapping[str, np.ndarray],
    group: Optional[list[str]] = None,
) -> tuple[bytes, list[WeightSpec]]:
    """
    Encode named arrays into a blob and its weight specs.

    Args:
        tensors: Arrays to store.
        group: Optional order of names; defaults to mapping order.

    Returns:
        Tuple of (blob, specs) accepted by decode_weights.
    """
    names = group if group is not None else list(tensors)
    chunks = []
    specs = []

    for name in names:
        array = np.asarray(tensors[name])
        dtype_name = _manifest_dtype(array)
        dtype = DataType(dtype_name)

        if dtype == DataType.String:
            for value in array.reshape(-1):
                encoded = (
                    value if isinstance(value, bytes) else str(value).encode("utf-8")
                )
                chunks.append(struct.pack("<I", len(encoded)))
                chunks.append(encoded)
        else:
            chunks.append(array.astype(_STORED_DTYPES[dtype]).tobytes())

        specs.append(WeightSpec(name=name, shape=tuple(array.shape), dtype=dtype_name))

    return b"".join(chunks), specs
