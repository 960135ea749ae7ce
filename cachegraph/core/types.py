# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
CacheGraph Core Types

Data types shared by the weight manifest, the topology attributes
and the numpy tensors flowing through the executor.
"""

from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Union

import numpy as np


class DataType(Enum):
    """Supported data types for tensors, valued by their manifest name."""

    Float32 = "float32"
    Int32 = "int32"
    Bool = "bool"
    String = "string"
    Complex64 = "complex64"


# Topology attributes carry TensorFlow enum names
_TF_DTYPES = {
    "DT_FLOAT": DataType.Float32,
    "DT_DOUBLE": DataType.Float32,
    "DT_HALF": DataType.Float32,
    "DT_INT32": DataType.Int32,
    "DT_INT64": DataType.Int32,
    "DT_INT8": DataType.Int32,
    "DT_UINT8": DataType.Int32,
    "DT_INT16": DataType.Int32,
    "DT_BOOL": DataType.Bool,
    "DT_STRING": DataType.String,
    "DT_COMPLEX64": DataType.Complex64,
}

_NUMPY_DTYPES = {
    DataType.Float32: np.float32,
    DataType.Int32: np.int32,
    DataType.Bool: np.bool_,
    DataType.String: np.object_,
    DataType.Complex64: np.complex64,
}


def dtype_size(dtype: DataType) -> int:
    """Get the size in bytes of one element (0 for variable-size strings)."""
    sizes = {
        DataType.Float32: 4,
        DataType.Int32: 4,
        DataType.Bool: 1,
        DataType.String: 0,
        DataType.Complex64: 8,
    }
    return sizes.get(dtype, 0)


def dtype_to_string(dtype: DataType) -> str:
    """Get string representation of data type."""
    return dtype.value


def dtype_from_string(name: str) -> DataType:
    """
    Parse a manifest dtype ("float32") or a TensorFlow enum ("DT_FLOAT").

    Raises:
        ValueError: If the name is not a known dtype.
    """
    if name in _TF_DTYPES:
        return _TF_DTYPES[name]
    return DataType(name)


def to_numpy_dtype(dtype: DataType) -> Any:
    """Get the numpy dtype used to hold tensors of this type."""
    return _NUMPY_DTYPES[dtype]


@dataclass
class Shape:
    """Represents tensor dimensions; -1 marks an unknown dimension."""

    dims: list[int] = field(default_factory=list)

    def rank(self) -> int:
        """Get number of dimensions."""
        return len(self.dims)

    def numel(self) -> int:
        """Get total number of elements (scalars have one)."""
        result = 1
        for d in self.dims:
            if d < 0:
                return -1
            result *= d
        return result

    def is_dynamic(self) -> bool:
        """Check if shape has dynamic dimensions."""
        return any(d < 0 for d in self.dims)

    def __getitem__(self, idx: int) -> int:
        return self.dims[idx]

    def __len__(self) -> int:
        return len(self.dims)

    def __repr__(self) -> str:
        return f"Shape({self.dims})"


# Attribute value types
AttributeValue = Union[int, float, str, bool, bytes, DataType, Shape, list, None]
AttributeMap = dict[str, AttributeValue]
