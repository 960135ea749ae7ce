# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""CacheGraph Core Module"""

from .types import (
    DataType,
    Shape,
    dtype_size,
    dtype_to_string,
    dtype_from_string,
    to_numpy_dtype,
    AttributeValue,
    AttributeMap,
)
from .tensor import TensorInfo
from .node import Node, Ops, parse_node_name
from .graph_ir import Graph

__all__ = [
    "DataType",
    "Shape",
    "dtype_size",
    "dtype_to_string",
    "dtype_from_string",
    "to_numpy_dtype",
    "AttributeValue",
    "AttributeMap",
    "TensorInfo",
    "Node",
    "Ops",
    "parse_node_name",
    "Graph",
]
