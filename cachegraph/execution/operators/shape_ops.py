# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Shape and Transformation Operators
"""

from __future__ import annotations

from typing import Any, List

import numpy as np

from ...core.types import DataType, to_numpy_dtype
from ..registry import OperatorRegistry


@OperatorRegistry.register("Reshape", category="transformation")
def execute_reshape(ctx, node, inputs: List[Any]) -> List[Any]:
    shape = tuple(int(d) for d in np.asarray(inputs[1]).reshape(-1))
    return [np.reshape(inputs[0], shape)]


@OperatorRegistry.register("ExpandDims", category="transformation")
def execute_expand_dims(ctx, node, inputs: List[Any]) -> List[Any]:
    axis = int(np.asarray(inputs[1]).reshape(-1)[0])
    return [np.expand_dims(inputs[0], axis)]


@OperatorRegistry.register("Cast", category="transformation")
def execute_cast(ctx, node, inputs: List[Any]) -> List[Any]:
    dst = node.get_attr("DstT", DataType.Float32)
    return [np.asarray(inputs[0]).astype(to_numpy_dtype(dst))]
