# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Math Operators

Element-wise arithmetic, MatMul and BiasAdd on numpy arrays.
"""

from __future__ import annotations

from typing import Any, List

import numpy as np

from ..registry import OperatorRegistry


@OperatorRegistry.register("Add", aliases=["AddV2"], category="arithmetic")
def execute_add(ctx, node, inputs: List[Any]) -> List[Any]:
    return [np.add(inputs[0], inputs[1])]


@OperatorRegistry.register("AddN", category="arithmetic")
def execute_add_n(ctx, node, inputs: List[Any]) -> List[Any]:
    result = inputs[0]
    for value in inputs[1:]:
        result = np.add(result, value)
    return [result]


@OperatorRegistry.register("Sub", category="arithmetic")
def execute_sub(ctx, node, inputs: List[Any]) -> List[Any]:
    return [np.subtract(inputs[0], inputs[1])]


@OperatorRegistry.register("Mul", category="arithmetic")
def execute_mul(ctx, node, inputs: List[Any]) -> List[Any]:
    return [np.multiply(inputs[0], inputs[1])]


@OperatorRegistry.register("RealDiv", aliases=["Div"], category="arithmetic")
def execute_div(ctx, node, inputs: List[Any]) -> List[Any]:
    return [np.divide(inputs[0], inputs[1])]


@OperatorRegistry.register("Maximum", category="arithmetic")
def execute_maximum(ctx, node, inputs: List[Any]) -> List[Any]:
    return [np.maximum(inputs[0], inputs[1])]


@OperatorRegistry.register("MatMul", aliases=["BatchMatMul", "BatchMatMulV2"], category="matrices")
def execute_matmul(ctx, node, inputs: List[Any]) -> List[Any]:
    """MatMul with TensorFlow's transpose_a/transpose_b (adj_x/adj_y) flags."""
    a, b = np.asarray(inputs[0]), np.asarray(inputs[1])
    if node.get_attr("transpose_a", False) or node.get_attr("adj_x", False):
        a = np.swapaxes(a, -1, -2)
    if node.get_attr("transpose_b", False) or node.get_attr("adj_y", False):
        b = np.swapaxes(b, -1, -2)
    return [np.matmul(a, b)]


@OperatorRegistry.register("BiasAdd", category="arithmetic")
def execute_bias_add(ctx, node, inputs: List[Any]) -> List[Any]:
    value, bias = np.asarray(inputs[0]), np.asarray(inputs[1])
    if node.get_attr("data_format", "NHWC") == "NCHW" and value.ndim > 2:
        bias = bias.reshape((-1,) + (1,) * (value.ndim - 2))
    return [value + bias]
