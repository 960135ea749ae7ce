# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Activation Operators
"""

from __future__ import annotations

from typing import Any, List

import numpy as np

from ..registry import OperatorRegistry


@OperatorRegistry.register("Relu", category="basic_math")
def execute_relu(ctx, node, inputs: List[Any]) -> List[Any]:
    return [np.maximum(inputs[0], 0)]


@OperatorRegistry.register("Sigmoid", category="basic_math")
def execute_sigmoid(ctx, node, inputs: List[Any]) -> List[Any]:
    x = np.asarray(inputs[0], dtype=np.float32)
    return [1.0 / (1.0 + np.exp(-x))]


@OperatorRegistry.register("Tanh", category="basic_math")
def execute_tanh(ctx, node, inputs: List[Any]) -> List[Any]:
    return [np.tanh(inputs[0])]


@OperatorRegistry.register("Softmax", category="basic_math")
def execute_softmax(ctx, node, inputs: List[Any]) -> List[Any]:
    """Softmax over the last axis, shifted by the max for stability."""
    x = np.asarray(inputs[0], dtype=np.float32)
    shifted = x - np.max(x, axis=-1, keepdims=True)
    exp = np.exp(shifted)
    return [exp / np.sum(exp, axis=-1, keepdims=True)]
