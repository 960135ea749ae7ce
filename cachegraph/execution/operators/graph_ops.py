# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Graph Operators

Placeholder, Const, Identity, NoOp.
"""

from __future__ import annotations

from typing import Any, List

from ...errors import ExecutionError
from ..registry import OperatorRegistry


@OperatorRegistry.register("Placeholder", category="graph")
def execute_placeholder(ctx, node, inputs: List[Any]) -> List[Any]:
    """Placeholders are fed before execution; reaching this means no feed."""
    if ctx.has_tensor(node.name):
        return [ctx.get_tensor(node.name)]
    raise ExecutionError("placeholder was not fed", node_name=node.name)


@OperatorRegistry.register("PlaceholderWithDefault", category="graph")
def execute_placeholder_with_default(ctx, node, inputs: List[Any]) -> List[Any]:
    """Unfed placeholder falls back to its default input."""
    return [inputs[0]]


@OperatorRegistry.register("Const", category="graph")
def execute_const(ctx, node, inputs: List[Any]) -> List[Any]:
    """Const values live in the weight store under the node name."""
    values = ctx.weight_map.get(node.name)
    if values is None:
        raise ExecutionError(
            "no weight found for Const node",
            node_name=node.name,
            op_type=node.op_type,
            suggestions=["Check that the weights manifest lists this node"],
        )
    return list(values)


@OperatorRegistry.register("Identity", aliases=["StopGradient", "Snapshot"], category="graph")
def execute_identity(ctx, node, inputs: List[Any]) -> List[Any]:
    return [inputs[0]]


@OperatorRegistry.register("IdentityN", category="graph")
def execute_identity_n(ctx, node, inputs: List[Any]) -> List[Any]:
    return list(inputs)


@OperatorRegistry.register("NoOp", category="graph")
def execute_no_op(ctx, node, inputs: List[Any]) -> List[Any]:
    return []
