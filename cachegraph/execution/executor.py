# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Graph Executor

Runs a built Graph against a weight store and a resource manager.

The executor follows the usual session.run() shape:
1. Map feeds and fetches onto graph nodes
2. Prune the graph to the nodes the fetches depend on
3. Execute the pruned nodes in topological order
4. Return the fetched tensors in request order

`execute` is blocking and refuses graphs whose pruned subgraph contains
a coroutine kernel; `execute_async` awaits those kernels.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import numpy as np

from ..core.graph_ir import Graph
from ..core.node import Node, Ops, parse_node_name
from ..core.tensor import TensorInfo
from ..errors import (
    CacheGraphError,
    ExecutionError,
    UnsupportedOperationError,
    ValidationError,
    format_unknown_names,
)
from ..observability import get_logger
from .context import ExecutionContext
from .registry import OperatorRegistry
from .resource_manager import ResourceManager
from . import operators  # noqa: F401


NamedTensorMap = Dict[str, Any]
WeightStore = Dict[str, List[np.ndarray]]


@dataclass
class ExecutionPlan:
    """Pruned, ordered nodes for one set of feeds and fetches."""

    nodes: List[Node]
    feeds: Dict[str, Any]
    fetches: List[tuple[str, int]]


class GraphExecutor:
    """
    Executes one built graph.

    `weight_map` and `resource_manager` are assigned after construction
    and are held by reference, so several executors can share them.

    Example:
        executor = GraphExecutor(graph)
        executor.weight_map = {"w": [w]}
        executor.resource_manager = ResourceManager()
        [y] = executor.execute({"x": x}, ["y"])
    """

    def __init__(self, graph: Graph):
        self.graph = graph
        self._weight_map: WeightStore = {}
        self._resource_manager: Optional[ResourceManager] = None
        self._disposed = False
        self.last_kernel_calls = 0

        self._signature_keys = {
            info.signature_key: info.tensor_name
            for info in list(graph.inputs) + list(graph.outputs)
            if info.signature_key
        }

    @property
    def weight_map(self) -> WeightStore:
        return self._weight_map

    @weight_map.setter
    def weight_map(self, weight_map: WeightStore) -> None:
        self._weight_map = weight_map

    @property
    def resource_manager(self) -> Optional[ResourceManager]:
        return self._resource_manager

    @resource_manager.setter
    def resource_manager(self, resource_manager: ResourceManager) -> None:
        self._resource_manager = resource_manager

    @property
    def input_nodes(self) -> List[str]:
        return self.graph.input_names

    @property
    def output_nodes(self) -> List[str]:
        return self.graph.output_names

    @property
    def inputs(self) -> List[TensorInfo]:
        return list(self.graph.inputs)

    @property
    def outputs(self) -> List[TensorInfo]:
        return list(self.graph.outputs)

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    def _resolve(self, name: str) -> tuple[str, int]:
        name = self._signature_keys.get(name, name)
        return parse_node_name(name)

    def _plan(self, inputs: NamedTensorMap, outputs: List[str]) -> ExecutionPlan:
        if self._disposed:
            raise ExecutionError("executor has been disposed")

        feeds: Dict[str, Any] = {}
        unknown_inputs = []
        feedable = {n.name for n in self.graph.placeholders}
        for key, value in inputs.items():
            node_name, _ = self._resolve(key)
            if node_name not in feedable:
                unknown_inputs.append(key)
                continue
            feeds[node_name] = value
        if unknown_inputs:
            raise format_unknown_names("input", unknown_inputs, self.input_nodes)

        fetches = [self._resolve(name) for name in outputs]
        unknown_outputs = [
            name for name, (node_name, _) in zip(outputs, fetches)
            if not self.graph.has_node(node_name)
        ]
        if unknown_outputs:
            raise format_unknown_names("output", unknown_outputs, self.output_nodes)

        if fetches:
            targets = [node_name for node_name, _ in fetches]
        else:
            targets = [n.name for n in self.graph.nodes]

        needed = self._prune(targets, feeds)
        missing = [n.name for n in needed if n.op_type == Ops.PLACEHOLDER]
        if missing:
            raise ValidationError(
                f"missing inputs for placeholders {missing}",
                parameter="inputs",
                expected=str(self.input_nodes),
                received=str(list(inputs)),
            )

        return ExecutionPlan(
            nodes=self.graph.topological_order(needed),
            feeds=feeds,
            fetches=fetches,
        )

    def _prune(self, targets: List[str], feeds: Dict[str, Any]) -> List[Node]:
        """Collect the nodes targets depend on, stopping at fed nodes."""
        seen = set()
        stack = list(targets)
        while stack:
            name = stack.pop()
            if name in seen or name in feeds:
                continue
            node = self.graph.get_node(name)
            if node is None:
                continue
            seen.add(name)
            stack.extend(node.dependencies())
        return [n for n in self.graph.nodes if n.name in seen]

    def _context(self, plan: ExecutionPlan) -> ExecutionContext:
        ctx = ExecutionContext(self._weight_map, self._resource_manager)
        for name, value in plan.feeds.items():
            ctx.set_outputs(name, [value])
        return ctx

    def _invoke(self, node: Node, ctx: ExecutionContext) -> Any:
        if not OperatorRegistry.is_supported(node.op_type):
            raise UnsupportedOperationError(
                node.op_type,
                node_name=node.name,
                supported_ops=OperatorRegistry.list_operators(),
            )
        kernel = OperatorRegistry.get_kernel(node.op_type)
        try:
            return kernel(ctx, node, ctx.resolve_inputs(node))
        except CacheGraphError:
            raise
        except Exception as e:
            raise ExecutionError(str(e), node_name=node.name, op_type=node.op_type) from e

    async def _settle(self, node: Node, pending: Any) -> Any:
        try:
            return await pending
        except CacheGraphError:
            raise
        except Exception as e:
            raise ExecutionError(str(e), node_name=node.name, op_type=node.op_type) from e

    def _collect(self, plan: ExecutionPlan, ctx: ExecutionContext) -> List[Any]:
        return [ctx.get_tensor(name, index) for name, index in plan.fetches]

    def execute(self, inputs: NamedTensorMap, outputs: List[str]) -> List[Any]:
        """
        Run the graph without suspending.

        Args:
            inputs: Placeholder name (or signature key) -> tensor.
            outputs: Names to fetch; empty runs the whole graph.

        Returns:
            Fetched tensors in request order.

        Raises:
            ValidationError: Unknown names or unfed placeholders.
            ExecutionError: The pruned graph needs a coroutine kernel.
        """
        plan = self._plan(inputs, outputs)
        dynamic = [n for n in plan.nodes if OperatorRegistry.is_async(n.op_type)]
        if dynamic:
            raise ExecutionError(
                f"node '{dynamic[0].name}' ({dynamic[0].op_type}) can only run "
                "asynchronously",
                node_name=dynamic[0].name,
                op_type=dynamic[0].op_type,
                suggestions=["Use execute_async() for this graph"],
            )

        ctx = self._context(plan)
        for node in plan.nodes:
            ctx.set_outputs(node.name, self._invoke(node, ctx))
        self.last_kernel_calls = len(plan.nodes)
        return self._collect(plan, ctx)

    async def execute_async(
        self, inputs: NamedTensorMap, outputs: List[str]
    ) -> List[Any]:
        """Run the graph, awaiting coroutine kernels. Same contract as execute."""
        plan = self._plan(inputs, outputs)

        ctx = self._context(plan)
        for node in plan.nodes:
            result = self._invoke(node, ctx)
            if inspect.isawaitable(result):
                result = await self._settle(node, result)
            ctx.set_outputs(node.name, result)
        self.last_kernel_calls = len(plan.nodes)
        return self._collect(plan, ctx)

    def dispose(self) -> None:
        """Drop references to weights and resources; the executor is unusable after."""
        if self._disposed:
            return
        get_logger().debug(
            "Disposing executor", component="executor", graph=self.graph.name
        )
        self._weight_map = {}
        self._resource_manager = None
        self._disposed = True

    def summary(self) -> str:
        lines = [
            "GraphExecutor Summary",
            f"  Graph: {self.graph.name}",
            f"  Nodes: {self.graph.num_nodes()}",
            f"  Inputs: {self.input_nodes}",
            f"  Outputs: {self.output_nodes}",
            f"  Weights: {len(self._weight_map)}",
        ]
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"GraphExecutor(graph='{self.graph.name}', "
            f"nodes={self.graph.num_nodes()}, disposed={self._disposed})"
        )
