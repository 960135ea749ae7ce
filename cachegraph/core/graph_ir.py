# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Graph

The executable representation of a topology descriptor, produced by the
OperationMapper and consumed by the GraphExecutor.
"""

from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Any, Optional

from .node import Node
from .tensor import TensorInfo


@dataclass
class Graph:
    """
    A built computation graph.

    `placeholders` and `weights` are the Placeholder and Const nodes,
    `inputs` and `outputs` the declared tensors (filtered by a signature
    when one was supplied to the builder).
    """

    name: str = ""
    _nodes: list[Node] = field(default_factory=list, init=False, repr=False)
    _name_to_node: dict[str, Node] = field(default_factory=dict, init=False, repr=False)
    placeholders: list[Node] = field(default_factory=list)
    weights: list[Node] = field(default_factory=list)
    inputs: list[TensorInfo] = field(default_factory=list)
    outputs: list[TensorInfo] = field(default_factory=list)
    signature: Optional[dict[str, Any]] = None
    versions: dict[str, Any] = field(default_factory=dict)

    def add_node(self, node: Node) -> Node:
        """Add a node to the graph."""
        self._nodes.append(node)
        self._name_to_node[node.name] = node
        return node

    def get_node(self, name: str) -> Optional[Node]:
        """Get node by name."""
        return self._name_to_node.get(name)

    def has_node(self, name: str) -> bool:
        return name in self._name_to_node

    @property
    def nodes(self) -> list[Node]:
        """Get all nodes."""
        return self._nodes

    @property
    def input_names(self) -> list[str]:
        return [info.tensor_name for info in self.inputs]

    @property
    def output_names(self) -> list[str]:
        return [info.tensor_name for info in self.outputs]

    def num_nodes(self) -> int:
        """Get number of nodes."""
        return len(self._nodes)

    def find_nodes_by_op(self, op_type: str) -> list[Node]:
        """Find all nodes of a specific operation type."""
        return [n for n in self._nodes if n.op_type == op_type]

    def consumers(self) -> dict[str, list[Node]]:
        """Map each node name to the nodes that depend on it."""
        children: dict[str, list[Node]] = defaultdict(list)
        for node in self._nodes:
            for dep in node.dependencies():
                children[dep].append(node)
        return children

    def topological_order(self, nodes: Optional[list[Node]] = None) -> list[Node]:
        """
        Sort nodes so every node follows its dependencies.

        Uses Kahn's algorithm over data and control edges. Ties keep
        insertion order. A cycle leaves the remaining nodes in insertion
        order at the end.
        """
        nodes = list(self._nodes) if nodes is None else list(nodes)
        member = {n.name for n in nodes}

        in_degree: dict[str, int] = {n.name: 0 for n in nodes}
        adjacency: dict[str, list[Node]] = defaultdict(list)

        for node in nodes:
            for dep in node.dependencies():
                if dep in member:
                    adjacency[dep].append(node)
                    in_degree[node.name] += 1

        queue = deque(n for n in nodes if in_degree[n.name] == 0)
        sorted_nodes = []

        while queue:
            node = queue.popleft()
            sorted_nodes.append(node)

            for dependent in adjacency[node.name]:
                in_degree[dependent.name] -= 1
                if in_degree[dependent.name] == 0:
                    queue.append(dependent)

        if len(sorted_nodes) != len(nodes):
            seen = {n.name for n in sorted_nodes}
            sorted_nodes.extend(n for n in nodes if n.name not in seen)

        return sorted_nodes

    def count_ops(self) -> dict[str, int]:
        """Count nodes by operation type."""
        counts: dict[str, int] = {}
        for node in self._nodes:
            counts[node.op_type] = counts.get(node.op_type, 0) + 1
        return counts

    def summary(self) -> str:
        """Print graph summary."""
        lines = [
            f"Graph: {self.name}",
            f"  Inputs: {self.input_names}",
            f"  Outputs: {self.output_names}",
            f"  Nodes: {len(self._nodes)}",
            f"  Weights: {len(self.weights)}",
            "  Operations:",
        ]

        for op, count in self.count_ops().items():
            lines.append(f"    {op}: {count}")

        return "\n".join(lines)

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return f"Graph(name='{self.name}', nodes={len(self._nodes)})"
