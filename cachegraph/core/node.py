# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Node

Represents a single operation in a built graph.
"""

from dataclasses import dataclass, field
from typing import Any
import itertools

from .types import AttributeMap


# Node ID counter
_node_id_counter = itertools.count()


@dataclass
class Node:
    """
    Represents a single operation (node) in the computation graph.

    `inputs` holds producer node names, `input_indices` the output slot
    read from each producer and `control_inputs` the names that must run
    first without passing data.
    """

    op_type: str = ""
    name: str = ""
    inputs: list[str] = field(default_factory=list)
    input_indices: list[int] = field(default_factory=list)
    control_inputs: list[str] = field(default_factory=list)
    attrs: AttributeMap = field(default_factory=dict)

    # Auto-generated ID
    id: int = field(default_factory=lambda: next(_node_id_counter), init=False)

    def num_inputs(self) -> int:
        """Get number of data inputs."""
        return len(self.inputs)

    def is_op(self, op: str) -> bool:
        """Check if this is a specific operation type."""
        return self.op_type == op

    def get_attr(self, key: str, default: Any = None) -> Any:
        """Get an attribute value."""
        return self.attrs.get(key, default)

    def has_attr(self, key: str) -> bool:
        """Check if attribute exists."""
        return key in self.attrs

    def dependencies(self) -> list[str]:
        """Names of every node that must run before this one."""
        return list(self.inputs) + list(self.control_inputs)

    def __repr__(self) -> str:
        return f"Node(op='{self.op_type}', name='{self.name}')"


def parse_node_name(name: str) -> tuple[str, int]:
    """
    Split a tensor reference into node name and output index.

    "dense/MatMul:1" -> ("dense/MatMul", 1), "x" -> ("x", 0),
    "^init" -> ("init", 0).
    """
    if name.startswith("^"):
        name = name[1:]
    node_name, sep, index = name.rpartition(":")
    if sep and index.isdigit():
        return node_name, int(index)
    return name, 0


class Ops:
    """Operation type names that the builder treats specially."""

    PLACEHOLDER = "Placeholder"
    PLACEHOLDER_WITH_DEFAULT = "PlaceholderWithDefault"
    CONST = "Const"
    NO_OP = "NoOp"
