# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Execution Context

Holds the tensors produced during one graph execution, plus references
to the model's weight store and resource manager.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, TYPE_CHECKING

import numpy as np

from ..errors import ExecutionError

if TYPE_CHECKING:
    from ..core.node import Node
    from .resource_manager import ResourceManager


class ExecutionContext:
    """
    Per-run tensor storage.

    Every node stores a list of outputs under its name; consumers read
    slot `index` of a producer. Weights are read from the shared weight
    store and never copied into the context.

    Example:
        ctx = ExecutionContext(weight_map, resource_manager)
        ctx.set_outputs("x", [x])
        value = ctx.get_tensor("x", 0)
    """

    def __init__(
        self,
        weight_map: Dict[str, List[np.ndarray]],
        resource_manager: Optional["ResourceManager"],
    ):
        self.weight_map = weight_map
        self.resource_manager = resource_manager
        self._tensors: Dict[str, List[Any]] = {}

    def set_outputs(self, name: str, values: List[Any]) -> None:
        self._tensors[name] = list(values)

    def has_tensor(self, name: str) -> bool:
        return name in self._tensors or name in self.weight_map

    def get_tensor(self, name: str, index: int = 0) -> Any:
        """
        Retrieve output slot `index` of node `name`.

        Raises:
            ExecutionError: If the node produced nothing at that slot.
        """
        values = self._tensors.get(name)
        if values is None:
            values = self.weight_map.get(name)
        if values is None or index >= len(values):
            raise ExecutionError(f"tensor '{name}:{index}' was not computed")
        return values[index]

    def resolve_inputs(self, node: "Node") -> List[Any]:
        """Fetch the data inputs of node in declaration order."""
        return [
            self.get_tensor(name, index)
            for name, index in zip(node.inputs, node.input_indices)
        ]

    def clear(self) -> None:
        """Drop every computed tensor (weights are untouched)."""
        self._tensors.clear()

    def __repr__(self) -> str:
        return (
            f"ExecutionContext(tensors={len(self._tensors)}, "
            f"weights={len(self.weight_map)})"
        )
