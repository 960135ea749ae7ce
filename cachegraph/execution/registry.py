# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Operator Registry

Maps topology op types to kernel implementations.
Uses a decorator-based registration pattern for extensibility.
"""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable, Dict, List, Optional, TYPE_CHECKING, Union

if TYPE_CHECKING:
    import numpy as np

    from ..core.node import Node
    from .context import ExecutionContext


# Signature: (context, node, resolved_inputs) -> list of output tensors.
# Kernels declared with `async def` only run on the suspending path.
KernelResult = Union[List["np.ndarray"], Awaitable[List["np.ndarray"]]]
OperatorFunc = Callable[["ExecutionContext", "Node", List["np.ndarray"]], KernelResult]


class OperatorRegistry:
    """
    Registry for kernel implementations.

    Example:
        @OperatorRegistry.register("MatMul")
        def execute_matmul(ctx, node, inputs):
            return [np.matmul(inputs[0], inputs[1])]

        kernel = OperatorRegistry.get_kernel("MatMul")
    """

    _registry: Dict[str, OperatorFunc] = {}
    _metadata: Dict[str, Dict[str, Any]] = {}

    @classmethod
    def register(
        cls,
        op_type: str,
        aliases: Optional[List[str]] = None,
        category: str = "basic",
    ) -> Callable[[OperatorFunc], OperatorFunc]:
        """
        Decorator to register a kernel.

        Args:
            op_type: Operation type (e.g., "MatMul", "HashTableV2").
            aliases: Alternative names for the operation.
            category: Grouping used in summaries ("graph", "arithmetic",
                "basic_math", "hash_table", ...).
        """

        def decorator(func: OperatorFunc) -> OperatorFunc:
            metadata = {
                "category": category,
                "func_name": func.__name__,
                "async": inspect.iscoroutinefunction(func),
            }
            for name in [op_type] + list(aliases or []):
                cls._registry[name] = func
                cls._metadata[name] = metadata
            return func

        return decorator

    @classmethod
    def get_kernel(cls, op_type: str) -> OperatorFunc:
        """
        Get the kernel function for an operation.

        Raises:
            KeyError: If operation not registered.
        """
        if op_type not in cls._registry:
            raise KeyError(f"Operator '{op_type}' not registered.")
        return cls._registry[op_type]

    @classmethod
    def is_supported(cls, op_type: str) -> bool:
        """Check if an operation is supported."""
        return op_type in cls._registry

    @classmethod
    def is_async(cls, op_type: str) -> bool:
        """Check if an operation's kernel must be awaited."""
        return cls._metadata.get(op_type, {}).get("async", False)

    @classmethod
    def get_category(cls, op_type: str) -> Optional[str]:
        return cls._metadata.get(op_type, {}).get("category")

    @classmethod
    def list_operators(cls) -> List[str]:
        """List all registered operations."""
        return sorted(cls._registry.keys())

    @classmethod
    def unregister(cls, op_type: str) -> bool:
        """Remove a registration (for tests registering temporary kernels)."""
        cls._metadata.pop(op_type, None)
        return cls._registry.pop(op_type, None) is not None

    @classmethod
    def count(cls) -> int:
        """Get number of registered operations."""
        return len(cls._registry)

    @classmethod
    def get_unsupported_ops(cls, op_types: List[str]) -> List[str]:
        """Get the subset of op types that have no kernel."""
        return [op for op in op_types if not cls.is_supported(op)]
