# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
CacheGraph Error Hierarchy

Provides the error types raised while loading, building and executing
cached graph models, with:
- Clear error categorization
- Helpful error messages with suggestions
- Context information for debugging

Error Categories:
- CacheGraphError: Base class for all CacheGraph errors
- ValidationError: Caller-supplied arity or identity violations
- ConfigurationError: Loading mechanism or option problems
- NotFoundError: A cache key resolves to nothing
- DeserializationError: Cached bytes do not parse as expected
- UnsupportedOperationError: Operation has no registered kernel
- ExecutionError: Errors while running a graph
"""

from typing import Optional


class CacheGraphError(Exception):
    """
    Base class for all CacheGraph errors.

    Provides consistent error formatting and context tracking.

    Attributes:
        message: Human-readable error message
        suggestions: List of suggestions to fix the error
        context: Optional context dictionary for debugging
    """

    def __init__(
        self,
        message: str,
        suggestions: Optional[list[str]] = None,
        context: Optional[dict] = None,
    ):
        self.message = message
        self.suggestions = suggestions or []
        self.context = context or {}

        full_message = self._format_message()
        super().__init__(full_message)

    def _format_message(self) -> str:
        """Format the error message with suggestions."""
        lines = [self.message]

        if self.suggestions:
            lines.append("")
            lines.append("Suggestions:")
            for i, suggestion in enumerate(self.suggestions, 1):
                lines.append(f"  {i}. {suggestion}")

        if self.context:
            lines.append("")
            lines.append("Context:")
            for key, value in self.context.items():
                lines.append(f"  {key}: {value}")

        return "\n".join(lines)


class ValidationError(CacheGraphError):
    """
    Input validation error.

    Raised when:
    - A model key is missing
    - The number of input tensors does not match the graph placeholders
    - Input or output names are not part of the graph
    """

    def __init__(
        self,
        message: str,
        parameter: Optional[str] = None,
        expected: Optional[str] = None,
        received: Optional[str] = None,
    ):
        self.parameter = parameter
        self.expected = expected
        self.received = received

        context = {}
        if parameter:
            context["parameter"] = parameter
        if expected is not None:
            context["expected"] = expected
        if received is not None:
            context["received"] = received

        suggestions = [
            "Check the argument values and types",
            "Compare against model.input_nodes / model.output_nodes",
        ]

        super().__init__(
            message=message,
            suggestions=suggestions,
            context=context,
        )


class ConfigurationError(CacheGraphError):
    """
    Configuration or setup error.

    Raised when:
    - The loading mechanism has no `load` capability
    - Load options are inconsistent
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[str] = None,
    ):
        context = {}
        if config_key:
            context["config_key"] = config_key
        if config_value:
            context["config_value"] = str(config_value)

        suggestions = [
            "Pass an io_handler that implements an async load() method",
            "Check the LoadOptions passed to the model",
        ]

        super().__init__(
            message=f"Configuration error: {message}",
            suggestions=suggestions,
            context=context,
        )


class NotFoundError(CacheGraphError):
    """
    A cache key resolves to nothing.

    Attributes:
        key: The missing cache key
    """

    def __init__(self, key: str, cache: Optional[str] = None):
        self.key = key

        context = {"key": key}
        if cache:
            context["cache"] = cache

        suggestions = [
            "Store the model files first (cachegraph put KEY FILE)",
            "Check that the cache directory is the one the model was stored in",
        ]

        super().__init__(
            message=f"No cached artifact found for key '{key}'",
            suggestions=suggestions,
            context=context,
        )


class DeserializationError(CacheGraphError):
    """
    Cached bytes do not parse as the expected structure.

    Raised when:
    - The topology document is not UTF-8 JSON
    - Required document fields are missing
    - The weight blob is shorter than the manifest requires
    """

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        weight_name: Optional[str] = None,
    ):
        context = {}
        if key:
            context["key"] = key
        if weight_name:
            context["weight"] = weight_name

        suggestions = [
            "Re-export the model and store it in the cache again",
            "Check that the topology and weights keys are not swapped",
        ]

        super().__init__(
            message=f"Deserialization failed: {message}",
            suggestions=suggestions,
            context=context,
        )


class UnsupportedOperationError(CacheGraphError):
    """
    Operation has no registered kernel.

    Raised when a topology is built in strict mode and contains an op
    that the OperatorRegistry does not know.
    """

    def __init__(
        self,
        op_type: str,
        node_name: Optional[str] = None,
        supported_ops: Optional[list[str]] = None,
    ):
        self.op_type = op_type
        self.node_name = node_name
        self.supported_ops = supported_ops or []

        context = {"operation": op_type}
        if node_name:
            context["node"] = node_name

        suggestions = [
            f"Register a kernel for '{op_type}' with OperatorRegistry.register",
            "Build the model with strict=False to defer the failure to execution",
        ]

        if supported_ops:
            similar = self._find_similar_ops(op_type, supported_ops)
            if similar:
                suggestions.insert(0, f"Try using: {', '.join(similar)}")

        super().__init__(
            message=f"Operation '{op_type}' is not supported",
            suggestions=suggestions,
            context=context,
        )

    @staticmethod
    def _find_similar_ops(op_type: str, supported_ops: list[str]) -> list[str]:
        """Find similar supported operations."""
        op_lower = op_type.lower()
        similar = []
        for op in supported_ops:
            if op_lower in op.lower() or op.lower() in op_lower:
                similar.append(op)
        return similar[:3]


class ExecutionError(CacheGraphError):
    """
    Error while running a graph.

    Raised when:
    - A kernel fails
    - A disposed executor is used
    - The blocking path is used for a graph that needs to suspend
    - Another execution is already in flight on the same model
    """

    def __init__(
        self,
        message: str,
        node_name: Optional[str] = None,
        op_type: Optional[str] = None,
        suggestions: Optional[list[str]] = None,
    ):
        self.node_name = node_name
        self.op_type = op_type

        context = {}
        if node_name:
            context["node"] = node_name
        if op_type:
            context["operation"] = op_type

        super().__init__(
            message=f"Execution failed: {message}",
            suggestions=suggestions,
            context=context,
        )


def format_input_count_mismatch(expected: int, received: int) -> ValidationError:
    """Create a ValidationError for a positional input count mismatch."""
    msg = f"input tensor count mismatch: expected {expected}, got {received}"
    return ValidationError(
        message=msg,
        parameter="inputs",
        expected=str(expected),
        received=str(received),
    )


def format_unknown_names(
    kind: str,
    unknown: list[str],
    known: list[str],
) -> ValidationError:
    """Create a ValidationError for names that are not part of the graph."""
    msg = f"{kind} names {unknown} are not part of the graph"
    return ValidationError(
        message=msg,
        parameter=kind,
        expected=str(known),
        received=str(unknown),
    )
