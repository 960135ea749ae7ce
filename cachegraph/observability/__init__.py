# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
CacheGraph Observability Module

Components:
- GraphLogger: Structured logging with optional JSON output
- MetricsCollector: Execution metrics and statistics
"""

from .logger import (
    Verbosity,
    LogEntry,
    GraphLogger,
    get_logger,
    set_verbosity,
)

from .metrics import (
    InferenceMetrics,
    MetricsCollector,
    get_metrics_collector,
    reset_metrics_collector,
)

__all__ = [
    # Logger
    "Verbosity",
    "LogEntry",
    "GraphLogger",
    "get_logger",
    "set_verbosity",
    # Metrics
    "InferenceMetrics",
    "MetricsCollector",
    "get_metrics_collector",
    "reset_metrics_collector",
]
