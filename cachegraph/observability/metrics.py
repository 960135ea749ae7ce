# Copyright 2025 Wahyu Ardiansyah
# Licensed under the Apache License, Version 2.0

"""
Metrics Collector for CacheGraph

Collects execution metrics recorded by GraphModel.execute and
GraphModel.execute_async, overall and per model.

Example:
    from cachegraph.observability import get_metrics_collector

    model.predict(x)
    print(get_metrics_collector().get_summary())
"""

from collections import Counter
from dataclasses import dataclass
from typing import Optional
import numpy as np


@dataclass
class InferenceMetrics:
    """
    Metrics for a single graph execution.

    Attributes:
        latency_ms: Execution latency in milliseconds
        kernel_calls: Number of kernels invoked
        asynchronous: Whether the suspending path was used
        model_name: Optional model identifier
    """

    latency_ms: float
    kernel_calls: int = 0
    asynchronous: bool = False
    model_name: Optional[str] = None


class MetricsCollector:
    """
    Collects execution metrics with latency percentiles.

    Example:
        collector = MetricsCollector()
        collector.record_inference(InferenceMetrics(latency_ms=10.5, model_name="encoder"))
        summary = collector.get_summary()
        print(f"P99 latency: {summary['latency_p99_ms']:.2f}ms")
    """

    def __init__(self):
        self._latencies: list[float] = []
        self._kernel_calls: list[int] = []
        self._async_count: int = 0
        self._executions_by_model: Counter = Counter()
        self._errors_by_model: Counter = Counter()

    def record_inference(self, metrics: InferenceMetrics) -> None:
        """Record metrics from a single execution."""
        self._latencies.append(metrics.latency_ms)
        self._kernel_calls.append(metrics.kernel_calls)
        if metrics.asynchronous:
            self._async_count += 1
        if metrics.model_name is not None:
            self._executions_by_model[metrics.model_name] += 1

    def record_error(self, model_name: Optional[str] = None) -> None:
        """Record a failed execution."""
        self._errors_by_model[model_name] += 1

    @property
    def error_count(self) -> int:
        return sum(self._errors_by_model.values())

    def get_summary(self) -> dict:
        """
        Get summary statistics.

        Returns:
            Dictionary with latency percentiles, counts and per-model
            execution counts
        """
        summary = {
            "total_inferences": len(self._latencies),
            "async_inferences": self._async_count,
            "error_count": self.error_count,
            "executions_by_model": dict(self._executions_by_model),
        }
        if not self._latencies:
            return summary

        latencies = np.array(self._latencies)
        summary.update(
            {
                "latency_mean_ms": float(np.mean(latencies)),
                "latency_min_ms": float(np.min(latencies)),
                "latency_max_ms": float(np.max(latencies)),
                "latency_p50_ms": float(np.percentile(latencies, 50)),
                "latency_p90_ms": float(np.percentile(latencies, 90)),
                "latency_p99_ms": float(np.percentile(latencies, 99)),
                "kernel_calls_mean": float(np.mean(self._kernel_calls)),
            }
        )
        return summary

    def reset(self) -> None:
        """Reset all collected metrics."""
        self._latencies.clear()
        self._kernel_calls.clear()
        self._async_count = 0
        self._executions_by_model.clear()
        self._errors_by_model.clear()

    def export_prometheus(self) -> str:
        """Export metrics in Prometheus text format."""
        summary = self.get_summary()
        if not summary["total_inferences"]:
            return ""

        lines = [
            "# HELP cachegraph_execution_total Graph executions per model",
            "# TYPE cachegraph_execution_total counter",
        ]
        for model_name, count in sorted(self._executions_by_model.items()):
            lines.append(f'cachegraph_execution_total{{model="{model_name}"}} {count}')
        lines += [
            "",
            "# HELP cachegraph_execution_errors_total Total failed executions",
            "# TYPE cachegraph_execution_errors_total counter",
            f"cachegraph_execution_errors_total {summary['error_count']}",
            "",
            "# HELP cachegraph_execution_latency_ms Execution latency",
            "# TYPE cachegraph_execution_latency_ms summary",
        ]
        for quantile in ("50", "90", "99"):
            lines.append(
                f'cachegraph_execution_latency_ms{{quantile="0.{quantile}"}} '
                f"{summary[f'latency_p{quantile}_ms']:.3f}"
            )
        lines.append(f"cachegraph_execution_latency_ms_count {summary['total_inferences']}")

        return "\n".join(lines)


_global_collector: Optional[MetricsCollector] = None


def get_metrics_collector() -> MetricsCollector:
    """Get the global metrics collector."""
    global _global_collector
    if _global_collector is None:
        _global_collector = MetricsCollector()
    return _global_collector


def reset_metrics_collector() -> None:
    """Reset the global metrics collector."""
    global _global_collector
    _global_collector = None
