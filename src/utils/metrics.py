"""Metrics collection and performance instrumentation.

This module provides a thread-safe metrics collector for timing dataset
loads, cache queries and API requests.
"""

from __future__ import annotations

import inspect
import logging
import statistics
import threading
import time
from collections import defaultdict
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from functools import wraps
from typing import TypeVar

# Type variable for generic decorator support
F = TypeVar("F", bound=Callable)


class MetricCategories:
    """Pre-defined metric category prefixes."""

    STARTUP = "startup"  # startup.* - process startup timing
    LOAD = "load"  # load.* - CSV load and index build
    QUERY = "query"  # query.* - cache query timing
    API = "api"  # api.* - HTTP endpoint timing


@dataclass
class Timing:
    """Elapsed time of a timed block, filled in when the block exits."""

    operation: str
    duration_ms: float = 0.0


class MetricsCollector:
    """Collects and reports performance metrics for operations.

    This is a thread-safe singleton. Query handlers run concurrently on the
    server's worker threads, so every mutation happens under a lock.

    Usage:
        metrics = get_metrics()

        with metrics.time_operation("load.housing_csv") as timing:
            load_csv()
        print(timing.duration_ms)

        metrics.record("load.rows", 12345)
        stats = metrics.get_stats("load.housing_csv")
    """

    _instance: MetricsCollector | None = None
    _lock = threading.Lock()

    def __new__(cls) -> MetricsCollector:
        """Create or return the singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialize()
        return cls._instance

    def _initialize(self) -> None:
        """Initialize instance variables."""
        self._metrics: dict[str, list[float]] = defaultdict(list)
        self._metrics_lock = threading.Lock()

    @contextmanager
    def time_operation(self, operation: str) -> Iterator[Timing]:
        """Context manager for timing operations.

        The yielded Timing carries the elapsed milliseconds once the block
        exits, including when it exits with an exception.

        Args:
            operation: Name of the operation being timed
        """
        timing = Timing(operation)
        start = time.perf_counter()
        try:
            yield timing
        finally:
            timing.duration_ms = (time.perf_counter() - start) * 1000
            self.record(operation, timing.duration_ms)

    def record(self, metric: str, value: float) -> None:
        """Record a metric value.

        Args:
            metric: Name of the metric
            value: Value to record
        """
        with self._metrics_lock:
            self._metrics[metric].append(value)

    def get_stats(self, metric: str) -> dict:
        """Get statistics for a metric.

        Returns:
            Dictionary with count, min, max, avg, p50 and p95
        """
        with self._metrics_lock:
            values = sorted(self._metrics.get(metric, []))

        if not values:
            return {
                "count": 0,
                "min": 0.0,
                "max": 0.0,
                "avg": 0.0,
                "p50": 0.0,
                "p95": 0.0,
            }

        count = len(values)
        return {
            "count": count,
            "min": values[0],
            "max": values[-1],
            "avg": statistics.mean(values),
            "p50": values[min(int(count * 0.50), count - 1)],
            "p95": values[min(int(count * 0.95), count - 1)],
        }

    def get_all_metrics(self) -> dict[str, list[float]]:
        """Get a copy of all collected metrics."""
        with self._metrics_lock:
            return {k: list(v) for k, v in self._metrics.items()}

    def clear(self) -> None:
        """Clear all collected metrics."""
        with self._metrics_lock:
            self._metrics.clear()

    def report(self, logger: logging.Logger | None = None) -> str:
        """Generate a human-readable report of metrics grouped by category.

        Args:
            logger: Optional logger to write the report to

        Returns:
            The report text
        """
        lines = ["=" * 60, "PERFORMANCE METRICS REPORT", "=" * 60]

        all_metrics = self.get_all_metrics()
        if not all_metrics:
            lines.append("No metrics collected.")
        else:
            categories: dict[str, list[str]] = defaultdict(list)
            for metric_name in sorted(all_metrics):
                category, _, _ = metric_name.partition(".")
                categories[category if "." in metric_name else "other"].append(
                    metric_name
                )

            for category in sorted(categories):
                lines.extend(["", f"[{category.upper()}]", "-" * 40])
                for metric_name in categories[category]:
                    stats = self.get_stats(metric_name)
                    display_name = metric_name.partition(".")[2] or metric_name
                    lines.append(f"  {display_name}:")
                    lines.append(
                        f"    count={stats['count']}, "
                        f"min={stats['min']:.2f}, "
                        f"max={stats['max']:.2f}, "
                        f"avg={stats['avg']:.2f}, "
                        f"p95={stats['p95']:.2f}"
                    )

        lines.extend(["", "=" * 60])
        report = "\n".join(lines)

        if logger:
            for line in lines:
                logger.info(line)

        return report


def get_metrics(metrics: MetricsCollector | None = None) -> MetricsCollector:
    """Get the singleton MetricsCollector instance.

    Args:
        metrics: Optional MetricsCollector to install as the singleton.
    """
    if metrics is not None:
        MetricsCollector._instance = metrics
        return metrics
    return MetricsCollector()


def timed(operation: str | None = None) -> Callable[[F], F]:
    """Decorator to time sync or async function execution.

    Args:
        operation: Optional operation name. Defaults to the function's
                   qualified name.

    Example:
        @timed("api.housing_query")
        def query_housing(...):
            ...
    """

    def decorator(func: F) -> F:
        op_name = operation or f"{func.__module__}.{func.__qualname__}"

        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            with get_metrics().time_operation(op_name):
                return await func(*args, **kwargs)

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            with get_metrics().time_operation(op_name):
                return func(*args, **kwargs)

        if inspect.iscoroutinefunction(func):
            return async_wrapper  # type: ignore
        return sync_wrapper  # type: ignore

    return decorator


def reset_metrics() -> None:
    """Reset the metrics collector singleton.

    Primarily for testing.
    """
    MetricsCollector._instance = None
