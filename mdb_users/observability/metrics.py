"""
In-process operation metrics for MDB_USERS.

Every layer records one sample per call under a dotted operation name whose
first segment is the layer: ``store.connect``, ``repository.find_by_id``,
``service.users.create``, ``http.request``. Tags (collection, method) split
an operation into separate series. ``GET {base}/utils/metrics`` serves
``snapshot()``.
"""

import functools
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

SeriesKey = tuple[str, tuple[tuple[str, Any], ...]]


@dataclass
class OperationStats:
    """Call count, failures and latency of one series."""

    count: int = 0
    errors: int = 0
    total_ms: float = 0.0
    max_ms: float = 0.0

    def add(self, duration_ms: float, success: bool) -> None:
        self.count += 1
        self.total_ms += duration_ms
        self.max_ms = max(self.max_ms, duration_ms)
        if not success:
            self.errors += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "errors": self.errors,
            "avg_ms": round(self.total_ms / self.count, 2) if self.count else 0.0,
            "max_ms": round(self.max_ms, 2),
        }


def _series_label(operation: str, tags: tuple[tuple[str, Any], ...]) -> str:
    """``repository.count`` + collection=users -> ``count[collection=users]``."""
    name = operation.split(".", 1)[-1]
    if tags:
        name += "[" + ",".join(f"{k}={v}" for k, v in tags) + "]"
    return name


class MetricsCollector:
    """
    Thread-safe store of operation series.

    At most ``max_series`` series are kept; recording a new series beyond
    that drops the one created first.
    """

    def __init__(self, max_series: int = 1000):
        self._series: dict[SeriesKey, OperationStats] = {}
        self._lock = threading.Lock()
        self._max_series = max_series

    def record(self, operation: str, duration_ms: float, success: bool = True, **tags: Any) -> None:
        key = (operation, tuple(sorted(tags.items())))
        with self._lock:
            stats = self._series.get(key)
            if stats is None:
                if len(self._series) >= self._max_series:
                    del self._series[next(iter(self._series))]
                stats = self._series[key] = OperationStats()
            stats.add(duration_ms, success)

    def count(self, operation: str) -> int:
        """Calls of ``operation`` summed over all its tag series."""
        with self._lock:
            return sum(s.count for (op, _), s in self._series.items() if op == operation)

    def errors(self, operation: str) -> int:
        """Failed calls of ``operation`` summed over all its tag series."""
        with self._lock:
            return sum(s.errors for (op, _), s in self._series.items() if op == operation)

    def snapshot(self) -> dict[str, dict[str, dict[str, Any]]]:
        """
        Series grouped by layer.

        Example:
            {"repository": {"find_by_id[collection=onb-ptf-users]":
                {"count": 3, "errors": 0, "avg_ms": 1.2, "max_ms": 2.0}}}
        """
        with self._lock:
            items = [(key, stats.to_dict()) for key, stats in self._series.items()]

        grouped: dict[str, dict[str, dict[str, Any]]] = {}
        for (operation, tags), stats in items:
            layer = operation.split(".", 1)[0]
            grouped.setdefault(layer, {})[_series_label(operation, tags)] = stats
        return grouped

    def reset(self) -> None:
        with self._lock:
            self._series.clear()


_metrics_collector: MetricsCollector | None = None


def get_metrics_collector() -> MetricsCollector:
    """Get or create the process-wide collector."""
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector()
    return _metrics_collector


def record_operation(operation: str, duration_ms: float, success: bool = True, **tags: Any) -> None:
    get_metrics_collector().record(operation, duration_ms, success, **tags)


def timed_operation(operation: str, **tags: Any):
    """
    Record the duration and outcome of every call to a coroutine function.

    Usage:
        @timed_operation("service.users.create")
        async def create(self, candidate):
            ...
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.time()
            success = False
            try:
                result = await func(*args, **kwargs)
                success = True
                return result
            finally:
                record_operation(operation, (time.time() - start_time) * 1000, success, **tags)

        return wrapper

    return decorator
