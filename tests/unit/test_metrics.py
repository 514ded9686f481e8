"""
Unit tests for MetricsCollector.

Tests metrics collection functionality including:
- Thread-safety under concurrent access
- Bounded series storage
- Tag-aware series and the layer-grouped snapshot
- The timed_operation decorator
"""

import asyncio
import threading

import pytest

from mdb_users.observability.metrics import (
    MetricsCollector,
    OperationStats,
    get_metrics_collector,
    record_operation,
    timed_operation,
)


class TestMetricsCollectorThreadSafety:
    """Test thread-safety of metrics collection."""

    def test_concurrent_record(self):
        """Concurrent record calls lose no samples."""
        collector = MetricsCollector()
        num_threads = 10
        operations_per_thread = 100
        barrier = threading.Barrier(num_threads)

        def record_operations(thread_id: int):
            barrier.wait()
            for i in range(operations_per_thread):
                collector.record(
                    "repository.find_by_id",
                    10.0 + i,
                    success=True,
                    collection=f"c{thread_id}",
                )

        threads = [
            threading.Thread(target=record_operations, args=(i,)) for i in range(num_threads)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert collector.count("repository.find_by_id") == num_threads * operations_per_thread
        assert len(collector.snapshot()["repository"]) == num_threads


class TestMetricsCollectorBoundedStorage:
    def test_max_series_limit(self):
        collector = MetricsCollector(max_series=5)

        for i in range(8):
            collector.record(f"test.op_{i}", 10.0)

        series = collector.snapshot()["test"]
        assert len(series) == 5
        assert "op_0" not in series
        assert "op_7" in series

    def test_existing_series_is_not_evicted_by_its_own_samples(self):
        collector = MetricsCollector(max_series=2)
        collector.record("test.a", 1.0)
        collector.record("test.b", 1.0)
        collector.record("test.b", 1.0)

        assert set(collector.snapshot()["test"]) == {"a", "b"}
        assert collector.count("test.b") == 2


class TestOperationStats:
    def test_aggregates(self):
        stats = OperationStats()
        stats.add(10.0, success=True)
        stats.add(30.0, success=False)

        assert stats.to_dict() == {"count": 2, "errors": 1, "avg_ms": 20.0, "max_ms": 30.0}

    def test_empty_stats(self):
        assert OperationStats().to_dict() == {
            "count": 0,
            "errors": 0,
            "avg_ms": 0.0,
            "max_ms": 0.0,
        }


class TestSnapshot:
    def test_grouped_by_layer(self):
        collector = MetricsCollector()
        collector.record("store.connect", 12.0)
        collector.record("repository.count", 1.0, collection="users")
        collector.record("repository.count", 3.0, success=False, collection="users")
        collector.record("http.request", 2.0, method="GET")

        snapshot = collector.snapshot()

        assert set(snapshot) == {"store", "repository", "http"}
        assert snapshot["store"]["connect"]["count"] == 1
        assert snapshot["repository"]["count[collection=users]"] == {
            "count": 2,
            "errors": 1,
            "avg_ms": 2.0,
            "max_ms": 3.0,
        }
        assert "request[method=GET]" in snapshot["http"]

    def test_tags_are_sorted_in_label(self):
        collector = MetricsCollector()
        collector.record("http.request", 1.0, method="GET", status=200)
        collector.record("http.request", 1.0, status=200, method="GET")

        assert collector.snapshot()["http"] == {
            "request[method=GET,status=200]": {
                "count": 2,
                "errors": 0,
                "avg_ms": 1.0,
                "max_ms": 1.0,
            }
        }

    def test_errors_sum_over_series(self):
        collector = MetricsCollector()
        collector.record("repository.create", 1.0, success=False, collection="a")
        collector.record("repository.create", 1.0, success=False, collection="b")
        collector.record("repository.create", 1.0, collection="b")

        assert collector.count("repository.create") == 3
        assert collector.errors("repository.create") == 2
        assert collector.errors("repository.delete") == 0

    def test_reset(self):
        collector = MetricsCollector()
        collector.record("store.connect", 1.0)
        collector.reset()
        assert collector.snapshot() == {}


class TestGlobalCollector:
    def test_record_operation_uses_process_collector(self):
        record_operation("repository.create", 5.0, collection="users")
        assert get_metrics_collector() is get_metrics_collector()
        assert get_metrics_collector().count("repository.create") == 1

    @pytest.mark.asyncio
    async def test_timed_operation_records_success(self):
        @timed_operation("service.test.ok")
        async def succeed():
            return 42

        assert await succeed() == 42
        assert succeed.__name__ == "succeed"
        assert get_metrics_collector().count("service.test.ok") == 1
        assert get_metrics_collector().errors("service.test.ok") == 0

    @pytest.mark.asyncio
    async def test_timed_operation_records_failure(self):
        @timed_operation("service.test.fail")
        async def fail():
            raise ValueError("boom")

        with pytest.raises(ValueError):
            await fail()
        assert get_metrics_collector().errors("service.test.fail") == 1

    @pytest.mark.asyncio
    async def test_timed_operation_records_cancellation(self):
        started = asyncio.Event()

        @timed_operation("service.test.cancelled")
        async def hang():
            started.set()
            await asyncio.sleep(10)

        task = asyncio.create_task(hang())
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert get_metrics_collector().errors("service.test.cancelled") == 1
