"""
Unit Tests: Bounded Executor

Tests:
    - Work runs on pool threads while capacity remains
    - Caller-runs overflow once saturated
    - Exceptions surface through futures
    - Use after shutdown
"""

import threading

import pytest

from stakemesh.core.config import ExecutorConfig
from stakemesh.core.errors import ErrorCode, LifecycleError
from stakemesh.observability.metrics import Counter
from stakemesh.pipeline.backpressure import BackpressureState, BoundedExecutor


class TestSubmit:
    """Tests for normal scheduling."""

    def test_runs_on_worker_thread(self):
        with BoundedExecutor(ExecutorConfig(max_workers=2, queue_capacity=4)) as pool:
            name = pool.submit(lambda: threading.current_thread().name).result(timeout=5)

        assert name.startswith("stakemesh-worker")

    def test_passes_arguments(self):
        with BoundedExecutor(ExecutorConfig(max_workers=1, queue_capacity=1)) as pool:
            assert pool.submit(pow, 2, 10).result(timeout=5) == 1024

    def test_exception_propagates_through_future(self):
        def fail():
            raise KeyError("missing")

        with BoundedExecutor(ExecutorConfig(max_workers=1, queue_capacity=1)) as pool:
            future = pool.submit(fail)

            with pytest.raises(KeyError):
                future.result(timeout=5)

    def test_capacity_is_workers_plus_queue(self):
        with BoundedExecutor(ExecutorConfig(max_workers=3, queue_capacity=7)) as pool:
            assert pool.capacity == 10


class TestCallerRuns:
    """Tests for the saturation policy."""

    def test_saturated_pool_runs_task_in_caller(self):
        release = threading.Event()
        counter = Counter("caller_runs_total")
        pool = BoundedExecutor(
            ExecutorConfig(max_workers=1, queue_capacity=1),
            caller_runs_counter=counter,
        )
        try:
            blockers = [pool.submit(release.wait, 5) for _ in range(2)]

            caller = threading.current_thread().name
            future = pool.submit(lambda: threading.current_thread().name)

            assert future.done()
            assert future.result() == caller
            assert counter.get() == 1
            assert pool.metrics.caller_runs == 1
            assert pool.metrics.state is BackpressureState.SATURATED
        finally:
            release.set()
            pool.shutdown()

        assert all(b.result(timeout=5) for b in blockers)

    def test_caller_run_exception_set_on_future(self):
        release = threading.Event()
        pool = BoundedExecutor(ExecutorConfig(max_workers=1, queue_capacity=0))
        try:
            pool.submit(release.wait, 5)

            future = pool.submit(lambda: 1 / 0)

            with pytest.raises(ZeroDivisionError):
                future.result()
        finally:
            release.set()
            pool.shutdown()

    def test_slots_released_after_completion(self):
        with BoundedExecutor(ExecutorConfig(max_workers=2, queue_capacity=2)) as pool:
            for future in [pool.submit(lambda: None) for _ in range(4)]:
                future.result(timeout=5)
            results = [pool.submit(lambda i=i: i).result(timeout=5) for i in range(20)]

        assert results == list(range(20))
        assert pool.metrics.inflight == 0


class TestShutdown:
    """Tests for lifecycle."""

    def test_submit_after_shutdown_raises(self):
        pool = BoundedExecutor(ExecutorConfig(max_workers=1, queue_capacity=1))
        pool.shutdown()

        with pytest.raises(LifecycleError) as exc_info:
            pool.submit(lambda: None)
        assert exc_info.value.code is ErrorCode.LIFECYCLE_SHUT_DOWN

    @pytest.mark.parametrize("workers, queue", [(0, 1), (1, -1)])
    def test_rejects_invalid_sizes(self, workers, queue):
        with pytest.raises(ValueError):
            BoundedExecutor(ExecutorConfig(max_workers=workers, queue_capacity=queue))
