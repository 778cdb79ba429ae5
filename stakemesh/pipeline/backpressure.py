"""
Backpressure: Bounded Worker Pool with Caller-Runs Overflow

Feeds request work into the betting core:
- Fixed worker threads with a bounded number of queued tasks
- On saturation the submitting thread runs the task itself
- Requests are never dropped; overload turns into caller latency

Flow control state is derived from queue occupancy and reported through
BackpressureMetrics.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Callable, Optional, TypeVar

from stakemesh.core.config import ExecutorConfig
from stakemesh.core.errors import LifecycleError
from stakemesh.observability.metrics import Counter

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BackpressureState(Enum):
    """Flow control state."""
    NORMAL = auto()      # Queue below half capacity
    WARNING = auto()     # Queue at or above half capacity
    SATURATED = auto()   # Budget exhausted; callers run tasks inline


@dataclass
class BackpressureMetrics:
    """Point-in-time executor metrics."""
    state: BackpressureState = BackpressureState.NORMAL
    inflight: int = 0
    capacity: int = 0
    accepted: int = 0
    caller_runs: int = 0


class BoundedExecutor:
    """
    Thread pool whose backlog is capped at ``max_workers + queue_capacity``.

    Usage:
        with BoundedExecutor(ExecutorConfig(max_workers=8)) as pool:
            future = pool.submit(service.submit_stake, 888, 1234, 100)
            future.result()
    """

    __slots__ = (
        "_config", "_pool", "_slots", "_lock", "_inflight",
        "_accepted", "_caller_runs", "_shutdown", "_caller_runs_counter",
        "_last_state",
    )

    def __init__(
        self,
        config: Optional[ExecutorConfig] = None,
        caller_runs_counter: Optional[Counter] = None,
    ) -> None:
        self._config = config or ExecutorConfig()
        if self._config.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self._config.max_workers}")
        if self._config.queue_capacity < 0:
            raise ValueError(
                f"queue_capacity must be >= 0, got {self._config.queue_capacity}"
            )

        self._pool = ThreadPoolExecutor(
            max_workers=self._config.max_workers,
            thread_name_prefix="stakemesh-worker",
        )
        # One slot per running or queued task.
        self._slots = threading.BoundedSemaphore(self.capacity)
        self._lock = threading.Lock()
        self._inflight = 0
        self._accepted = 0
        self._caller_runs = 0
        self._shutdown = False
        self._caller_runs_counter = caller_runs_counter
        self._last_state = BackpressureState.NORMAL

    def submit(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> Future[T]:
        """
        Schedule ``fn`` on the pool, or run it here when the pool is full.

        The returned future is already resolved in the caller-runs case.

        Raises:
            LifecycleError: after shutdown()
        """
        if self._shutdown:
            raise LifecycleError.shut_down("BoundedExecutor")

        if not self._slots.acquire(blocking=False):
            return self._run_in_caller(fn, args, kwargs)

        with self._lock:
            self._inflight += 1
            self._accepted += 1
        self._update_state()

        try:
            future = self._pool.submit(fn, *args, **kwargs)
        except RuntimeError as e:
            # Pool shut down between our check and submit.
            self._release()
            raise LifecycleError.shut_down("BoundedExecutor") from e

        future.add_done_callback(lambda _: self._release())
        return future

    def _run_in_caller(
        self,
        fn: Callable[..., T],
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
    ) -> Future[T]:
        with self._lock:
            self._caller_runs += 1
        if self._caller_runs_counter:
            self._caller_runs_counter.inc()
        self._update_state(saturated=True)

        future: Future[T] = Future()
        try:
            result = fn(*args, **kwargs)
        except BaseException as e:
            future.set_exception(e)
        else:
            future.set_result(result)
        return future

    def _release(self) -> None:
        with self._lock:
            self._inflight -= 1
        self._slots.release()
        self._update_state()

    def _update_state(self, saturated: bool = False) -> None:
        with self._lock:
            if saturated:
                state = BackpressureState.SATURATED
            elif self._inflight * 2 >= self.capacity:
                state = BackpressureState.WARNING
            else:
                state = BackpressureState.NORMAL
            old_state, self._last_state = self._last_state, state

        if old_state != state:
            logger.info(
                f"Backpressure state changed: {old_state.name} -> {state.name}"
            )

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work; optionally wait for queued tasks."""
        self._shutdown = True
        self._pool.shutdown(wait=wait)

    @property
    def capacity(self) -> int:
        """Maximum running plus queued tasks."""
        return self._config.max_workers + self._config.queue_capacity

    @property
    def metrics(self) -> BackpressureMetrics:
        with self._lock:
            return BackpressureMetrics(
                state=self._last_state,
                inflight=self._inflight,
                capacity=self.capacity,
                accepted=self._accepted,
                caller_runs=self._caller_runs,
            )

    def __enter__(self) -> BoundedExecutor:
        return self

    def __exit__(self, *args: Any) -> None:
        self.shutdown(wait=True)
