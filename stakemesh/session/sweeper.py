"""
Session Sweeper: Background Expiry of Idle Sessions

Runs a daemon thread that sweeps one SessionStore shard per tick,
round-robin, so a full cycle takes shard_count * interval seconds.

A failing pass is logged and counted; the next tick proceeds normally.
"""

from __future__ import annotations

import threading
from typing import Any, Optional

from stakemesh.core.errors import LifecycleError
from stakemesh.observability.logging import StructuredLogger
from stakemesh.observability.metrics import SessionMetrics
from stakemesh.session.store import SessionStore

logger = StructuredLogger(__name__)


class SessionSweeper:
    """
    Periodic shard-by-shard expiry driver.

    Usage:
        sweeper = SessionSweeper(store, interval_seconds=5.0)
        sweeper.start()
        ...
        sweeper.stop()

        # Or scoped
        with SessionSweeper(store) as sweeper:
            serve()
    """

    __slots__ = (
        "_store", "_interval", "_metrics", "_log", "_stop_event",
        "_thread", "_lock", "_passes", "_failures", "_removed",
    )

    def __init__(
        self,
        store: SessionStore,
        interval_seconds: Optional[float] = None,
        metrics: Optional[SessionMetrics] = None,
    ) -> None:
        self._store = store
        self._interval = (
            interval_seconds
            if interval_seconds is not None
            else store.config.sweep_interval_seconds
        )
        if self._interval <= 0:
            raise ValueError(f"interval_seconds must be > 0, got {self._interval}")
        self._metrics = metrics
        self._log = logger.bind(
            shards=store.shard_count,
            interval_seconds=self._interval,
        )
        self._stop_event = threading.Event()
        # Kept until the thread has actually exited, even past a timed-out stop().
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._passes = 0
        self._failures = 0
        self._removed = 0

    def start(self) -> None:
        """
        Start the sweep thread. The first pass runs after one interval.

        Raises:
            LifecycleError: while a previous sweep thread is still alive,
                including one whose stop() timed out mid-pass
        """
        with self._lock:
            if self._thread is not None and self._thread.is_alive():
                raise LifecycleError.already_started("SessionSweeper")
            # Fresh event per run; a lingering loop keeps its own, already set.
            stop_event = threading.Event()
            self._stop_event = stop_event
            self._thread = threading.Thread(
                target=self._run,
                args=(stop_event,),
                name="stakemesh-session-sweeper",
                daemon=True,
            )
            self._thread.start()

        self._log.info(
            "Session sweeper started",
            full_cycle_seconds=self._interval * self._store.shard_count,
        )

    def stop(self, timeout: Optional[float] = None) -> None:
        """
        Signal the thread to exit and wait up to ``timeout`` for it.

        If the wait times out the thread finishes its current pass and
        exits on its own; until then is_running stays True.
        """
        with self._lock:
            thread = self._thread
            stop_event = self._stop_event
        if thread is None:
            return

        stop_event.set()
        thread.join(timeout)

        with self._lock:
            if self._thread is thread and not thread.is_alive():
                self._thread = None
            passes, removed, failures = self._passes, self._removed, self._failures

        if thread.is_alive():
            self._log.warning("Session sweeper still finishing a pass", timeout=timeout)
            return
        self._log.info(
            "Session sweeper stopped",
            passes=passes,
            removed=removed,
            failures=failures,
        )

    def run_once(self) -> int:
        """Sweep the next shard on the calling thread."""
        if self._metrics:
            with self._metrics.sweep_duration.time():
                removed = self._store.sweep_next_shard()
        else:
            removed = self._store.sweep_next_shard()

        with self._lock:
            self._passes += 1
            self._removed += removed
        if removed:
            self._log.info("Expired sessions removed", removed=removed)
        return removed

    def _run(self, stop_event: threading.Event) -> None:
        with StructuredLogger.context(component="session-sweeper"):
            # Event.wait returns True once stop() is called for this run.
            while not stop_event.wait(self._interval):
                try:
                    self.run_once()
                except Exception:
                    with self._lock:
                        self._failures += 1
                    self._log.exception("Session sweep pass failed")

    @property
    def is_running(self) -> bool:
        thread = self._thread
        return thread is not None and thread.is_alive()

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def passes(self) -> int:
        with self._lock:
            return self._passes

    @property
    def removed(self) -> int:
        with self._lock:
            return self._removed

    @property
    def failures(self) -> int:
        with self._lock:
            return self._failures

    def __enter__(self) -> SessionSweeper:
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        self.stop()
