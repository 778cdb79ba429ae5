"""Shared fixtures for the betting core tests."""

import pytest

from stakemesh.core.config import LeaderboardConfig, SessionConfig
from stakemesh.leaderboard.store import LeaderboardStore
from stakemesh.observability.metrics import MetricsCollector, SessionMetrics
from stakemesh.session.store import SessionStore


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


TIMEOUT = 600.0


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def collector():
    return MetricsCollector()


@pytest.fixture
def session_store(clock, collector):
    config = SessionConfig(timeout_seconds=TIMEOUT, sweep_interval_seconds=5.0, shard_count=4)
    return SessionStore(config, clock=clock, metrics=SessionMetrics(collector))


@pytest.fixture
def leaderboard():
    return LeaderboardStore(LeaderboardConfig(top_k=20, segment_count=16))
