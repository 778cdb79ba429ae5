"""
Configuration Management for the StakeMesh Betting Core

Provides validated configuration with sensible defaults.
Supports environment variable overrides.

Design:
- Immutable after validation
- Fail-fast on invalid configuration
- Type-safe with dataclasses
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from stakemesh.core.types import Result, Ok, Err
from stakemesh.core.errors import ConfigurationError
from stakemesh.core import constants as C


_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


@dataclass(frozen=True)
class SessionConfig:
    """Session store and sweeper configuration."""

    timeout_seconds: float = C.SESSION_TIMEOUT_S
    sweep_interval_seconds: float = C.SWEEP_INTERVAL_S
    shard_count: int = C.SESSION_SHARD_COUNT

    @property
    def full_sweep_seconds(self) -> float:
        """Time for the sweeper to visit every shard once."""
        return self.shard_count * self.sweep_interval_seconds


@dataclass(frozen=True)
class LeaderboardConfig:
    """Leaderboard store configuration."""

    top_k: int = C.TOP_STAKES_LIMIT
    segment_count: int = C.LOCK_SEGMENTS
    retain_history: bool = False


@dataclass(frozen=True)
class ExecutorConfig:
    """Bounded worker pool configuration."""

    max_workers: int = C.WORKER_POOL_SIZE
    queue_capacity: int = C.WORKER_QUEUE_CAPACITY


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging and metrics configuration."""

    log_level: str = "INFO"
    log_json: bool = True
    metrics_enabled: bool = True


@dataclass(frozen=True)
class StakeMeshConfig:
    """Root configuration for the betting core."""

    session: SessionConfig = field(default_factory=SessionConfig)
    leaderboard: LeaderboardConfig = field(default_factory=LeaderboardConfig)
    executor: ExecutorConfig = field(default_factory=ExecutorConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> Result[StakeMeshConfig, ConfigurationError]:
        """
        Load configuration from environment variables.

        Environment variables are prefixed with STAKEMESH_.
        Example: STAKEMESH_SESSION_TIMEOUT_SECONDS, STAKEMESH_TOP_K
        """
        try:
            session = SessionConfig(
                timeout_seconds=float(os.getenv(
                    "STAKEMESH_SESSION_TIMEOUT_SECONDS", str(C.SESSION_TIMEOUT_S),
                )),
                sweep_interval_seconds=float(os.getenv(
                    "STAKEMESH_SWEEP_INTERVAL_SECONDS", str(C.SWEEP_INTERVAL_S),
                )),
                shard_count=int(os.getenv(
                    "STAKEMESH_SHARD_COUNT", str(C.SESSION_SHARD_COUNT),
                )),
            )

            leaderboard = LeaderboardConfig(
                top_k=int(os.getenv("STAKEMESH_TOP_K", str(C.TOP_STAKES_LIMIT))),
                segment_count=int(os.getenv(
                    "STAKEMESH_SEGMENT_COUNT", str(C.LOCK_SEGMENTS),
                )),
                retain_history=_parse_bool(
                    os.getenv("STAKEMESH_RETAIN_HISTORY", "false"),
                ),
            )

            executor = ExecutorConfig(
                max_workers=int(os.getenv(
                    "STAKEMESH_MAX_WORKERS", str(C.WORKER_POOL_SIZE),
                )),
                queue_capacity=int(os.getenv(
                    "STAKEMESH_QUEUE_CAPACITY", str(C.WORKER_QUEUE_CAPACITY),
                )),
            )

            observability = ObservabilityConfig(
                log_level=os.getenv("STAKEMESH_LOG_LEVEL", "INFO").upper(),
                log_json=_parse_bool(os.getenv("STAKEMESH_LOG_JSON", "true")),
            )

            return Ok(cls(
                session=session,
                leaderboard=leaderboard,
                executor=executor,
                observability=observability,
            ))
        except (ValueError, TypeError) as e:
            return Err(ConfigurationError.environment(str(e), cause=e))

    def validate(self) -> Result[None, ConfigurationError]:
        """Validate configuration invariants."""
        checks = (
            ("session.timeout_seconds", self.session.timeout_seconds,
             self.session.timeout_seconds > 0, "must be > 0"),
            ("session.sweep_interval_seconds", self.session.sweep_interval_seconds,
             self.session.sweep_interval_seconds > 0, "must be > 0"),
            ("session.shard_count", self.session.shard_count,
             self.session.shard_count >= 1, "must be >= 1"),
            ("leaderboard.top_k", self.leaderboard.top_k,
             self.leaderboard.top_k >= 1, "must be >= 1"),
            ("leaderboard.segment_count", self.leaderboard.segment_count,
             self.leaderboard.segment_count >= 1, "must be >= 1"),
            ("executor.max_workers", self.executor.max_workers,
             self.executor.max_workers >= 1, "must be >= 1"),
            ("executor.queue_capacity", self.executor.queue_capacity,
             self.executor.queue_capacity >= 0, "must be >= 0"),
            ("observability.log_level", self.observability.log_level,
             self.observability.log_level in _LOG_LEVELS,
             f"must be one of {sorted(_LOG_LEVELS)}"),
        )
        for setting, value, ok, reason in checks:
            if not ok:
                return Err(ConfigurationError.invalid_value(setting, value, reason))
        return Ok(None)


_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def _parse_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"invalid boolean value: {raw!r}")
