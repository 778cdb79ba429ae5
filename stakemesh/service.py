"""
Betting Service: Facade Over the Session and Leaderboard Stores

The transport layer calls exactly these operations:
- get_or_create_session(customer_id) -> token
- validate_session(token) -> customer_id or None
- submit_stake(offer_id, customer_id, amount)
- get_top_stakes(offer_id) -> ranked rows (at most top_k)

Inputs are assumed validated (integers) by the caller.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from stakemesh.core.config import StakeMeshConfig
from stakemesh.core.types import Clock, CustomerId, OfferId, Stake, Token
from stakemesh.leaderboard.ranking import RankedStake
from stakemesh.leaderboard.store import LeaderboardStore
from stakemesh.observability.metrics import (
    LeaderboardMetrics,
    MetricsCollector,
    SessionMetrics,
)
from stakemesh.session.store import SessionStore
from stakemesh.session.sweeper import SessionSweeper

logger = logging.getLogger(__name__)


class BettingService:
    """
    Stateless pass-through to the injected stores.

    Usage:
        with BettingService.from_config(StakeMeshConfig()) as service:
            token = service.get_or_create_session(1234)
            customer_id = service.validate_session(token)
            service.submit_stake(888, customer_id, 100)
            service.render_high_stakes(888)  # "1234=100"
    """

    __slots__ = ("_sessions", "_leaderboard", "_sweeper", "_metrics")

    def __init__(
        self,
        sessions: SessionStore,
        leaderboard: LeaderboardStore,
        sweeper: Optional[SessionSweeper] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self._sessions = sessions
        self._leaderboard = leaderboard
        self._sweeper = sweeper
        self._metrics = metrics

    @classmethod
    def from_config(
        cls,
        config: StakeMeshConfig,
        clock: Optional[Clock] = None,
    ) -> BettingService:
        """
        Assemble stores, sweeper and metrics from configuration.

        Raises:
            ConfigurationError: if the configuration fails validation
        """
        config.validate().unwrap()

        collector = MetricsCollector() if config.observability.metrics_enabled else None
        session_metrics = SessionMetrics(collector) if collector else None

        sessions = SessionStore(
            config.session,
            clock=clock,
            metrics=session_metrics,
        )
        leaderboard = LeaderboardStore(
            config.leaderboard,
            metrics=LeaderboardMetrics(collector) if collector else None,
        )
        sweeper = SessionSweeper(sessions, metrics=session_metrics)

        logger.info(
            "Betting service assembled",
            extra={
                "shards": config.session.shard_count,
                "session_timeout_seconds": config.session.timeout_seconds,
                "lock_segments": config.leaderboard.segment_count,
                "top_k": config.leaderboard.top_k,
            },
        )
        return cls(sessions, leaderboard, sweeper=sweeper, metrics=collector)

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------
    def get_or_create_session(self, customer_id: CustomerId) -> Token:
        return self._sessions.get_or_create_session(customer_id)

    def validate_session(self, token: Token) -> Optional[CustomerId]:
        """Owning customer id, or None if the caller is unauthenticated."""
        return self._sessions.find_customer_id(token)

    # -------------------------------------------------------------------------
    # Stakes
    # -------------------------------------------------------------------------
    def submit_stake(
        self,
        offer_id: OfferId,
        customer_id: CustomerId,
        amount: Stake,
    ) -> None:
        self._leaderboard.submit_stake(offer_id, customer_id, amount)

    def get_top_stakes(self, offer_id: OfferId) -> list[RankedStake]:
        return self._leaderboard.get_top_stakes(offer_id)

    def render_high_stakes(self, offer_id: OfferId) -> str:
        """
        Wire form of the ranking: ``"customerId=stake"`` pairs joined by
        commas, best first. Empty string for offers without stakes.
        """
        return ",".join(str(entry) for entry in self.get_top_stakes(offer_id))

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------
    def start(self) -> None:
        """Start background expiry, if a sweeper was provided."""
        if self._sweeper is not None:
            self._sweeper.start()

    def close(self) -> None:
        if self._sweeper is not None:
            self._sweeper.stop()

    def __enter__(self) -> BettingService:
        self.start()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    @property
    def sessions(self) -> SessionStore:
        return self._sessions

    @property
    def leaderboard(self) -> LeaderboardStore:
        return self._leaderboard

    @property
    def sweeper(self) -> Optional[SessionSweeper]:
        return self._sweeper

    @property
    def metrics(self) -> Optional[MetricsCollector]:
        return self._metrics
