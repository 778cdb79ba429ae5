"""
Session Store: Sharded Token Registry with Sliding Expiry

Provides customer authentication state for the betting endpoint:
- Customer id -> session record, split across hash-selected shards
- Reverse index token -> customer id for O(1) validation
- Sliding idle timeout (10 minutes default), refreshed on every valid use
- Shard-at-a-time expiry sweeping (driven by SessionSweeper)

Data Model:
    shard[customer_id] = SessionRecord(token, last_access, lock, retired)
    tokens[token] = customer_id

Lifecycle:
    ACTIVE  --idle > timeout-->  EXPIRED  --sweep or replace-->  REMOVED

Concurrency:
    Every record owns a mutex. The request path and the sweeper both take
    it before judging expiry, so "still active" and "evicted" never
    interleave on one session. Records are installed with dict.setdefault,
    which is atomic, and a retired record is never revived: a thread that
    wins its lock after retirement re-reads the shard and retries.
    The reverse-index entry of a session is removed in the same critical
    section that retires it.
"""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum, auto
from typing import Optional

from stakemesh.core.types import Clock, CustomerId, Token
from stakemesh.core.config import SessionConfig
from stakemesh.observability.metrics import SessionMetrics
from stakemesh.session.token import TokenGenerator, is_well_formed
from stakemesh.sharding.segments import shard_index

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Observable lifecycle state of a customer's session."""
    ACTIVE = auto()   # Within idle window
    EXPIRED = auto()  # Idle window exceeded, not yet removed
    REMOVED = auto()  # Evicted from shard and reverse index


class SessionRecord:
    """
    One customer's live session.

    ``last_access`` and ``retired`` are only written while ``lock`` is held.
    ``token`` never changes; a replacement session is a new record.
    """

    __slots__ = ("token", "last_access", "lock", "retired")

    def __init__(self, token: Token, last_access: float) -> None:
        self.token = token
        self.last_access = last_access
        self.lock = threading.Lock()
        self.retired = False

    def is_expired(self, now: float, timeout: float) -> bool:
        return now - self.last_access > timeout

    def touch(self, now: float) -> None:
        self.last_access = now

    def __repr__(self) -> str:
        return (
            f"SessionRecord(token={self.token!r}, "
            f"last_access={self.last_access:.3f}, retired={self.retired})"
        )


class SessionStore:
    """
    Sharded session registry.

    Usage:
        store = SessionStore(SessionConfig(timeout_seconds=600))

        token = store.get_or_create_session(42)
        assert store.find_customer_id(token) == 42

        # Normally driven by SessionSweeper
        store.sweep_next_shard()
    """

    __slots__ = (
        "_config", "_shards", "_tokens", "_generator",
        "_clock", "_metrics", "_sweep_cursor", "_sweep_lock",
    )

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        generator: Optional[TokenGenerator] = None,
        clock: Optional[Clock] = None,
        metrics: Optional[SessionMetrics] = None,
    ) -> None:
        self._config = config or SessionConfig()
        if self._config.shard_count < 1:
            raise ValueError(f"shard_count must be >= 1, got {self._config.shard_count}")
        if self._config.timeout_seconds <= 0:
            raise ValueError(
                f"timeout_seconds must be > 0, got {self._config.timeout_seconds}"
            )

        self._shards: tuple[dict[CustomerId, SessionRecord], ...] = tuple(
            {} for _ in range(self._config.shard_count)
        )
        self._tokens: dict[Token, CustomerId] = {}
        self._generator = generator or TokenGenerator()
        self._clock = clock or time.monotonic
        self._metrics = metrics
        self._sweep_cursor = 0
        self._sweep_lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Request path
    # -------------------------------------------------------------------------
    def get_or_create_session(self, customer_id: CustomerId) -> Token:
        """
        Return the customer's live token, or allocate a new one.

        A live session has its idle clock reset. An expired session is
        replaced and its token dropped from the reverse index.
        """
        shard = self._shard_for(customer_id)
        timeout = self._config.timeout_seconds

        while True:
            record = shard.get(customer_id)
            if record is None:
                record = self._install(shard, customer_id)
                if record is not None:
                    return record.token
                # Lost the install race; use the winner's record.
                continue

            with record.lock:
                if record.retired:
                    continue

                now = self._clock()
                if not record.is_expired(now, timeout):
                    record.touch(now)
                    if self._metrics:
                        self._metrics.refreshed.inc()
                    return record.token

                self._retire(record, path="replace")
                fresh = self._new_record(now)
                self._tokens[fresh.token] = customer_id
                # Safe: nobody else can swap this slot while we hold the
                # lock of the record currently occupying it.
                shard[customer_id] = fresh
                logger.debug(
                    "Replaced expired session",
                    extra={"customer_id": customer_id},
                )
                return fresh.token

    def find_customer_id(self, token: Token) -> Optional[CustomerId]:
        """
        Resolve a token to its owning customer id.

        Returns None for unknown, malformed, superseded and expired tokens,
        whether or not the sweeper has physically removed them yet. A
        successful lookup resets the session's idle clock.
        """
        if not is_well_formed(token):
            self._count_lookup("malformed")
            return None

        customer_id = self._tokens.get(token)
        if customer_id is None:
            self._count_lookup("unknown")
            return None

        record = self._shard_for(customer_id).get(customer_id)
        if record is None or record.token != token:
            self._count_lookup("unknown")
            return None

        with record.lock:
            if record.retired:
                self._count_lookup("unknown")
                return None

            now = self._clock()
            if record.is_expired(now, self._config.timeout_seconds):
                self._count_lookup("expired")
                return None

            record.touch(now)

        if self._metrics:
            self._metrics.refreshed.inc()
        self._count_lookup("hit")
        return customer_id

    def session_state(self, customer_id: CustomerId) -> SessionState:
        """Current lifecycle state of the customer's session."""
        record = self._shard_for(customer_id).get(customer_id)
        if record is None:
            return SessionState.REMOVED
        with record.lock:
            if record.retired:
                return SessionState.REMOVED
            if record.is_expired(self._clock(), self._config.timeout_seconds):
                return SessionState.EXPIRED
            return SessionState.ACTIVE

    # -------------------------------------------------------------------------
    # Expiry sweep
    # -------------------------------------------------------------------------
    def sweep_next_shard(self) -> int:
        """
        Remove expired sessions from the next shard in round-robin order.

        Returns:
            Number of sessions removed
        """
        with self._sweep_lock:
            index = self._sweep_cursor
            self._sweep_cursor = (index + 1) % len(self._shards)
        return self.sweep_shard(index)

    def sweep_shard(self, index: int) -> int:
        """Remove expired sessions from one shard."""
        shard = self._shards[index]
        timeout = self._config.timeout_seconds
        removed = 0

        # Snapshot: the shard may be mutated by request threads meanwhile.
        for customer_id, record in list(shard.items()):
            with record.lock:
                if record.retired:
                    continue
                if not record.is_expired(self._clock(), timeout):
                    continue
                self._retire(record, path="sweep")
                # Holding the lock of the occupant, so the slot is still ours.
                if shard.get(customer_id) is record:
                    del shard[customer_id]
                removed += 1

        logger.debug(
            "Swept session shard",
            extra={"shard": index, "removed": removed, "remaining": len(shard)},
        )
        return removed

    def sweep_all(self) -> int:
        """Run one full sweep cycle over every shard."""
        return sum(self.sweep_shard(i) for i in range(len(self._shards)))

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------
    def _shard_for(self, customer_id: CustomerId) -> dict[CustomerId, SessionRecord]:
        return self._shards[shard_index(customer_id, len(self._shards))]

    def _new_record(self, now: float) -> SessionRecord:
        if self._metrics:
            self._metrics.created.inc()
        return SessionRecord(self._generator.generate(), now)

    def _install(
        self,
        shard: dict[CustomerId, SessionRecord],
        customer_id: CustomerId,
    ) -> Optional[SessionRecord]:
        """
        Publish a brand-new record for a customer without one.

        The record is locked before it becomes visible, so competing
        threads and the sweeper wait until its reverse-index entry exists.
        Returns None when another thread installed first.
        """
        fresh = SessionRecord(self._generator.generate(), self._clock())
        with fresh.lock:
            if shard.setdefault(customer_id, fresh) is not fresh:
                return None
            self._tokens[fresh.token] = customer_id
        if self._metrics:
            self._metrics.created.inc()
        return fresh

    def _retire(self, record: SessionRecord, path: str) -> None:
        """Mark a record removed and drop its reverse-index entry. Lock held."""
        record.retired = True
        self._tokens.pop(record.token, None)
        if self._metrics:
            self._metrics.expired.inc(path=path)

    def _count_lookup(self, outcome: str) -> None:
        if self._metrics:
            self._metrics.lookups.inc(outcome=outcome)

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------
    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def shard_count(self) -> int:
        return len(self._shards)

    @property
    def session_count(self) -> int:
        """Sessions physically present, expired-but-unswept included."""
        return sum(len(shard) for shard in self._shards)

    @property
    def token_count(self) -> int:
        """Reverse-index entries."""
        return len(self._tokens)

    def shard_sizes(self) -> list[int]:
        return [len(shard) for shard in self._shards]

    def has_token(self, token: Token) -> bool:
        """Whether the reverse index holds the token (no expiry check)."""
        return token in self._tokens
