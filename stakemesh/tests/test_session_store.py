"""
Unit Tests: Session Store

Tests:
    - Idempotent get-or-create within the idle window
    - Sliding expiry and replacement after the window
    - Token validation (unknown, malformed, expired, superseded)
    - Sweep removes sessions and reverse-index entries together
    - Concurrent creation for one and for many customers
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from stakemesh.core.config import SessionConfig
from stakemesh.session.store import SessionState, SessionStore
from stakemesh.session.token import is_well_formed
from stakemesh.tests.conftest import TIMEOUT, FakeClock


class TestGetOrCreate:
    """Tests for session allocation and refresh."""

    def test_new_customer_gets_well_formed_token(self, session_store):
        token = session_store.get_or_create_session(42)

        assert is_well_formed(token)
        assert session_store.session_count == 1
        assert session_store.token_count == 1

    def test_repeated_calls_within_window_return_same_token(self, session_store, clock):
        first = session_store.get_or_create_session(42)

        for _ in range(5):
            clock.advance(TIMEOUT / 2)
            assert session_store.get_or_create_session(42) == first

        assert session_store.token_count == 1

    def test_new_token_after_idle_window(self, session_store, clock):
        old = session_store.get_or_create_session(42)

        clock.advance(TIMEOUT + 1)
        new = session_store.get_or_create_session(42)

        assert new != old
        assert session_store.find_customer_id(old) is None
        assert session_store.find_customer_id(new) == 42
        assert not session_store.has_token(old)
        assert session_store.session_count == 1
        assert session_store.token_count == 1

    def test_exactly_at_timeout_is_still_active(self, session_store, clock):
        token = session_store.get_or_create_session(42)

        clock.advance(TIMEOUT)

        assert session_store.get_or_create_session(42) == token

    def test_distinct_customers_get_distinct_tokens(self, session_store):
        tokens = {session_store.get_or_create_session(c) for c in range(100)}

        assert len(tokens) == 100

    def test_negative_and_large_ids_are_accepted(self, session_store):
        for customer_id in (-1, 0, 2**31 - 1, 2**63):
            token = session_store.get_or_create_session(customer_id)
            assert session_store.find_customer_id(token) == customer_id


class TestFindCustomerId:
    """Tests for token validation."""

    def test_unknown_token_resolves_to_none(self, session_store):
        assert session_store.find_customer_id("ABCDEFGH") is None

    @pytest.mark.parametrize("token", ["", "abc", "0000000000", None])
    def test_malformed_token_resolves_to_none(self, session_store, token):
        assert session_store.find_customer_id(token) is None

    def test_expired_token_resolves_to_none_before_sweep(self, session_store, clock):
        token = session_store.get_or_create_session(7)

        clock.advance(TIMEOUT + 1)

        assert session_store.find_customer_id(token) is None
        # Still physically present until swept
        assert session_store.has_token(token)
        assert session_store.session_state(7) is SessionState.EXPIRED

    def test_lookup_refreshes_idle_clock(self, session_store, clock):
        token = session_store.get_or_create_session(7)

        for _ in range(4):
            clock.advance(TIMEOUT - 1)
            assert session_store.find_customer_id(token) == 7

        assert session_store.get_or_create_session(7) == token

    def test_lookup_counts_outcomes(self, session_store, collector, clock):
        token = session_store.get_or_create_session(7)
        session_store.find_customer_id(token)
        session_store.find_customer_id("ABCDEFGH")
        clock.advance(TIMEOUT + 1)
        session_store.find_customer_id(token)

        lookups = collector.counter("stakemesh_token_lookups_total", ["outcome"])
        assert lookups.get(outcome="hit") == 1
        assert lookups.get(outcome="unknown") == 1
        assert lookups.get(outcome="expired") == 1

    def test_successful_lookup_counts_as_refresh(self, session_store, collector, clock):
        token = session_store.get_or_create_session(7)
        refreshed = collector.counter("stakemesh_sessions_refreshed_total")

        session_store.find_customer_id(token)
        session_store.find_customer_id(token)
        assert refreshed.get() == 2

        session_store.get_or_create_session(7)
        assert refreshed.get() == 3

        clock.advance(TIMEOUT + 1)
        session_store.find_customer_id(token)
        assert refreshed.get() == 3


class TestSessionState:
    """Tests for the ACTIVE -> EXPIRED -> REMOVED lifecycle."""

    def test_unknown_customer_is_removed(self, session_store):
        assert session_store.session_state(99) is SessionState.REMOVED

    def test_full_lifecycle(self, session_store, clock):
        session_store.get_or_create_session(99)
        assert session_store.session_state(99) is SessionState.ACTIVE

        clock.advance(TIMEOUT + 1)
        assert session_store.session_state(99) is SessionState.EXPIRED

        session_store.sweep_all()
        assert session_store.session_state(99) is SessionState.REMOVED


class TestSweep:
    """Tests for shard sweeping."""

    def test_sweep_removes_expired_session_and_token(self, session_store, clock):
        token = session_store.get_or_create_session(5)
        assert session_store.find_customer_id(token) == 5

        clock.advance(TIMEOUT + 1)
        removed = session_store.sweep_all()

        assert removed == 1
        assert session_store.find_customer_id(token) is None
        assert not session_store.has_token(token)
        assert session_store.session_count == 0
        assert session_store.token_count == 0

    def test_sweep_keeps_active_sessions(self, session_store, clock):
        stale = [session_store.get_or_create_session(c) for c in range(10)]
        clock.advance(TIMEOUT / 2)
        fresh = [session_store.get_or_create_session(c) for c in range(10, 20)]
        clock.advance(TIMEOUT / 2 + 1)

        assert session_store.sweep_all() == 10

        assert all(session_store.find_customer_id(t) is None for t in stale)
        assert [session_store.find_customer_id(t) for t in fresh] == list(range(10, 20))
        assert session_store.token_count == 10

    def test_sweep_next_shard_round_robins(self, session_store, clock):
        for customer_id in range(200):
            session_store.get_or_create_session(customer_id)
        clock.advance(TIMEOUT + 1)

        sizes = session_store.shard_sizes()
        removed = [session_store.sweep_next_shard() for _ in range(session_store.shard_count)]

        assert removed == sizes
        assert session_store.session_count == 0
        assert session_store.token_count == 0

    def test_sweep_counts_expirations(self, session_store, collector, clock):
        session_store.get_or_create_session(1)
        session_store.get_or_create_session(2)
        clock.advance(TIMEOUT + 1)
        session_store.get_or_create_session(1)
        session_store.sweep_all()

        expired = collector.counter("stakemesh_sessions_expired_total", ["path"])
        assert expired.get(path="replace") == 1
        assert expired.get(path="sweep") == 1

    def test_token_of_replaced_session_stays_invalid_after_sweep(self, session_store, clock):
        old = session_store.get_or_create_session(3)
        clock.advance(TIMEOUT + 1)
        new = session_store.get_or_create_session(3)

        assert session_store.sweep_all() == 0
        assert session_store.find_customer_id(old) is None
        assert session_store.find_customer_id(new) == 3


class TestConcurrency:
    """Tests for concurrent access."""

    def test_same_customer_gets_one_session(self):
        store = SessionStore(SessionConfig(shard_count=4))
        barrier = threading.Barrier(16)

        def create(_):
            barrier.wait()
            return store.get_or_create_session(1234)

        with ThreadPoolExecutor(max_workers=16) as pool:
            tokens = set(pool.map(create, range(16)))

        assert len(tokens) == 1
        token = tokens.pop()
        assert store.find_customer_id(token) == 1234
        assert store.token_count == 1

    def test_concurrent_distinct_customers_get_unique_tokens(self):
        store = SessionStore(SessionConfig(shard_count=8))

        with ThreadPoolExecutor(max_workers=32) as pool:
            tokens = list(pool.map(store.get_or_create_session, range(1_000)))

        assert len(set(tokens)) == 1_000
        assert all(is_well_formed(t) for t in tokens)
        assert store.session_count == 1_000
        assert store.token_count == 1_000
        for customer_id, token in enumerate(tokens):
            assert store.find_customer_id(token) == customer_id

    def test_replacement_race_leaves_single_live_token(self):
        clock = FakeClock()
        store = SessionStore(SessionConfig(timeout_seconds=10, shard_count=2), clock=clock)
        store.get_or_create_session(1)
        clock.advance(11)
        barrier = threading.Barrier(12)

        def refresh(_):
            barrier.wait()
            return store.get_or_create_session(1)

        with ThreadPoolExecutor(max_workers=12) as pool:
            tokens = set(pool.map(refresh, range(12)))

        assert len(tokens) == 1
        assert store.token_count == 1
        assert store.find_customer_id(tokens.pop()) == 1

    def test_sweep_races_with_validation(self):
        clock = FakeClock()
        store = SessionStore(SessionConfig(timeout_seconds=10, shard_count=4), clock=clock)
        tokens = {c: store.get_or_create_session(c) for c in range(500)}
        clock.advance(11)
        stop = threading.Event()
        revived = []

        def validate():
            while not stop.is_set():
                for customer_id, token in tokens.items():
                    if store.find_customer_id(token) is not None:
                        revived.append(customer_id)

        checker = threading.Thread(target=validate)
        checker.start()
        try:
            store.sweep_all()
        finally:
            stop.set()
            checker.join()

        assert revived == []
        assert store.session_count == 0
        assert store.token_count == 0


class TestValidation:
    """Tests for constructor checks."""

    def test_rejects_zero_shards(self):
        with pytest.raises(ValueError):
            SessionStore(SessionConfig(shard_count=0))

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ValueError):
            SessionStore(SessionConfig(timeout_seconds=0))
