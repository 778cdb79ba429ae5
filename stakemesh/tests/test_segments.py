"""
Unit Tests: Shard and Segment Selection

Tests:
    - Deterministic, in-range selection
    - Spread across segments
    - Lock identity per key
"""

from collections import Counter

import pytest

from stakemesh.sharding.segments import SegmentLocks, shard_index, spread


class TestSpread:
    """Tests for the integer mixer."""

    def test_deterministic(self):
        assert spread(1234) == spread(1234)

    def test_zero_maps_to_zero(self):
        assert spread(0) == 0

    def test_result_fits_64_bits(self):
        for key in (-1, 1, 2**63, 2**70 + 3):
            assert 0 <= spread(key) < 2**64

    def test_sequential_ids_spread_evenly(self):
        counts = Counter(shard_index(i, 8) for i in range(8_000))

        assert len(counts) == 8
        assert min(counts.values()) > 800


class TestShardIndex:
    """Tests for shard selection bounds."""

    def test_in_range(self):
        assert all(0 <= shard_index(i, 5) < 5 for i in range(-50, 50))

    def test_single_shard(self):
        assert shard_index(987654321, 1) == 0

    def test_rejects_zero_shards(self):
        with pytest.raises(ValueError):
            shard_index(1, 0)


class TestSegmentLocks:
    """Tests for the lock pool."""

    def test_same_key_same_lock(self):
        locks = SegmentLocks(16)

        assert locks.for_key(42) is locks.for_key(42)

    def test_pool_size(self):
        locks = SegmentLocks(16)

        assert len(locks) == 16
        assert len(set(map(id, locks))) == 16

    def test_segment_of_matches_shard_index(self):
        locks = SegmentLocks(16)

        assert locks.segment_of(99) == shard_index(99, 16)

    def test_rejects_empty_pool(self):
        with pytest.raises(ValueError):
            SegmentLocks(0)
