"""
Shard and Segment Selection: Hash-Based Lock Striping

Maps integer ids onto a fixed number of shards or lock segments:
- 64-bit finalizer mix (MurmurHash3 fmix64) for uniform spread
- Deterministic across processes (no PYTHONHASHSEED dependency)
- Fixed-size lock pool bounding contention without one lock per key

Two arbitrary ids may land in the same segment. That only adds
contention between them; it never affects correctness.

Complexity:
- spread / shard_index: O(1)
- SegmentLocks.for_key: O(1)
"""

from __future__ import annotations

import threading
from typing import Iterator

_MASK_64 = (1 << 64) - 1
_FMIX_C1 = 0xFF51AFD7ED558CCD
_FMIX_C2 = 0xC4CEB9FE1A85EC53


def spread(key: int) -> int:
    """
    Mix an integer id into a well-distributed 64-bit value.

    Negative ids are folded into the unsigned 64-bit range first.
    """
    h = key & _MASK_64
    h ^= h >> 33
    h = (h * _FMIX_C1) & _MASK_64
    h ^= h >> 33
    h = (h * _FMIX_C2) & _MASK_64
    h ^= h >> 33
    return h


def shard_index(key: int, shard_count: int) -> int:
    """Select a shard in ``[0, shard_count)`` for the id."""
    if shard_count < 1:
        raise ValueError(f"shard_count must be >= 1, got {shard_count}")
    return spread(key) % shard_count


class SegmentLocks:
    """
    Fixed pool of mutexes selected by hashing a key.

    Writes for the same key always serialize on the same lock; writes for
    different keys usually take different locks.

    Usage:
        locks = SegmentLocks(segment_count=64)

        with locks.for_key(customer_id):
            update_customer(customer_id)
    """

    __slots__ = ("_locks",)

    def __init__(self, segment_count: int) -> None:
        if segment_count < 1:
            raise ValueError(f"segment_count must be >= 1, got {segment_count}")
        self._locks: tuple[threading.Lock, ...] = tuple(
            threading.Lock() for _ in range(segment_count)
        )

    def segment_of(self, key: int) -> int:
        """Index of the segment guarding ``key``."""
        return shard_index(key, len(self._locks))

    def for_key(self, key: int) -> threading.Lock:
        """Lock guarding ``key``."""
        return self._locks[self.segment_of(key)]

    def __len__(self) -> int:
        return len(self._locks)

    def __iter__(self) -> Iterator[threading.Lock]:
        return iter(self._locks)
