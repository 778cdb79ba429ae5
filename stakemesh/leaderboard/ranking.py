"""
Ranked Top-K Set: Bounded Leaderboard with Snapshot Reads

Keeps the K best (customer, stake) entries of one offer:
- Order: stake descending, then customer id ascending
- At most one entry per customer
- Writers serialize on an internal lock and publish a new sorted tuple
- Readers take no lock; they see the last published tuple

The order is total: two entries compare equal only if they belong to
the same customer with the same stake, so distinct customers are never
merged.

Complexity:
- upsert: O(K) (list copy + bisect)
- snapshot: O(1)
"""

from __future__ import annotations

import bisect
import threading
from dataclasses import dataclass
from typing import Iterator, Optional

from stakemesh.core.types import CustomerId, Stake
from stakemesh.core import constants as C


@dataclass(frozen=True, slots=True)
class RankedStake:
    """One leaderboard row."""
    customer_id: CustomerId
    stake: Stake

    @property
    def rank_key(self) -> tuple[int, int]:
        """Sort key: higher stake first, lower customer id on ties."""
        return (-self.stake, self.customer_id)

    def __iter__(self) -> Iterator[int]:
        # Allows `customer_id, stake = entry`
        yield self.customer_id
        yield self.stake

    def __str__(self) -> str:
        return f"{self.customer_id}={self.stake}"


def _rank_key(entry: RankedStake) -> tuple[int, int]:
    return entry.rank_key


class TopStakes:
    """
    Bounded, internally synchronized ranked set.

    Usage:
        top = TopStakes(capacity=20)
        top.upsert(customer_id=7, stake=500)
        for customer_id, stake in top.snapshot():
            ...
    """

    __slots__ = ("_capacity", "_entries", "_members", "_write_lock")

    def __init__(self, capacity: int = C.TOP_STAKES_LIMIT) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        # Published snapshot, replaced wholesale on every change.
        self._entries: tuple[RankedStake, ...] = ()
        # customer id -> ranked stake, for members of the snapshot only
        self._members: dict[CustomerId, Stake] = {}
        self._write_lock = threading.Lock()

    def upsert(self, customer_id: CustomerId, stake: Stake) -> bool:
        """
        Place or move the customer's entry.

        Replaces any previous entry of the customer, then trims the set back
        to capacity by discarding the lowest-ranked entries.

        Returns:
            True if the customer is ranked after the update
        """
        entry = RankedStake(customer_id, stake)

        with self._write_lock:
            entries = list(self._entries)
            previous = self._members.get(customer_id)

            if previous is not None:
                idx = bisect.bisect_left(
                    entries, (-previous, customer_id), key=_rank_key,
                )
                del entries[idx]
            elif len(entries) >= self._capacity and _rank_key(entry) > _rank_key(entries[-1]):
                # Would be trimmed straight away.
                return False

            bisect.insort(entries, entry, key=_rank_key)
            self._members[customer_id] = stake

            while len(entries) > self._capacity:
                dropped = entries.pop()
                del self._members[dropped.customer_id]

            self._entries = tuple(entries)
            return customer_id in self._members

    def snapshot(self) -> tuple[RankedStake, ...]:
        """Current ranking, best first. Lock-free."""
        return self._entries

    def stake_of(self, customer_id: CustomerId) -> Optional[Stake]:
        """Ranked stake of a customer, None when not in the top set."""
        with self._write_lock:
            return self._members.get(customer_id)

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[RankedStake]:
        return iter(self._entries)
