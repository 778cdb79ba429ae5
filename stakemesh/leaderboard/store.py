"""
Leaderboard Store: Per-Offer Highest Stakes

Tracks, for every betting offer, each customer's highest stake and the
top-K customers by that stake.

Data Model:
    offers[offer_id] = OfferBoard(
        customers: customer_id -> CustomerStakes(max_stake, history),
        ranking:   TopStakes (K entries, stake desc / customer id asc),
    )

Concurrency:
    Offers are created lazily with dict.setdefault. Writes take one lock
    from a fixed segment pool chosen by hashing the customer id, so
    stakes from the same customer serialize while most other customers
    proceed in parallel. Reads go straight to the ranking snapshot and
    may miss an in-flight update.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from stakemesh.core.types import CustomerId, OfferId, Stake
from stakemesh.core.config import LeaderboardConfig
from stakemesh.leaderboard.ranking import RankedStake, TopStakes
from stakemesh.observability.metrics import LeaderboardMetrics
from stakemesh.sharding.segments import SegmentLocks

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CustomerStakes:
    """
    One customer's stakes on one offer.

    Only mutated under the customer's segment lock.
    """
    max_stake: Stake
    history: Optional[list[Stake]] = None

    def record(self, amount: Stake) -> bool:
        """Record a stake. Returns True if it is a new personal maximum."""
        if self.history is not None:
            self.history.append(amount)
        if amount > self.max_stake:
            self.max_stake = amount
            return True
        return False


@dataclass(slots=True)
class OfferBoard:
    """All leaderboard state for one offer."""
    offer_id: OfferId
    ranking: TopStakes
    customers: dict[CustomerId, CustomerStakes] = field(default_factory=dict)


class LeaderboardStore:
    """
    Per-offer top-K stake rankings.

    Usage:
        board = LeaderboardStore(LeaderboardConfig(top_k=20))
        board.submit_stake(offer_id=888, customer_id=1234, amount=100)
        top = board.get_top_stakes(888)  # [RankedStake(1234, 100)]
    """

    __slots__ = ("_config", "_offers", "_segments", "_metrics")

    def __init__(
        self,
        config: Optional[LeaderboardConfig] = None,
        metrics: Optional[LeaderboardMetrics] = None,
    ) -> None:
        self._config = config or LeaderboardConfig()
        self._offers: dict[OfferId, OfferBoard] = {}
        self._segments = SegmentLocks(self._config.segment_count)
        self._metrics = metrics

    def submit_stake(
        self,
        offer_id: OfferId,
        customer_id: CustomerId,
        amount: Stake,
    ) -> bool:
        """
        Record a stake and update the offer's ranking if needed.

        Only a new personal maximum (or the customer's first stake on the
        offer) touches the ranking; anything else leaves it unchanged.

        Returns:
            True if the stake raised the customer's maximum
        """
        board = self._board_for(offer_id)

        with self._segments.for_key(customer_id):
            stakes = board.customers.get(customer_id)
            if stakes is None:
                board.customers[customer_id] = CustomerStakes(
                    max_stake=amount,
                    history=[amount] if self._config.retain_history else None,
                )
                is_new_max = True
            else:
                is_new_max = stakes.record(amount)

            if is_new_max:
                board.ranking.upsert(customer_id, amount)

        if self._metrics:
            self._metrics.stakes.inc()
            if is_new_max:
                self._metrics.ranking_updates.inc()
        return is_new_max

    def get_top_stakes(self, offer_id: OfferId) -> list[RankedStake]:
        """
        Top entries for the offer, best first.

        Empty for unknown or stakeless offers.
        """
        board = self._offers.get(offer_id)
        if board is None:
            return []
        return list(board.ranking.snapshot())

    def max_stake(self, offer_id: OfferId, customer_id: CustomerId) -> Optional[Stake]:
        """Highest stake the customer placed on the offer, if any."""
        board = self._offers.get(offer_id)
        if board is None:
            return None
        stakes = board.customers.get(customer_id)
        return stakes.max_stake if stakes is not None else None

    def stake_history(
        self,
        offer_id: OfferId,
        customer_id: CustomerId,
    ) -> tuple[Stake, ...]:
        """
        Every stake the customer placed on the offer, in submission order.

        Always empty unless the store retains history.
        """
        board = self._offers.get(offer_id)
        if board is None:
            return ()
        with self._segments.for_key(customer_id):
            stakes = board.customers.get(customer_id)
            if stakes is None or stakes.history is None:
                return ()
            return tuple(stakes.history)

    def _board_for(self, offer_id: OfferId) -> OfferBoard:
        board = self._offers.get(offer_id)
        if board is not None:
            return board

        candidate = OfferBoard(
            offer_id=offer_id,
            ranking=TopStakes(self._config.top_k),
        )
        board = self._offers.setdefault(offer_id, candidate)
        if board is candidate:
            logger.debug("Created leaderboard", extra={"offer_id": offer_id})
            if self._metrics:
                self._metrics.offers.set(len(self._offers))
        return board

    @property
    def config(self) -> LeaderboardConfig:
        return self._config

    @property
    def offer_count(self) -> int:
        return len(self._offers)

    @property
    def segment_count(self) -> int:
        return len(self._segments)
