"""
Leaderboard Module: Per-Offer Highest-Stake Rankings

Provides:
- TopStakes: bounded ranked set with lock-free snapshot reads
- RankedStake: (customer_id, stake) row, ordered stake desc / id asc
- LeaderboardStore: per-offer maxima under segment locks
"""

from stakemesh.leaderboard.ranking import RankedStake, TopStakes
from stakemesh.leaderboard.store import (
    CustomerStakes,
    LeaderboardStore,
    OfferBoard,
)

__all__ = [
    "RankedStake",
    "TopStakes",
    "CustomerStakes",
    "LeaderboardStore",
    "OfferBoard",
]
