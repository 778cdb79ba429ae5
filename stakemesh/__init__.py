"""
StakeMesh: In-Memory Betting Core

Two concurrent data stores behind a betting endpoint:
- Session Store: opaque 8-symbol tokens with sliding expiry, sharded by
  customer id, swept shard-by-shard in the background
- Leaderboard Store: per-offer highest stake per customer, top-20 ranking
  (stake descending, customer id ascending), segment-locked writes

Concurrency Targets:
- No operation blocks on I/O
- Per-session and per-customer-segment operations are linearizable
- Ranking reads never take a lock
"""

__version__ = "1.0.0"

# =============================================================================
# PUBLIC API EXPORTS
# =============================================================================
from stakemesh.core.types import Result, Ok, Err
from stakemesh.core.errors import (
    StakeMeshError,
    ConfigurationError,
    LifecycleError,
)
from stakemesh.core.config import StakeMeshConfig

# Session exports
from stakemesh.session import (
    TokenGenerator,
    SessionState,
    SessionStore,
    SessionSweeper,
)

# Leaderboard exports
from stakemesh.leaderboard import (
    RankedStake,
    TopStakes,
    LeaderboardStore,
)

from stakemesh.pipeline import BoundedExecutor
from stakemesh.service import BettingService

__all__ = [
    # Version
    "__version__",
    # Result monad
    "Result",
    "Ok",
    "Err",
    # Errors
    "StakeMeshError",
    "ConfigurationError",
    "LifecycleError",
    # Config
    "StakeMeshConfig",
    # Sessions
    "TokenGenerator",
    "SessionState",
    "SessionStore",
    "SessionSweeper",
    # Leaderboard
    "RankedStake",
    "TopStakes",
    "LeaderboardStore",
    # Intake
    "BoundedExecutor",
    # Facade
    "BettingService",
]
