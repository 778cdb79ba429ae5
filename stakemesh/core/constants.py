"""
System-Wide Constants for the StakeMesh Betting Core

All magic numbers and configuration defaults centralized here.

Sizing:
- Session shards track available parallelism (one per CPU)
- Leaderboard lock segments are a multiple of available parallelism
- Worker pool is twice the CPU count with a bounded queue
"""

import os
from typing import Final

# =============================================================================
# TIME UNITS
# =============================================================================
MINUTE_S: Final[float] = 60.0

# =============================================================================
# PARALLELISM
# =============================================================================
CPU_COUNT: Final[int] = os.cpu_count() or 1

# =============================================================================
# SESSION TOKENS
# =============================================================================
# 56 symbols: digits 0/1 and letters I/O/l/o are excluded as confusable.
TOKEN_ALPHABET: Final[str] = "23456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnpqrstuvwxyz"
TOKEN_LENGTH: Final[int] = 8
TOKEN_EPOCH_MS: Final[int] = 1672531200000  # 2023-01-01T00:00:00Z
TOKEN_SEQUENCE_BITS: Final[int] = 20
TOKEN_SEQUENCE_MASK: Final[int] = (1 << TOKEN_SEQUENCE_BITS) - 1

# =============================================================================
# SESSION STORE
# =============================================================================
SESSION_TIMEOUT_S: Final[float] = 10 * MINUTE_S
SWEEP_INTERVAL_S: Final[float] = 5.0
SESSION_SHARD_COUNT: Final[int] = CPU_COUNT

# =============================================================================
# LEADERBOARD
# =============================================================================
TOP_STAKES_LIMIT: Final[int] = 20
LOCK_SEGMENTS: Final[int] = CPU_COUNT * 4

# =============================================================================
# WORKER POOL & BACKPRESSURE
# =============================================================================
WORKER_POOL_SIZE: Final[int] = CPU_COUNT * 2
WORKER_QUEUE_CAPACITY: Final[int] = 1000
