"""
Session Module: Token-Based Customer Authentication

Provides:
- TokenGenerator: 8-symbol collision-resistant session tokens
- SessionStore: Sharded registry with reverse token index
- SessionSweeper: Background shard-by-shard expiry

Architecture:
- Hot Path: per-session locks, no shard-wide locking
- Expiry: sliding idle window, observable before physical removal
- Cleanup: one shard per sweep tick, same lock as the request path
"""

from stakemesh.session.token import (
    TokenGenerator,
    encode,
    decode,
    is_well_formed,
)
from stakemesh.session.store import (
    SessionState,
    SessionRecord,
    SessionStore,
)
from stakemesh.session.sweeper import SessionSweeper

__all__ = [
    # Tokens
    "TokenGenerator",
    "encode",
    "decode",
    "is_well_formed",
    # Store
    "SessionState",
    "SessionRecord",
    "SessionStore",
    # Sweeper
    "SessionSweeper",
]
