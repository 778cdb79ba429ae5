"""
Sharding module: Hash-based shard and lock segment selection.
"""

from stakemesh.sharding.segments import SegmentLocks, shard_index, spread

__all__ = [
    "SegmentLocks",
    "shard_index",
    "spread",
]
