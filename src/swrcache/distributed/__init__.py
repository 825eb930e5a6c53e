"""Distributed coordination primitives for swr-cache.

Provides the owner-tagged locks that back revalidation claims:
- Lock: abstract non-blocking lock with restorable owner tokens
- RedisLock: SET NX EX lease with compare-and-delete release
- NoLock: placeholder that never excludes anyone
"""

from swrcache.distributed.lock import (
    Lock,
    NoLock,
    RedisLock,
    generate_owner,
)

__all__ = [
    "Lock",
    "NoLock",
    "RedisLock",
    "generate_owner",
]
