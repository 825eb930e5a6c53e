"""Cache layer for swr-cache.

Provides the cache facade and its backing stores:
- Repository: get/put/forget/has/missing plus lock access
- RedisStore: Redis-backed store with SET NX EX locks
- MemoryStore: process-local store with an injectable clock
- NullStore: stores nothing, cannot lock
- SwrKeys: naming scheme for staleness markers and revalidation claims
"""

from swrcache.cache.keys import SwrKeys
from swrcache.cache.memory import MemoryLock, MemoryStore, NullStore
from swrcache.cache.redis import RedisStore, close_redis, get_redis
from swrcache.cache.repository import Duration, Repository
from swrcache.cache.store import LockProvider, Store

__all__ = [
    # Facade
    "Repository",
    "Duration",
    "SwrKeys",
    # Stores
    "Store",
    "LockProvider",
    "MemoryStore",
    "MemoryLock",
    "NullStore",
    "RedisStore",
    "get_redis",
    "close_redis",
]
