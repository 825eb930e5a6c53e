"""Redis cache store for swr-cache.

Provides async Redis operations for cache entries and revalidation claims.
Uses redis-py async client for connection pooling; values are serialised
with orjson, so anything orjson can encode round-trips as its JSON form.
"""

from __future__ import annotations

from collections.abc import Awaitable
from typing import TYPE_CHECKING, Any, cast

import orjson
import redis.asyncio as redis

from swrcache.cache.store import LockProvider, Store
from swrcache.config import settings
from swrcache.distributed.lock import Lock, RedisLock

if TYPE_CHECKING:
    from redis.asyncio import Redis

# Module-level connection pool
_redis_client: Redis | None = None


async def get_redis() -> Redis:
    """Get or create the Redis client.

    Uses connection pooling for efficient connection management.
    """
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(  # type: ignore[no-untyped-call]
            settings.redis_url,
            encoding="utf-8",
            decode_responses=False,  # Values are orjson bytes
        )
    return _redis_client


async def close_redis() -> None:
    """Close Redis connections."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.close()
        _redis_client = None


class RedisStore(Store, LockProvider):
    """Cache store and lock provider backed by Redis.

    Args:
        client: redis-py asyncio client
        prefix: Optional prefix prepended to every entry and lock key
    """

    def __init__(self, client: Redis, prefix: str = "") -> None:
        self.client = client
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def get(self, key: str) -> Any | None:
        data = await self.client.get(self._key(key))
        if data is None:
            return None
        return orjson.loads(data)

    async def put(self, key: str, value: Any, seconds: int) -> bool:
        return bool(await self.client.setex(self._key(key), seconds, orjson.dumps(value)))

    async def forget(self, key: str) -> bool:
        return bool(await self.client.delete(self._key(key)))

    async def flush(self) -> None:
        if not self.prefix:
            await self.client.flushdb()
            return

        # Use SCAN to avoid blocking on large keyspaces
        async for key in self.client.scan_iter(match=f"{self.prefix}*"):
            await self.client.delete(key)

    def lock(self, name: str, seconds: int = 0, owner: str | None = None) -> Lock:
        return RedisLock(self.client, self._key(name), seconds, owner)

    async def health_check(self) -> bool:
        """Check Redis connectivity."""
        try:
            await cast(Awaitable[bool], self.client.ping())
            return True
        except redis.RedisError:
            return False
