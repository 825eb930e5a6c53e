"""Cache facade over a backing store.

The Repository is what callers and the revalidation coordinator talk to.
It normalises expiry values to whole seconds and exposes the store's lock
capability when it has one.

Example:
    cache = Repository(RedisStore(await get_redis()))
    await cache.put("users:count", 42, timedelta(minutes=5))
    if await cache.has("users:count"):
        count = await cache.get("users:count")
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timedelta
from typing import Any

from swrcache.cache.memory import NullStore
from swrcache.cache.store import LockProvider, Store
from swrcache.config import settings
from swrcache.distributed.lock import Lock
from swrcache.errors import CapabilityError

logger = logging.getLogger(__name__)

# Fixed expiry value: seconds, a relative delta, or an absolute moment
Duration = int | float | timedelta | datetime


class Repository:
    """Typed cache operations over a Store.

    Args:
        store: Backing store
        lock_seconds: Default lease for locks handed out by lock()
    """

    def __init__(self, store: Store, lock_seconds: int | None = None) -> None:
        self.store = store
        self.lock_seconds = lock_seconds if lock_seconds is not None else settings.lock_lease_seconds

    async def get(self, key: str, default: Any = None) -> Any:
        """Retrieve an item, or default when it is missing."""
        value = await self.store.get(key)
        if value is None:
            logger.debug(f"Cache miss: {key}")
            return default
        logger.debug(f"Cache hit: {key}")
        return value

    async def put(self, key: str, value: Any, ttl: Duration) -> bool:
        """Store an item for the given duration.

        A non-positive duration removes the item instead.
        """
        seconds = self.get_seconds(ttl)
        if seconds <= 0:
            return await self.forget(key)

        stored = await self.store.put(key, value, seconds)
        if stored:
            logger.debug(f"Key written: {key} ({seconds}s)")
        return stored

    async def forget(self, key: str) -> bool:
        """Remove an item."""
        return await self.store.forget(key)

    async def has(self, key: str) -> bool:
        """Check whether an item is present."""
        return await self.get(key) is not None

    async def missing(self, key: str) -> bool:
        """Check whether an item is absent."""
        return not await self.has(key)

    # -------------------------------------------------------------------------
    # Locks
    # -------------------------------------------------------------------------

    def supports_locks(self) -> bool:
        """Whether the store can provide real mutual exclusion."""
        return isinstance(self.store, LockProvider) and not isinstance(self.store, NullStore)

    def lock(self, name: str, seconds: int | None = None, owner: str | None = None) -> Lock:
        """Get a lock handle from the store."""
        return self._lock_provider().lock(
            name,
            self.lock_seconds if seconds is None else seconds,
            owner,
        )

    def restore_lock(self, name: str, owner: str) -> Lock:
        """Re-attach to a lock by its owner token."""
        return self._lock_provider().restore_lock(name, owner)

    def _lock_provider(self) -> LockProvider:
        if not isinstance(self.store, LockProvider):
            raise CapabilityError("This cache driver does not support Atomic Locks.")
        return self.store

    # -------------------------------------------------------------------------
    # Durations
    # -------------------------------------------------------------------------

    def get_seconds(self, ttl: Duration) -> int:
        """Convert an expiry value to whole seconds from now.

        Absolute datetimes are measured against the store clock. Fractions
        round up so a short positive duration never becomes zero.
        """
        if isinstance(ttl, datetime):
            seconds = ttl.timestamp() - self.store.now()
        elif isinstance(ttl, timedelta):
            seconds = ttl.total_seconds()
        else:
            seconds = float(ttl)

        return math.ceil(seconds) if seconds > 0 else 0
