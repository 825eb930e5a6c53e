"""Atomic, owner-tagged locks for revalidation claims.

Locks are non-blocking: acquire() answers immediately and never queues.
Each lock carries an owner token so the same claim can be re-attached from
another process (e.g. a queue worker) with restore_lock().

The Redis lock uses a lease-based approach:
1. Owners acquire the lock with SET NX EX (value = owner token)
2. Owners release with a compare-and-delete Lua script
3. If an owner dies, the lease expires and the claim becomes free again

Example:
    lock = store.lock("laravel_swr_cache:revalidate:users", seconds=30)
    if await lock.acquire():
        try:
            await refresh()
        finally:
            await lock.release()
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable
from typing import TYPE_CHECKING, cast
from uuid import uuid4

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)

# Only delete if we own it (Lua script for atomicity)
RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


def generate_owner() -> str:
    """Generate a unique owner token for a lock."""
    return uuid4().hex


class Lock(ABC):
    """Owner-tagged mutual exclusion claim on a name.

    Args:
        name: Lock name
        seconds: Lease duration; 0 means the lock never expires on its own
        owner: Owner token (auto-generated if None)
    """

    def __init__(self, name: str, seconds: int = 0, owner: str | None = None) -> None:
        self.name = name
        self.seconds = seconds
        self._owner = owner or generate_owner()

    @property
    def owner(self) -> str:
        """Token identifying the holder, usable with restore_lock()."""
        return self._owner

    @abstractmethod
    async def acquire(self) -> bool:
        """Try to acquire the lock without waiting."""
        ...

    @abstractmethod
    async def release(self) -> bool:
        """Release the lock if this owner holds it."""
        ...

    @abstractmethod
    async def force_release(self) -> None:
        """Release the lock regardless of owner.

        Safe to call on an unheld or expired lock.
        """
        ...

    @abstractmethod
    async def get_current_owner(self) -> str | None:
        """Return the owner token currently holding the lock, if any."""
        ...

    async def is_owned_by_current_process(self) -> bool:
        """Check whether this handle's owner token holds the lock."""
        return await self.get_current_owner() == self._owner

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, owner={self._owner!r})"


class RedisLock(Lock):
    """Lock backed by a Redis key holding the owner token."""

    def __init__(
        self,
        client: Redis,
        name: str,
        seconds: int = 0,
        owner: str | None = None,
    ) -> None:
        super().__init__(name, seconds, owner)
        self.client = client

    async def acquire(self) -> bool:
        # Use SET NX EX for atomic acquire
        if self.seconds > 0:
            acquired = await self.client.set(self.name, self._owner, nx=True, ex=self.seconds)
        else:
            acquired = await self.client.set(self.name, self._owner, nx=True)

        if acquired:
            logger.debug(f"Acquired lock '{self.name}'")
        return bool(acquired)

    async def release(self) -> bool:
        result = await cast(
            Awaitable[int],
            self.client.eval(RELEASE_SCRIPT, 1, self.name, self._owner),
        )
        if result:
            logger.debug(f"Released lock '{self.name}'")
        return bool(result)

    async def force_release(self) -> None:
        await self.client.delete(self.name)
        logger.debug(f"Force released lock '{self.name}'")

    async def get_current_owner(self) -> str | None:
        value = await self.client.get(self.name)
        if value is None:
            return None
        return value.decode() if isinstance(value, bytes) else value


class NoLock(Lock):
    """Lock that always succeeds without excluding anyone.

    Handed out by stores that cannot provide mutual exclusion. Revalidation
    refuses to work with it.
    """

    async def acquire(self) -> bool:
        return True

    async def release(self) -> bool:
        return True

    async def force_release(self) -> None:
        return None

    async def get_current_owner(self) -> str | None:
        return self._owner
