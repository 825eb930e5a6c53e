"""Base cache store interfaces.

Defines the abstract interfaces a backing key-value store implements:
- Store: get/put/forget with per-entry expiry in whole seconds
- LockProvider: owner-tagged atomic locks keyed by name
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any

from swrcache.distributed.lock import Lock


class Store(ABC):
    """Abstract base class for cache stores.

    A value of None means "absent"; stores never hold None.
    """

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Retrieve a value by key.

        Returns:
            The stored value, or None if missing or expired
        """
        ...

    @abstractmethod
    async def put(self, key: str, value: Any, seconds: int) -> bool:
        """Store a value for the given number of seconds.

        Args:
            key: Cache key
            value: Value to store (must not be None)
            seconds: Time-to-live, strictly positive

        Returns:
            True if the value was stored
        """
        ...

    @abstractmethod
    async def forget(self, key: str) -> bool:
        """Remove a value. Returns True if something was removed."""
        ...

    @abstractmethod
    async def flush(self) -> None:
        """Remove every value from the store."""
        ...

    def now(self) -> float:
        """Current time as seen by the store (POSIX seconds)."""
        return time.time()


class LockProvider(ABC):
    """Store capability: atomic locks that can be restored by owner token."""

    @abstractmethod
    def lock(self, name: str, seconds: int = 0, owner: str | None = None) -> Lock:
        """Get a lock handle for the given name."""
        ...

    def restore_lock(self, name: str, owner: str) -> Lock:
        """Re-attach to a lock previously created with the given owner token."""
        return self.lock(name, 0, owner)
