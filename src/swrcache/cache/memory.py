"""In-process cache stores.

- MemoryStore keeps entries in a dict with absolute expiry timestamps and
  provides locks shared by every handle created from the same store. The
  clock is injectable so expiry can be driven deterministically.
- NullStore stores nothing and only hands out NoLock.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from typing import Any

from swrcache.cache.store import LockProvider, Store
from swrcache.distributed.lock import Lock, NoLock

Clock = Callable[[], float]


class MemoryStore(Store, LockProvider):
    """Dict-backed store with expiring entries and atomic locks.

    Thread-safe: the entry and lock tables are guarded by a mutex, so locks
    exclude each other across threads as well as across tasks.
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or time.time
        self._data: dict[str, tuple[float, Any]] = {}
        self._locks: dict[str, tuple[str, float | None]] = {}
        self._mutex = threading.Lock()

    def now(self) -> float:
        return self._clock()

    async def get(self, key: str) -> Any | None:
        with self._mutex:
            entry = self._data.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= self.now():
                del self._data[key]
                return None
            return value

    async def put(self, key: str, value: Any, seconds: int) -> bool:
        with self._mutex:
            self._data[key] = (self.now() + seconds, value)
        return True

    async def forget(self, key: str) -> bool:
        with self._mutex:
            return self._data.pop(key, None) is not None

    async def flush(self) -> None:
        with self._mutex:
            self._data.clear()
            self._locks.clear()

    def lock(self, name: str, seconds: int = 0, owner: str | None = None) -> Lock:
        return MemoryLock(self, name, seconds, owner)

    # -------------------------------------------------------------------------
    # Lock table (used by MemoryLock)
    # -------------------------------------------------------------------------

    def _lock_holder(self, name: str) -> str | None:
        """Return the current holder of a lock, dropping an expired lease."""
        held = self._locks.get(name)
        if held is None:
            return None
        owner, expires_at = held
        if expires_at is not None and expires_at <= self.now():
            del self._locks[name]
            return None
        return owner

    def _acquire_lock(self, name: str, owner: str, seconds: int) -> bool:
        with self._mutex:
            if self._lock_holder(name) is not None:
                return False
            expires_at = self.now() + seconds if seconds > 0 else None
            self._locks[name] = (owner, expires_at)
            return True

    def _release_lock(self, name: str, owner: str | None) -> bool:
        with self._mutex:
            holder = self._lock_holder(name)
            if holder is None:
                return False
            if owner is not None and holder != owner:
                return False
            del self._locks[name]
            return True

    def _current_lock_owner(self, name: str) -> str | None:
        with self._mutex:
            return self._lock_holder(name)


class MemoryLock(Lock):
    """Lock living in a MemoryStore's lock table."""

    def __init__(
        self,
        store: MemoryStore,
        name: str,
        seconds: int = 0,
        owner: str | None = None,
    ) -> None:
        super().__init__(name, seconds, owner)
        self.store = store

    async def acquire(self) -> bool:
        return self.store._acquire_lock(self.name, self._owner, self.seconds)

    async def release(self) -> bool:
        return self.store._release_lock(self.name, self._owner)

    async def force_release(self) -> None:
        self.store._release_lock(self.name, None)

    async def get_current_owner(self) -> str | None:
        return self.store._current_lock_owner(self.name)


class NullStore(Store, LockProvider):
    """Store that discards everything."""

    async def get(self, key: str) -> Any | None:
        return None

    async def put(self, key: str, value: Any, seconds: int) -> bool:
        return False

    async def forget(self, key: str) -> bool:
        return True

    async def flush(self) -> None:
        return None

    def lock(self, name: str, seconds: int = 0, owner: str | None = None) -> Lock:
        return NoLock(name, seconds, owner)
