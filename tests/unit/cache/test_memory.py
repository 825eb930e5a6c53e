"""Tests for the in-process cache stores."""

from __future__ import annotations

import asyncio

import pytest

from swrcache.cache.memory import MemoryLock, MemoryStore, NullStore
from swrcache.distributed.lock import NoLock


class TestMemoryStore:
    """Tests for MemoryStore entries."""

    @pytest.mark.asyncio
    async def test_put_and_get(self, store: MemoryStore) -> None:
        """Stored values are returned until they expire."""
        await store.put("k", {"a": 1}, 10)

        assert await store.get("k") == {"a": 1}

    @pytest.mark.asyncio
    async def test_entry_expires(self, store: MemoryStore, clock) -> None:
        """Entries disappear once their lifetime has passed."""
        await store.put("k", "v", 10)

        clock.advance(9)
        assert await store.get("k") == "v"

        clock.advance(1)
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_forget(self, store: MemoryStore) -> None:
        """Forget reports whether something was removed."""
        await store.put("k", "v", 10)

        assert await store.forget("k") is True
        assert await store.forget("k") is False
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_flush_clears_entries_and_locks(self, store: MemoryStore) -> None:
        """Flush drops every entry and every held lock."""
        await store.put("k", "v", 10)
        lock = store.lock("l", 10)
        await lock.acquire()

        await store.flush()

        assert await store.get("k") is None
        assert await lock.get_current_owner() is None

    def test_now_uses_injected_clock(self, store: MemoryStore, clock) -> None:
        """The store clock is the injected one."""
        assert store.now() == clock.now


class TestMemoryLock:
    """Tests for MemoryLock."""

    @pytest.mark.asyncio
    async def test_acquire_is_exclusive(self, store: MemoryStore) -> None:
        """A second handle cannot acquire a held lock."""
        first = store.lock("claim", 30)
        second = store.lock("claim", 30)

        assert await first.acquire() is True
        assert await second.acquire() is False

    @pytest.mark.asyncio
    async def test_concurrent_acquire_single_winner(self, store: MemoryStore) -> None:
        """Exactly one of many concurrent acquirers wins."""
        locks = [store.lock("claim", 30) for _ in range(10)]

        results = await asyncio.gather(*(lock.acquire() for lock in locks))

        assert results.count(True) == 1

    @pytest.mark.asyncio
    async def test_release_checks_owner(self, store: MemoryStore) -> None:
        """Only the owner can release the lock."""
        holder = store.lock("claim", 30)
        other = store.lock("claim", 30)
        await holder.acquire()

        assert await other.release() is False
        assert await holder.get_current_owner() == holder.owner

        assert await holder.release() is True
        assert await holder.get_current_owner() is None

    @pytest.mark.asyncio
    async def test_force_release_ignores_owner(self, store: MemoryStore) -> None:
        """Force release frees a lock held by someone else."""
        holder = store.lock("claim", 30)
        other = store.lock("claim", 30)
        await holder.acquire()

        await other.force_release()

        assert await holder.get_current_owner() is None

    @pytest.mark.asyncio
    async def test_force_release_unheld_is_noop(self, store: MemoryStore) -> None:
        """Force release of a free lock does nothing."""
        lock = store.lock("claim", 30)

        await lock.force_release()
        await lock.force_release()

        assert await lock.acquire() is True

    @pytest.mark.asyncio
    async def test_lease_expires(self, store: MemoryStore, clock) -> None:
        """A lock with a lease becomes free once it runs out."""
        holder = store.lock("claim", 5)
        await holder.acquire()

        clock.advance(5)

        assert await holder.is_owned_by_current_process() is False
        assert await store.lock("claim", 5).acquire() is True

    @pytest.mark.asyncio
    async def test_zero_seconds_never_expires(self, store: MemoryStore, clock) -> None:
        """A lock without a lease stays held."""
        holder = store.lock("claim", 0)
        await holder.acquire()

        clock.advance(10_000)

        assert await holder.is_owned_by_current_process() is True

    @pytest.mark.asyncio
    async def test_restore_lock_by_owner(self, store: MemoryStore) -> None:
        """A restored handle with the same owner can release the lock."""
        holder = store.lock("claim", 30)
        await holder.acquire()

        restored = store.restore_lock("claim", holder.owner)

        assert isinstance(restored, MemoryLock)
        assert await restored.is_owned_by_current_process() is True
        assert await restored.release() is True

    def test_owner_generated(self, store: MemoryStore) -> None:
        """Each handle gets its own owner token."""
        assert store.lock("claim").owner != store.lock("claim").owner


class TestNullStore:
    """Tests for NullStore."""

    @pytest.mark.asyncio
    async def test_stores_nothing(self) -> None:
        """Writes are discarded."""
        null = NullStore()

        assert await null.put("k", "v", 10) is False
        assert await null.get("k") is None

    def test_hands_out_no_lock(self) -> None:
        """Locks from a NullStore exclude nobody."""
        assert isinstance(NullStore().lock("claim"), NoLock)
