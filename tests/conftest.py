"""Global pytest configuration and fixtures.

Provides a controllable clock, an in-memory cache wired to it, and a store
that records every write so tests can assert on what was persisted.
"""

from __future__ import annotations

from typing import Any

import pytest

from swrcache.cache import MemoryStore, Repository
from swrcache.cache.keys import SwrKeys
from swrcache.jobs import InMemoryJobQueue


class FakeClock:
    """Manually advanced wall clock."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingStore(MemoryStore):
    """MemoryStore that keeps a log of every put()."""

    def __init__(self, clock: FakeClock) -> None:
        super().__init__(clock=clock)
        self.puts: list[tuple[str, Any, int]] = []

    async def put(self, key: str, value: Any, seconds: int) -> bool:
        self.puts.append((key, value, seconds))
        return await super().put(key, value, seconds)

    def written_keys(self) -> list[str]:
        return [key for key, _, _ in self.puts]


@pytest.fixture
def clock() -> FakeClock:
    """Clock frozen until advanced."""
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> RecordingStore:
    """In-memory store driven by the fake clock."""
    return RecordingStore(clock)


@pytest.fixture
def cache(store: RecordingStore) -> Repository:
    """Cache facade over the recording store."""
    return Repository(store, lock_seconds=30)


@pytest.fixture
def keys() -> SwrKeys:
    """Key schema with the default namespace."""
    return SwrKeys("laravel_swr_cache")


@pytest.fixture
def task_queue() -> InMemoryJobQueue:
    """Process-local task queue."""
    return InMemoryJobQueue()
