"""Freshness tracking through staleness markers.

An entry is fresh while its marker ({namespace}:tts:{key}) exists. The
marker expires after the time-to-stale, independently of the entry, and its
presence is the only thing that decides freshness.
"""

from __future__ import annotations

from swrcache.cache.keys import SwrKeys
from swrcache.cache.repository import Duration, Repository

# Value stored under every staleness marker
FRESH_MARKER = True


class FreshnessTracker:
    """Reads and writes staleness markers for entries."""

    def __init__(self, cache: Repository, keys: SwrKeys | None = None) -> None:
        self.cache = cache
        self.keys = keys or SwrKeys()

    async def is_fresh(self, key: str) -> bool:
        """True iff the entry's staleness marker exists."""
        return await self.cache.has(self.keys.time_to_stale(key))

    async def mark_fresh(self, key: str, tts: Duration) -> bool:
        """Start a new freshness window of length tts for the entry."""
        return await self.cache.put(self.keys.time_to_stale(key), FRESH_MARKER, tts)

    async def mark_stale(self, key: str) -> bool:
        """Drop the marker so the next swr() call revalidates the entry."""
        return await self.cache.forget(self.keys.time_to_stale(key))
