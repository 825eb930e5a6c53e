"""Stale-while-revalidate coordination.

Serves an expiring value immediately, even after it has gone stale, while a
single revalidation pass recomputes it in the background.

Per call, the coordinator:
1. Tries to take the revalidation claim for the key (never waits)
2. On a cold miss, computes synchronously, stores, and frees the claim
3. On a hit while holding the claim, checks the staleness marker:
   - fresh: gives the claim back
   - stale: schedules one RevalidationUnit that keeps the claim until it
     has stored the new value
4. On a hit without the claim, returns the cached value untouched; whoever
   holds the claim is already responsible for revalidating

Example:
    swr = StaleWhileRevalidate(Repository(store), task_queue=RedisJobQueue())

    async with unit_of_work():
        stats = await swr.swr("stats", ttl=3600, tts=300, compute=load_stats)
"""

from __future__ import annotations

import logging
from typing import Any

from swrcache.cache.keys import SwrKeys
from swrcache.cache.repository import Repository
from swrcache.distributed.lock import Lock, NoLock
from swrcache.errors import CapabilityError
from swrcache.jobs.queue import TaskQueue
from swrcache.observability.logging import LogContext
from swrcache.observability.metrics import get_metrics
from swrcache.swr.executor import DeferredExecutor, Dispatch, QueueOption
from swrcache.swr.freshness import FreshnessTracker
from swrcache.swr.unit import (
    Compute,
    DurationSpec,
    RevalidationUnit,
    callable_ref,
    check_durations,
    evaluate,
    store_value,
)

logger = logging.getLogger(__name__)


class StaleWhileRevalidate:
    """Revalidation coordinator bound to one cache facade.

    Args:
        cache: Cache facade whose store provides atomic locks
        task_queue: Queue for offloaded revalidations
        executor: Custom executor (overrides task_queue)
        keys: Key schema for markers and claims
    """

    def __init__(
        self,
        cache: Repository,
        task_queue: TaskQueue | None = None,
        executor: DeferredExecutor | None = None,
        keys: SwrKeys | None = None,
    ) -> None:
        self.cache = cache
        self.keys = keys or SwrKeys()
        self.freshness = FreshnessTracker(cache, self.keys)
        self.executor = executor or DeferredExecutor(cache, task_queue=task_queue)
        self.metrics = get_metrics()

    async def swr(
        self,
        key: str,
        ttl: DurationSpec,
        tts: DurationSpec,
        compute: Compute,
        queue: QueueOption = False,
    ) -> Any:
        """Retrieve an item, revalidating it in the background once stale.

        After the time-to-stale has passed the cached value is still served,
        while a fresh value is computed after the current unit of work and
        stored for later calls.

        Args:
            key: Cache key
            ttl: Time-to-live of the entry (or a function of the value)
            tts: Time-to-stale, below ttl (or a function of the value)
            compute: Plain or coroutine function producing the value
            queue: False to revalidate inline at the end of the unit of
                work; True, a queue name, or a PendingDispatch hook to
                offload it to the task queue

        Returns:
            The cached value (possibly stale), or the computed one on a miss

        Raises:
            CapabilityError: If the store cannot provide atomic locks
            ConfigurationError: If tts >= ttl, or the dispatch is unusable
        """
        dispatch = self._check_call(ttl, tts, compute, queue)

        lock_name = self.keys.atomic_lock(key)
        lock = self.cache.lock(lock_name)
        if isinstance(lock, NoLock):
            raise CapabilityError("Unexpected [NoLock] instance received from cache driver.")

        # Only one caller may own the claim, across tasks, threads and hosts.
        # It decides who writes a cold value and who revalidates a stale one.
        owns_claim = await lock.acquire()

        with LogContext(cache_key=key):
            value = await self.cache.get(key)
            if value is None:
                self.metrics.record_lookup("miss")
                return await self._compute_and_store(key, ttl, tts, compute, lock, owns_claim)

            if not owns_claim:
                self.metrics.record_lookup("claimed")
                return value

            if await self.freshness.is_fresh(key):
                await lock.release()
                self.metrics.record_lookup("fresh")
                return value

            unit = RevalidationUnit(
                key=key,
                ttl=ttl,
                tts=tts,
                compute=compute,
                lock_name=lock_name,
                lock_owner=lock.owner,
                marker_key=self.keys.time_to_stale(key),
            )
            try:
                self.executor.schedule(unit, dispatch)
            except Exception:
                await lock.release()
                raise

            self.metrics.record_lookup("stale")
            logger.debug(f"Serving stale '{key}', revalidation scheduled")
            return value

    def _check_call(
        self,
        ttl: DurationSpec,
        tts: DurationSpec,
        compute: Compute,
        queue: QueueOption,
    ) -> Dispatch:
        """Validate everything that can be validated without the store."""
        if not self.cache.supports_locks():
            raise CapabilityError("This cache driver does not support Atomic Locks.")

        # Value-dependent durations are checked once the value exists
        if not callable(ttl) and not callable(tts):
            check_durations(self.cache, ttl, tts)

        dispatch = Dispatch.from_option(queue)
        self.executor.validate(dispatch)
        if dispatch.offloaded:
            for func in (compute, ttl, tts):
                if callable(func):
                    callable_ref(func)
        return dispatch

    async def _compute_and_store(
        self,
        key: str,
        ttl: DurationSpec,
        tts: DurationSpec,
        compute: Compute,
        lock: Lock,
        owns_claim: bool,
    ) -> Any:
        """Cold path: compute for the caller, store, free the claim.

        Overwrites any existing marker. The claim is released on every exit
        path; a claim held by someone else is force-released so it cannot
        block the first successful write.
        """
        try:
            value = await evaluate(compute)
            await store_value(
                self.cache, key, self.keys.time_to_stale(key), value, ttl, tts
            )
            return value
        finally:
            if owns_claim:
                await lock.release()
            else:
                await lock.force_release()


async def swr(
    cache: Repository,
    key: str,
    ttl: DurationSpec,
    tts: DurationSpec,
    compute: Compute,
    queue: QueueOption = False,
    task_queue: TaskQueue | None = None,
) -> Any:
    """One-off stale-while-revalidate lookup.

    Equivalent to StaleWhileRevalidate(cache, task_queue).swr(...).
    """
    coordinator = StaleWhileRevalidate(cache, task_queue=task_queue)
    return await coordinator.swr(key, ttl, tts, compute, queue)


