"""Job handlers shipped with swr-cache.

Currently one task:
- swr.revalidate: rebuild a RevalidationUnit from the job payload and run
  it against the worker's cache

Example:
    worker = JobWorker(RedisJobQueue())
    register_all_handlers(worker, Repository(RedisStore(await get_redis())))
"""

from __future__ import annotations

import logging
from typing import Any

from swrcache.cache.repository import Repository
from swrcache.jobs.queue import Job
from swrcache.jobs.worker import JobHandler, JobWorker
from swrcache.observability.logging import LogContext
from swrcache.observability.metrics import get_metrics
from swrcache.swr.unit import REVALIDATE_TASK, RevalidationUnit

logger = logging.getLogger(__name__)


def revalidate_handler(cache: Repository) -> JobHandler:
    """Build the handler for swr.revalidate jobs."""

    async def handle_revalidate(job: Job) -> dict[str, Any]:
        unit = RevalidationUnit.from_payload(job.payload)
        metrics = get_metrics()

        with LogContext(cache_key=unit.key):
            try:
                stored = await unit.run(cache)
            except Exception:
                metrics.record_revalidation("offloaded", "failed")
                raise

        metrics.record_revalidation("offloaded", "succeeded" if stored else "skipped")
        return {"key": unit.key, "revalidated": stored}

    return handle_revalidate


def register_all_handlers(worker: JobWorker, cache: Repository) -> None:
    """Register every built-in handler on a worker."""
    worker.register_handler(REVALIDATE_TASK, revalidate_handler(cache))


BUILTIN_TASKS = [REVALIDATE_TASK]
