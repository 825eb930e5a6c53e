"""Background job processing for offloaded revalidation.

Provides:
- Redis-backed job queue with atomic claiming and a dead letter list
- In-memory job queue for tests and single-process setups
- PendingDispatch to adjust a job before it is submitted
- A worker that runs swr.revalidate jobs

Example:
    # Run revalidations handed off by swr(..., queue=True)
    from swrcache.jobs import JobWorker, RedisJobQueue, register_all_handlers

    worker = JobWorker(RedisJobQueue())
    register_all_handlers(worker, cache)
    await worker.run()
"""

from swrcache.jobs.dispatch import PendingDispatch
from swrcache.jobs.queue import (
    DEFAULT_CLAIM_TIMEOUT,
    DEFAULT_MAX_RETRIES,
    InMemoryJobQueue,
    Job,
    JobStatus,
    RedisJobQueue,
    TaskQueue,
)
from swrcache.jobs.worker import JobHandler, JobWorker, WorkerConfig

__all__ = [
    # Queue
    "Job",
    "JobStatus",
    "TaskQueue",
    "RedisJobQueue",
    "InMemoryJobQueue",
    "PendingDispatch",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_CLAIM_TIMEOUT",
    # Worker
    "JobWorker",
    "JobHandler",
    "WorkerConfig",
]
