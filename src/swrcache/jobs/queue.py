"""Job queues for offloaded revalidation.

Provides a distributed job queue with:
- Job submission to named queues with priority
- Atomic job claiming via BRPOPLPUSH
- Dead letter queue for failed jobs
- Job result storage with TTL

Example:
    queue = RedisJobQueue()
    await queue.initialize()

    # Submit a job
    job_id = await queue.submit("swr.revalidate", payload, queue="swr")

    # Process jobs (worker)
    async for job in queue.claim_jobs("swr"):
        result = await process_job(job)
        await queue.complete_job(job.id, result)
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, AsyncIterator, Awaitable, TypeVar, cast
from uuid import uuid4

if TYPE_CHECKING:
    from redis.asyncio import Redis

from swrcache.cache.redis import get_redis
from swrcache.config import settings

T = TypeVar("T")


def _await_redis(result: Awaitable[T] | T) -> Awaitable[T]:
    """Cast redis-py async results to an awaitable for mypy."""
    return cast(Awaitable[T], result)


logger = logging.getLogger(__name__)

# Redis key prefixes
JOB_PREFIX = "swr:job:"
QUEUE_PREFIX = "swr:jobs:"

DEFAULT_MAX_RETRIES = 0
DEFAULT_CLAIM_TIMEOUT = 5  # seconds


class JobStatus(str, Enum):
    """Job execution status."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    DEAD = "dead"  # Moved to DLQ after max retries


@dataclass
class Job:
    """Job definition with metadata and state."""

    id: str
    task: str
    payload: dict[str, Any]
    queue: str = field(default_factory=lambda: settings.default_queue)
    status: JobStatus = JobStatus.PENDING
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    started_at: datetime | None = None
    completed_at: datetime | None = None
    result: dict[str, Any] | None = None
    error: str | None = None
    attempts: int = 0
    max_retries: int = DEFAULT_MAX_RETRIES
    priority: int = 0  # Higher = more urgent

    def to_dict(self) -> dict[str, Any]:
        """Serialize job to dictionary."""
        return {
            "id": self.id,
            "task": self.task,
            "payload": self.payload,
            "queue": self.queue,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "result": self.result,
            "error": self.error,
            "attempts": self.attempts,
            "max_retries": self.max_retries,
            "priority": self.priority,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Job:
        """Deserialize job from dictionary."""
        return cls(
            id=data["id"],
            task=data["task"],
            payload=data["payload"],
            queue=data.get("queue", settings.default_queue),
            status=JobStatus(data["status"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            started_at=(
                datetime.fromisoformat(data["started_at"]) if data.get("started_at") else None
            ),
            completed_at=(
                datetime.fromisoformat(data["completed_at"]) if data.get("completed_at") else None
            ),
            result=data.get("result"),
            error=data.get("error"),
            attempts=data.get("attempts", 0),
            max_retries=data.get("max_retries", DEFAULT_MAX_RETRIES),
            priority=data.get("priority", 0),
        )


class TaskQueue(ABC):
    """Interface of the queues that offloaded revalidations are handed to."""

    async def initialize(self) -> None:
        """Prepare connections. Default: nothing to do."""
        return None

    @abstractmethod
    async def submit(
        self,
        task: str,
        payload: dict[str, Any] | None = None,
        queue: str | None = None,
        priority: int = 0,
        max_retries: int | None = None,
    ) -> str:
        """Submit a job and return its id."""
        ...

    @abstractmethod
    async def get_job(self, job_id: str) -> Job | None:
        """Get job by ID."""
        ...

    @abstractmethod
    def claim_jobs(
        self,
        queue: str | None = None,
        batch_size: int = 1,
        timeout: int | None = None,
    ) -> AsyncIterator[Job]:
        """Claim up to batch_size jobs from a queue for processing."""
        ...

    @abstractmethod
    async def complete_job(self, job_id: str, result: dict[str, Any] | None = None) -> None:
        """Mark job as completed."""
        ...

    @abstractmethod
    async def fail_job(self, job_id: str, error: str, retry: bool = True) -> None:
        """Mark job as failed, retrying while attempts remain."""
        ...


class RedisJobQueue(TaskQueue):
    """Redis-backed distributed job queue.

    Uses Redis lists for queue management:
    - LPUSH to add jobs (RPUSH for priority jobs, so they are claimed next)
    - BRPOPLPUSH to atomically move jobs from pending to processing
    - Job state stored in separate keys

    Horizontally scalable: any number of workers may claim from one queue.
    """

    def __init__(
        self,
        job_ttl: int | None = None,
        result_ttl: int | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        claim_timeout: int = DEFAULT_CLAIM_TIMEOUT,
    ) -> None:
        self.job_ttl = job_ttl if job_ttl is not None else settings.job_ttl
        self.result_ttl = result_ttl if result_ttl is not None else settings.result_ttl
        self.max_retries = max_retries
        self.claim_timeout = claim_timeout
        self._redis: Redis | None = None

    async def initialize(self) -> None:
        """Initialize Redis connection."""
        self._redis = await get_redis()
        logger.info("Job queue initialized")

    async def _get_redis(self) -> Redis:
        """Get Redis client, initializing if needed."""
        if self._redis is None:
            await self.initialize()
        return self._redis  # type: ignore[return-value]

    def _job_key(self, job_id: str) -> str:
        """Redis key for job data."""
        return f"{JOB_PREFIX}{job_id}"

    @staticmethod
    def pending_key(queue: str) -> str:
        return f"{QUEUE_PREFIX}{queue}:pending"

    @staticmethod
    def processing_key(queue: str) -> str:
        return f"{QUEUE_PREFIX}{queue}:processing"

    @staticmethod
    def dlq_key(queue: str) -> str:
        return f"{QUEUE_PREFIX}{queue}:dlq"

    async def _save(self, job: Job, ttl: int) -> None:
        redis = await self._get_redis()
        await _await_redis(redis.set(self._job_key(job.id), json.dumps(job.to_dict()), ex=ttl))

    async def submit(
        self,
        task: str,
        payload: dict[str, Any] | None = None,
        queue: str | None = None,
        priority: int = 0,
        max_retries: int | None = None,
    ) -> str:
        """Submit a job to a queue.

        Args:
            task: Task name (e.g., "swr.revalidate")
            payload: Task-specific data, JSON serializable
            queue: Queue name (default: settings.default_queue)
            priority: Positive priorities are claimed before normal jobs
            max_retries: Override default max retries

        Returns:
            Job ID for tracking
        """
        redis = await self._get_redis()

        job = Job(
            id=str(uuid4()),
            task=task,
            payload=payload or {},
            queue=queue or settings.default_queue,
            priority=priority,
            max_retries=max_retries if max_retries is not None else self.max_retries,
        )

        await self._save(job, self.job_ttl)

        if priority > 0:
            await _await_redis(redis.rpush(self.pending_key(job.queue), job.id))
        else:
            await _await_redis(redis.lpush(self.pending_key(job.queue), job.id))

        logger.info(f"Job submitted: {job.id} ({task}) on '{job.queue}'")
        return job.id

    async def get_job(self, job_id: str) -> Job | None:
        """Get job by ID.

        Args:
            job_id: Job identifier

        Returns:
            Job if found, None otherwise
        """
        redis = await self._get_redis()
        data = await redis.get(self._job_key(job_id))

        if data is None:
            return None

        return Job.from_dict(json.loads(data))

    async def claim_jobs(
        self,
        queue: str | None = None,
        batch_size: int = 1,
        timeout: int | None = None,
    ) -> AsyncIterator[Job]:
        """Claim jobs from a queue for processing.

        Uses BRPOPLPUSH for atomic job claiming:
        - Blocks until a job is available (or timeout)
        - Atomically moves job from pending to processing
        - Prevents duplicate processing

        Args:
            queue: Queue name (default: settings.default_queue)
            batch_size: Number of jobs to claim
            timeout: Block timeout in seconds (None for claim_timeout)

        Yields:
            Jobs ready for processing
        """
        redis = await self._get_redis()
        queue = queue or settings.default_queue
        timeout_sec = timeout if timeout is not None else self.claim_timeout

        for _ in range(batch_size):
            job_id_bytes = cast(
                bytes | str | None,
                await _await_redis(
                    redis.brpoplpush(
                        self.pending_key(queue),
                        self.processing_key(queue),
                        timeout=timeout_sec,
                    )
                ),
            )

            if job_id_bytes is None:
                break

            job_id = job_id_bytes.decode() if isinstance(job_id_bytes, bytes) else job_id_bytes
            job = await self.get_job(job_id)

            if job is None:
                # Job expired or deleted, remove from processing
                await _await_redis(redis.lrem(self.processing_key(queue), 1, job_id))
                continue

            job.status = JobStatus.RUNNING
            job.started_at = datetime.now(timezone.utc)
            job.attempts += 1
            await self._save(job, self.job_ttl)

            logger.info(f"Job claimed: {job.id} (attempt {job.attempts})")
            yield job

    async def complete_job(
        self,
        job_id: str,
        result: dict[str, Any] | None = None,
    ) -> None:
        """Mark job as completed.

        Args:
            job_id: Job identifier
            result: Job result data
        """
        redis = await self._get_redis()
        job = await self.get_job(job_id)

        if job is None:
            logger.warning(f"Job not found for completion: {job_id}")
            return

        job.status = JobStatus.COMPLETED
        job.completed_at = datetime.now(timezone.utc)
        job.result = result

        # Shorter TTL once only the result is of interest
        await self._save(job, self.result_ttl)
        await _await_redis(redis.lrem(self.processing_key(job.queue), 1, job_id))

        logger.info(f"Job completed: {job_id}")

    async def fail_job(
        self,
        job_id: str,
        error: str,
        retry: bool = True,
    ) -> None:
        """Mark job as failed, optionally retry.

        Args:
            job_id: Job identifier
            error: Error message
            retry: Whether to retry if attempts remaining
        """
        redis = await self._get_redis()
        job = await self.get_job(job_id)

        if job is None:
            logger.warning(f"Job not found for failure: {job_id}")
            return

        job.error = error
        await _await_redis(redis.lrem(self.processing_key(job.queue), 1, job_id))

        if retry and job.attempts <= job.max_retries:
            job.status = JobStatus.PENDING
            await self._save(job, self.job_ttl)
            await _await_redis(redis.lpush(self.pending_key(job.queue), job_id))
            logger.info(
                f"Job queued for retry: {job_id} (attempt {job.attempts}/{job.max_retries + 1})"
            )
        else:
            job.status = JobStatus.DEAD
            job.completed_at = datetime.now(timezone.utc)
            await self._save(job, self.job_ttl)
            await _await_redis(redis.lpush(self.dlq_key(job.queue), job_id))
            logger.warning(f"Job moved to DLQ: {job_id}")

    async def get_queue_stats(self, queue: str | None = None) -> dict[str, int]:
        """Get queue statistics.

        Returns:
            Dict with pending, processing, and dlq counts
        """
        redis = await self._get_redis()
        queue = queue or settings.default_queue

        return {
            "pending": await _await_redis(redis.llen(self.pending_key(queue))),
            "processing": await _await_redis(redis.llen(self.processing_key(queue))),
            "dlq": await _await_redis(redis.llen(self.dlq_key(queue))),
        }


class InMemoryJobQueue(TaskQueue):
    """Process-local job queue.

    Jobs stay in memory until claimed; pushed() exposes what was submitted,
    which makes it the queue of choice for tests and single-process setups.
    Completed jobs are dropped, dead-lettered ones are kept for dead().
    """

    def __init__(self, max_retries: int = DEFAULT_MAX_RETRIES) -> None:
        self.max_retries = max_retries
        self._jobs: dict[str, Job] = {}
        self._pending: dict[str, deque[str]] = {}
        self._dead: dict[str, list[str]] = {}

    async def submit(
        self,
        task: str,
        payload: dict[str, Any] | None = None,
        queue: str | None = None,
        priority: int = 0,
        max_retries: int | None = None,
    ) -> str:
        job = Job(
            id=str(uuid4()),
            task=task,
            payload=payload or {},
            queue=queue or settings.default_queue,
            priority=priority,
            max_retries=max_retries if max_retries is not None else self.max_retries,
        )
        self._jobs[job.id] = job

        pending = self._pending.setdefault(job.queue, deque())
        if priority > 0:
            pending.appendleft(job.id)
        else:
            pending.append(job.id)

        logger.info(f"Job submitted: {job.id} ({task}) on '{job.queue}'")
        return job.id

    async def get_job(self, job_id: str) -> Job | None:
        return self._jobs.get(job_id)

    async def claim_jobs(
        self,
        queue: str | None = None,
        batch_size: int = 1,
        timeout: int | None = None,
    ) -> AsyncIterator[Job]:
        pending = self._pending.get(queue or settings.default_queue)

        for _ in range(batch_size):
            if not pending:
                break

            job = self._jobs[pending.popleft()]
            job.status = JobStatus.RUNNING
            job.started_at = datetime.now(timezone.utc)
            job.attempts += 1
            yield job

    async def complete_job(self, job_id: str, result: dict[str, Any] | None = None) -> None:
        job = self._jobs.pop(job_id, None)
        if job is None:
            logger.warning(f"Job not found for completion: {job_id}")
            return

        job.status = JobStatus.COMPLETED
        job.completed_at = datetime.now(timezone.utc)
        job.result = result

    async def fail_job(self, job_id: str, error: str, retry: bool = True) -> None:
        job = self._jobs.get(job_id)
        if job is None:
            logger.warning(f"Job not found for failure: {job_id}")
            return

        job.error = error
        if retry and job.attempts <= job.max_retries:
            job.status = JobStatus.PENDING
            self._pending.setdefault(job.queue, deque()).append(job_id)
        else:
            job.status = JobStatus.DEAD
            job.completed_at = datetime.now(timezone.utc)
            self._dead.setdefault(job.queue, []).append(job_id)
            logger.warning(f"Job moved to DLQ: {job_id}")

    def pushed(self, queue: str | None = None) -> list[Job]:
        """Jobs still waiting to be claimed, oldest first."""
        queues = [queue] if queue is not None else list(self._pending)
        return [self._jobs[job_id] for name in queues for job_id in self._pending.get(name, ())]

    def dead(self, queue: str | None = None) -> list[Job]:
        """Jobs moved to the dead letter list."""
        queues = [queue] if queue is not None else list(self._dead)
        return [self._jobs[job_id] for name in queues for job_id in self._dead.get(name, ())]
