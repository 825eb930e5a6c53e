"""Tests for job queue functionality."""

import json
from unittest.mock import AsyncMock

import pytest

from swrcache.jobs.queue import (
    InMemoryJobQueue,
    Job,
    JobStatus,
    RedisJobQueue,
)


class TestJob:
    """Tests for Job dataclass."""

    def test_job_creation(self) -> None:
        """Job can be created with minimal parameters."""
        job = Job(id="test-123", task="swr.revalidate", payload={"key": "k"})

        assert job.id == "test-123"
        assert job.queue == "swr"
        assert job.status == JobStatus.PENDING
        assert job.attempts == 0
        assert job.max_retries == 0

    def test_job_from_dict(self) -> None:
        """Job deserializes from dictionary."""
        data = {
            "id": "test-123",
            "task": "swr.revalidate",
            "payload": {"key": "k"},
            "queue": "reports",
            "status": "running",
            "created_at": "2026-01-01T00:00:00+00:00",
            "started_at": "2026-01-01T00:01:00+00:00",
            "completed_at": None,
            "result": None,
            "error": None,
            "attempts": 1,
            "max_retries": 0,
            "priority": 5,
        }

        job = Job.from_dict(data)

        assert job.queue == "reports"
        assert job.status == JobStatus.RUNNING
        assert job.started_at is not None
        assert job.priority == 5

    def test_job_to_dict_is_json(self) -> None:
        """Serialized jobs are JSON compatible."""
        job = Job(id="test-123", task="swr.revalidate", payload={"key": "k"}, queue="reports")

        data = json.loads(json.dumps(job.to_dict()))

        assert data["queue"] == "reports"
        assert data["status"] == "pending"
        assert Job.from_dict(data).created_at == job.created_at


class TestRedisJobQueue:
    """Tests for RedisJobQueue class."""

    @pytest.fixture
    def mock_redis(self) -> AsyncMock:
        """Create mock Redis client."""
        mock = AsyncMock()
        mock.set = AsyncMock(return_value=True)
        mock.get = AsyncMock(return_value=None)
        mock.lpush = AsyncMock(return_value=1)
        mock.rpush = AsyncMock(return_value=1)
        mock.llen = AsyncMock(return_value=0)
        mock.lrem = AsyncMock(return_value=1)
        mock.brpoplpush = AsyncMock(return_value=None)
        return mock

    @pytest.fixture
    def queue(self, mock_redis: AsyncMock) -> RedisJobQueue:
        """Create RedisJobQueue with mocked Redis."""
        q = RedisJobQueue()
        q._redis = mock_redis
        return q

    def stored(self, mock_redis: AsyncMock, job: Job) -> None:
        mock_redis.get.return_value = json.dumps(job.to_dict()).encode()

    @pytest.mark.asyncio
    async def test_submit_to_default_queue(self, queue: RedisJobQueue, mock_redis: AsyncMock) -> None:
        """Submitting stores the job and pushes it to the default queue."""
        job_id = await queue.submit("swr.revalidate", {"key": "k"})

        assert job_id
        mock_redis.lpush.assert_called_once_with("swr:jobs:swr:pending", job_id)
        key, payload = mock_redis.set.call_args[0][:2]
        assert key == f"swr:job:{job_id}"
        assert json.loads(payload)["payload"] == {"key": "k"}

    @pytest.mark.asyncio
    async def test_submit_to_named_queue(self, queue: RedisJobQueue, mock_redis: AsyncMock) -> None:
        """Jobs land on the requested queue."""
        job_id = await queue.submit("swr.revalidate", {}, queue="reports")

        mock_redis.lpush.assert_called_once_with("swr:jobs:reports:pending", job_id)

    @pytest.mark.asyncio
    async def test_priority_jobs_claimed_next(self, queue: RedisJobQueue, mock_redis: AsyncMock) -> None:
        """Priority jobs are pushed to the claiming end."""
        job_id = await queue.submit("swr.revalidate", {}, priority=5)

        mock_redis.rpush.assert_called_once_with("swr:jobs:swr:pending", job_id)
        mock_redis.lpush.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_job_not_found(self, queue: RedisJobQueue) -> None:
        """Getting non-existent job returns None."""
        assert await queue.get_job("nonexistent") is None

    @pytest.mark.asyncio
    async def test_claim_jobs(self, queue: RedisJobQueue, mock_redis: AsyncMock) -> None:
        """Claiming moves a job to processing and marks it running."""
        self.stored(mock_redis, Job(id="test-123", task="swr.revalidate", payload={}))
        mock_redis.brpoplpush.side_effect = [b"test-123", None]

        jobs = [job async for job in queue.claim_jobs("swr", batch_size=2, timeout=1)]

        assert [job.id for job in jobs] == ["test-123"]
        assert jobs[0].status == JobStatus.RUNNING
        assert jobs[0].attempts == 1
        mock_redis.brpoplpush.assert_any_call(
            "swr:jobs:swr:pending", "swr:jobs:swr:processing", timeout=1
        )

    @pytest.mark.asyncio
    async def test_claim_expired_job(self, queue: RedisJobQueue, mock_redis: AsyncMock) -> None:
        """Claimed ids without job data are dropped from processing."""
        mock_redis.brpoplpush.return_value = b"gone"

        jobs = [job async for job in queue.claim_jobs("swr", timeout=1)]

        assert jobs == []
        mock_redis.lrem.assert_called_once_with("swr:jobs:swr:processing", 1, "gone")

    @pytest.mark.asyncio
    async def test_complete_job(self, queue: RedisJobQueue, mock_redis: AsyncMock) -> None:
        """Completing a job stores the result and removes it from processing."""
        self.stored(
            mock_redis,
            Job(id="test-123", task="swr.revalidate", payload={}, status=JobStatus.RUNNING),
        )

        await queue.complete_job("test-123", {"revalidated": True})

        saved = json.loads(mock_redis.set.call_args[0][1])
        assert saved["status"] == "completed"
        assert saved["result"] == {"revalidated": True}
        mock_redis.lrem.assert_called_once_with("swr:jobs:swr:processing", 1, "test-123")

    @pytest.mark.asyncio
    async def test_fail_job_with_retry(self, queue: RedisJobQueue, mock_redis: AsyncMock) -> None:
        """Failed job with retries remaining is re-queued."""
        self.stored(
            mock_redis,
            Job(id="test-123", task="swr.revalidate", payload={}, attempts=1, max_retries=3),
        )

        await queue.fail_job("test-123", "Something went wrong", retry=True)

        mock_redis.lpush.assert_called_once_with("swr:jobs:swr:pending", "test-123")

    @pytest.mark.asyncio
    async def test_fail_job_to_dlq(self, queue: RedisJobQueue, mock_redis: AsyncMock) -> None:
        """Failed job without retries left moves to the dead letter list."""
        self.stored(
            mock_redis,
            Job(id="test-123", task="swr.revalidate", payload={}, attempts=1, max_retries=0),
        )

        await queue.fail_job("test-123", "Final failure", retry=True)

        mock_redis.lpush.assert_called_once_with("swr:jobs:swr:dlq", "test-123")
        assert json.loads(mock_redis.set.call_args[0][1])["status"] == "dead"

    @pytest.mark.asyncio
    async def test_get_queue_stats(self, queue: RedisJobQueue, mock_redis: AsyncMock) -> None:
        """Queue stats returns counts for each list."""
        mock_redis.llen.side_effect = [5, 2, 1]  # pending, processing, dlq

        stats = await queue.get_queue_stats("reports")

        assert stats == {"pending": 5, "processing": 2, "dlq": 1}
        mock_redis.llen.assert_any_call("swr:jobs:reports:dlq")


class TestInMemoryJobQueue:
    """Tests for InMemoryJobQueue."""

    @pytest.mark.asyncio
    async def test_submit_and_claim(self) -> None:
        """Jobs are claimed in submission order."""
        queue = InMemoryJobQueue()
        first = await queue.submit("t", {"n": 1})
        second = await queue.submit("t", {"n": 2})

        claimed = [job.id async for job in queue.claim_jobs(batch_size=5)]

        assert claimed == [first, second]
        assert queue.pushed() == []

    @pytest.mark.asyncio
    async def test_priority_first(self) -> None:
        """Priority jobs jump the queue."""
        queue = InMemoryJobQueue()
        await queue.submit("t", {"n": 1})
        urgent = await queue.submit("t", {"n": 2}, priority=1)

        assert queue.pushed()[0].id == urgent

    @pytest.mark.asyncio
    async def test_queues_are_separate(self) -> None:
        """Claiming one queue leaves the others alone."""
        queue = InMemoryJobQueue()
        await queue.submit("t", {}, queue="reports")

        assert [job async for job in queue.claim_jobs("swr")] == []
        assert len(queue.pushed("reports")) == 1

    @pytest.mark.asyncio
    async def test_completed_jobs_dropped(self) -> None:
        """Completing a job releases it from memory."""
        queue = InMemoryJobQueue()
        job_id = await queue.submit("t", {})
        [job] = [job async for job in queue.claim_jobs()]

        await queue.complete_job(job_id, {"revalidated": True})

        assert job.status == JobStatus.COMPLETED
        assert job.result == {"revalidated": True}
        assert await queue.get_job(job_id) is None
        assert queue.pushed() == []

    @pytest.mark.asyncio
    async def test_fail_without_retries(self) -> None:
        """Failing a job without retries left marks it dead."""
        queue = InMemoryJobQueue()
        job_id = await queue.submit("t", {})
        [job] = [job async for job in queue.claim_jobs()]

        await queue.fail_job(job_id, "boom")

        assert job.status == JobStatus.DEAD
        assert queue.dead() == [job]

    @pytest.mark.asyncio
    async def test_fail_with_retries(self) -> None:
        """Failing a job with retries left re-queues it."""
        queue = InMemoryJobQueue(max_retries=1)
        job_id = await queue.submit("t", {})
        [job async for job in queue.claim_jobs()]

        await queue.fail_job(job_id, "boom")

        assert [job.id for job in queue.pushed()] == [job_id]
        assert queue.dead() == []
