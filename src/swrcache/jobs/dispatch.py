"""Pending job dispatch.

A PendingDispatch is a job that has been described but not submitted yet.
Callers get a chance to adjust it (target queue, priority) before dispatch()
hands it to the TaskQueue.

Example:
    pending = PendingDispatch(queue, "swr.revalidate", payload)
    pending.on_queue("high").with_priority(5)
    job_id = await pending.dispatch()
"""

from __future__ import annotations

from typing import Any

from swrcache.config import settings
from swrcache.jobs.queue import TaskQueue


class PendingDispatch:
    """Job description awaiting submission."""

    def __init__(
        self,
        task_queue: TaskQueue,
        task: str,
        payload: dict[str, Any],
        queue: str | None = None,
        priority: int = 0,
        max_retries: int | None = None,
    ) -> None:
        self.task_queue = task_queue
        self.task = task
        self.payload = payload
        self.queue = queue or settings.default_queue
        self.priority = priority
        self.max_retries = max_retries
        self.job_id: str | None = None

    @property
    def dispatched(self) -> bool:
        return self.job_id is not None

    def on_queue(self, queue: str) -> PendingDispatch:
        """Send the job to a specific queue."""
        self.queue = queue
        return self

    def with_priority(self, priority: int) -> PendingDispatch:
        """Set the job priority (higher = more urgent)."""
        self.priority = priority
        return self

    async def dispatch(self) -> str:
        """Submit the job. Dispatching twice returns the first job id."""
        if self.job_id is None:
            self.job_id = await self.task_queue.submit(
                self.task,
                self.payload,
                queue=self.queue,
                priority=self.priority,
                max_retries=self.max_retries,
            )
        return self.job_id

    def __repr__(self) -> str:
        return f"PendingDispatch(task={self.task!r}, queue={self.queue!r}, priority={self.priority})"
