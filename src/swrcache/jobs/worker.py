"""Background worker for offloaded revalidation jobs.

Provides a worker that:
- Claims and processes jobs from one queue
- Reports failures through the queue (retry or dead letter list)
- Supports graceful shutdown on SIGTERM/SIGINT

Example:
    worker = JobWorker(RedisJobQueue(), WorkerConfig(queue="swr"))
    register_all_handlers(worker, cache)

    # Run worker (blocks until shutdown)
    await worker.run()
"""

from __future__ import annotations

import asyncio
import logging
import signal
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any, Awaitable, Callable

from swrcache.config import settings
from swrcache.jobs.queue import Job, TaskQueue
from swrcache.observability.logging import job_id_var

logger = logging.getLogger(__name__)

# Type alias for job handlers
JobHandler = Callable[[Job], Awaitable[dict[str, Any] | None]]


@dataclass
class WorkerConfig:
    """Worker configuration."""

    name: str = "default"
    queue: str = field(default_factory=lambda: settings.default_queue)

    # Job processing
    batch_size: int = 1
    poll_interval: float = field(default_factory=lambda: settings.worker_poll_interval)
    claim_timeout: int = 5


class JobWorker:
    """Background worker for processing queued jobs.

    Features:
    - Handler registration for task types
    - Failure reporting through the queue
    - Graceful shutdown with signal handling
    """

    def __init__(self, queue: TaskQueue, config: WorkerConfig | None = None) -> None:
        self.queue = queue
        self.config = config or WorkerConfig()
        self._handlers: dict[str, JobHandler] = {}
        self._running = False
        self._signals_installed = False
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def running(self) -> bool:
        return self._running

    def register_handler(self, task: str, handler: JobHandler) -> None:
        """Register a handler for a task type.

        Args:
            task: Task name (e.g., "swr.revalidate")
            handler: Async function that processes the job
        """
        self._handlers[task] = handler
        logger.info(f"Registered handler for task: {task}")

    async def start(self) -> None:
        """Start the worker.

        Initializes the queue and installs signal handlers.
        """
        await self.queue.initialize()
        self._running = True

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._signal_handler)
        self._signals_installed = True

        logger.info(f"Worker started: {self.config.name} (queue '{self.config.queue}')")

    async def stop(self) -> None:
        """Stop the worker gracefully.

        Waits for current jobs to complete before stopping.
        """
        logger.info(f"Stopping worker: {self.config.name}")
        self._running = False

        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

        if self._signals_installed:
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.remove_signal_handler(sig)
            self._signals_installed = False

        logger.info(f"Worker stopped: {self.config.name}")

    def _signal_handler(self) -> None:
        """Handle shutdown signals."""
        logger.info("Received shutdown signal")
        self._running = False

    async def run(self) -> None:
        """Run the worker until shutdown.

        Main loop that claims and processes jobs.
        """
        await self.start()

        try:
            while self._running:
                try:
                    async for job in self.queue.claim_jobs(
                        self.config.queue,
                        batch_size=self.config.batch_size,
                        timeout=self.config.claim_timeout,
                    ):
                        task = asyncio.create_task(self._process_job(job))
                        self._tasks.add(task)
                        task.add_done_callback(self._tasks.discard)

                except asyncio.CancelledError:
                    break
                except Exception as e:
                    logger.error(f"Error claiming jobs: {e}")

                await asyncio.sleep(self.config.poll_interval)

        finally:
            await self.stop()

    async def _process_job(self, job: Job) -> None:
        """Process a single job.

        Args:
            job: Job to process
        """
        handler = self._handlers.get(job.task)
        token = job_id_var.set(job.id)

        try:
            if handler is None:
                logger.error(f"No handler for task: {job.task}")
                await self.queue.fail_job(
                    job.id,
                    f"Unknown task type: {job.task}",
                    retry=False,
                )
                return

            try:
                logger.info(f"Processing job: {job.id} ({job.task})")
                result = await handler(job)
            except Exception as e:
                logger.exception(f"Job failed: {job.id} - {e}")
                await self.queue.fail_job(job.id, f"{type(e).__name__}: {e}", retry=True)
                return

            await self.queue.complete_job(job.id, result)
            logger.info(f"Job completed successfully: {job.id}")
        finally:
            job_id_var.reset(token)

    async def run_once(self) -> int:
        """Process one batch of jobs and return.

        Useful for tests or cron-like execution.

        Returns:
            Number of jobs processed
        """
        await self.queue.initialize()
        count = 0

        async for job in self.queue.claim_jobs(
            self.config.queue,
            batch_size=self.config.batch_size,
            timeout=1,  # Short timeout for run_once
        ):
            await self._process_job(job)
            count += 1

        return count

    async def __aenter__(self) -> "JobWorker":
        """Context manager entry."""
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Context manager exit."""
        await self.stop()
