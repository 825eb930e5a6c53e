"""Deferred execution of revalidation units.

Units never run while the caller waits. They are attached to the current
unit of work and, once it ends, either:
- run inline, on the same execution context, or
- get handed to a task queue as a "swr.revalidate" job.

The executor neither retries nor deduplicates: single-flight comes from the
claim the coordinator holds, and a failed unit is reported once (the unit
of work's error group, or the job's dead letter entry).
"""

from __future__ import annotations

import functools
import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from swrcache.cache.repository import Repository
from swrcache.errors import ConfigurationError
from swrcache.jobs.dispatch import PendingDispatch
from swrcache.jobs.queue import TaskQueue
from swrcache.lifecycle.unit_of_work import UnitOfWork, current_unit_of_work
from swrcache.observability.logging import LogContext
from swrcache.observability.metrics import get_metrics
from swrcache.swr.unit import REVALIDATE_TASK, RevalidationUnit

logger = logging.getLogger(__name__)

# Caller-supplied hook to adjust a job before it is submitted
ConfigureDispatch = Callable[[PendingDispatch], Any]
# What callers pass as `queue`: False (inline), True, a queue name, or a hook
QueueOption = bool | str | ConfigureDispatch | None


class DispatchPolicy(str, Enum):
    """Where a revalidation unit runs."""

    INLINE = "inline"
    OFFLOADED = "offloaded"


@dataclass(frozen=True)
class Dispatch:
    """Resolved dispatch policy with its queue options."""

    policy: DispatchPolicy = DispatchPolicy.INLINE
    queue: str | None = None
    configure: ConfigureDispatch | None = None

    @property
    def offloaded(self) -> bool:
        return self.policy is DispatchPolicy.OFFLOADED

    @classmethod
    def from_option(cls, queue: QueueOption) -> Dispatch:
        """Interpret the `queue` argument of swr()."""
        if queue is None or queue is False:
            return cls(DispatchPolicy.INLINE)
        if queue is True:
            return cls(DispatchPolicy.OFFLOADED)
        if isinstance(queue, str):
            if not queue.strip():
                raise ConfigurationError("Queue name must not be empty")
            return cls(DispatchPolicy.OFFLOADED, queue=queue)
        if callable(queue):
            return cls(DispatchPolicy.OFFLOADED, configure=queue)
        raise ConfigurationError(f"Unsupported queue option: {queue!r}")


class DeferredExecutor:
    """Schedules revalidation units for the end of the unit of work.

    Args:
        cache: Cache facade inline units write to
        task_queue: Queue for offloaded units (required to offload)
        unit_of_work: Fixed unit of work; defaults to the one bound to the
            current context at schedule time
    """

    def __init__(
        self,
        cache: Repository,
        task_queue: TaskQueue | None = None,
        unit_of_work: UnitOfWork | None = None,
    ) -> None:
        self.cache = cache
        self.task_queue = task_queue
        self.unit_of_work = unit_of_work
        self.metrics = get_metrics()

    def validate(self, dispatch: Dispatch) -> None:
        """Reject a dispatch this executor cannot honour.

        Raises:
            ConfigurationError: If offloading without a task queue
        """
        if dispatch.offloaded and self.task_queue is None:
            raise ConfigurationError("Offloaded revalidation requires a task queue")

    def schedule(self, unit: RevalidationUnit, dispatch: Dispatch) -> None:
        """Register a unit to run once the current unit of work ends.

        Raises:
            ConfigurationError: If the unit cannot be offloaded
            LifecycleError: If no unit of work is active
        """
        self.validate(dispatch)
        registrar = self.unit_of_work or current_unit_of_work()

        if dispatch.offloaded:
            payload = unit.to_payload()
            registrar.on_end(functools.partial(self._dispatch, unit, payload, dispatch))
        else:
            registrar.on_end(functools.partial(self._run_inline, unit))

        self.metrics.record_revalidation(dispatch.policy.value, "scheduled")
        logger.debug(f"Revalidation of '{unit.key}' scheduled ({dispatch.policy.value})")

    async def _run_inline(self, unit: RevalidationUnit) -> None:
        with LogContext(cache_key=unit.key):
            try:
                stored = await unit.run(self.cache)
            except Exception:
                self.metrics.record_revalidation(DispatchPolicy.INLINE.value, "failed")
                raise

        status = "succeeded" if stored else "skipped"
        self.metrics.record_revalidation(DispatchPolicy.INLINE.value, status)

    async def _dispatch(
        self,
        unit: RevalidationUnit,
        payload: dict[str, Any],
        dispatch: Dispatch,
    ) -> None:
        try:
            if self.task_queue is None:
                raise ConfigurationError("Offloaded revalidation requires a task queue")

            pending = PendingDispatch(
                self.task_queue,
                REVALIDATE_TASK,
                payload,
                queue=dispatch.queue,
                max_retries=0,
            )

            if dispatch.configure is not None:
                result = dispatch.configure(pending)
                if inspect.isawaitable(result):
                    await result

            job_id = await pending.dispatch()
        except Exception:
            # Nobody will run the unit, so give the claim back
            await self.cache.restore_lock(unit.lock_name, unit.lock_owner).release()
            self.metrics.record_revalidation(DispatchPolicy.OFFLOADED.value, "failed")
            raise

        self.metrics.record_revalidation(DispatchPolicy.OFFLOADED.value, "queued")
        logger.info(f"Revalidation of '{unit.key}' queued as job {job_id} on '{pending.queue}'")
