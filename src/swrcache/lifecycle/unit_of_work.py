"""Unit-of-work lifecycle using ContextVar.

A unit of work is the logical boundary (one request, one task, one batch)
after which deferred work may run. Callbacks registered during the unit run
once it ends, in registration order, on the same execution context.

Example:
    from swrcache.lifecycle import current_unit_of_work, unit_of_work

    async with unit_of_work():
        value = await cache_swr(...)  # may register a revalidation
    # registered callbacks have run here

    # Anywhere inside the unit
    current_unit_of_work().on_end(flush_buffers)
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from contextvars import ContextVar, Token
from uuid import uuid4

from swrcache.errors import LifecycleError
from swrcache.observability.logging import unit_of_work_id_var

logger = logging.getLogger(__name__)

EndCallback = Callable[[], Awaitable[None] | None]

# ContextVar for async-safe access to the active unit of work
_current_unit: ContextVar[UnitOfWork | None] = ContextVar("unit_of_work", default=None)


class UnitOfWork:
    """Collects callbacks to run when a unit of work ends.

    Attributes:
        id: Identifier used in log records
    """

    def __init__(self, id: str | None = None) -> None:
        self.id = id or uuid4().hex[:12]
        self._callbacks: list[EndCallback] = []
        self._terminated = False

    @property
    def terminated(self) -> bool:
        """Whether terminate() has been called."""
        return self._terminated

    @property
    def pending(self) -> int:
        """Number of callbacks waiting for the end of the unit."""
        return len(self._callbacks)

    def on_end(self, callback: EndCallback) -> None:
        """Register a callback to run when the unit of work ends.

        Raises:
            LifecycleError: If the unit has already ended
        """
        if self._terminated:
            raise LifecycleError(f"Unit of work {self.id} has already ended")
        self._callbacks.append(callback)

    async def terminate(self, raise_errors: bool = True) -> list[Exception]:
        """Run every registered callback exactly once, in order.

        A failing callback does not stop the ones after it. Failures are
        logged as they happen and raised together once all callbacks ran,
        unless raise_errors is False, in which case they are only returned.

        Raises:
            ExceptionGroup: If one or more callbacks failed and raise_errors is set
        """
        if self._terminated:
            return []
        self._terminated = True

        callbacks, self._callbacks = self._callbacks, []
        errors: list[Exception] = []

        token = unit_of_work_id_var.set(self.id)
        try:
            for callback in callbacks:
                try:
                    result = callback()
                    if inspect.isawaitable(result):
                        await result
                except Exception as e:
                    logger.exception(f"Unit of work {self.id} callback failed: {e}")
                    errors.append(e)
        finally:
            unit_of_work_id_var.reset(token)

        if errors and raise_errors:
            raise ExceptionGroup(f"Unit of work {self.id} callbacks failed", errors)
        return errors


def current_unit_of_work() -> UnitOfWork:
    """Get the unit of work bound to the current context.

    Raises:
        LifecycleError: If no unit of work is active
    """
    unit = _current_unit.get()
    if unit is None:
        raise LifecycleError(
            "No active unit of work; wrap the call in unit_of_work() "
            "or install UnitOfWorkMiddleware"
        )
    return unit


def get_unit_of_work() -> UnitOfWork | None:
    """Get the active unit of work, or None."""
    return _current_unit.get()


def bind_unit_of_work(unit: UnitOfWork) -> Token[UnitOfWork | None]:
    """Bind a unit of work to the current context."""
    return _current_unit.set(unit)


def unbind_unit_of_work(token: Token[UnitOfWork | None]) -> None:
    """Restore the unit of work that was active before bind_unit_of_work()."""
    _current_unit.reset(token)


@asynccontextmanager
async def unit_of_work(id: str | None = None) -> AsyncIterator[UnitOfWork]:
    """Run a block as one unit of work and terminate it on exit.

    Callbacks run after the block, even when the block raised. Callback
    failures are raised as an ExceptionGroup when the block succeeded; when
    the block raised they are only logged and the block's exception
    propagates unchanged.
    """
    unit = UnitOfWork(id)
    token = bind_unit_of_work(unit)
    log_token = unit_of_work_id_var.set(unit.id)
    block_failed = False
    try:
        yield unit
    except BaseException:
        block_failed = True
        raise
    finally:
        unit_of_work_id_var.reset(log_token)
        unbind_unit_of_work(token)
        await unit.terminate(raise_errors=not block_failed)
