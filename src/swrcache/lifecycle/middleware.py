"""Unit-of-work middleware for Starlette/FastAPI.

Opens one unit of work per HTTP request and ends it after the response has
been sent, so revalidations scheduled while handling the request never
delay the response.

Example:
    from fastapi import FastAPI
    from swrcache.lifecycle import UnitOfWorkMiddleware

    app = FastAPI()
    app.add_middleware(UnitOfWorkMiddleware)
"""

from __future__ import annotations

import logging

from starlette.background import BackgroundTasks
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from swrcache.lifecycle.unit_of_work import (
    UnitOfWork,
    bind_unit_of_work,
    unbind_unit_of_work,
)
from swrcache.observability.logging import unit_of_work_id_var

logger = logging.getLogger(__name__)


class UnitOfWorkMiddleware(BaseHTTPMiddleware):
    """Middleware binding a UnitOfWork to each request.

    The unit id is taken from the x-request-id header when present, so log
    records of deferred work line up with the request that scheduled it.
    """

    def __init__(self, app: ASGIApp, header_name: str = "x-request-id") -> None:
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Run the request inside a unit of work."""
        unit = UnitOfWork(request.headers.get(self.header_name))
        token = bind_unit_of_work(unit)
        log_token = unit_of_work_id_var.set(unit.id)

        try:
            response = await call_next(request)
        except Exception:
            await unit.terminate(raise_errors=False)
            raise
        finally:
            unit_of_work_id_var.reset(log_token)
            unbind_unit_of_work(token)

        # End the unit once the response body is out
        tasks = BackgroundTasks()
        if response.background is not None:
            tasks.add_task(response.background)
        tasks.add_task(self._end_unit, unit)
        response.background = tasks
        return response

    async def _end_unit(self, unit: UnitOfWork) -> None:
        """End the unit after the response went out.

        The client already has its response, so callback failures are logged
        instead of being raised into the server.
        """
        errors = await unit.terminate(raise_errors=False)
        if errors:
            logger.warning(
                f"Unit of work {unit.id} ended with {len(errors)} failed callback(s)"
            )
