"""Unit-of-work lifecycle for deferred revalidation.

Provides the "end of unit of work" hook that inline revalidations and
queue dispatches wait for:
- UnitOfWork: ordered end-of-unit callbacks
- unit_of_work: async context manager for tasks and batches
- UnitOfWorkMiddleware: one unit per HTTP request
"""

from swrcache.lifecycle.middleware import UnitOfWorkMiddleware
from swrcache.lifecycle.unit_of_work import (
    EndCallback,
    UnitOfWork,
    bind_unit_of_work,
    current_unit_of_work,
    get_unit_of_work,
    unbind_unit_of_work,
    unit_of_work,
)

__all__ = [
    "EndCallback",
    "UnitOfWork",
    "UnitOfWorkMiddleware",
    "bind_unit_of_work",
    "current_unit_of_work",
    "get_unit_of_work",
    "unbind_unit_of_work",
    "unit_of_work",
]
