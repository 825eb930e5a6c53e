"""Stale-while-revalidate core.

- StaleWhileRevalidate / swr: the revalidation coordinator
- FreshnessTracker: staleness markers
- RevalidationUnit: one revalidation pass under a held claim
- DeferredExecutor: inline or offloaded execution at the end of a unit of work
"""

from swrcache.swr.freshness import FRESH_MARKER, FreshnessTracker
from swrcache.swr.unit import (
    REVALIDATE_TASK,
    Compute,
    DurationSpec,
    RevalidationUnit,
    callable_ref,
    resolve_ref,
)
from swrcache.swr.executor import (
    DeferredExecutor,
    Dispatch,
    DispatchPolicy,
    QueueOption,
)
from swrcache.swr.coordinator import StaleWhileRevalidate, swr

__all__ = [
    "Compute",
    "DeferredExecutor",
    "Dispatch",
    "DispatchPolicy",
    "DurationSpec",
    "FRESH_MARKER",
    "FreshnessTracker",
    "QueueOption",
    "REVALIDATE_TASK",
    "RevalidationUnit",
    "StaleWhileRevalidate",
    "callable_ref",
    "resolve_ref",
    "swr",
]
