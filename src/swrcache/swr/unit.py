"""Recomputation units.

A RevalidationUnit bundles everything one revalidation pass needs: the
entry key, its durations, the compute function and the claim it runs
under (name and owner token). It is a plain value, so it can run at the
end of the current unit of work or be serialised into a queued job and
rebuilt in a worker process.

Queued units reference callables by import path ("module:qualname"), so
only module-level functions (or attributes reachable from one) can be
offloaded.
"""

from __future__ import annotations

import importlib
import inspect
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from swrcache.cache.repository import Duration, Repository
from swrcache.errors import ConfigurationError
from swrcache.swr.freshness import FRESH_MARKER

logger = logging.getLogger(__name__)

# Fixed duration, or a function of the computed value returning one
DurationSpec = Duration | Callable[[Any], Duration]
# Plain or coroutine function producing the value to cache
Compute = Callable[[], Any]

REVALIDATE_TASK = "swr.revalidate"


def callable_ref(func: Callable[..., Any]) -> str:
    """Import path of a callable, as "module:qualname".

    Raises:
        ConfigurationError: If the callable cannot be imported by name
    """
    module = getattr(func, "__module__", None)
    qualname = getattr(func, "__qualname__", None)
    if inspect.ismethod(func) or not module or not qualname or "<" in qualname:
        raise ConfigurationError(
            f"{func!r} cannot be queued: only module-level callables can be referenced by name"
        )
    return f"{module}:{qualname}"


def resolve_ref(ref: str) -> Callable[..., Any]:
    """Import the callable named by a "module:qualname" reference."""
    module_name, _, qualname = ref.partition(":")
    if not module_name or not qualname:
        raise ConfigurationError(f"Invalid callable reference: {ref!r}")

    obj: Any = importlib.import_module(module_name)
    for attr in qualname.split("."):
        obj = getattr(obj, attr)

    if not callable(obj):
        raise ConfigurationError(f"{ref!r} does not name a callable")
    return obj


async def evaluate(compute: Compute) -> Any:
    """Call compute, awaiting the result when it is awaitable."""
    result = compute()
    if inspect.isawaitable(result):
        result = await result
    return result


def resolve_duration(spec: DurationSpec, value: Any) -> Duration:
    """Resolve a duration spec against the computed value."""
    if callable(spec):
        return spec(value)
    return spec


def check_durations(cache: Repository, ttl: Duration, tts: Duration) -> tuple[int, int]:
    """Convert both durations to seconds and enforce tts < ttl.

    Raises:
        ConfigurationError: If time-to-stale is not below time-to-live
    """
    ttl_seconds = cache.get_seconds(ttl)
    tts_seconds = cache.get_seconds(tts)
    if tts_seconds >= ttl_seconds:
        raise ConfigurationError("The time-to-stale value must be less than the time-to-live value.")
    return ttl_seconds, tts_seconds


async def store_value(
    cache: Repository,
    key: str,
    marker_key: str,
    value: Any,
    ttl: DurationSpec,
    tts: DurationSpec,
) -> bool:
    """Write the entry, then its staleness marker.

    The marker is never written without the entry. None cannot be cached,
    so a None value writes nothing.

    Returns:
        True if the entry was written
    """
    ttl_seconds, tts_seconds = check_durations(
        cache,
        resolve_duration(ttl, value),
        resolve_duration(tts, value),
    )

    if value is None:
        logger.warning(f"Not caching '{key}': computed value is None")
        return False

    await cache.put(key, value, ttl_seconds)
    await cache.put(marker_key, FRESH_MARKER, tts_seconds)
    return True


def _dump_duration(spec: DurationSpec) -> dict[str, Any]:
    if isinstance(spec, datetime):
        return {"at": spec.isoformat()}
    if isinstance(spec, timedelta):
        return {"seconds": spec.total_seconds()}
    if callable(spec):
        return {"ref": callable_ref(spec)}
    return {"seconds": spec}


def _load_duration(data: dict[str, Any]) -> DurationSpec:
    if "at" in data:
        return datetime.fromisoformat(data["at"])
    if "ref" in data:
        return resolve_ref(data["ref"])
    return data["seconds"]


@dataclass(frozen=True)
class RevalidationUnit:
    """One revalidation pass for one entry, run under a held claim.

    Attributes:
        key: Entry key
        ttl: Time-to-live of the new entry
        tts: Time-to-stale of the new entry
        compute: Function producing the new value
        lock_name: Name of the revalidation claim
        lock_owner: Owner token of the claim
        marker_key: Key of the staleness marker
    """

    key: str
    ttl: DurationSpec
    tts: DurationSpec
    compute: Compute
    lock_name: str
    lock_owner: str
    marker_key: str

    async def run(self, cache: Repository) -> bool:
        """Recompute and store the entry, then release the claim.

        Does nothing if the claim is no longer held by this unit's owner
        (its lease ran out and someone else took it). Errors from compute
        propagate after the claim has been released; the stale entry stays.

        Returns:
            True if a new value was stored
        """
        lock = cache.restore_lock(self.lock_name, self.lock_owner)

        if not await lock.is_owned_by_current_process():
            logger.warning(
                f"Skipping revalidation of '{self.key}': claim is no longer held by {self.lock_owner}"
            )
            return False

        try:
            value = await evaluate(self.compute)
            stored = await store_value(
                cache, self.key, self.marker_key, value, self.ttl, self.tts
            )
        finally:
            await lock.release()

        logger.info(f"Revalidated '{self.key}'")
        return stored

    def to_payload(self) -> dict[str, Any]:
        """Serialise for a queued job.

        Raises:
            ConfigurationError: If a callable cannot be referenced by name
        """
        return {
            "key": self.key,
            "ttl": _dump_duration(self.ttl),
            "tts": _dump_duration(self.tts),
            "compute": callable_ref(self.compute),
            "lock_name": self.lock_name,
            "lock_owner": self.lock_owner,
            "marker_key": self.marker_key,
        }

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> RevalidationUnit:
        """Rebuild a unit from a queued job payload."""
        return cls(
            key=data["key"],
            ttl=_load_duration(data["ttl"]),
            tts=_load_duration(data["tts"]),
            compute=resolve_ref(data["compute"]),
            lock_name=data["lock_name"],
            lock_owner=data["lock_owner"],
            marker_key=data["marker_key"],
        )
