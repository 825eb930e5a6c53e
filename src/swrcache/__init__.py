"""swr-cache: stale-while-revalidate caching with single-flight revalidation.

Example:
    from swrcache import Repository, StaleWhileRevalidate, unit_of_work
    from swrcache.cache import RedisStore, get_redis

    cache = Repository(RedisStore(await get_redis()))
    coordinator = StaleWhileRevalidate(cache)

    async with unit_of_work():
        report = await coordinator.swr("report", ttl=600, tts=60, compute=build_report)
"""

from swrcache.cache import MemoryStore, NullStore, RedisStore, Repository, SwrKeys
from swrcache.errors import CapabilityError, ConfigurationError, LifecycleError, SwrError
from swrcache.lifecycle import UnitOfWork, UnitOfWorkMiddleware, unit_of_work
from swrcache.swr import DispatchPolicy, FreshnessTracker, StaleWhileRevalidate

__version__ = "0.1.0"

__all__ = [
    "CapabilityError",
    "ConfigurationError",
    "DispatchPolicy",
    "FreshnessTracker",
    "LifecycleError",
    "MemoryStore",
    "NullStore",
    "RedisStore",
    "Repository",
    "StaleWhileRevalidate",
    "SwrError",
    "SwrKeys",
    "UnitOfWork",
    "UnitOfWorkMiddleware",
    "unit_of_work",
]
