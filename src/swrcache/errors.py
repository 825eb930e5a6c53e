"""Exceptions raised by swr-cache.

Every error derives from SwrError. The concrete classes also subclass the
builtin exception a caller would naturally catch for that kind of failure.
"""

from __future__ import annotations


class SwrError(Exception):
    """Base exception for swr-cache."""

    pass


class ConfigurationError(SwrError, ValueError):
    """Raised when a call is misconfigured (e.g. time-to-stale >= time-to-live)."""

    pass


class CapabilityError(SwrError, RuntimeError):
    """Raised when the cache store cannot provide atomic locks."""

    pass


class LifecycleError(SwrError, RuntimeError):
    """Raised when deferred work cannot be attached to a unit of work."""

    pass
