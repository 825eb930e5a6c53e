"""Key schema for stale-while-revalidate bookkeeping entries.

Key format: {namespace}:{variant}:{key}

Where:
- namespace: "laravel_swr_cache" by default (SWR_KEY_NAMESPACE)
- variant: "tts" (staleness marker) or "revalidate" (revalidation claim)
- key: the caller's cache key, verbatim

The derived names must stay bit-exact so existing cache contents keep
working when the namespace is unchanged.
"""

from __future__ import annotations

from swrcache.config import settings


class SwrKeys:
    """Derives staleness marker and claim names from an entry key."""

    TIME_TO_STALE = "tts"
    REVALIDATE = "revalidate"

    def __init__(self, namespace: str | None = None) -> None:
        self.namespace = namespace or settings.key_namespace

    def time_to_stale(self, key: str) -> str:
        """Key for the staleness marker of an entry."""
        return f"{self.namespace}:{self.TIME_TO_STALE}:{key}"

    def atomic_lock(self, key: str) -> str:
        """Lock name for the revalidation claim of an entry."""
        return f"{self.namespace}:{self.REVALIDATE}:{key}"

    def parse_key(self, name: str) -> dict[str, str] | None:
        """Parse a derived name back into its components.

        Returns None if the name was not derived by this schema. The entry
        key may itself contain colons, so only the first two separators
        are significant.
        """
        parts = name.split(":", 2)
        if len(parts) < 3 or parts[0] != self.namespace:
            return None
        if parts[1] not in (self.TIME_TO_STALE, self.REVALIDATE):
            return None

        return {
            "namespace": parts[0],
            "variant": parts[1],
            "key": parts[2],
        }
