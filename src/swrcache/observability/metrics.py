"""Prometheus metrics for swr-cache.

Provides counters for:
- SWR lookups by outcome (miss, fresh, stale, claimed)
- Revalidations by dispatch policy and status

Usage:
    from swrcache.observability.metrics import get_metrics

    metrics = get_metrics()
    metrics.record_lookup("fresh")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from prometheus_client import REGISTRY, Counter

from swrcache.config import settings

logger = logging.getLogger(__name__)


@dataclass
class MetricsRegistry:
    """Registry for Prometheus metrics."""

    swr_lookups_total: Any = None
    swr_revalidations_total: Any = None

    # Internal state
    _initialized: bool = field(default=False, repr=False)
    _registry: Any = field(default=None, repr=False)

    def initialize(self) -> None:
        """Initialize Prometheus metrics."""
        if self._initialized:
            return

        if not settings.enable_metrics:
            logger.info("Metrics are disabled")
            self._initialized = True
            return

        self._registry = REGISTRY

        self.swr_lookups_total = Counter(
            "swr_lookups_total",
            "Stale-while-revalidate lookups",
            ["outcome"],
            registry=self._registry,
        )

        self.swr_revalidations_total = Counter(
            "swr_revalidations_total",
            "Revalidation units by dispatch policy and status",
            ["policy", "status"],
            registry=self._registry,
        )

        self._initialized = True
        logger.info("Prometheus metrics initialized")

    def record_lookup(self, outcome: str) -> None:
        """Count an swr() call by how it was answered."""
        if self.swr_lookups_total is not None:
            self.swr_lookups_total.labels(outcome=outcome).inc()

    def record_revalidation(self, policy: str, status: str) -> None:
        """Count a revalidation unit transition (scheduled, succeeded, failed, skipped)."""
        if self.swr_revalidations_total is not None:
            self.swr_revalidations_total.labels(policy=policy, status=status).inc()


# Global metrics registry
metrics_registry = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry.

    Initializes metrics on first access.
    """
    if not metrics_registry._initialized:
        metrics_registry.initialize()
    return metrics_registry
