"""Observability for swr-cache: structured logging and Prometheus metrics."""

from swrcache.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    LogContext,
    cache_key_var,
    configure_logging,
    job_id_var,
    unit_of_work_id_var,
)
from swrcache.observability.metrics import MetricsRegistry, get_metrics

__all__ = [
    "ConsoleFormatter",
    "JsonFormatter",
    "LogContext",
    "MetricsRegistry",
    "cache_key_var",
    "configure_logging",
    "get_metrics",
    "job_id_var",
    "unit_of_work_id_var",
]
