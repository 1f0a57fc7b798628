"""Observability module for Pressgate.

Provides structured logging, Prometheus metrics and OpenTelemetry tracing.
"""

from pressgate.observability.logging import (
    LogContext,
    configure_logging,
    correlation_id_var,
    request_id_var,
)
from pressgate.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    metrics_registry,
)
from pressgate.observability.tracing import get_tracer, setup_tracing, shutdown_tracing

__all__ = [
    # Logging
    "configure_logging",
    "LogContext",
    "request_id_var",
    "correlation_id_var",
    # Tracing
    "setup_tracing",
    "shutdown_tracing",
    "get_tracer",
    # Metrics
    "metrics_registry",
    "get_metrics",
    "MetricsMiddleware",
]
