"""Prometheus metrics for Pressgate.

Provides metrics collection and exposure:
- HTTP request metrics (latency, count)
- Cache metrics per category (hits, misses, evictions, expirations, size)
- Outbound fetch metrics per target (attempts by outcome, latency)
- Invalidation and merge outcome counters

Usage:
    from pressgate.observability.metrics import get_metrics

    metrics = get_metrics()
    metrics.fetch_attempts_total.labels(target="wordpress", outcome="success").inc()
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from prometheus_client import REGISTRY, Counter, Gauge, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from pressgate.config import settings

if TYPE_CHECKING:
    from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


class NoOpMetric:
    """Stand-in used when metrics are disabled."""

    def labels(self, **kwargs: Any) -> NoOpMetric:
        return self

    def inc(self, amount: float = 1) -> None:
        pass

    def dec(self, amount: float = 1) -> None:
        pass

    def set(self, value: float) -> None:
        pass

    def observe(self, value: float) -> None:
        pass


_NOOP = NoOpMetric()


@dataclass
class MetricsRegistry:
    """Registry for Prometheus metrics."""

    # HTTP metrics
    http_requests_total: Any = _NOOP
    http_request_duration_seconds: Any = _NOOP

    # Cache metrics
    cache_hits_total: Any = _NOOP
    cache_misses_total: Any = _NOOP
    cache_evictions_total: Any = _NOOP
    cache_expirations_total: Any = _NOOP
    cache_entries: Any = _NOOP
    cache_monitor_dropped_total: Any = _NOOP

    # Fetch metrics
    fetch_attempts_total: Any = _NOOP
    fetch_duration_seconds: Any = _NOOP

    # Invalidation / merge
    invalidations_total: Any = _NOOP
    merge_outcomes_total: Any = _NOOP

    enabled: bool = False
    _initialized: bool = field(default=False, repr=False)

    def initialize(self, enabled: bool | None = None) -> None:
        """Create the Prometheus collectors once per process."""
        if self._initialized:
            return

        if enabled is None:
            enabled = settings.enable_metrics
        if not enabled:
            logger.info("Metrics are disabled")
            self._initialized = True
            return

        self.http_requests_total = Counter(
            "pressgate_http_requests_total",
            "Total HTTP requests",
            ["method", "path", "status"],
        )
        self.http_request_duration_seconds = Histogram(
            "pressgate_http_request_duration_seconds",
            "HTTP request latency in seconds",
            ["method", "path"],
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
        )

        self.cache_hits_total = Counter(
            "pressgate_cache_hits_total", "Cache hits", ["category"]
        )
        self.cache_misses_total = Counter(
            "pressgate_cache_misses_total", "Cache misses", ["category"]
        )
        self.cache_evictions_total = Counter(
            "pressgate_cache_evictions_total",
            "Entries evicted to make room",
            ["category"],
        )
        self.cache_expirations_total = Counter(
            "pressgate_cache_expirations_total",
            "Entries removed after their TTL elapsed",
            ["category"],
        )
        self.cache_entries = Gauge(
            "pressgate_cache_entries", "Live entries per category", ["category"]
        )
        self.cache_monitor_dropped_total = Counter(
            "pressgate_cache_monitor_dropped_total",
            "Monitoring events dropped because the queue was full",
        )

        self.fetch_attempts_total = Counter(
            "pressgate_fetch_attempts_total",
            "Outbound fetch attempts",
            ["target", "outcome"],
        )
        self.fetch_duration_seconds = Histogram(
            "pressgate_fetch_duration_seconds",
            "Outbound fetch attempt latency in seconds",
            ["target"],
            buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 4.0, 8.0, 16.0),
        )

        self.invalidations_total = Counter(
            "pressgate_invalidations_total",
            "Cache invalidations applied",
            ["category", "scope"],
        )
        self.merge_outcomes_total = Counter(
            "pressgate_merge_outcomes_total",
            "Hybrid merge results",
            ["outcome"],
        )

        self.enabled = True
        self._initialized = True
        logger.info("Prometheus metrics initialized")

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if not self.enabled:
            return b"# Metrics disabled\n"
        return generate_latest(REGISTRY)


# Global metrics registry
metrics_registry = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry, initializing it on first access."""
    if not metrics_registry._initialized:
        metrics_registry.initialize()
    return metrics_registry


class MetricsMiddleware(BaseHTTPMiddleware):
    """Records request count and latency per normalized path."""

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)
        self.metrics = get_metrics()

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in ("/health/live", "/health/ready", "/metrics"):
            return await call_next(request)

        method = request.method
        path = self._normalize_path(request.url.path)
        start_time = time.perf_counter()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration = time.perf_counter() - start_time
            self.metrics.http_requests_total.labels(
                method=method, path=path, status=status_code
            ).inc()
            self.metrics.http_request_duration_seconds.labels(
                method=method, path=path
            ).observe(duration)

    @staticmethod
    def _normalize_path(path: str) -> str:
        """Replace slugs with placeholders to keep label cardinality bounded.

        /api/posts/my-first-post -> /api/posts/{slug}
        """
        parts = path.strip("/").split("/")
        if len(parts) == 3 and parts[:2] == ["api", "posts"]:
            return "/api/posts/{slug}"
        return path
