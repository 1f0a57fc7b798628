"""Metrics endpoint for Prometheus scraping."""

from __future__ import annotations

from fastapi import APIRouter
from starlette.responses import Response

from pressgate.api.deps import RegistryDep
from pressgate.observability.metrics import get_metrics

router = APIRouter(tags=["observability"])


@router.get(
    "/metrics",
    response_class=Response,
    summary="Prometheus metrics",
    responses={200: {"description": "Prometheus metrics", "content": {"text/plain": {}}}},
)
async def get_prometheus_metrics(registry: RegistryDep) -> Response:
    """Return Prometheus metrics in exposition format."""
    metrics = get_metrics()
    for category, size in registry.get_stats().items():
        metrics.cache_entries.labels(category=category).set(size)

    return Response(
        content=metrics.generate_latest(),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
