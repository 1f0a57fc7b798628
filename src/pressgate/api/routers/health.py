"""Health check endpoints.

Kubernetes-compatible probes:
- /health/live  - Liveness probe (always OK while the process runs)
- /health/ready - Readiness probe (cache health summary)
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import ORJSONResponse

from pressgate.api.deps import RuntimeDep
from pressgate.cache.registry import HealthStatus

router = APIRouter(tags=["health"])


@router.get("/health/live")
async def live() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}


@router.get("/health/ready")
async def ready(runtime: RuntimeDep) -> ORJSONResponse:
    """Readiness probe.

    Reports cache hit rate, fill level and eviction pressure. Returns 503
    only when the cache is in the error state or background tasks are not
    running.
    """
    health = runtime.registry.health()
    body = health.to_dict()
    body["started"] = runtime.started
    if runtime.monitor is not None:
        body["monitor"] = {"pending": runtime.monitor.pending, "dropped": runtime.monitor.dropped}

    healthy = runtime.started and health.status != HealthStatus.ERROR
    return ORJSONResponse(content=body, status_code=200 if healthy else 503)
