"""Manual revalidation endpoint.

POST /api/revalidate?secret=...&path=/blog/<slug>
POST /api/revalidate?secret=...&tag=posts
POST /api/revalidate?secret=...&all=true

With no path, tag or all, every cache is cleared.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Query

from pressgate.api.deps import GatewayDep, SettingsDep, secret_matches
from pressgate.api.errors import UnauthorizedError

router = APIRouter(prefix="/api/revalidate", tags=["cache"])


@router.post("")
async def revalidate(
    config: SettingsDep,
    gateway: GatewayDep,
    secret: str | None = Query(default=None),
    path: str | None = Query(default=None),
    tag: str | None = Query(default=None),
    all_: bool = Query(default=False, alias="all"),
) -> dict[str, Any]:
    if not secret_matches(config.revalidation_secret, secret):
        raise UnauthorizedError("Invalid secret token")

    revalidated = gateway.handle_revalidation(path=path, tag=tag, all_=all_)
    return {
        "success": True,
        "revalidated": revalidated,
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("")
async def usage() -> dict[str, Any]:
    return {
        "message": "Manual revalidation endpoint",
        "usage": {
            "method": "POST",
            "params": {
                "secret": "Required - REVALIDATION_SECRET",
                "path": "Optional - path to revalidate (e.g. /blog/my-post)",
                "tag": "Optional - cache category to clear (posts, downloads, ...)",
                "all": 'Optional - "true" to clear everything',
            },
        },
        "examples": [
            "POST /api/revalidate?secret=xxx&path=/blog/my-post",
            "POST /api/revalidate?secret=xxx&tag=posts",
            "POST /api/revalidate?secret=xxx&all=true",
        ],
    }
