"""Admin cache endpoint.

POST /api/cache with {"action": ..., "slug": ...}:
- clear-all                       empty every category
- clear-posts                     empty the posts category
- clear-posts + slug              drop one post and the listings that may show it
- clear-posts:<slug>              same, slug given inline
- clear-downloads                 empty the downloads category
- stats                           current size per category

GET /api/cache returns the stats.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from pressgate.api.deps import GatewayDep, RegistryDep, require_admin_token
from pressgate.api.errors import BadRequestError
from pressgate.cache.registry import CacheCategory

router = APIRouter(
    prefix="/api/cache",
    tags=["cache"],
    dependencies=[Depends(require_admin_token)],
)

VALID_ACTIONS = "clear-all, clear-posts, clear-downloads, or stats"


class CacheActionRequest(BaseModel):
    action: str
    slug: str | None = None


@router.post("")
async def cache_action(
    body: CacheActionRequest,
    gateway: GatewayDep,
    registry: RegistryDep,
) -> dict[str, Any]:
    action, _, inline_slug = body.action.partition(":")
    slug = body.slug or inline_slug or None

    if action == "clear-all" and not inline_slug:
        gateway.clear_all(reason="admin")
        return {"success": True, "message": "All cache cleared successfully"}

    if action == "clear-posts":
        if slug:
            gateway.clear_post(slug, reason="admin")
            return {"success": True, "message": f"Cache cleared for post: {slug}"}
        gateway.clear_category(CacheCategory.POSTS.value, reason="admin")
        return {"success": True, "message": "All posts cache cleared successfully"}

    if action == "clear-downloads" and not inline_slug:
        gateway.clear_category(CacheCategory.DOWNLOADS.value, reason="admin")
        return {"success": True, "message": "Downloads cache cleared successfully"}

    if action == "stats" and not inline_slug:
        return {"success": True, "stats": registry.get_stats()}

    raise BadRequestError(f"Invalid action. Use: {VALID_ACTIONS}")


@router.get("")
async def cache_stats(registry: RegistryDep) -> dict[str, Any]:
    return {
        "success": True,
        "stats": registry.get_stats(),
        "details": {category: s.to_dict() for category, s in registry.detailed_stats().items()},
    }
