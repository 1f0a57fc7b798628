"""Thin read endpoints over the content service."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query

from pressgate.api.deps import ContentDep
from pressgate.api.errors import BadRequestError, NotFoundError
from pressgate.fetch.fallback import SourcedResult
from pressgate.models import PostSummary, RecommendationRequest

router = APIRouter(prefix="/api", tags=["content"])


def _id_list(raw: str | None, name: str) -> list[int] | None:
    """Parse a comma-separated id list ("3,7,12")."""
    if not raw:
        return None
    try:
        return [int(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        raise BadRequestError(f"{name} must be a comma-separated list of ids") from None


def _related_body(result: SourcedResult[PostSummary]) -> dict[str, Any]:
    return {
        "recommendations": [summary.model_dump() for summary in result.items],
        "total": len(result.items),
        "source": result.source,
    }


@router.get("/posts")
async def list_posts(
    content: ContentDep,
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=10, ge=1, le=100),
    search: str | None = None,
    categories: str | None = None,
    tags: str | None = None,
) -> dict[str, Any]:
    result = await content.fetch_posts(
        page=page,
        per_page=per_page,
        search=search,
        categories=_id_list(categories, "categories"),
        tags=_id_list(tags, "tags"),
    )
    return result.to_dict()


@router.get("/posts/{slug}")
async def get_post(slug: str, content: ContentDep) -> dict[str, Any]:
    post = await content.fetch_post_by_slug(slug)
    if post is None:
        raise NotFoundError("Post", slug)
    return post


@router.get("/categories")
async def list_categories(content: ContentDep) -> list[dict[str, Any]]:
    return await content.fetch_categories()


@router.get("/tags")
async def list_tags(content: ContentDep) -> list[dict[str, Any]]:
    return await content.fetch_tags()


@router.get("/search")
async def search(
    content: ContentDep,
    q: str = Query(min_length=1),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=10, ge=1, le=100),
) -> dict[str, Any]:
    result = await content.search_posts(q, page=page, per_page=per_page)
    return {"query": q, **result.to_dict()}


@router.get("/recommendations")
async def recommendations(
    content: ContentDep,
    post_id: int = Query(alias="postId", gt=0),
    limit: int = Query(default=3, ge=1, le=10),
) -> dict[str, Any]:
    return _related_body(await content.fetch_related(post_id, limit))


@router.post("/recommendations")
async def recommendations_post(
    body: RecommendationRequest,
    content: ContentDep,
) -> dict[str, Any]:
    return _related_body(await content.fetch_related(body.post_id, body.limit))
