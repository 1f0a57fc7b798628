"""WordPress REST API source (primary).

Supplies the authoritative post fields plus categories, tags, media,
search and the downloads post type. All calls go through the resilient
fetch client; a post that does not exist is None, never an exception.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from pressgate.errors import UpstreamError
from pressgate.fetch.client import FetchResponse, ResilientFetchClient

logger = logging.getLogger(__name__)

WP_ENDPOINTS = {
    "posts": "/wp-json/wp/v2/posts",
    "categories": "/wp-json/wp/v2/categories",
    "tags": "/wp-json/wp/v2/tags",
    "media": "/wp-json/wp/v2/media",
    "downloads": "/wp-json/wp/v2/downloads",
}


@dataclass(frozen=True)
class Pagination:
    total_posts: int
    total_pages: int
    current_page: int
    per_page: int

    @property
    def has_next_page(self) -> bool:
        return self.current_page < self.total_pages

    @property
    def has_previous_page(self) -> bool:
        return self.current_page > 1

    @classmethod
    def from_headers(
        cls, headers: httpx.Headers, page: int, per_page: int, count: int
    ) -> Pagination:
        """Read X-WP-Total / X-WP-TotalPages, defaulting to what was received."""

        def _int(name: str, default: int) -> int:
            try:
                return int(headers.get(name, default))
            except (TypeError, ValueError):
                return default

        return cls(
            total_posts=_int("x-wp-total", count),
            total_pages=_int("x-wp-totalpages", 1),
            current_page=page,
            per_page=per_page,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalPosts": self.total_posts,
            "totalPages": self.total_pages,
            "currentPage": self.current_page,
            "perPage": self.per_page,
            "hasNextPage": self.has_next_page,
            "hasPreviousPage": self.has_previous_page,
        }


@dataclass(frozen=True)
class PostPage:
    """One page of posts with its pagination metadata."""

    posts: list[dict[str, Any]]
    pagination: Pagination

    def to_dict(self) -> dict[str, Any]:
        return {"posts": self.posts, "pagination": self.pagination.to_dict()}


def embedded_terms(post: dict[str, Any]) -> tuple[list[int], list[int]]:
    """Category and tag ids from a post's embedded wp:term data."""
    terms = (post.get("_embedded") or {}).get("wp:term") or []
    categories = [t["id"] for t in (terms[0] if len(terms) > 0 else []) if "id" in t]
    tags = [t["id"] for t in (terms[1] if len(terms) > 1 else []) if "id" in t]
    return categories, tags


class WordPressSource:
    """Client for the CMS REST endpoints."""

    TARGET = "wordpress"

    def __init__(self, fetcher: ResilientFetchClient, base_url: str):
        self.fetcher = fetcher
        self.base_url = base_url.rstrip("/")

    def _url(self, endpoint: str, suffix: str = "") -> str:
        return f"{self.base_url}{WP_ENDPOINTS[endpoint]}{suffix}"

    async def _get(self, endpoint: str, suffix: str = "", **params: Any) -> FetchResponse:
        query = {k: v for k, v in params.items() if v is not None}
        return await self.fetcher.get(self.TARGET, self._url(endpoint, suffix), params=query)

    async def _get_optional(self, endpoint: str, suffix: str, **params: Any) -> Any | None:
        """GET a single resource; 404 means absent."""
        try:
            response = await self._get(endpoint, suffix, **params)
        except UpstreamError as e:
            if e.status_code == 404:
                return None
            raise
        return response.data

    async def get_posts(
        self,
        page: int = 1,
        per_page: int = 10,
        search: str | None = None,
        categories: list[int] | None = None,
        tags: list[int] | None = None,
        exclude: list[int] | None = None,
        orderby: str | None = None,
        order: str | None = None,
        embed: bool = True,
    ) -> PostPage:
        """Get one page of published posts."""
        response = await self._get(
            "posts",
            page=page,
            per_page=per_page,
            search=search,
            categories=",".join(map(str, categories)) if categories else None,
            tags=",".join(map(str, tags)) if tags else None,
            exclude=",".join(map(str, exclude)) if exclude else None,
            orderby=orderby,
            order=order,
            _embed="1" if embed else None,
        )
        posts = response.data or []
        return PostPage(
            posts=posts,
            pagination=Pagination.from_headers(response.headers, page, per_page, len(posts)),
        )

    async def get_post_by_slug(self, slug: str) -> dict[str, Any] | None:
        response = await self._get("posts", slug=slug, _embed="1")
        posts = response.data or []
        return posts[0] if posts else None

    async def get_post(self, post_id: int) -> dict[str, Any] | None:
        return await self._get_optional("posts", f"/{post_id}", _embed="1")

    async def get_categories(self, per_page: int = 100) -> list[dict[str, Any]]:
        response = await self._get("categories", per_page=per_page, orderby="count", order="desc")
        return response.data or []

    async def get_tags(self, per_page: int = 100) -> list[dict[str, Any]]:
        response = await self._get("tags", per_page=per_page, orderby="count", order="desc")
        return response.data or []

    async def get_media(self, media_id: int) -> dict[str, Any] | None:
        return await self._get_optional("media", f"/{media_id}")

    async def search_posts(self, query: str, page: int = 1, per_page: int = 10) -> PostPage:
        return await self.get_posts(page=page, per_page=per_page, search=query)

    async def get_downloads(
        self, category: str | None = None, page: int = 1, per_page: int = 100
    ) -> PostPage:
        """Get downloads, optionally filtered by their download_category field."""
        response = await self._get(
            "downloads", page=page, per_page=per_page, status="publish", _embed="1"
        )
        downloads = response.data or []
        if category:
            downloads = [
                d for d in downloads if (d.get("acf") or {}).get("download_category") == category
            ]
            pagination = Pagination(
                total_posts=len(downloads), total_pages=1, current_page=1, per_page=len(downloads)
            )
        else:
            pagination = Pagination.from_headers(response.headers, page, per_page, len(downloads))
        return PostPage(posts=downloads, pagination=pagination)

    async def get_related_by_taxonomy(self, post_id: int, limit: int = 3) -> list[dict[str, Any]]:
        """Posts sharing a category or tag with post_id, most recent first."""
        post = await self.get_post(post_id)
        if post is None:
            return []

        category_ids, tag_ids = embedded_terms(post)
        if not category_ids and not tag_ids:
            return []

        async def by_terms(**terms: list[int]) -> list[dict[str, Any]]:
            page = await self.get_posts(per_page=limit * 2, exclude=[post_id], **terms)
            return page.posts

        lookups = []
        if category_ids:
            lookups.append(by_terms(categories=category_ids))
        if tag_ids:
            lookups.append(by_terms(tags=tag_ids))
        results = await asyncio.gather(*lookups)

        seen: set[int] = {post_id}
        related: list[dict[str, Any]] = []
        for candidate in (p for batch in results for p in batch):
            if candidate.get("id") in seen:
                continue
            seen.add(candidate["id"])
            related.append(candidate)
        return related[:limit]
