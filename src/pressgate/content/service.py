"""Content service: the read interface used by the rendering layer.

Every read consults the category cache first. On a miss the value comes
from the upstream sources through one of three paths:

- single post:    hybrid merge of the REST post and its GraphQL SEO block
- related posts:  recommendation service, falling back to taxonomy overlap
- everything else: the REST source directly

A failed primary fetch never reaches the caller as an exception: it is
logged at ERROR and turned into an empty list, an empty page or None.
Anything that is not a FetchError propagates.

Example:
    service = ContentService(registry, wordpress, seo, recommendations)
    post = await service.fetch_post_by_slug("hello-world")
    related = await service.fetch_related_posts(post["id"], limit=3)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pressgate.cache.keys import CacheKeys
from pressgate.cache.registry import CacheCategory, CacheRegistry
from pressgate.errors import FetchError, ValidationError
from pressgate.fetch.fallback import SourcedResult, fetch_with_fallback
from pressgate.fetch.merge import HybridMergeOrchestrator, Merged, MergedEntity
from pressgate.models import PostSummary, RecommendationResponse
from pressgate.observability.metrics import MetricsRegistry
from pressgate.sources.recommendations import RecommendationSource
from pressgate.sources.seo import SeoSource
from pressgate.sources.wordpress import Pagination, PostPage, WordPressSource

logger = logging.getLogger(__name__)

MIN_RELATED_LIMIT = 1
MAX_RELATED_LIMIT = 10

# Posts served without enrichment are kept only briefly so the SEO block
# shows up once the enrichment source recovers.
DEGRADED_POST_TTL = 60

EMPTY_ENRICHMENT: dict[str, Any] = {
    "featuredImage": None,
    "categories": {"nodes": []},
    "tags": {"nodes": []},
    "seo": None,
}


def merge_post(result: MergedEntity[dict[str, Any], dict[str, Any]]) -> dict[str, Any]:
    """Flatten a merge result into one post document.

    Enrichment fields are always present; they hold empty values when the
    enrichment source did not contribute.
    """
    post = dict(result.primary)
    if isinstance(result, Merged):
        post.update({**EMPTY_ENRICHMENT, **result.enrichment})
    else:
        post.update(EMPTY_ENRICHMENT)
    return post


def empty_page(page: int = 1, per_page: int = 10) -> PostPage:
    return PostPage(
        posts=[],
        pagination=Pagination(total_posts=0, total_pages=0, current_page=page, per_page=per_page),
    )


def _dedupe(summaries: list[PostSummary], exclude_id: int) -> list[PostSummary]:
    seen = {exclude_id}
    unique = []
    for summary in summaries:
        if summary.id in seen:
            continue
        seen.add(summary.id)
        unique.append(summary)
    return unique


class ContentService:
    """Cached, failure-tolerant reads of CMS content."""

    def __init__(
        self,
        registry: CacheRegistry,
        wordpress: WordPressSource,
        seo: SeoSource,
        recommendations: RecommendationSource | None = None,
        merge_deadline: float = 8.0,
        metrics: MetricsRegistry | None = None,
    ):
        self.registry = registry
        self.wordpress = wordpress
        self.seo = seo
        self.recommendations = recommendations
        self.orchestrator: HybridMergeOrchestrator[dict[str, Any], dict[str, Any]] = (
            HybridMergeOrchestrator(
                primary=wordpress.get_post_by_slug,
                secondary=seo.get_post_seo,
                merge_deadline=merge_deadline,
                name="post",
                metrics=metrics,
            )
        )

    # -------------------------------------------------------------------------
    # Posts
    # -------------------------------------------------------------------------

    async def fetch_posts(
        self,
        page: int = 1,
        per_page: int = 10,
        search: str | None = None,
        categories: list[int] | None = None,
        tags: list[int] | None = None,
    ) -> PostPage:
        """One page of posts with pagination metadata."""
        cache = self.registry.get_cache(CacheCategory.POSTS.value)
        key = CacheKeys.post_list(
            {
                "page": page,
                "per_page": per_page,
                "search": search,
                "categories": categories,
                "tags": tags,
            }
        )
        cached = cache.get(key)
        if cached is not None:
            return cached

        try:
            result = await self.wordpress.get_posts(
                page=page, per_page=per_page, search=search, categories=categories, tags=tags
            )
        except FetchError as e:
            logger.error(f"Failed to fetch posts page {page}: {e}")
            return empty_page(page, per_page)

        cache.set(key, result)
        return result

    async def fetch_post_by_slug(self, slug: str) -> dict[str, Any] | None:
        """A single post merged with its SEO enrichment, or None."""
        cache = self.registry.get_cache(CacheCategory.POSTS.value)
        key = CacheKeys.post(slug)
        cached = cache.get(key)
        if cached is not None:
            return cached

        try:
            result = await self.orchestrator.fetch_merged(slug)
        except FetchError as e:
            logger.error(f"Failed to fetch post {slug!r}: {e}")
            return None

        if result is None:
            return None

        post = merge_post(result)
        cache.set(key, post, ttl=None if result.is_enriched else DEGRADED_POST_TTL)
        return post

    async def search_posts(self, query: str, page: int = 1, per_page: int = 10) -> PostPage:
        query = query.strip()
        if not query:
            return empty_page(page, per_page)

        cache = self.registry.get_cache(CacheCategory.SEARCH.value)
        key = CacheKeys.search(query, page, per_page)
        cached = cache.get(key)
        if cached is not None:
            return cached

        try:
            result = await self.wordpress.search_posts(query, page=page, per_page=per_page)
        except FetchError as e:
            logger.error(f"Search for {query!r} failed: {e}")
            return empty_page(page, per_page)

        cache.set(key, result)
        return result

    # -------------------------------------------------------------------------
    # Taxonomy, media, downloads
    # -------------------------------------------------------------------------

    async def fetch_categories(self) -> list[dict[str, Any]]:
        return await self._fetch_taxonomy(CacheCategory.CATEGORIES, self.wordpress.get_categories)

    async def fetch_tags(self) -> list[dict[str, Any]]:
        return await self._fetch_taxonomy(CacheCategory.TAGS, self.wordpress.get_tags)

    async def _fetch_taxonomy(self, category: CacheCategory, fetch: Any) -> list[dict[str, Any]]:
        cache = self.registry.get_cache(category.value)
        key = CacheKeys.taxonomy()
        cached = cache.get(key)
        if cached is not None:
            return cached

        try:
            terms = await fetch()
        except FetchError as e:
            logger.error(f"Failed to fetch {category.value}: {e}")
            return []

        cache.set(key, terms)
        return terms

    async def fetch_media(self, media_id: int) -> dict[str, Any] | None:
        cache = self.registry.get_cache(CacheCategory.MEDIA.value)
        key = CacheKeys.media(media_id)
        cached = cache.get(key)
        if cached is not None:
            return cached

        try:
            media = await self.wordpress.get_media(media_id)
        except FetchError as e:
            logger.error(f"Failed to fetch media {media_id}: {e}")
            return None

        if media is not None:
            cache.set(key, media)
        return media

    async def fetch_downloads(
        self, category: str | None = None, page: int = 1, per_page: int = 100
    ) -> PostPage:
        cache = self.registry.get_cache(CacheCategory.DOWNLOADS.value)
        key = CacheKeys.downloads(category, page, per_page)
        cached = cache.get(key)
        if cached is not None:
            return cached

        try:
            result = await self.wordpress.get_downloads(category, page=page, per_page=per_page)
        except FetchError as e:
            logger.error(f"Failed to fetch downloads ({category or 'all'}): {e}")
            return empty_page(page, per_page)

        cache.set(key, result)
        return result

    # -------------------------------------------------------------------------
    # Related content
    # -------------------------------------------------------------------------

    async def fetch_related_posts(self, post_id: int, limit: int = 3) -> list[PostSummary]:
        """Related post summaries; empty when no source can answer."""
        return (await self.fetch_related(post_id, limit)).items

    async def fetch_related(self, post_id: int, limit: int = 3) -> SourcedResult[PostSummary]:
        """Related posts plus the name of the source that produced them.

        Raises:
            ValidationError: post_id is not positive or limit is outside 1..10
        """
        if post_id <= 0:
            raise ValidationError("postId must be a positive integer", field="postId")
        if not MIN_RELATED_LIMIT <= limit <= MAX_RELATED_LIMIT:
            raise ValidationError(
                f"limit must be between {MIN_RELATED_LIMIT} and {MAX_RELATED_LIMIT}",
                field="limit",
            )

        cache = self.registry.get_cache(CacheCategory.POSTS.value)
        key = CacheKeys.related(post_id, limit)
        cached = cache.get(key)
        if cached is not None:
            return cached

        async def recommended() -> RecommendationResponse | None:
            if self.recommendations is None:
                return None
            return await self.recommendations.get_recommendations(post_id, limit)

        async def by_taxonomy() -> list[dict[str, Any]]:
            return await self.wordpress.get_related_by_taxonomy(post_id, limit)

        def normalize_recommended(response: RecommendationResponse) -> list[PostSummary]:
            summaries = [r.to_summary() for r in response.recommendations]
            return _dedupe(summaries, post_id)[:limit]

        def normalize_taxonomy(posts: list[dict[str, Any]]) -> list[PostSummary]:
            summaries = [PostSummary.from_wordpress(p) for p in posts]
            return _dedupe(summaries, post_id)[:limit]

        try:
            result = await fetch_with_fallback(
                recommended,
                by_taxonomy,
                normalize_recommended,
                normalize_taxonomy,
                primary_name=RecommendationSource.TARGET,
                secondary_name="taxonomy",
            )
        except FetchError as e:
            logger.error(f"Failed to fetch related posts for {post_id}: {e}")
            return SourcedResult(items=[], source="none")

        if result.items:
            cache.set(key, result)
        return result

    # -------------------------------------------------------------------------
    # Warm-up
    # -------------------------------------------------------------------------

    async def warm_cache(self) -> dict[str, int]:
        """Preload taxonomy, then the first page of recent posts.

        Returns how many items each step loaded.
        """
        logger.info("Warming content cache")
        loaded: dict[str, int] = {}

        results = await asyncio.gather(
            self.fetch_categories(), self.fetch_tags(), return_exceptions=True
        )
        for name, result in zip(("categories", "tags"), results, strict=True):
            if isinstance(result, BaseException):
                logger.error(f"Cache warm-up of {name} failed: {result}")
                loaded[name] = 0
            else:
                loaded[name] = len(result)

        try:
            page = await self.fetch_posts(page=1, per_page=10)
        except Exception as e:
            logger.error(f"Cache warm-up of posts failed: {e}")
            loaded["posts"] = 0
        else:
            loaded["posts"] = len(page.posts)

        logger.info("Content cache warmed", extra={"loaded": loaded})
        return loaded
