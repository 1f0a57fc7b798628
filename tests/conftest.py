"""Global pytest configuration and fixtures.

Provides a controllable clock, a recording sleep, a disabled metrics
registry, and an in-memory CMS served through httpx.MockTransport.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import orjson
import pytest

from pressgate.config import Settings
from pressgate.observability.metrics import MetricsRegistry

CMS_URL = "https://cms.test"
GRAPHQL_URL = "https://cms.test/graphql"
RECOMMENDATIONS_URL = "https://recs.test/recommendations"


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep replacement that records delays and returns immediately."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def make_post(
    post_id: int,
    slug: str,
    categories: list[int] | None = None,
    tags: list[int] | None = None,
) -> dict[str, Any]:
    """A WordPress REST post object with embedded terms."""
    categories = categories or []
    tags = tags or []
    return {
        "id": post_id,
        "slug": slug,
        "status": "publish",
        "date": "2024-05-01T10:00:00",
        "title": {"rendered": f"Post &amp; {slug}"},
        "excerpt": {"rendered": f"<p>About {slug}</p>"},
        "content": {"rendered": f"<p>Body of {slug}</p>"},
        "featured_media": 0,
        "_embedded": {
            "wp:term": [
                [{"id": c, "taxonomy": "category"} for c in categories],
                [{"id": t, "taxonomy": "post_tag"} for t in tags],
            ]
        },
    }


class FakeCms:
    """In-memory WordPress REST + GraphQL + recommendation service."""

    def __init__(self) -> None:
        self.posts: list[dict[str, Any]] = []
        self.seo: dict[str, dict[str, Any]] = {}
        self.categories: list[dict[str, Any]] = [{"id": 1, "name": "Garden", "slug": "garden"}]
        self.tags: list[dict[str, Any]] = [{"id": 9, "name": "DIY", "slug": "diy"}]
        self.media: dict[int, dict[str, Any]] = {}
        self.downloads: list[dict[str, Any]] = []
        self.recommendations: dict[str, Any] | None = None
        self.failures: dict[str, int] = {}  # path -> status to return
        self.seo_delay: float = 0.0
        self.requests: list[httpx.Request] = []

    def add_post(self, post: dict[str, Any], seo: dict[str, Any] | None = None) -> None:
        self.posts.append(post)
        if seo is not None:
            self.seo[post["slug"]] = seo

    def count(self, path: str) -> int:
        return sum(1 for r in self.requests if r.url.path == path)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        params = request.url.params

        if path in self.failures:
            return httpx.Response(self.failures[path], json={"message": "upstream failure"})

        if path == "/graphql":
            return await self._graphql(request)
        if path == "/recommendations":
            if self.recommendations is None:
                return httpx.Response(503, json={"error": "unavailable"})
            return httpx.Response(200, json=self.recommendations)

        if path == "/wp-json/wp/v2/posts":
            return self._posts(params)
        if path.startswith("/wp-json/wp/v2/posts/"):
            post_id = int(path.rsplit("/", 1)[1])
            for post in self.posts:
                if post["id"] == post_id:
                    return httpx.Response(200, json=post)
            return httpx.Response(404, json={"code": "rest_post_invalid_id"})
        if path == "/wp-json/wp/v2/categories":
            return httpx.Response(200, json=self.categories)
        if path == "/wp-json/wp/v2/tags":
            return httpx.Response(200, json=self.tags)
        if path.startswith("/wp-json/wp/v2/media/"):
            media = self.media.get(int(path.rsplit("/", 1)[1]))
            if media is None:
                return httpx.Response(404, json={"code": "rest_post_invalid_id"})
            return httpx.Response(200, json=media)
        if path == "/wp-json/wp/v2/downloads":
            return httpx.Response(
                200,
                json=self.downloads,
                headers={"X-WP-Total": str(len(self.downloads)), "X-WP-TotalPages": "1"},
            )
        return httpx.Response(404, json={"code": "rest_no_route"})

    def _posts(self, params: httpx.QueryParams) -> httpx.Response:
        if "slug" in params:
            return httpx.Response(200, json=[p for p in self.posts if p["slug"] == params["slug"]])

        posts = list(self.posts)
        if "search" in params:
            posts = [p for p in posts if params["search"] in p["slug"]]
        if "exclude" in params:
            excluded = {int(i) for i in params["exclude"].split(",")}
            posts = [p for p in posts if p["id"] not in excluded]
        for taxonomy, index in (("categories", 0), ("tags", 1)):
            if taxonomy in params:
                wanted = {int(i) for i in params[taxonomy].split(",")}
                posts = [
                    p
                    for p in posts
                    if wanted & {t["id"] for t in p["_embedded"]["wp:term"][index]}
                ]

        page = int(params.get("page", 1))
        per_page = int(params.get("per_page", 10))
        window = posts[(page - 1) * per_page : page * per_page]
        total_pages = max(1, -(-len(posts) // per_page))
        return httpx.Response(
            200,
            json=window,
            headers={"X-WP-Total": str(len(posts)), "X-WP-TotalPages": str(total_pages)},
        )

    async def _graphql(self, request: httpx.Request) -> httpx.Response:
        if self.seo_delay:
            await asyncio.sleep(self.seo_delay)
        body = orjson.loads(request.content)
        slug = body["variables"]["slug"]
        return httpx.Response(200, json={"data": {"post": self.seo.get(slug)}})


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def metrics() -> MetricsRegistry:
    """Metrics registry with every collector disabled."""
    registry = MetricsRegistry()
    registry.initialize(enabled=False)
    return registry


@pytest.fixture
def cms() -> FakeCms:
    return FakeCms()


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        env="test",
        wordpress_rest_url=CMS_URL,
        wordpress_graphql_url=GRAPHQL_URL,
        recommendations_url=RECOMMENDATIONS_URL,
        fetch_timeout=2.0,
        fetch_max_retries=0,
        seo_timeout=1.0,
        merge_deadline=0.5,
        cache_monitoring=False,
        revalidation_secret="reval-secret",
        webhook_secret=None,
        admin_token=None,
        enable_metrics=False,
    )
