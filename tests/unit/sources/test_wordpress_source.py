"""Tests for the CMS sources against an in-memory CMS."""

from __future__ import annotations

import httpx
import pytest

from conftest import CMS_URL, GRAPHQL_URL, RECOMMENDATIONS_URL, FakeCms, RecordingSleep, make_post
from pressgate.errors import UpstreamError
from pressgate.fetch.client import FetchOptions, ResilientFetchClient
from pressgate.observability.metrics import MetricsRegistry
from pressgate.sources.recommendations import RecommendationSource
from pressgate.sources.seo import SeoSource
from pressgate.sources.wordpress import WordPressSource, embedded_terms


@pytest.fixture
def fetcher(
    cms: FakeCms, recording_sleep: RecordingSleep, metrics: MetricsRegistry
) -> ResilientFetchClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(cms.handler))
    return ResilientFetchClient(
        http, FetchOptions(max_retries=0), sleep=recording_sleep, metrics=metrics
    )


@pytest.fixture
def wordpress(fetcher: ResilientFetchClient) -> WordPressSource:
    return WordPressSource(fetcher, CMS_URL + "/")


class TestWordPressSource:
    """Test the REST source."""

    @pytest.mark.asyncio
    async def test_post_by_slug(self, cms: FakeCms, wordpress: WordPressSource) -> None:
        cms.add_post(make_post(1, "hello"))
        post = await wordpress.get_post_by_slug("hello")
        assert post is not None
        assert post["id"] == 1
        request = cms.requests[-1]
        assert request.url.params["_embed"] == "1"

    @pytest.mark.asyncio
    async def test_missing_slug_is_none(self, wordpress: WordPressSource) -> None:
        assert await wordpress.get_post_by_slug("nope") is None

    @pytest.mark.asyncio
    async def test_missing_id_is_none(self, wordpress: WordPressSource) -> None:
        """A 404 for a single resource means absent, not an error."""
        assert await wordpress.get_post(999) is None

    @pytest.mark.asyncio
    async def test_server_error_propagates(self, cms: FakeCms, wordpress: WordPressSource) -> None:
        cms.failures["/wp-json/wp/v2/posts"] = 500
        with pytest.raises(UpstreamError):
            await wordpress.get_posts()

    @pytest.mark.asyncio
    async def test_pagination_from_headers(self, cms: FakeCms, wordpress: WordPressSource) -> None:
        for i in range(1, 6):
            cms.add_post(make_post(i, f"post-{i}"))
        page = await wordpress.get_posts(page=2, per_page=2)
        assert [p["id"] for p in page.posts] == [3, 4]
        assert page.pagination.total_posts == 5
        assert page.pagination.total_pages == 3
        assert page.pagination.has_next_page
        assert page.pagination.has_previous_page
        assert page.to_dict()["pagination"]["currentPage"] == 2

    @pytest.mark.asyncio
    async def test_filters_sent_as_comma_lists(
        self, cms: FakeCms, wordpress: WordPressSource
    ) -> None:
        await wordpress.get_posts(categories=[1, 2], exclude=[7])
        params = cms.requests[-1].url.params
        assert params["categories"] == "1,2"
        assert params["exclude"] == "7"
        assert "search" not in params

    @pytest.mark.asyncio
    async def test_taxonomy(self, wordpress: WordPressSource) -> None:
        assert (await wordpress.get_categories())[0]["slug"] == "garden"
        assert (await wordpress.get_tags())[0]["slug"] == "diy"

    @pytest.mark.asyncio
    async def test_media(self, cms: FakeCms, wordpress: WordPressSource) -> None:
        cms.media[5] = {"id": 5, "source_url": "https://cms.test/a.jpg"}
        assert (await wordpress.get_media(5))["id"] == 5
        assert await wordpress.get_media(6) is None

    @pytest.mark.asyncio
    async def test_downloads_filtered_by_category(
        self, cms: FakeCms, wordpress: WordPressSource
    ) -> None:
        cms.downloads = [
            {"id": 1, "acf": {"download_category": "patterns"}},
            {"id": 2, "acf": {"download_category": "guides"}},
            {"id": 3},
        ]
        page = await wordpress.get_downloads("patterns")
        assert [d["id"] for d in page.posts] == [1]
        assert page.pagination.total_posts == 1
        unfiltered = await wordpress.get_downloads()
        assert len(unfiltered.posts) == 3


class TestRelatedByTaxonomy:
    """Test the taxonomy-overlap related posts query."""

    @pytest.mark.asyncio
    async def test_overlap_excludes_current_and_dedupes(
        self, cms: FakeCms, wordpress: WordPressSource
    ) -> None:
        cms.add_post(make_post(1, "current", categories=[10], tags=[20]))
        cms.add_post(make_post(2, "same-category", categories=[10]))
        cms.add_post(make_post(3, "both", categories=[10], tags=[20]))
        cms.add_post(make_post(4, "same-tag", tags=[20]))
        cms.add_post(make_post(5, "unrelated", categories=[99]))

        related = await wordpress.get_related_by_taxonomy(1, limit=5)
        ids = [p["id"] for p in related]
        assert 1 not in ids
        assert 5 not in ids
        assert sorted(ids) == [2, 3, 4]
        assert len(ids) == len(set(ids))

    @pytest.mark.asyncio
    async def test_queries_twice_the_limit(
        self, cms: FakeCms, wordpress: WordPressSource
    ) -> None:
        cms.add_post(make_post(1, "current", categories=[10]))
        await wordpress.get_related_by_taxonomy(1, limit=3)
        listing = [r for r in cms.requests if r.url.path == "/wp-json/wp/v2/posts"]
        assert listing[-1].url.params["per_page"] == "6"

    @pytest.mark.asyncio
    async def test_post_without_terms(self, cms: FakeCms, wordpress: WordPressSource) -> None:
        cms.add_post(make_post(1, "lonely"))
        assert await wordpress.get_related_by_taxonomy(1) == []

    @pytest.mark.asyncio
    async def test_unknown_post(self, wordpress: WordPressSource) -> None:
        assert await wordpress.get_related_by_taxonomy(404) == []

    def test_embedded_terms(self) -> None:
        post = make_post(1, "x", categories=[1, 2], tags=[3])
        assert embedded_terms(post) == ([1, 2], [3])
        assert embedded_terms({"id": 1}) == ([], [])


class TestSeoSource:
    """Test the GraphQL enrichment source."""

    @pytest.mark.asyncio
    async def test_seo_for_known_post(self, cms: FakeCms, fetcher: ResilientFetchClient) -> None:
        cms.seo["hello"] = {"seo": {"title": "Hello"}, "featuredImage": None}
        seo = await SeoSource(fetcher, GRAPHQL_URL).get_post_seo("hello")
        assert seo == {
            "featuredImage": None,
            "categories": {"nodes": []},
            "tags": {"nodes": []},
            "seo": {"title": "Hello"},
        }

    @pytest.mark.asyncio
    async def test_unknown_post_is_none(self, fetcher: ResilientFetchClient) -> None:
        assert await SeoSource(fetcher, GRAPHQL_URL).get_post_seo("nope") is None

    @pytest.mark.asyncio
    async def test_graphql_errors_are_terminal(self, fetcher: ResilientFetchClient) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"errors": [{"message": "Syntax Error"}]})

        calls = 0

        async def counting(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return await handler(request)

        http = httpx.AsyncClient(transport=httpx.MockTransport(counting))
        source = SeoSource(ResilientFetchClient(http, FetchOptions(max_retries=2)), GRAPHQL_URL)
        with pytest.raises(UpstreamError, match="Syntax Error"):
            await source.get_post_seo("hello")
        assert calls == 1


class TestRecommendationSource:
    """Test the recommendation service client."""

    @pytest.mark.asyncio
    async def test_validated_response(self, cms: FakeCms, fetcher: ResilientFetchClient) -> None:
        cms.recommendations = {
            "recommendations": [
                {
                    "id": 7,
                    "title": {"rendered": "Seven"},
                    "excerpt": {"rendered": "<p>7</p>"},
                    "slug": "seven",
                    "date": "2024-01-01T00:00:00",
                    "featured_media": 0,
                    "score": 0.9,
                    "categoryOverlap": 1,
                }
            ],
            "total": 1,
            "metadata": {
                "sourcePostId": 1,
                "categoriesFound": 1,
                "tagsFound": 0,
                "totalPostsProcessed": 4,
                "uniquePostsFound": 1,
            },
        }
        source = RecommendationSource(fetcher, RECOMMENDATIONS_URL)
        response = await source.get_recommendations(1, limit=3)
        assert response.recommendations[0].slug == "seven"
        assert response.metadata is not None
        assert response.metadata.unique_posts_found == 1
        sent = cms.requests[-1]
        assert sent.method == "POST"
        assert sent.content and b'"postId"' in sent.content

    @pytest.mark.asyncio
    async def test_malformed_response_is_upstream_error(
        self, cms: FakeCms, fetcher: ResilientFetchClient
    ) -> None:
        cms.recommendations = {"items": []}
        source = RecommendationSource(fetcher, RECOMMENDATIONS_URL)
        with pytest.raises(UpstreamError, match="invalid response"):
            await source.get_recommendations(1)
