"""GraphQL SEO source (secondary).

Fetches the enrichment fields for a post: featured image, category and tag
nodes, and the structured SEO block. This endpoint is markedly slower than
the REST API and its data is optional, so callers run it under the merge
orchestrator's deadline.
"""

from __future__ import annotations

import logging
from typing import Any

from pressgate.errors import UpstreamError
from pressgate.fetch.client import FetchOptions, ResilientFetchClient

logger = logging.getLogger(__name__)

POST_SEO_QUERY = """
query GetPostSEO($slug: ID!) {
  post(id: $slug, idType: SLUG) {
    featuredImage {
      node {
        id
        sourceUrl
        altText
        mediaDetails { width height sizes { name sourceUrl width height } }
      }
    }
    categories { nodes { id name slug count } }
    tags { nodes { id name slug count } }
    seo {
      title
      metaDesc
      canonical
      opengraphTitle
      opengraphDescription
      opengraphImage { sourceUrl }
      twitterTitle
      twitterDescription
      twitterImage { sourceUrl }
      focuskw
      metaKeywords
      metaRobotsNoindex
      metaRobotsNofollow
      opengraphType
      opengraphUrl
      opengraphSiteName
      opengraphAuthor
      opengraphPublishedTime
      opengraphModifiedTime
      schema { raw }
    }
  }
}
"""


class SeoSource:
    """Client for the CMS GraphQL endpoint, limited to SEO enrichment."""

    TARGET = "wordpress-graphql"

    def __init__(
        self,
        fetcher: ResilientFetchClient,
        endpoint: str,
        timeout: float = 8.0,
    ):
        self.fetcher = fetcher
        self.endpoint = endpoint
        # Enrichment gets a single attempt; the merge deadline bounds it anyway
        self.options = FetchOptions(timeout=timeout, max_retries=0)

    async def execute(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """Run a GraphQL query. GraphQL-level errors are terminal."""
        response = await self.fetcher.post(
            self.TARGET,
            self.endpoint,
            {"query": query, "variables": variables},
            options=self.options,
        )
        body = response.data or {}
        errors = body.get("errors")
        if errors:
            messages = ", ".join(str(e.get("message", e)) for e in errors)
            raise UpstreamError(self.TARGET, f"GraphQL errors: {messages}")
        return body.get("data") or {}

    async def get_post_seo(self, slug: str) -> dict[str, Any] | None:
        """Enrichment fields for the post with this slug, or None if unknown."""
        data = await self.execute(POST_SEO_QUERY, {"slug": slug})
        post = data.get("post")
        if not post:
            return None
        return {
            "featuredImage": post.get("featuredImage"),
            "categories": post.get("categories") or {"nodes": []},
            "tags": post.get("tags") or {"nodes": []},
            "seo": post.get("seo"),
        }
