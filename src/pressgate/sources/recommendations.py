"""Recommendation service source.

A fast external service that ranks related posts for a post id. Its
response is validated before use; a malformed body is a terminal upstream
error so the fallback chain moves on to the CMS.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError as PydanticValidationError

from pressgate.errors import UpstreamError
from pressgate.fetch.client import FetchOptions, ResilientFetchClient
from pressgate.models import RecommendationResponse

logger = logging.getLogger(__name__)


class RecommendationSource:
    """Client for the recommendation endpoint ({postId, limit} -> related posts)."""

    TARGET = "recommendations"

    def __init__(
        self,
        fetcher: ResilientFetchClient,
        url: str,
        options: FetchOptions | None = None,
    ):
        self.fetcher = fetcher
        self.url = url
        self.options = options

    async def get_recommendations(self, post_id: int, limit: int = 3) -> RecommendationResponse:
        response = await self.fetcher.post(
            self.TARGET,
            self.url,
            {"postId": post_id, "limit": limit},
            options=self.options,
        )
        try:
            result = RecommendationResponse.model_validate(response.data)
        except PydanticValidationError as e:
            raise UpstreamError(
                self.TARGET, f"invalid response: {e.error_count()} validation error(s)"
            ) from e

        logger.debug(
            f"Recommendations for post {post_id}: {len(result.recommendations)} "
            f"of {result.total}"
        )
        return result
