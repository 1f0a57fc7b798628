"""Upstream content sources."""

from pressgate.sources.recommendations import RecommendationSource
from pressgate.sources.seo import SeoSource
from pressgate.sources.wordpress import Pagination, PostPage, WordPressSource

__all__ = [
    "Pagination",
    "PostPage",
    "RecommendationSource",
    "SeoSource",
    "WordPressSource",
]
