"""Pydantic models for data crossing the process boundary.

Inbound: the CMS webhook payload and the recommendation request.
Outbound: normalized post summaries used by related-content lookups, and
the recommendation service response shape.

Full posts, categories and tags are passed through as the CMS's own JSON
objects; only the shapes Pressgate itself produces or validates are
modelled here.
"""

from __future__ import annotations

import html
import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

_TAG_RE = re.compile(r"<[^>]+>")


def _rendered(value: Any) -> str:
    """Extract text from a WordPress {"rendered": "..."} field or a plain string."""
    if isinstance(value, dict):
        value = value.get("rendered", "")
    return value if isinstance(value, str) else ""


def plain_text(value: Any) -> str:
    """Strip markup and decode entities from a rendered field."""
    return html.unescape(_TAG_RE.sub("", _rendered(value))).strip()


class PostStatus(str, Enum):
    PUBLISH = "publish"
    DRAFT = "draft"
    PRIVATE = "private"
    TRASH = "trash"


class WebhookPayload(BaseModel):
    """Content change notification sent by the CMS plugin."""

    model_config = ConfigDict(extra="ignore")

    post_id: int = Field(ge=0)  # 0 is used by the plugin's test button
    post_title: str = Field(min_length=1)
    post_name: str = Field(min_length=1)
    post_status: PostStatus
    post_type: str = Field(min_length=1)
    old_slug: str | None = None
    new_slug: str | None = None
    timestamp: str | None = None
    user_id: int | None = Field(default=None, gt=0)
    user_login: str | None = None
    user_email: str | None = None


class RecommendationRequest(BaseModel):
    """Query for related posts."""

    model_config = ConfigDict(populate_by_name=True)

    post_id: int = Field(gt=0, alias="postId")
    limit: int = Field(default=3, ge=1, le=10)


class PostSummary(BaseModel):
    """Source-independent summary of a related post."""

    id: int
    slug: str
    title: str
    excerpt: str = ""
    date: str | None = None
    featured_media: int = 0
    score: float | None = None
    embedded: dict[str, Any] | None = None

    @classmethod
    def from_wordpress(cls, post: dict[str, Any]) -> PostSummary:
        """Build from a WordPress REST post object."""
        return cls(
            id=post["id"],
            slug=post.get("slug", ""),
            title=plain_text(post.get("title")),
            excerpt=plain_text(post.get("excerpt")),
            date=post.get("date"),
            featured_media=post.get("featured_media") or 0,
            embedded=post.get("_embedded"),
        )


class RecommendedPost(BaseModel):
    """One entry of the recommendation service response."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: int
    title: dict[str, str]
    excerpt: dict[str, str]
    slug: str
    date: str
    featured_media: int
    embedded: Any | None = Field(default=None, alias="_embedded")
    score: float | None = None
    category_overlap: int | None = Field(default=None, alias="categoryOverlap")
    tag_overlap: int | None = Field(default=None, alias="tagOverlap")

    def to_summary(self) -> PostSummary:
        return PostSummary(
            id=self.id,
            slug=self.slug,
            title=plain_text(self.title),
            excerpt=plain_text(self.excerpt),
            date=self.date,
            featured_media=self.featured_media,
            score=self.score,
            embedded=self.embedded if isinstance(self.embedded, dict) else None,
        )


class RecommendationMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    source_post_id: int = Field(alias="sourcePostId")
    categories_found: int = Field(alias="categoriesFound")
    tags_found: int = Field(alias="tagsFound")
    total_posts_processed: int = Field(alias="totalPostsProcessed")
    unique_posts_found: int = Field(alias="uniquePostsFound")


class RecommendationResponse(BaseModel):
    """Response of the recommendation service."""

    model_config = ConfigDict(extra="ignore")

    recommendations: list[RecommendedPost]
    total: int
    metadata: RecommendationMetadata | None = None
