"""Tests for webhook/revalidation classification and the invalidation gateway."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from pressgate.cache.invalidation import (
    InvalidationEvent,
    InvalidationGateway,
    InvalidationScope,
    classify_revalidation,
    classify_webhook,
)
from pressgate.cache.keys import WILDCARD
from pressgate.cache.registry import CacheRegistry
from pressgate.models import WebhookPayload
from pressgate.observability.metrics import MetricsRegistry


def payload(**overrides: object) -> WebhookPayload:
    data = {
        "post_id": 12,
        "post_title": "Jackalope garden display",
        "post_name": "jackalope-garden-display",
        "post_status": "publish",
        "post_type": "post",
    }
    data.update(overrides)
    return WebhookPayload.model_validate(data)


def described(events: list[InvalidationEvent]) -> list[str]:
    return [e.describe() for e in events]


@pytest.fixture
def registry() -> CacheRegistry:
    return CacheRegistry()


@pytest.fixture
def gateway(registry: CacheRegistry, metrics: MetricsRegistry) -> InvalidationGateway:
    return InvalidationGateway(registry, metrics=metrics)


class TestClassifyWebhook:
    """Test the pure payload -> events mapping."""

    def test_draft_produces_nothing(self) -> None:
        """Drafts are invisible to readers."""
        assert classify_webhook(payload(post_status="draft")) == []

    @pytest.mark.parametrize("status", ["publish", "private", "trash"])
    def test_visible_statuses_invalidate_post(self, status: str) -> None:
        """Every non-draft status invalidates the post and its listings."""
        events = described(classify_webhook(payload(post_status=status)))
        assert "posts:post:jackalope-garden-display" in events
        assert "posts:list:*" in events
        assert "posts:related:*" in events
        assert "search:*" in events
        assert "categories:*" in events
        assert "tags:*" in events

    def test_rename_invalidates_both_slugs(self) -> None:
        """A rename drops the old and the new slug."""
        events = described(
            classify_webhook(payload(old_slug="old-name", new_slug="jackalope-garden-display"))
        )
        assert "posts:post:old-name" in events
        assert events.count("posts:post:jackalope-garden-display") == 1

    def test_downloads_clear_category(self) -> None:
        """Download changes clear the downloads category."""
        events = classify_webhook(payload(post_type="downloads"))
        assert described(events) == ["downloads:*"]
        assert events[0].scope == InvalidationScope.CATEGORY

    def test_attachment_targets_media_entry(self) -> None:
        """Attachment changes drop one media entry."""
        assert described(classify_webhook(payload(post_type="attachment"))) == ["media:media:12"]

    def test_unknown_type_treated_as_post(self) -> None:
        """Custom post types fall back to the posts category."""
        events = described(classify_webhook(payload(post_type="recipe")))
        assert "posts:post:jackalope-garden-display" in events

    def test_reason_names_the_change(self) -> None:
        events = classify_webhook(payload(post_status="trash"))
        assert events[0].reason == "webhook:trash:post:12"


class TestClassifyRevalidation:
    """Test the pure revalidation parameters -> plan mapping."""

    def test_all(self) -> None:
        plan = classify_revalidation(all_=True)
        assert plan.clear_all
        assert plan.revalidated == ["all"]

    def test_blog_path_targets_post(self) -> None:
        """A /blog/<slug> path invalidates that post and the post listings."""
        plan = classify_revalidation(path="/blog/my-post")
        assert not plan.clear_all
        assert described(plan.events) == ["posts:post:my-post", "posts:list:*", "posts:related:*"]
        assert plan.revalidated == ["path: /blog/my-post"]

    def test_other_path_is_recorded_only(self) -> None:
        """Paths outside /blog are acknowledged without cache effects."""
        plan = classify_revalidation(path="/about")
        assert plan.events == []
        assert plan.revalidated == ["path: /about"]

    def test_tag_clears_matching_category(self) -> None:
        plan = classify_revalidation(tag="downloads")
        assert described(plan.events) == ["downloads:*"]
        assert plan.revalidated == ["tag: downloads"]

    def test_unknown_tag_is_recorded_only(self) -> None:
        plan = classify_revalidation(tag="homepage")
        assert plan.events == []

    def test_no_parameters_clears_everything(self) -> None:
        plan = classify_revalidation()
        assert plan.clear_all
        assert plan.revalidated == ["blog (default)"]


class TestInvalidationGateway:
    """Test applying events to the registry."""

    def test_key_invalidation_removes_one_entry(
        self, gateway: InvalidationGateway, registry: CacheRegistry
    ) -> None:
        posts = registry.get_cache("posts")
        posts.set("post:a", 1)
        posts.set("post:b", 2)
        assert gateway.invalidate("posts", "post:a") == 1
        assert posts.keys() == ["post:b"]

    def test_invalidation_is_idempotent(
        self, gateway: InvalidationGateway, registry: CacheRegistry
    ) -> None:
        """Invalidating twice leaves the same state as invalidating once."""
        posts = registry.get_cache("posts")
        posts.set("post:a", 1)
        posts.set("post:b", 2)
        gateway.invalidate("posts", "post:a")
        after_once = posts.keys()
        assert gateway.invalidate("posts", "post:a") == 0
        assert posts.keys() == after_once

    def test_wildcard_clears_category(
        self, gateway: InvalidationGateway, registry: CacheRegistry
    ) -> None:
        """A wildcard empties every entry of the category."""
        posts = registry.get_cache("posts")
        for i in range(5):
            posts.set(f"post:{i}", i)
        registry.get_cache("tags").set("all", [])
        assert gateway.invalidate("posts", WILDCARD) == 5
        assert posts.size() == 0
        assert registry.get_cache("tags").size() == 1

    def test_prefix_invalidation(
        self, gateway: InvalidationGateway, registry: CacheRegistry
    ) -> None:
        posts = registry.get_cache("posts")
        posts.set("list:a", 1)
        posts.set("list:b", 2)
        posts.set("post:x", 3)
        assert gateway.invalidate("posts", "list:*") == 2
        assert posts.keys() == ["post:x"]

    def test_clear_post(self, gateway: InvalidationGateway, registry: CacheRegistry) -> None:
        """clear_post drops the post plus listings, keeping other posts."""
        posts = registry.get_cache("posts")
        posts.set("post:a", 1)
        posts.set("post:b", 2)
        posts.set("list:{}", [])
        posts.set("related:1:3", [])
        assert gateway.clear_post("a") == 3
        assert posts.keys() == ["post:b"]

    def test_handle_webhook_applies_events(
        self, gateway: InvalidationGateway, registry: CacheRegistry
    ) -> None:
        registry.get_cache("posts").set("post:jackalope-garden-display", {})
        registry.get_cache("search").set("query:x", {})
        events = gateway.handle_webhook(payload())
        assert events
        assert registry.get_stats()["posts"] == 0
        assert registry.get_stats()["search"] == 0

    def test_handle_webhook_ignores_drafts(
        self, gateway: InvalidationGateway, registry: CacheRegistry
    ) -> None:
        registry.get_cache("posts").set("post:jackalope-garden-display", {})
        assert gateway.handle_webhook(payload(post_status="draft")) == []
        assert registry.get_stats()["posts"] == 1

    def test_handle_revalidation_default_clears_all(
        self, gateway: InvalidationGateway, registry: CacheRegistry
    ) -> None:
        registry.get_cache("posts").set("post:a", 1)
        registry.get_cache("tags").set("all", [])
        assert gateway.handle_revalidation() == ["blog (default)"]
        assert sum(registry.get_stats().values()) == 0

    def test_metrics_recorded_per_scope(self, registry: CacheRegistry) -> None:
        metrics = MetricsRegistry()
        metrics.invalidations_total = MagicMock()
        metrics._initialized = True
        gateway = InvalidationGateway(registry, metrics=metrics)
        gateway.invalidate("posts", "list:*")
        metrics.invalidations_total.labels.assert_called_with(category="posts", scope="prefix")
