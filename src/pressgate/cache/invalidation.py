"""Cache invalidation driven by content changes.

Three stimuli reach the gateway:
1. The CMS webhook, naming one post whose status changed
2. The revalidation endpoint (path, tag or everything)
3. The admin cache endpoint (clear everything, or one category)

Turning a stimulus into InvalidationEvents is a pure classification step
(classify_webhook, classify_revalidation). Applying an event removes
entries from the matching engine synchronously; events are then discarded.

Key forms understood by invalidate():
- "*"           every entry of the category
- "list:*"      every entry whose key starts with "list:"
- anything else exactly one entry

Invalidating an absent key is a no-op.

Example:
    gateway = InvalidationGateway(registry)
    gateway.invalidate("posts", "post:hello-world")
    gateway.handle_webhook(payload)
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from pressgate.cache.keys import WILDCARD, CacheKeys
from pressgate.cache.registry import CacheCategory, CacheRegistry
from pressgate.models import PostStatus, WebhookPayload
from pressgate.observability.metrics import MetricsRegistry, get_metrics

logger = logging.getLogger(__name__)

_BLOG_PATH_RE = re.compile(r"/blog/([^/?#]+)")

# CMS post type -> cache category
POST_TYPE_CATEGORIES: dict[str, CacheCategory] = {
    "post": CacheCategory.POSTS,
    "page": CacheCategory.POSTS,
    "downloads": CacheCategory.DOWNLOADS,
    "attachment": CacheCategory.MEDIA,
}


class InvalidationScope(str, Enum):
    """How much of a category an event removes."""

    KEY = "key"
    PREFIX = "prefix"
    CATEGORY = "category"


@dataclass(frozen=True)
class InvalidationEvent:
    """A request to drop one key, a key prefix or a whole category."""

    category: str
    key: str
    reason: str
    received_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def scope(self) -> InvalidationScope:
        if self.key == WILDCARD:
            return InvalidationScope.CATEGORY
        if self.key.endswith(WILDCARD):
            return InvalidationScope.PREFIX
        return InvalidationScope.KEY

    def describe(self) -> str:
        return f"{self.category}:{self.key}"


def post_events(slug: str, reason: str) -> list[InvalidationEvent]:
    """Events for one changed post: the post itself plus listings that may show it."""
    category = CacheCategory.POSTS.value
    return [
        InvalidationEvent(category, CacheKeys.post(slug), reason),
        InvalidationEvent(category, CacheKeys.prefix_pattern(CacheKeys.LIST), reason),
        InvalidationEvent(category, CacheKeys.prefix_pattern(CacheKeys.RELATED), reason),
    ]


def classify_webhook(payload: WebhookPayload) -> list[InvalidationEvent]:
    """Map a webhook payload to invalidation events.

    Drafts are invisible to readers and produce nothing. Renames invalidate
    the old and the new slug. Post changes also clear the taxonomy caches.
    Unknown post types are treated as posts.
    """
    if payload.post_status == PostStatus.DRAFT:
        return []

    reason = f"webhook:{payload.post_status.value}:{payload.post_type}:{payload.post_id}"
    category = POST_TYPE_CATEGORIES.get(payload.post_type, CacheCategory.POSTS)

    if category == CacheCategory.DOWNLOADS:
        return [InvalidationEvent(category.value, WILDCARD, reason)]

    if category == CacheCategory.MEDIA:
        return [InvalidationEvent(category.value, CacheKeys.media(payload.post_id), reason)]

    slugs = [payload.post_name]
    for slug in (payload.old_slug, payload.new_slug):
        if slug and slug not in slugs:
            slugs.append(slug)

    events = [InvalidationEvent(CacheCategory.POSTS.value, CacheKeys.post(s), reason) for s in slugs]
    events.extend(post_events(payload.post_name, reason)[1:])
    # Term counts and term-filtered listings change with the post
    events.append(InvalidationEvent(CacheCategory.CATEGORIES.value, WILDCARD, reason))
    events.append(InvalidationEvent(CacheCategory.TAGS.value, WILDCARD, reason))
    events.append(InvalidationEvent(CacheCategory.SEARCH.value, WILDCARD, reason))
    return events


@dataclass
class RevalidationPlan:
    """Outcome of classifying a revalidation request."""

    clear_all: bool = False
    events: list[InvalidationEvent] = field(default_factory=list)
    revalidated: list[str] = field(default_factory=list)


def classify_revalidation(
    path: str | None = None,
    tag: str | None = None,
    all_: bool = False,
) -> RevalidationPlan:
    """Map revalidation parameters to a plan.

    - all_ clears everything
    - path "/blog/<slug>" invalidates that post and post listings
    - tag naming a cache category clears that category
    - no parameters clears everything
    """
    plan = RevalidationPlan()
    reason = "revalidate"

    if all_:
        plan.clear_all = True
        plan.revalidated.append("all")

    if path:
        match = _BLOG_PATH_RE.search(path)
        if match:
            plan.events.extend(post_events(match.group(1), reason))
        plan.revalidated.append(f"path: {path}")

    if tag:
        if tag in {c.value for c in CacheCategory}:
            plan.events.append(InvalidationEvent(tag, WILDCARD, reason))
        plan.revalidated.append(f"tag: {tag}")

    if not path and not tag and not all_:
        plan.clear_all = True
        plan.revalidated.append("blog (default)")

    return plan


class InvalidationGateway:
    """Applies invalidation events to the cache registry."""

    def __init__(self, registry: CacheRegistry, metrics: MetricsRegistry | None = None):
        self.registry = registry
        self._metrics = metrics

    @property
    def metrics(self) -> MetricsRegistry:
        if self._metrics is None:
            self._metrics = get_metrics()
        return self._metrics

    def invalidate(self, category: str, key: str, reason: str = "manual") -> int:
        """Drop one key, a prefix, or (with "*") the whole category."""
        return self.apply(InvalidationEvent(category=category, key=key, reason=reason))

    def apply(self, event: InvalidationEvent) -> int:
        """Apply one event. Returns the number of entries removed."""
        engine = self.registry.get_cache(event.category)
        scope = event.scope

        if scope == InvalidationScope.CATEGORY:
            removed = self.registry.clear(event.category)
        elif scope == InvalidationScope.PREFIX:
            removed = engine.delete_prefix(event.key[: -len(WILDCARD)])
        else:
            removed = 1 if engine.delete(event.key) else 0

        self.metrics.invalidations_total.labels(
            category=event.category, scope=scope.value
        ).inc()
        logger.debug(
            f"Invalidated {event.describe()} ({removed} removed, reason={event.reason})"
        )
        return removed

    def apply_all(self, events: list[InvalidationEvent]) -> int:
        return sum(self.apply(event) for event in events)

    def clear_all(self, reason: str = "manual") -> None:
        """Empty every category."""
        self.registry.clear_all()
        self.metrics.invalidations_total.labels(category="*", scope="all").inc()
        logger.info(f"Invalidated all caches (reason={reason})")

    def clear_category(self, category: str, reason: str = "manual") -> int:
        return self.invalidate(category, WILDCARD, reason)

    def clear_post(self, slug: str, reason: str = "manual") -> int:
        """Drop one post and the post listings that may include it."""
        return self.apply_all(post_events(slug, reason))

    def handle_webhook(self, payload: WebhookPayload) -> list[InvalidationEvent]:
        """Classify and apply a webhook notification. Returns the applied events."""
        events = classify_webhook(payload)
        if not events:
            logger.info(
                f"Ignoring webhook for {payload.post_type} {payload.post_id} "
                f"({payload.post_status.value})"
            )
            return []

        removed = self.apply_all(events)
        logger.info(
            f"Webhook invalidated {len(events)} targets ({removed} entries) for "
            f"{payload.post_type} {payload.post_id} ({payload.post_status.value})"
        )
        return events

    def handle_revalidation(
        self,
        path: str | None = None,
        tag: str | None = None,
        all_: bool = False,
    ) -> list[str]:
        """Classify and apply a revalidation request. Returns what was revalidated."""
        plan = classify_revalidation(path=path, tag=tag, all_=all_)
        if plan.clear_all:
            self.clear_all(reason="revalidate")
        self.apply_all(plan.events)
        return plan.revalidated
