"""In-process cache layer for Pressgate.

- TTL cache engine with lazy expiry and access-recency eviction
- Registry with one engine per content category and a background sweep
- Best-effort monitoring channel into Prometheus
- Invalidation gateway for webhook, revalidation and admin triggers
"""

from pressgate.cache.engine import CacheEntry, CacheStats, TTLCache
from pressgate.cache.invalidation import (
    InvalidationEvent,
    InvalidationGateway,
    InvalidationScope,
    classify_revalidation,
    classify_webhook,
)
from pressgate.cache.keys import WILDCARD, CacheKeys
from pressgate.cache.monitor import CacheMonitor
from pressgate.cache.registry import (
    CATEGORY_POLICIES,
    CacheCategory,
    CacheHealth,
    CachePolicy,
    CacheRegistry,
)

__all__ = [
    # Engine
    "CacheEntry",
    "CacheStats",
    "TTLCache",
    # Registry
    "CATEGORY_POLICIES",
    "CacheCategory",
    "CacheHealth",
    "CachePolicy",
    "CacheRegistry",
    "CacheMonitor",
    # Keys
    "CacheKeys",
    "WILDCARD",
    # Invalidation
    "InvalidationEvent",
    "InvalidationGateway",
    "InvalidationScope",
    "classify_revalidation",
    "classify_webhook",
]
