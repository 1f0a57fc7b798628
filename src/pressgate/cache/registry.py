"""Per-category cache registry.

One TTLCache per content category, each with a fixed policy reflecting
how often that content changes: taxonomy rarely, posts and search results
often. Engines are created on first use and live as long as the registry.
Policies are frozen at construction; changing one requires a restart.

The registry also owns the background sweep task that purges expired
entries from every engine on a fixed interval.

Example:
    registry = CacheRegistry()
    await registry.start()

    posts = registry.get_cache("posts")
    posts.set("post:hello-world", post)

    await registry.stop()
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any

from pressgate.cache.engine import CacheObserver, CacheStats, TTLCache
from pressgate.observability.logging import LogContext

logger = logging.getLogger(__name__)

DEFAULT_SWEEP_INTERVAL = 300.0  # 5 minutes


class CacheCategory(str, Enum):
    """Content categories with their own cache engine."""

    POSTS = "posts"
    CATEGORIES = "categories"
    TAGS = "tags"
    MEDIA = "media"
    SEARCH = "search"
    DOWNLOADS = "downloads"


@dataclass(frozen=True)
class CachePolicy:
    """Capacity and expiry policy for one category."""

    ttl_seconds: int
    max_entries: int
    monitoring_enabled: bool = True


CATEGORY_POLICIES: Mapping[str, CachePolicy] = MappingProxyType(
    {
        CacheCategory.POSTS.value: CachePolicy(ttl_seconds=300, max_entries=1000),
        CacheCategory.CATEGORIES.value: CachePolicy(ttl_seconds=3600, max_entries=100),
        CacheCategory.TAGS.value: CachePolicy(ttl_seconds=3600, max_entries=500),
        CacheCategory.MEDIA.value: CachePolicy(ttl_seconds=3600, max_entries=500),
        CacheCategory.SEARCH.value: CachePolicy(ttl_seconds=600, max_entries=500),
        CacheCategory.DOWNLOADS.value: CachePolicy(ttl_seconds=900, max_entries=200),
    }
)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class CacheHealth:
    """Aggregate cache health with actionable hints."""

    status: HealthStatus
    issues: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    stats: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "issues": self.issues,
            "recommendations": self.recommendations,
            "stats": self.stats,
        }


class CacheRegistry:
    """Owns one TTLCache per category."""

    def __init__(
        self,
        policies: Mapping[str, CachePolicy] = CATEGORY_POLICIES,
        observer: CacheObserver | None = None,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._policies: Mapping[str, CachePolicy] = MappingProxyType(dict(policies))
        self._observer = observer
        self._clock = clock
        self.sweep_interval = sweep_interval
        self._engines: dict[str, TTLCache] = {}
        self._sweep_task: asyncio.Task[None] | None = None
        self._last_sweep: float | None = None

    @property
    def categories(self) -> list[str]:
        return list(self._policies)

    def policy(self, category: str) -> CachePolicy:
        try:
            return self._policies[category]
        except KeyError:
            raise ValueError(f"Unknown cache category: {category!r}") from None

    def get_cache(self, category: str) -> TTLCache:
        """Return the engine for category, creating it on first use."""
        engine = self._engines.get(category)
        if engine is None:
            policy = self.policy(category)
            engine = TTLCache(
                name=category,
                default_ttl=policy.ttl_seconds,
                max_entries=policy.max_entries,
                observer=self._observer if policy.monitoring_enabled else None,
                clock=self._clock,
            )
            self._engines[category] = engine
            logger.debug(
                f"Created {category} cache (ttl={policy.ttl_seconds}s, "
                f"max={policy.max_entries})"
            )
        return engine

    def clear(self, category: str) -> int:
        """Empty one category. Returns how many live entries were dropped."""
        engine = self.get_cache(category)
        removed = engine.size()
        engine.clear()
        return removed

    def clear_all(self) -> None:
        """Empty every engine that exists and reset its counters."""
        for engine in self._engines.values():
            engine.clear()
            engine.reset_stats()
        logger.info("Cleared all caches")

    def get_stats(self) -> dict[str, int]:
        """Current size per category (categories never used report 0)."""
        return {
            category: self._engines[category].size() if category in self._engines else 0
            for category in self._policies
        }

    def detailed_stats(self) -> dict[str, CacheStats]:
        return {category: self.get_cache(category).stats() for category in self._policies}

    def sweep(self) -> dict[str, int]:
        """Purge expired entries from every engine once."""
        removed = {category: engine.purge_expired() for category, engine in self._engines.items()}
        self._last_sweep = self._clock()
        return removed

    def health(self) -> CacheHealth:
        """Summarize hit rate, fill level and eviction pressure across categories."""
        stats = self.detailed_stats()
        issues: list[str] = []
        recommendations: list[str] = []

        hits = sum(s.hits for s in stats.values())
        total = sum(s.total_requests for s in stats.values())
        hit_rate = hits / total * 100 if total else 100.0
        if total and hit_rate < 50:
            issues.append(f"Low cache hit rate: {hit_rate:.2f}%")
            recommendations.append("Consider increasing cache TTL or warming the cache")

        for category, s in stats.items():
            if s.usage > 80:
                issues.append(f"High {category} cache usage: {s.usage:.2f}%")
                recommendations.append(f"Consider raising the {category} entry ceiling")

        evictions = sum(s.evictions for s in stats.values())
        if evictions > 100:
            issues.append(f"High eviction count: {evictions}")
            recommendations.append("Consider raising entry ceilings or narrowing cache keys")

        if not issues:
            status = HealthStatus.HEALTHY
        elif len(issues) > 2:
            status = HealthStatus.ERROR
        else:
            status = HealthStatus.WARNING

        return CacheHealth(
            status=status,
            issues=issues,
            recommendations=recommendations,
            stats={category: s.to_dict() for category, s in stats.items()},
        )

    # -------------------------------------------------------------------------
    # Background sweep
    # -------------------------------------------------------------------------

    async def start(self) -> None:
        """Start the periodic sweep task."""
        if self._sweep_task is not None:
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop(), name="cache-sweep")
        logger.info(f"Cache sweep started (every {self.sweep_interval:.0f}s)")

    async def stop(self) -> None:
        """Stop the periodic sweep task."""
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None
            logger.info("Cache sweep stopped")

    async def _sweep_loop(self) -> None:
        with LogContext(task="cache-sweep"):
            while True:
                await asyncio.sleep(self.sweep_interval)
                try:
                    removed = self.sweep()
                except Exception as e:
                    logger.error(f"Cache sweep failed: {e}")
                    continue
                total = sum(removed.values())
                if total:
                    logger.info(f"Cache sweep removed {total} expired entries", extra=removed)
