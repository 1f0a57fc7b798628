"""Explicit construction of the Pressgate object graph.

Nothing in Pressgate holds cache or client state at module level. The
Runtime builds the HTTP client, cache registry, monitoring channel,
invalidation gateway, sources and content service from one Settings
object, and ties their background tasks to start()/stop().

Example:
    runtime = Runtime.build(settings)
    await runtime.start()
    post = await runtime.content.fetch_post_by_slug("hello-world")
    await runtime.stop()
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from pressgate.cache.invalidation import InvalidationGateway
from pressgate.cache.monitor import CacheMonitor
from pressgate.cache.registry import CacheRegistry
from pressgate.config import Settings, settings
from pressgate.content.service import ContentService
from pressgate.fetch.client import FetchOptions, ResilientFetchClient
from pressgate.observability.metrics import MetricsRegistry, get_metrics
from pressgate.sources.recommendations import RecommendationSource
from pressgate.sources.seo import SeoSource
from pressgate.sources.wordpress import WordPressSource

logger = logging.getLogger(__name__)


@dataclass
class Runtime:
    """Everything a running Pressgate process owns."""

    settings: Settings
    http: httpx.AsyncClient
    fetcher: ResilientFetchClient
    registry: CacheRegistry
    monitor: CacheMonitor | None
    gateway: InvalidationGateway
    content: ContentService
    owns_http: bool = True
    started: bool = False

    @classmethod
    def build(
        cls,
        config: Settings | None = None,
        http: httpx.AsyncClient | None = None,
        metrics: MetricsRegistry | None = None,
    ) -> Runtime:
        """Wire up all components from configuration.

        Args:
            config: Settings to use (defaults to the process settings)
            http: Shared HTTP client; created (and later closed) here when omitted
            metrics: Metrics registry (defaults to the global one)
        """
        config = config or settings
        metrics = metrics or get_metrics()
        owns_http = http is None
        if http is None:
            http = httpx.AsyncClient(
                headers={"User-Agent": config.user_agent, "Accept": "application/json"},
                timeout=httpx.Timeout(config.fetch_timeout),
                follow_redirects=True,
            )

        monitor = (
            CacheMonitor(maxsize=config.cache_monitor_queue_size, metrics=metrics)
            if config.cache_monitoring
            else None
        )
        registry = CacheRegistry(
            observer=monitor.record if monitor else None,
            sweep_interval=config.cache_sweep_interval,
        )

        fetcher = ResilientFetchClient(
            http,
            FetchOptions(
                timeout=config.fetch_timeout,
                max_retries=config.fetch_max_retries,
                backoff_base=config.fetch_backoff_base,
            ),
            metrics=metrics,
        )
        wordpress = WordPressSource(fetcher, config.wordpress_rest_url)
        seo = SeoSource(fetcher, config.wordpress_graphql_url, timeout=config.seo_timeout)
        recommendations = (
            RecommendationSource(
                fetcher,
                config.recommendations_url,
                fetcher.options.with_timeout(config.recommendations_timeout),
            )
            if config.recommendations_url
            else None
        )

        return cls(
            settings=config,
            http=http,
            fetcher=fetcher,
            registry=registry,
            monitor=monitor,
            gateway=InvalidationGateway(registry, metrics=metrics),
            content=ContentService(
                registry,
                wordpress,
                seo,
                recommendations,
                merge_deadline=config.merge_deadline,
                metrics=metrics,
            ),
            owns_http=owns_http,
        )

    async def start(self) -> None:
        """Start background tasks (monitor drain, cache sweep)."""
        if self.started:
            return
        if self.monitor is not None:
            await self.monitor.start()
        await self.registry.start()
        self.started = True
        logger.info("Runtime started")

    async def stop(self) -> None:
        """Stop background tasks and close the HTTP client if we created it."""
        await self.registry.stop()
        if self.monitor is not None:
            await self.monitor.stop()
        if self.owns_http:
            await self.http.aclose()
        self.started = False
        logger.info("Runtime stopped")
