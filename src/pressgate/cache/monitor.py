"""Best-effort cache monitoring.

Cache engines report hits, misses, evictions and expirations through
CacheMonitor.record(), which only does a non-blocking put onto a bounded
queue. A background task drains the queue into Prometheus. When the queue
is full the event is dropped and counted; nothing here can fail or slow
down a cache operation.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from pressgate.observability.logging import LogContext
from pressgate.observability.metrics import MetricsRegistry, get_metrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEvent:
    """One monitoring event emitted by a cache engine."""

    category: str
    kind: str  # hit | miss | eviction | expiration


class CacheMonitor:
    """Bounded fire-and-forget channel from cache engines to metrics."""

    def __init__(self, maxsize: int = 1000, metrics: MetricsRegistry | None = None):
        self._queue: asyncio.Queue[CacheEvent] = asyncio.Queue(maxsize=maxsize)
        self._metrics = metrics
        self._task: asyncio.Task[None] | None = None
        self.dropped = 0
        self._unreported_drops = 0

    @property
    def metrics(self) -> MetricsRegistry:
        if self._metrics is None:
            self._metrics = get_metrics()
        return self._metrics

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def record(self, category: str, kind: str) -> None:
        """Enqueue an event without waiting. Usable as a CacheObserver."""
        try:
            self._queue.put_nowait(CacheEvent(category=category, kind=kind))
        except asyncio.QueueFull:
            self.dropped += 1
            self._unreported_drops += 1

    async def start(self) -> None:
        """Start draining events in the background."""
        if self._task is not None:
            return
        self._task = asyncio.create_task(self._drain_loop(), name="cache-monitor")
        logger.info("Cache monitor started")

    async def stop(self) -> None:
        """Stop the drain task, applying whatever is still queued."""
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self.flush()
        logger.info("Cache monitor stopped")

    def flush(self) -> int:
        """Apply every queued event synchronously. Returns the number applied."""
        applied = 0
        while True:
            try:
                event = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            self._apply_safely(event)
            applied += 1
        return applied

    async def _drain_loop(self) -> None:
        with LogContext(task="cache-monitor"):
            while True:
                event = await self._queue.get()
                self._apply_safely(event)

    def _apply_safely(self, event: CacheEvent) -> None:
        try:
            self._apply(event)
        except Exception as e:
            logger.warning(f"Failed to record cache event {event.kind} for {event.category}: {e}")

    def _apply(self, event: CacheEvent) -> None:
        metrics = self.metrics
        if self._unreported_drops:
            metrics.cache_monitor_dropped_total.inc(self._unreported_drops)
            self._unreported_drops = 0

        counter = {
            "hit": metrics.cache_hits_total,
            "miss": metrics.cache_misses_total,
            "eviction": metrics.cache_evictions_total,
            "expiration": metrics.cache_expirations_total,
        }.get(event.kind)
        if counter is None:
            raise ValueError(f"Unknown cache event kind: {event.kind}")
        counter.labels(category=event.category).inc()
