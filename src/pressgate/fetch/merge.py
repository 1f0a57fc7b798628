"""Hybrid merge of a fast primary source and a slow enrichment source.

Both calls start together. The primary result is required; the secondary
only adds enrichment fields. After the primary resolves, the orchestrator
waits for the secondary only until the merge deadline (measured from the
start of the operation) and otherwise returns primary-only data. A late
secondary call is cancelled locally; the remote side may still finish.

Results are a tagged union so callers must handle the enrichment-absent
case explicitly:

    result = await orchestrator.fetch_merged("hello-world")
    match result:
        case Merged(primary=post, enrichment=seo): ...
        case PrimaryOnly(primary=post, reason=reason): ...
        case None: ...  # primary source has no such entity
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

from pressgate.observability.metrics import MetricsRegistry, get_metrics

logger = logging.getLogger(__name__)

P = TypeVar("P")
E = TypeVar("E")


class DegradeReason(str, Enum):
    """Why enrichment is missing."""

    DEADLINE = "deadline"
    FAILED = "failed"
    EMPTY = "empty"


@dataclass(frozen=True)
class PrimaryOnly(Generic[P]):
    primary: P
    reason: DegradeReason
    enrichment: None = None

    @property
    def is_enriched(self) -> bool:
        return False


@dataclass(frozen=True)
class Merged(Generic[P, E]):
    primary: P
    enrichment: E

    @property
    def is_enriched(self) -> bool:
        return True


MergedEntity = PrimaryOnly[P] | Merged[P, E]


def _discard(task: asyncio.Task[Any]) -> None:
    """Retrieve a finished task's exception so it is not reported as unhandled."""
    if not task.cancelled():
        task.exception()


class HybridMergeOrchestrator(Generic[P, E]):
    """Fetches one entity from two sources concurrently and merges the result."""

    def __init__(
        self,
        primary: Callable[[str], Awaitable[P | None]],
        secondary: Callable[[str], Awaitable[E | None]],
        merge_deadline: float = 8.0,
        name: str = "merge",
        metrics: MetricsRegistry | None = None,
    ):
        if merge_deadline <= 0:
            raise ValueError("merge_deadline must be positive")
        self._primary = primary
        self._secondary = secondary
        self.merge_deadline = merge_deadline
        self.name = name
        self._metrics = metrics

    @property
    def metrics(self) -> MetricsRegistry:
        if self._metrics is None:
            self._metrics = get_metrics()
        return self._metrics

    async def fetch_merged(self, entity_id: str) -> MergedEntity[P, E] | None:
        """Fetch entity_id from both sources.

        Returns None when the primary source has no such entity.
        Raises whatever the primary call raised; secondary failures are logged
        and degrade the result to PrimaryOnly.
        """
        started = time.monotonic()
        primary_task = asyncio.ensure_future(self._primary(entity_id))
        secondary_task = asyncio.ensure_future(self._secondary(entity_id))

        try:
            primary = await primary_task
        except BaseException:
            secondary_task.cancel()
            secondary_task.add_done_callback(_discard)
            raise

        if primary is None:
            secondary_task.cancel()
            secondary_task.add_done_callback(_discard)
            return None

        remaining = self.merge_deadline - (time.monotonic() - started)
        if not secondary_task.done() and remaining > 0:
            await asyncio.wait({secondary_task}, timeout=remaining)

        if not secondary_task.done():
            secondary_task.cancel()
            secondary_task.add_done_callback(_discard)
            logger.warning(
                f"{self.name}: enrichment for {entity_id} missed the "
                f"{self.merge_deadline:.1f}s deadline, returning primary data only"
            )
            return self._degraded(primary, DegradeReason.DEADLINE)

        if secondary_task.cancelled():
            return self._degraded(primary, DegradeReason.FAILED)

        error = secondary_task.exception()
        if error is not None:
            logger.warning(f"{self.name}: enrichment for {entity_id} failed: {error}")
            return self._degraded(primary, DegradeReason.FAILED)

        enrichment = secondary_task.result()
        if enrichment is None:
            return self._degraded(primary, DegradeReason.EMPTY)

        self.metrics.merge_outcomes_total.labels(outcome="merged").inc()
        return Merged(primary=primary, enrichment=enrichment)

    def _degraded(self, primary: P, reason: DegradeReason) -> PrimaryOnly[P]:
        self.metrics.merge_outcomes_total.labels(outcome=f"primary_only_{reason.value}").inc()
        return PrimaryOnly(primary=primary, reason=reason)
