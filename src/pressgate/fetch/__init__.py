"""Outbound fetch layer: resilient client, source fallback and hybrid merge."""

from pressgate.fetch.client import (
    AttemptOutcome,
    FetchAttempt,
    FetchOptions,
    FetchResponse,
    ResilientFetchClient,
)
from pressgate.fetch.fallback import SourcedResult, fetch_with_fallback
from pressgate.fetch.merge import (
    DegradeReason,
    HybridMergeOrchestrator,
    Merged,
    MergedEntity,
    PrimaryOnly,
)

__all__ = [
    "AttemptOutcome",
    "DegradeReason",
    "FetchAttempt",
    "FetchOptions",
    "FetchResponse",
    "HybridMergeOrchestrator",
    "Merged",
    "MergedEntity",
    "PrimaryOnly",
    "ResilientFetchClient",
    "SourcedResult",
    "fetch_with_fallback",
]
