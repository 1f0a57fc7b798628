"""Primary/secondary source fallback.

Used for related-content lookups: the fast recommendation service is
asked first; when it fails or has nothing, the CMS's own taxonomy-overlap
query answers instead. Both results go through a normalizer so callers get
one shape whichever source answered.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
P = TypeVar("P")
S = TypeVar("S")


@dataclass(frozen=True)
class SourcedResult(Generic[T]):
    """Normalized items plus the name of the source that produced them."""

    items: list[T]
    source: str


def _is_empty(result: object) -> bool:
    if result is None:
        return True
    if isinstance(result, Sequence):
        return len(result) == 0
    return False


async def fetch_with_fallback(
    primary_call: Callable[[], Awaitable[P | None]],
    secondary_call: Callable[[], Awaitable[S | None]],
    normalize_primary: Callable[[P], list[T]],
    normalize_secondary: Callable[[S], list[T]],
    primary_name: str = "primary",
    secondary_name: str = "secondary",
) -> SourcedResult[T]:
    """Try primary_call; on failure or an empty result, return secondary_call's.

    Raises the secondary's exception (chained to the primary's, if any)
    when both sources fail.
    """
    primary_error: Exception | None = None
    try:
        primary_result = await primary_call()
    except Exception as e:
        primary_error = e
        logger.warning(f"{primary_name} failed, falling back to {secondary_name}: {e}")
    else:
        if not _is_empty(primary_result):
            items = normalize_primary(primary_result)  # type: ignore[arg-type]
            if items:
                return SourcedResult(items=items, source=primary_name)
        logger.info(f"{primary_name} returned nothing, falling back to {secondary_name}")

    try:
        secondary_result = await secondary_call()
    except Exception as e:
        if primary_error is not None:
            raise e from primary_error
        raise

    items = [] if _is_empty(secondary_result) else normalize_secondary(secondary_result)  # type: ignore[arg-type]
    return SourcedResult(items=items, source=secondary_name)
