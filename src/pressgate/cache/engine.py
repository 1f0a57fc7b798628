"""In-process TTL cache.

A plain key/value store with per-entry expiry and a capacity bound.
It knows nothing about content; the registry gives each content category
its own instance.

Expiry is enforced twice:
- lazily, on every read path (get/has/keys/size), so an expired entry is
  never reported as present
- proactively, by purge_expired(), which the registry's sweep task calls
  on a fixed interval to bound memory

At capacity, set() evicts the entry with the oldest last access time.
Finding it is a linear scan; this is acceptable for the few thousand
entries a category holds (see CATEGORY_POLICIES) and should be revisited
if those ceilings are raised.

All operations are synchronous and never suspend.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

# Observer receives (category, event) where event is one of
# "hit", "miss", "eviction", "expiration".
CacheObserver = Callable[[str, str], None]


@dataclass
class CacheEntry:
    """A stored value with its bookkeeping."""

    value: Any
    stored_at: float
    ttl_seconds: float
    access_count: int = 0
    last_accessed_at: float = 0.0

    def is_expired(self, now: float) -> bool:
        return now - self.stored_at > self.ttl_seconds


@dataclass(frozen=True)
class CacheStats:
    """Counters for one cache instance."""

    name: str
    size: int
    max_entries: int
    hits: int
    misses: int
    evictions: int
    expirations: int

    @property
    def total_requests(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Hit rate in percent (0.0 when nothing was requested)."""
        if self.total_requests == 0:
            return 0.0
        return self.hits / self.total_requests * 100

    @property
    def usage(self) -> float:
        """Fill level in percent."""
        if self.max_entries == 0:
            return 0.0
        return self.size / self.max_entries * 100

    def to_dict(self) -> dict[str, Any]:
        return {
            "size": self.size,
            "maxEntries": self.max_entries,
            "hits": self.hits,
            "misses": self.misses,
            "totalRequests": self.total_requests,
            "hitRate": round(self.hit_rate, 2),
            "usage": round(self.usage, 2),
            "evictions": self.evictions,
            "expirations": self.expirations,
        }


class TTLCache:
    """Key/value cache with per-entry TTL and access-recency eviction."""

    def __init__(
        self,
        name: str,
        default_ttl: float,
        max_entries: int,
        observer: CacheObserver | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")

        self.name = name
        self.default_ttl = default_ttl
        self.max_entries = max_entries
        self._observer = observer
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: str) -> bool:
        return self.has(key)

    # -------------------------------------------------------------------------
    # Contract
    # -------------------------------------------------------------------------

    def get(self, key: str) -> Any | None:
        """Return the live value for key, or None on a miss."""
        entry = self._entries.get(key)
        now = self._clock()

        if entry is None:
            self._record_miss()
            return None

        if entry.is_expired(now):
            self._expire(key)
            self._record_miss()
            return None

        entry.access_count += 1
        entry.last_accessed_at = now
        self._hits += 1
        self._notify("hit")
        return entry.value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store value under key, evicting one entry first when full."""
        if ttl is not None and ttl <= 0:
            raise ValueError("ttl must be positive")

        now = self._clock()
        if key not in self._entries and len(self._entries) >= self.max_entries:
            # Expired entries are free space; only evict a live entry if none
            if self.purge_expired() == 0:
                self._evict_least_recently_accessed()

        self._entries[key] = CacheEntry(
            value=value,
            stored_at=now,
            ttl_seconds=ttl if ttl is not None else self.default_ttl,
            last_accessed_at=now,
        )

    def delete(self, key: str) -> bool:
        """Remove key. Returns whether an entry was removed; absent keys are a no-op."""
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        """Remove every entry. Counters are kept; see reset_stats()."""
        self._entries.clear()

    def has(self, key: str) -> bool:
        """Whether a live entry exists. Does not count as a hit or miss."""
        entry = self._entries.get(key)
        if entry is None:
            return False
        if entry.is_expired(self._clock()):
            self._expire(key)
            return False
        return True

    def keys(self) -> list[str]:
        """Snapshot of live keys."""
        self.purge_expired()
        return list(self._entries)

    def size(self) -> int:
        """Number of live entries."""
        self.purge_expired()
        return len(self._entries)

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    def purge_expired(self) -> int:
        """Remove every expired entry in one pass. Returns how many were removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            self._expire(key)
        return len(expired)

    def delete_prefix(self, prefix: str) -> int:
        """Remove every entry whose key starts with prefix."""
        matching = [key for key in self._entries if key.startswith(prefix)]
        for key in matching:
            del self._entries[key]
        return len(matching)

    def entry(self, key: str) -> CacheEntry | None:
        """Raw entry for inspection, expired or not. Does not touch counters."""
        return self._entries.get(key)

    def stats(self) -> CacheStats:
        return CacheStats(
            name=self.name,
            size=self.size(),
            max_entries=self.max_entries,
            hits=self._hits,
            misses=self._misses,
            evictions=self._evictions,
            expirations=self._expirations,
        )

    def reset_stats(self) -> None:
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _evict_least_recently_accessed(self) -> None:
        if not self._entries:
            return
        victim = min(self._entries, key=lambda k: self._entries[k].last_accessed_at)
        del self._entries[victim]
        self._evictions += 1
        self._notify("eviction")
        logger.debug(f"Evicted {victim} from {self.name} cache")

    def _expire(self, key: str) -> None:
        del self._entries[key]
        self._expirations += 1
        self._notify("expiration")

    def _record_miss(self) -> None:
        self._misses += 1
        self._notify("miss")

    def _notify(self, event: str) -> None:
        if self._observer is None:
            return
        try:
            self._observer(self.name, event)
        except Exception as e:
            # Monitoring must never fail a cache operation
            logger.debug(f"Cache observer failed for {self.name}/{event}: {e}")
