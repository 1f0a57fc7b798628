"""Tests for the in-process TTL cache engine."""

from __future__ import annotations

import pytest

from conftest import FakeClock
from pressgate.cache.engine import TTLCache


def make_cache(clock: FakeClock, ttl: float = 300, max_entries: int = 10, observer=None) -> TTLCache:
    return TTLCache("posts", default_ttl=ttl, max_entries=max_entries, observer=observer, clock=clock)


class TestExpiry:
    """Test TTL enforcement."""

    def test_value_served_within_ttl(self, clock: FakeClock) -> None:
        """A stored value is returned before its TTL elapses."""
        cache = make_cache(clock)
        cache.set("post:abc", {"id": 1}, ttl=300)
        clock.advance(299)
        assert cache.get("post:abc") == {"id": 1}

    def test_value_absent_after_ttl_without_sweep(self, clock: FakeClock) -> None:
        """After 301s the entry is absent even though no sweep ran."""
        cache = make_cache(clock)
        cache.set("post:abc", {"id": 1}, ttl=300)
        clock.advance(301)
        assert cache.get("post:abc") is None

    def test_entry_at_exact_ttl_is_live(self, clock: FakeClock) -> None:
        """Expiry requires strictly more than ttl seconds."""
        cache = make_cache(clock)
        cache.set("k", "v", ttl=10)
        clock.advance(10)
        assert cache.get("k") == "v"

    def test_default_ttl_applies(self, clock: FakeClock) -> None:
        """set() without ttl uses the engine default."""
        cache = make_cache(clock, ttl=60)
        cache.set("k", "v")
        clock.advance(61)
        assert cache.get("k") is None

    def test_size_and_keys_skip_expired(self, clock: FakeClock) -> None:
        """size() and keys() never report logically expired entries."""
        cache = make_cache(clock)
        cache.set("short", 1, ttl=5)
        cache.set("long", 2, ttl=500)
        clock.advance(6)
        assert cache.size() == 1
        assert cache.keys() == ["long"]

    def test_has_does_not_count_requests(self, clock: FakeClock) -> None:
        """has() reports liveness without touching hit/miss counters."""
        cache = make_cache(clock)
        cache.set("k", "v", ttl=5)
        assert cache.has("k")
        clock.advance(6)
        assert not cache.has("k")
        stats = cache.stats()
        assert stats.hits == 0
        assert stats.misses == 0

    def test_purge_expired_counts_removed(self, clock: FakeClock) -> None:
        """purge_expired removes every expired entry in one pass."""
        cache = make_cache(clock)
        for i in range(3):
            cache.set(f"old{i}", i, ttl=5)
        cache.set("fresh", 9, ttl=100)
        clock.advance(10)
        assert cache.purge_expired() == 3
        assert cache.stats().expirations == 3
        assert cache.keys() == ["fresh"]

    def test_invalid_ttl_rejected(self, clock: FakeClock) -> None:
        """Non-positive TTLs are rejected."""
        cache = make_cache(clock)
        with pytest.raises(ValueError):
            cache.set("k", "v", ttl=0)


class TestAccounting:
    """Test hit/miss counters and access bookkeeping."""

    def test_hit_updates_access_fields(self, clock: FakeClock) -> None:
        """A hit increments access_count and moves last_accessed_at."""
        cache = make_cache(clock)
        cache.set("k", "v")
        clock.advance(5)
        cache.get("k")
        cache.get("k")
        entry = cache.entry("k")
        assert entry is not None
        assert entry.access_count == 2
        assert entry.last_accessed_at == clock.now

    def test_hits_and_misses_counted(self, clock: FakeClock) -> None:
        """Hits and misses are counted and expose a hit rate."""
        cache = make_cache(clock)
        cache.set("k", "v")
        cache.get("k")
        cache.get("missing")
        cache.get("missing")
        stats = cache.stats()
        assert stats.hits == 1
        assert stats.misses == 2
        assert stats.total_requests == 3
        assert stats.hit_rate == pytest.approx(33.333, rel=1e-3)

    def test_expired_read_counts_as_miss(self, clock: FakeClock) -> None:
        """Reading an expired entry is a miss and an expiration."""
        cache = make_cache(clock)
        cache.set("k", "v", ttl=1)
        clock.advance(2)
        cache.get("k")
        stats = cache.stats()
        assert stats.misses == 1
        assert stats.expirations == 1

    def test_reset_stats(self, clock: FakeClock) -> None:
        """reset_stats zeroes counters but keeps entries."""
        cache = make_cache(clock)
        cache.set("k", "v")
        cache.get("k")
        cache.reset_stats()
        assert cache.stats().hits == 0
        assert cache.get("k") == "v"

    def test_stats_to_dict_uses_camel_case(self, clock: FakeClock) -> None:
        """Stats serialize with the management surface's field names."""
        cache = make_cache(clock, max_entries=4)
        cache.set("k", "v")
        data = cache.stats().to_dict()
        assert data["maxEntries"] == 4
        assert data["usage"] == 25.0


class TestEviction:
    """Test the capacity bound and access-recency eviction."""

    def test_never_exceeds_max_entries(self, clock: FakeClock) -> None:
        """Inserting max_entries + 1 keys keeps max_entries entries."""
        cache = make_cache(clock, max_entries=5)
        for i in range(6):
            clock.advance(1)
            cache.set(f"k{i}", i)
        assert cache.size() == 5
        assert cache.stats().evictions == 1

    def test_evicts_least_recently_accessed(self, clock: FakeClock) -> None:
        """The victim is the entry with the oldest last access, not the oldest insert."""
        cache = make_cache(clock, max_entries=3)
        cache.set("a", 1)
        clock.advance(1)
        cache.set("b", 2)
        clock.advance(1)
        cache.set("c", 3)
        clock.advance(1)
        cache.get("a")  # "b" is now the least recently accessed
        clock.advance(1)
        cache.set("d", 4)
        assert sorted(cache.keys()) == ["a", "c", "d"]

    def test_overwrite_at_capacity_does_not_evict(self, clock: FakeClock) -> None:
        """Replacing an existing key needs no free slot."""
        cache = make_cache(clock, max_entries=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("a", 10)
        assert cache.size() == 2
        assert cache.get("a") == 10
        assert cache.stats().evictions == 0

    def test_expired_entries_free_space_first(self, clock: FakeClock) -> None:
        """An expired entry is reclaimed before any live entry is evicted."""
        cache = make_cache(clock, max_entries=2)
        cache.set("stale", 1, ttl=5)
        cache.set("live", 2, ttl=500)
        clock.advance(10)
        cache.set("new", 3)
        assert sorted(cache.keys()) == ["live", "new"]
        assert cache.stats().evictions == 0

    def test_invalid_capacity_rejected(self, clock: FakeClock) -> None:
        """A cache must hold at least one entry."""
        with pytest.raises(ValueError):
            make_cache(clock, max_entries=0)


class TestRemoval:
    """Test delete, prefix delete and clear."""

    def test_delete_absent_key_is_noop(self, clock: FakeClock) -> None:
        """Deleting a missing key returns False and does not raise."""
        cache = make_cache(clock)
        assert cache.delete("missing") is False

    def test_delete_prefix(self, clock: FakeClock) -> None:
        """delete_prefix removes only matching keys."""
        cache = make_cache(clock)
        cache.set("list:1", 1)
        cache.set("list:2", 2)
        cache.set("post:x", 3)
        assert cache.delete_prefix("list:") == 2
        assert cache.keys() == ["post:x"]

    def test_clear(self, clock: FakeClock) -> None:
        """clear() empties the engine."""
        cache = make_cache(clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.clear()
        assert cache.size() == 0


class TestObserver:
    """Test monitoring hooks."""

    def test_observer_receives_events(self, clock: FakeClock) -> None:
        """Hits, misses and evictions are reported with the cache name."""
        events: list[tuple[str, str]] = []
        cache = make_cache(clock, max_entries=1, observer=lambda c, e: events.append((c, e)))
        cache.set("a", 1)
        cache.get("a")
        cache.get("b")
        cache.set("b", 2)
        assert events == [("posts", "hit"), ("posts", "miss"), ("posts", "eviction")]

    def test_failing_observer_does_not_break_cache(self, clock: FakeClock) -> None:
        """An observer that raises cannot fail a cache operation."""

        def broken(category: str, event: str) -> None:
            raise RuntimeError("metrics backend down")

        cache = make_cache(clock, observer=broken)
        cache.set("a", 1)
        assert cache.get("a") == 1
        assert cache.get("missing") is None
