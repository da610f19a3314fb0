"""Unit tests for the in-memory cache tier."""

import pytest

from findash.data.memory_cache import InMemoryCache, CacheStats

from conftest import FakeClock


class TestInMemoryCache:
    """Test TTL semantics and counters."""

    @pytest.fixture
    def cache(self, clock):
        return InMemoryCache(clock)

    def test_get_within_ttl_returns_value(self, cache, clock):
        cache.set("quote_aapl", {"price": 150.0}, ttl=60)
        clock.advance(59.999)
        assert cache.get("quote_aapl") == {"price": 150.0}

    def test_get_at_or_after_ttl_is_absent(self, cache, clock):
        cache.set("quote_aapl", {"price": 150.0}, ttl=60)
        clock.advance(60.001)
        assert cache.get("quote_aapl") is None
        assert "quote_aapl" not in cache

    def test_exact_ttl_boundary_is_expired(self, cache, clock):
        cache.set("k", 1, ttl=10)
        clock.advance(10)
        assert cache.get("k") is None

    def test_expired_read_counts_miss_and_invalidation(self, cache, clock):
        cache.set("k", 1, ttl=1)
        clock.advance(2)
        cache.get("k")
        stats = cache.get_stats()
        assert stats.misses == 1
        assert stats.hits == 0
        assert stats.invalidations == 1
        assert stats.size == 0

    def test_misses_on_never_set_key(self, cache):
        for _ in range(5):
            assert cache.get("missing") is None
        stats = cache.get_stats()
        assert stats.misses == 5
        assert stats.hits == 0

    def test_hits_after_set(self, cache):
        cache.set("k", "v", ttl=60)
        for _ in range(4):
            assert cache.get("k") == "v"
        assert cache.get_stats().hits == 4

    def test_default_distinguishes_cached_none(self, cache):
        sentinel = object()
        cache.set("k", None, ttl=60)
        assert cache.get("k", sentinel) is None
        assert cache.get("other", sentinel) is sentinel

    def test_set_overwrites_and_restamps(self, cache, clock):
        cache.set("k", "old", ttl=10)
        clock.advance(8)
        cache.set("k", "new", ttl=10)
        clock.advance(8)
        assert cache.get("k") == "new"

    def test_invalidate_counts_only_existing(self, cache):
        cache.set("k", 1, ttl=60)
        assert cache.invalidate("k") is True
        assert cache.invalidate("k") is False
        assert cache.invalidate("never") is False
        assert cache.get_stats().invalidations == 1

    def test_clear_counts_each_entry(self, cache):
        for i in range(3):
            cache.set(f"k{i}", i, ttl=60)
        cache.clear()
        stats = cache.get_stats()
        assert stats.size == 0
        assert stats.invalidations == 3

    def test_cleanup_evicts_only_expired(self, cache, clock):
        cache.set("short", 1, ttl=5)
        cache.set("long", 2, ttl=500)
        clock.advance(10)
        assert cache.cleanup() == 1
        assert cache.cleanup() == 0
        assert len(cache) == 1
        assert cache.get("long") == 2

    def test_stats_snapshot_is_not_live(self, cache):
        before = cache.get_stats()
        cache.get("x")
        assert before.misses == 0
        assert cache.get_stats().misses == 1


class TestCacheStats:
    """Test derived statistics."""

    def test_hit_rate_without_accesses(self):
        assert CacheStats(hits=0, misses=0, invalidations=0, size=0).hit_rate == 0.0

    def test_hit_rate(self):
        stats = CacheStats(hits=3, misses=1, invalidations=0, size=2)
        assert stats.hit_rate == 0.75
        assert stats.to_dict() == {
            'hits': 3,
            'misses': 1,
            'invalidations': 0,
            'size': 2,
            'hit_rate': 0.75
        }

    def test_fractional_ttl(self):
        clock = FakeClock(now=0.0)
        cache = InMemoryCache(clock)
        cache.set("k", 1, ttl=1)
        clock.advance(0.5)
        assert cache.get("k") == 1
