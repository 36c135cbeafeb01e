"""Tests for mr_hygiene.clients.cache: TTLCache with lazy expiry and metrics."""

from mr_hygiene.clients.cache import CacheEntry, CacheMetrics, TTLCache


class TestCacheMetrics:
    def test_initial_state(self):
        m = CacheMetrics()
        assert m.hits == 0
        assert m.misses == 0
        assert m.hit_rate == 0.0

    def test_hit_rate_calculation(self):
        m = CacheMetrics()
        m.hits = 3
        m.misses = 1
        assert m.hit_rate == 0.75

    def test_reset(self):
        m = CacheMetrics()
        m.hits = 5
        m.misses = 2
        m.reset()
        assert (m.hits, m.misses) == (0, 0)


class TestCacheEntry:
    def test_negative_ttl_expires_at_creation(self):
        entry = CacheEntry("v", created_at=100.0, expires_at=90.0)
        assert entry.expires_at == 100.0
        assert not entry.is_expired(100.0)
        assert entry.is_expired(100.001)


class TestTTLCache:
    def test_get_on_empty_returns_none(self, clock):
        cache = TTLCache("test", clock=clock)
        assert cache.get("missing") is None

    def test_set_and_get_within_ttl(self, clock):
        cache = TTLCache("test", default_ttl_seconds=60, clock=clock)
        cache.set("k1", "v1")
        clock.advance(59)
        assert cache.get("k1") == "v1"

    def test_get_after_ttl_returns_none(self, clock):
        cache = TTLCache("test", default_ttl_seconds=60, clock=clock)
        cache.set("k1", "v1")
        clock.advance(61)
        assert cache.get("k1") is None

    def test_entry_is_live_at_exact_expiry(self, clock):
        cache = TTLCache("test", default_ttl_seconds=60, clock=clock)
        cache.set("k1", "v1")
        clock.advance(60)
        assert cache.get("k1") == "v1"

    def test_per_entry_ttl_overrides_default(self, clock):
        cache = TTLCache("test", default_ttl_seconds=60, clock=clock)
        cache.set("short", 1, ttl_seconds=5)
        cache.set("long", 2)
        clock.advance(10)
        assert cache.get("short") is None
        assert cache.get("long") == 2

    def test_zero_ttl_lives_until_clock_moves(self, clock):
        cache = TTLCache("test", clock=clock)
        cache.set("k", "v", ttl_seconds=0)
        assert cache.get("k") == "v"
        clock.advance(0.001)
        assert cache.get("k") is None

    def test_set_replaces_value_and_expiry(self, clock):
        cache = TTLCache("test", default_ttl_seconds=60, clock=clock)
        cache.set("k", "old")
        clock.advance(50)
        cache.set("k", "new")
        clock.advance(50)
        assert cache.get("k") == "new"

    def test_expired_entry_is_evicted_on_read(self, clock):
        cache = TTLCache("test", default_ttl_seconds=1, clock=clock)
        cache.set("k", "v")
        clock.advance(2)
        cache.get("k")
        assert "k" not in cache._store

    def test_headers_kept_on_entry(self, clock):
        cache = TTLCache("test", clock=clock)
        cache.set("k", [1], headers={"x-total": "1"})
        entry = cache.get_entry("k")
        assert entry is not None
        assert entry.headers == {"x-total": "1"}
        assert entry.created_at == clock.now

    def test_remove_existing_key(self, clock):
        cache = TTLCache("test", clock=clock)
        cache.set("k1", "v1")
        assert cache.remove("k1") is True
        assert cache.get("k1") is None

    def test_remove_missing_key(self, clock):
        cache = TTLCache("test", clock=clock)
        assert cache.remove("missing") is False

    def test_clear(self, clock):
        cache = TTLCache("test", clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.clear()
        assert cache.size == 0
        assert cache.get("a") is None

    def test_size_excludes_expired(self, clock):
        cache = TTLCache("test", default_ttl_seconds=60, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2, ttl_seconds=10)
        clock.advance(30)
        assert cache.size == 1

    def test_stats_lists_only_live_keys(self, clock):
        cache = TTLCache("too-old", default_ttl_seconds=60, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2, ttl_seconds=10)
        clock.advance(30)
        stats = cache.stats()
        assert stats.name == "too-old"
        assert stats.size == 1
        assert stats.keys == ["a"]

    def test_metrics_count_hits_and_misses(self, clock):
        cache = TTLCache("test", default_ttl_seconds=10, clock=clock)
        cache.set("k", "v")
        cache.get("k")
        cache.get("missing")
        clock.advance(11)
        cache.get("k")
        stats = cache.stats()
        assert stats.hits == 1
        assert stats.misses == 2
