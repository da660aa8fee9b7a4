"""Tests for the TTL response cache."""

from meme_radar.ingestion.cache import TTLCache


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestTTLCache:
    """Tests for TTLCache."""

    def test_get_returns_value_before_expiry(self):
        clock = FakeClock()
        cache = TTLCache(ttl=300, clock=clock)
        cache.set("posts:stocks:25", {"data": 1})

        clock.now += 299
        assert cache.get("posts:stocks:25") == {"data": 1}

    def test_expires_at_ttl(self):
        clock = FakeClock()
        cache = TTLCache(ttl=300, clock=clock)
        cache.set("k", "v")

        clock.now += 300
        assert cache.get("k") is None
        assert len(cache) == 0

    def test_per_entry_ttl(self):
        clock = FakeClock()
        cache = TTLCache(ttl=300, clock=clock)
        cache.set("short", "v", ttl=10)

        clock.now += 11
        assert "short" not in cache

    def test_missing_key(self):
        assert TTLCache().get("nope") is None

    def test_evict_and_clear(self):
        cache = TTLCache()
        cache.set("a", 1)
        cache.set("b", 2)

        cache.evict("a")
        cache.evict("missing")
        assert "a" not in cache
        assert "b" in cache

        cache.clear()
        assert len(cache) == 0

    def test_set_overwrites(self):
        cache = TTLCache()
        cache.set("k", 1)
        cache.set("k", 2)
        assert cache.get("k") == 2

    def test_write_purges_expired_keys(self):
        clock = FakeClock()
        cache = TTLCache(ttl=300, clock=clock)
        for i in range(1000):
            cache.set(f"comments:p{i}", [i])
        assert len(cache) == 1000

        clock.now += 301
        cache.set("comments:fresh", [])

        assert len(cache) == 1
        assert cache.get("comments:fresh") == []

    def test_purge_keeps_live_entries(self):
        clock = FakeClock()
        cache = TTLCache(ttl=300, clock=clock)
        cache.set("old", 1)
        clock.now += 200
        cache.set("young", 2)
        clock.now += 150

        assert cache.purge_expired() == 1
        assert "old" not in cache
        assert cache.get("young") == 2
