"""Tests for the ranking result cache."""

from src.core.cache import RankingCache, make_cache_key


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestRankingCache:
    def test_hit_before_expiry(self):
        clock = FakeClock()
        cache = RankingCache(default_ttl=60, clock=clock)

        cache.set("k", [1, 2])
        clock.now += 59

        assert cache.get("k") == [1, 2]

    def test_miss_after_expiry(self):
        clock = FakeClock()
        cache = RankingCache(default_ttl=60, clock=clock)

        cache.set("k", "value")
        clock.now += 60

        assert cache.get("k") is None
        assert len(cache) == 0

    def test_explicit_ttl(self):
        clock = FakeClock()
        cache = RankingCache(default_ttl=60, clock=clock)

        cache.set("long", "value", ttl=86400)
        clock.now += 3600

        assert cache.get("long") == "value"

    def test_clear(self):
        cache = RankingCache()
        cache.set("a", 1)
        cache.set("b", 2)

        cache.clear()

        assert len(cache) == 0
        assert cache.get("a") is None


def test_make_cache_key():
    assert make_cache_key("weekly", "2025-10-13", "2025-10-19") == "weekly_2025-10-13_2025-10-19"
    assert make_cache_key("team") == "team"
