"""Tests for the in-memory TTL cache.  Time is driven by a fake clock."""

import pytest

from signal_engine.cache import TTLCache


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TestTTLCache:
    def test_hit_within_ttl(self):
        clock = FakeClock()
        cache = TTLCache(60, clock=clock)
        cache.set(("btc", "1d"), {"signal": "buy"})
        clock.advance(59)
        assert cache.get(("btc", "1d")) == {"signal": "buy"}

    def test_expires_at_ttl(self):
        clock = FakeClock()
        cache = TTLCache(60, clock=clock)
        cache.set("k", 1)
        clock.advance(60)
        assert cache.get("k") is None
        assert len(cache) == 0  # evicted on read

    def test_miss(self):
        assert TTLCache(60).get("missing") is None

    def test_set_refreshes_timestamp(self):
        clock = FakeClock()
        cache = TTLCache(60, clock=clock)
        cache.set("k", 1)
        clock.advance(50)
        cache.set("k", 2)
        clock.advance(50)
        assert cache.get("k") == 2

    def test_zero_ttl_disables_caching(self):
        cache = TTLCache(0, clock=FakeClock())
        cache.set("k", 1)
        assert cache.get("k") is None

    def test_invalidate_and_clear(self):
        cache = TTLCache(60, clock=FakeClock())
        cache.set("a", 1)
        cache.set("b", 2)
        cache.invalidate("a")
        cache.invalidate("never-set")
        assert cache.get("a") is None
        assert len(cache) == 1
        cache.clear()
        assert len(cache) == 0

    def test_negative_ttl_rejected(self):
        with pytest.raises(ValueError, match="ttl_seconds"):
            TTLCache(-1)

    def test_ttl_property(self):
        assert TTLCache(300).ttl_seconds == 300
