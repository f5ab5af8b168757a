"""
Unit tests for the in-memory TTL cache.
"""
import pytest

from signal_agent.data.cache import CacheManager


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestCacheManager:
    def test_set_and_get(self):
        cache = CacheManager(clock=FakeClock())
        cache.set("key", {"price": 1.0}, 10)

        assert cache.get("key") == {"price": 1.0}
        assert len(cache) == 1

    def test_expired_items_are_dropped(self):
        clock = FakeClock()
        cache = CacheManager(clock=clock)
        cache.set("key", "value", 10)

        clock.now += 11

        assert cache.get("key") is None
        assert len(cache) == 0

    def test_non_positive_ttl_is_not_cached(self):
        cache = CacheManager(clock=FakeClock())
        cache.set("key", "value", 0)

        assert cache.get("key") is None

    def test_clear(self):
        cache = CacheManager(clock=FakeClock())
        cache.set("a", 1, 10)
        cache.set("b", 2, 10)

        cache.clear()

        assert len(cache) == 0

    def test_expired_items_are_purged_on_write(self):
        clock = FakeClock()
        cache = CacheManager(clock=clock)
        for index in range(5):
            cache.set(f"opinion:{index}", index, 10)

        clock.now += 11
        cache.set("opinion:fresh", "fresh", 10)

        assert len(cache) == 1
        assert cache.get("opinion:fresh") == "fresh"

    def test_size_is_capped(self):
        clock = FakeClock()
        cache = CacheManager(clock=clock, max_entries=3)
        for index in range(3):
            cache.set(f"key:{index}", index, 10 + index)

        cache.set("key:3", 3, 60)

        assert len(cache) == 3
        assert cache.get("key:0") is None
        assert cache.get("key:3") == 3

    def test_overwriting_a_key_does_not_evict(self):
        cache = CacheManager(clock=FakeClock(), max_entries=2)
        cache.set("a", 1, 10)
        cache.set("b", 2, 10)

        cache.set("a", 10, 10)

        assert cache.get("a") == 10
        assert cache.get("b") == 2

    def test_purge_expired(self):
        clock = FakeClock()
        cache = CacheManager(clock=clock)
        cache.set("short", 1, 5)
        cache.set("long", 2, 50)

        clock.now += 6

        assert cache.purge_expired() == 1
        assert len(cache) == 1

    def test_invalid_max_entries(self):
        with pytest.raises(ValueError):
            CacheManager(max_entries=0)
