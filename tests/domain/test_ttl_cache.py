"""
Tests for TTLCache and ReadWriteLock.
"""

import threading

import pytest

from app.domain.utils import ReadWriteLock, TTLCache
from app.domain.value_objects import CacheStats


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TTLCache(ttl_seconds=60, max_entries=3, clock=clock, name="test")


class TestTTLCache:
    """Tests for expiry, sweeping and statistics."""

    def test_get_returns_fresh_value(self, cache):
        cache.put("k", "v")

        assert cache.get("k") == "v"
        assert "k" in cache

    def test_missing_key_returns_none(self, cache):
        assert cache.get("missing") is None

    def test_expired_entry_is_a_miss_but_not_removed(self, cache, clock):
        cache.put("k", "v")
        clock.advance(60)

        assert cache.get("k") is None
        assert len(cache) == 1
        assert cache.stats() == CacheStats(total=1, valid=0, expired=1)

    def test_entry_valid_just_before_ttl(self, cache, clock):
        cache.put("k", "v")
        clock.advance(59.9)

        assert cache.get("k") == "v"

    def test_put_overwrites_and_refreshes_timestamp(self, cache, clock):
        cache.put("k", "old")
        clock.advance(50)
        cache.put("k", "new")
        clock.advance(50)

        assert cache.get("k") == "new"

    def test_put_over_capacity_sweeps_expired_entries(self, cache, clock):
        cache.put("a", 1)
        cache.put("b", 2)
        clock.advance(61)
        cache.put("c", 3)
        cache.put("d", 4)

        assert len(cache) == 2
        assert cache.get("c") == 3
        assert cache.get("d") == 4

    def test_over_capacity_keeps_valid_entries(self, cache):
        """The sweep only removes expired entries, it is not an LRU."""
        for key in "abcde":
            cache.put(key, key)

        assert len(cache) == 5

    def test_sweep_returns_number_removed(self, cache, clock):
        cache.put("a", 1)
        clock.advance(61)
        cache.put("b", 2)

        assert cache.sweep() == 1
        assert cache.stats() == CacheStats(total=1, valid=1, expired=0)

    def test_clear(self, cache):
        cache.put("a", 1)
        cache.clear()

        assert len(cache) == 0

    def test_invalid_configuration(self):
        with pytest.raises(ValueError, match="ttl_seconds"):
            TTLCache(ttl_seconds=0, max_entries=10)

        with pytest.raises(ValueError, match="max_entries"):
            TTLCache(ttl_seconds=10, max_entries=0)

    def test_concurrent_puts_and_gets(self):
        cache = TTLCache(ttl_seconds=60, max_entries=10_000)
        errors = []

        def worker(offset: int) -> None:
            try:
                for i in range(200):
                    cache.put(f"{offset}-{i}", i)
                    assert cache.get(f"{offset}-{i}") == i
            except AssertionError as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len(cache) == 8 * 200


class TestReadWriteLock:

    def test_multiple_readers_share_the_lock(self):
        lock = ReadWriteLock()
        inside = threading.Barrier(2, timeout=2)

        def reader() -> None:
            with lock.read():
                inside.wait()

        threads = [threading.Thread(target=reader) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=3)

        assert not inside.broken

    def test_writer_is_exclusive(self):
        lock = ReadWriteLock()
        events = []

        def reader() -> None:
            with lock.read():
                events.append("read")

        with lock.write():
            thread = threading.Thread(target=reader)
            thread.start()
            thread.join(timeout=0.1)
            assert events == []

        thread.join(timeout=2)
        assert events == ["read"]
