"""
Time-to-live cache with lazy expiry.

Entries are stored with the time they were written. A read treats an entry
older than the TTL as a miss but leaves it in place; expired entries are
only removed by a synchronous sweep that runs on insert once the map holds
more than `max_entries` items. The sweep removes expired entries only, so
the map may temporarily stay above the threshold while everything in it is
still fresh.

Each cache owns a reader-writer lock: lookups share it, inserts and sweeps
take it exclusively. The clock is injectable so tests can move time.
"""

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Hashable, Optional, TypeVar

from app.domain.value_objects import CacheStats

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

Clock = Callable[[], float]


class ReadWriteLock:
    """Many concurrent readers or one writer; writers are not starved."""

    def __init__(self) -> None:
        self._condition = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    def acquire_read(self) -> None:
        with self._condition:
            while self._writer or self._waiting_writers:
                self._condition.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._condition:
            self._readers -= 1
            if self._readers == 0:
                self._condition.notify_all()

    def acquire_write(self) -> None:
        with self._condition:
            self._waiting_writers += 1
            while self._writer or self._readers:
                self._condition.wait()
            self._waiting_writers -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._condition:
            self._writer = False
            self._condition.notify_all()

    def read(self) -> "_Guard":
        return _Guard(self.acquire_read, self.release_read)

    def write(self) -> "_Guard":
        return _Guard(self.acquire_write, self.release_write)


class _Guard:
    def __init__(self, acquire: Callable[[], None], release: Callable[[], None]) -> None:
        self._acquire = acquire
        self._release = release

    def __enter__(self) -> None:
        self._acquire()

    def __exit__(self, exc_type, exc, tb) -> None:
        self._release()


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    value: V
    timestamp: float

    def is_valid(self, now: float, ttl_seconds: float) -> bool:
        return now - self.timestamp < ttl_seconds


class TTLCache(Generic[K, V]):
    """
    Mapping from key to value that forgets values after `ttl_seconds`.

    Usage:
        cache = TTLCache(ttl_seconds=300, max_entries=100)
        cache.put("fantasy books:10", books)
        books = cache.get("fantasy books:10")   # None once expired
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: int,
        clock: Optional[Clock] = None,
        name: str = "cache",
    ) -> None:
        """
        Args:
            ttl_seconds: Lifetime of an entry; must be positive
            max_entries: Size above which an insert triggers a sweep of expired entries
            clock: Source of monotonic seconds (defaults to time.monotonic)
            name: Label used in logs and stats
        """
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be > 0, got {ttl_seconds}")

        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")

        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._clock = clock if clock is not None else time.monotonic
        self._entries: Dict[K, CacheEntry[V]] = {}
        self._lock = ReadWriteLock()
        self.name = name

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def get(self, key: K) -> Optional[V]:
        """Value for `key`, or None if absent or expired."""
        with self._lock.read():
            entry = self._entries.get(key)
            if entry is None:
                return None
            if not entry.is_valid(self._clock(), self._ttl):
                return None
            return entry.value

    def put(self, key: K, value: V) -> None:
        """Insert or overwrite; sweeps expired entries once over capacity."""
        with self._lock.write():
            self._entries[key] = CacheEntry(value=value, timestamp=self._clock())
            if len(self._entries) > self._max_entries:
                self._sweep_locked()

    def sweep(self) -> int:
        """Remove all expired entries. Returns how many were removed."""
        with self._lock.write():
            return self._sweep_locked()

    def clear(self) -> None:
        with self._lock.write():
            self._entries.clear()

    def stats(self) -> CacheStats:
        with self._lock.read():
            now = self._clock()
            valid = sum(1 for entry in self._entries.values() if entry.is_valid(now, self._ttl))
            total = len(self._entries)
        return CacheStats(total=total, valid=valid, expired=total - valid)

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return self.get(key) is not None  # type: ignore[arg-type]

    def _sweep_locked(self) -> int:
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if not entry.is_valid(now, self._ttl)]
        for key in expired:
            del self._entries[key]
        return len(expired)
