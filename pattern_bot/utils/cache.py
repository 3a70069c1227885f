"""Per-key TTL cache with single-flight refresh."""

from __future__ import annotations
import threading
import time
from typing import Callable, Dict, Generic, Hashable, Optional, Tuple, TypeVar

T = TypeVar("T")


class TTLCache(Generic[T]):
    """
    Values older than ttl_seconds are never served. A fresh value is read
    without locking; a refresh takes the key's lock and re-checks, so
    concurrent callers for one key trigger a single load. Loader exceptions
    propagate and nothing is stored.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[T, float]] = {}
        self._key_locks: Dict[Hashable, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lock_for(self, key: Hashable) -> threading.Lock:
        with self._guard:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = self._key_locks[key] = threading.Lock()
            return lock

    def _fresh(self, key: Hashable) -> Optional[T]:
        entry = self._entries.get(key)
        if entry is not None and self._clock() - entry[1] < self.ttl_seconds:
            return entry[0]
        return None

    def get_or_load(self, key: Hashable, loader: Callable[[], T]) -> T:
        value = self._fresh(key)
        if value is not None:
            return value
        with self._lock_for(key):
            value = self._fresh(key)
            if value is not None:
                return value
            value = loader()
            self._entries[key] = (value, self._clock())
            return value

    def invalidate(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def clear_expired(self) -> int:
        """Drop stale entries. Returns number removed."""
        now = self._clock()
        stale = [k for k, (_, ts) in list(self._entries.items()) if now - ts >= self.ttl_seconds]
        for key in stale:
            self._entries.pop(key, None)
        return len(stale)

    def __len__(self) -> int:
        return len(self._entries)
