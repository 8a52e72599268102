"""Time-bounded memoization over a pluggable key/value store."""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, Protocol, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """Cached value stamped with its creation time."""

    key: str
    value: T
    timestamp: float


class Store(Protocol):
    """Minimal key/value store used by caches and rate windows."""

    def get(self, key: str) -> Any | None: ...

    def put(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryStore:
    """Process-local store. Each mutation is guarded so thread-pool callers stay consistent."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


class ResponseCache(Generic[T]):
    """TTL cache. Expired entries are evicted lazily on lookup, never swept."""

    def __init__(self, store: Store, ttl_seconds: float, clock: Clock = time.monotonic):
        self._store = store
        self._ttl = ttl_seconds
        self._clock = clock

    @property
    def ttl(self) -> float:
        return self._ttl

    def get(self, key: str) -> T | None:
        """Return the cached value, or None when absent or stale."""
        entry: CacheEntry[T] | None = self._store.get(key)
        if entry is None:
            return None
        if self._clock() - entry.timestamp >= self._ttl:
            self._store.delete(key)
            return None
        logger.debug(f"Cache hit: {key}")
        return entry.value

    def put(self, key: str, value: T) -> None:
        self._store.put(key, CacheEntry(key=key, value=value, timestamp=self._clock()))

    def invalidate(self, key: str) -> None:
        self._store.delete(key)
