"""
Bounded in-memory cache with per-entry expiry.

Each service owns its own TTLCache instance. Execution is single-threaded
cooperative (asyncio), so a get/set pair is atomic with respect to other
tasks and no lock is needed.
"""

import time
from dataclasses import dataclass
from typing import Callable, Generic, Hashable, Optional, TypeVar

V = TypeVar("V")


@dataclass
class _CacheEntry(Generic[V]):
    value: V
    expires_at: float


class TTLCache(Generic[V]):
    """
    Map with a time-to-live per entry and a capacity bound.

    When a new key would exceed the capacity, expired entries are purged
    first; if the cache is still full, the oldest inserted entry is evicted.
    """

    def __init__(
        self,
        ttl_seconds: float,
        capacity: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the cache.

        Args:
            ttl_seconds: Lifetime of an entry from the moment it is set
            capacity: Maximum number of entries held at once
            clock: Monotonic time source in seconds
        """
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._ttl = ttl_seconds
        self._capacity = capacity
        self._clock = clock
        self._entries: dict[Hashable, _CacheEntry[V]] = {}

    @property
    def capacity(self) -> int:
        return self._capacity

    def get(self, key: Hashable) -> Optional[V]:
        """Return the cached value, or None if absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: Hashable, value: V) -> None:
        """Store a value, evicting the oldest entry if the cache is full."""
        if key in self._entries:
            # Re-inserting moves the key to the newest position
            del self._entries[key]
        elif len(self._entries) >= self._capacity:
            self.purge_expired()
            if len(self._entries) >= self._capacity:
                oldest_key = next(iter(self._entries))
                del self._entries[oldest_key]

        self._entries[key] = _CacheEntry(value=value, expires_at=self._clock() + self._ttl)

    def purge_expired(self) -> int:
        """Remove all expired entries. Returns the number removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)
