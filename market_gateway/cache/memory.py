"""In-process cache store with TTL expiry and LRU capacity bound.

Implements the subset of the ``redis.asyncio.Redis`` interface that
CacheManager uses, so either can back the cache.
"""

import fnmatch
import threading
import time
from collections import OrderedDict
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass

import structlog

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    """Stored value and its monotonic expiry deadline."""

    key: str
    value: str
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


class MemoryStore:
    """Bounded TTL store.

    Entries past ``expires_at`` read as absent and are reclaimed on that
    read; ``sweep`` reclaims expired entries that are never read again.
    When ``max_entries`` is reached the least recently used entry is
    evicted. All operations hold a lock, so the store may be shared
    between threads.

    Example:
        store = MemoryStore(max_entries=1000)
        await store.setex("quote:AAPL", 15, '{"price": 150}')
        raw = await store.get("quote:AAPL")
    """

    def __init__(
        self,
        max_entries: int = 1000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the store.

        Args:
            max_entries: Capacity before least-recently-used eviction.
            clock: Monotonic time source (injectable for tests).
        """
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self.evictions = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _live_entry(self, key: str, now: float) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(now):
            del self._entries[key]
            return None
        return entry

    async def get(self, key: str) -> str | None:
        with self._lock:
            entry = self._live_entry(key, self._clock())
            if entry is None:
                return None
            self._entries.move_to_end(key)
            return entry.value

    async def setex(self, key: str, ttl: int | float, value: str) -> bool:
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        with self._lock:
            self._entries[key] = CacheEntry(key=key, value=value, expires_at=self._clock() + ttl)
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                self.evictions += 1
                logger.debug("cache_evicted", key=evicted)
        return True

    async def delete(self, *keys: str) -> int:
        deleted = 0
        with self._lock:
            for key in keys:
                if self._entries.pop(key, None) is not None:
                    deleted += 1
        return deleted

    async def exists(self, key: str) -> int:
        with self._lock:
            return 1 if self._live_entry(key, self._clock()) else 0

    async def ttl(self, key: str) -> int:
        """Remaining TTL in whole seconds, -2 if the key is absent."""
        with self._lock:
            now = self._clock()
            entry = self._live_entry(key, now)
            if entry is None:
                return -2
            return max(0, int(entry.expires_at - now))

    async def scan_iter(self, match: str = "*") -> AsyncIterator[str]:
        with self._lock:
            now = self._clock()
            keys = [
                k for k, e in self._entries.items()
                if not e.is_expired(now) and fnmatch.fnmatchcase(k, match)
            ]
        for key in keys:
            yield key

    async def ping(self) -> bool:
        return True

    def sweep(self) -> int:
        """Remove all expired entries.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            now = self._clock()
            expired = [k for k, e in self._entries.items() if e.is_expired(now)]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("cache_swept", removed=len(expired))
        return len(expired)

    async def aclose(self) -> None:
        with self._lock:
            self._entries.clear()
