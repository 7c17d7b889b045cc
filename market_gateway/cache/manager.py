"""Cache-aside read path shared by every aggregation service.

Entries are written as JSON text, so a hit hands back a fresh copy of
what was stored and nothing cached is ever mutated in place; a refresh
replaces the entry wholesale. A store that raises is logged and treated
as empty, so a cache outage costs upstream calls rather than requests.
"""

import asyncio
import contextlib
import json
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

import structlog

from market_gateway.cache.metrics import CacheMetrics
from market_gateway.cache.singleflight import SingleFlight

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class CacheType(Enum):
    """Kinds of cached payload; each has its own TTL."""

    QUOTE = "quote"
    CRYPTO_QUOTE = "crypto_quote"
    CRYPTO_TRENDING = "crypto_trending"
    MOVERS = "movers"
    CHART = "chart"
    NEWS = "news"


@dataclass(frozen=True)
class CacheConfig:
    """Seconds each kind of payload stays fresh.

    Field names are ``<CacheType value>_ttl``. ``fallback_ttl`` covers
    writes that name no type.
    """

    quote_ttl: int = 15
    crypto_quote_ttl: int = 30
    crypto_trending_ttl: int = 300
    movers_ttl: int = 300
    chart_ttl: int = 300
    news_ttl: int = 300
    fallback_ttl: int = 60

    def ttl_for(self, cache_type: CacheType | None) -> int:
        if cache_type is None:
            return self.fallback_ttl
        return int(getattr(self, f"{cache_type.value}_ttl"))


class CacheKeys:
    """Deterministic keys, one namespace per payload kind."""

    @staticmethod
    def quote(symbol: str) -> str:
        return f"quote:{symbol.upper()}"

    @staticmethod
    def chart(symbol: str, interval: str) -> str:
        return f"chart:{symbol.upper()}:{interval}"

    @staticmethod
    def movers(kind: str) -> str:
        return f"movers:{kind}"

    @staticmethod
    def news(category: str) -> str:
        return f"news:{category}"

    @staticmethod
    def crypto_quote(coin_id: str) -> str:
        return f"crypto:quote:{coin_id.lower()}"

    @staticmethod
    def crypto_trending() -> str:
        return "crypto:trending"


class CacheManager:
    """JSON cache over a redis-compatible store.

    Example:
        cache = CacheManager(MemoryStore(max_entries=1000))
        quote = await cache.get_or_compute(
            CacheKeys.quote("AAPL"),
            fetch_aapl,
            cache_type=CacheType.QUOTE,
        )
    """

    def __init__(
        self,
        store: Any,  # MemoryStore | redis.asyncio.Redis
        config: CacheConfig | None = None,
        enabled: bool = True,
        coalesce: bool = True,
    ) -> None:
        """Initialize the manager.

        Args:
            store: Backing store exposing get/setex/delete/ping.
            config: TTL table.
            enabled: When False every lookup misses and nothing is written.
            coalesce: Run one computation per key for concurrent misses.
        """
        self.store = store
        self.config = config or CacheConfig()
        self.enabled = enabled
        self.metrics = CacheMetrics()
        self._flight = SingleFlight() if coalesce else None
        self._sweeper: asyncio.Task[None] | None = None

    def _store_failed(self, event: str, key: str, error: Exception) -> None:
        self.metrics.errors += 1
        logger.error(event, key=key, error=str(error))

    async def get(self, key: str) -> Any | None:
        """Stored value for ``key``, or None on a miss or store failure."""
        if not self.enabled:
            return None

        started = time.monotonic()
        try:
            raw = await self.store.get(key)
        except Exception as e:
            self._store_failed("cache_read_failed", key, e)
            return None

        elapsed_ms = (time.monotonic() - started) * 1000
        if raw is None:
            self.metrics.record_lookup(False, elapsed_ms)
            logger.debug("cache_miss", key=key)
            return None

        try:
            value = json.loads(raw)
        except ValueError as e:
            self.metrics.record_lookup(False, elapsed_ms)
            self._store_failed("cache_entry_corrupt", key, e)
            return None

        self.metrics.record_lookup(True, elapsed_ms)
        logger.debug("cache_hit", key=key, elapsed_ms=round(elapsed_ms, 2))
        return value

    async def set(
        self,
        key: str,
        value: Any,
        cache_type: CacheType | None = None,
        ttl: int | None = None,
    ) -> bool:
        """Store a JSON-compatible value.

        Args:
            key: Cache key.
            value: Value to store.
            cache_type: Selects the TTL from the config.
            ttl: Explicit TTL in seconds, overriding ``cache_type``.

        Returns:
            Whether the store accepted the write.
        """
        if not self.enabled:
            return False

        ttl = ttl if ttl is not None else self.config.ttl_for(cache_type)
        try:
            await self.store.setex(key, ttl, json.dumps(value))
        except Exception as e:
            self._store_failed("cache_write_failed", key, e)
            return False

        logger.debug("cache_stored", key=key, ttl=ttl)
        return True

    async def invalidate(self, key: str) -> bool:
        """Drop ``key``; returns whether it was present."""
        if not self.enabled:
            return False
        try:
            return bool(await self.store.delete(key))
        except Exception as e:
            self._store_failed("cache_invalidate_failed", key, e)
            return False

    async def get_or_compute(
        self,
        key: str,
        compute_fn: Callable[[], Awaitable[T]],
        cache_type: CacheType | None = None,
        ttl: int | None = None,
    ) -> T:
        """Serve ``key`` from cache, computing and storing it on a miss.

        Any stored value counts as a hit, empty lists included, and comes
        back without re-validation however close it is to expiry.
        Exceptions from ``compute_fn`` propagate and leave the cache as it
        was.
        """
        cached = await self.get(key)
        if cached is not None:
            return cached

        async def compute_and_store() -> T:
            started = time.monotonic()
            self.metrics.computes += 1
            value = await compute_fn()
            await self.set(key, value, cache_type=cache_type, ttl=ttl)
            logger.debug(
                "cache_computed",
                key=key,
                elapsed_ms=round((time.monotonic() - started) * 1000, 2),
            )
            return value

        if self._flight is None:
            return await compute_and_store()
        return await self._flight.do(key, compute_and_store)

    async def ping(self) -> bool:
        return bool(await self.store.ping())

    def stats(self) -> dict[str, Any]:
        return self.metrics.snapshot()

    def sweep(self) -> int:
        """Reclaim expired entries the store would otherwise keep until read.

        Stores that expire keys themselves (Redis) have no ``sweep`` and
        report 0.
        """
        sweep = getattr(self.store, "sweep", None)
        return sweep() if sweep is not None else 0

    async def _sweep_loop(self, interval: float) -> None:
        try:
            while True:
                await asyncio.sleep(interval)
                self.sweep()
        except asyncio.CancelledError:
            pass

    def start_sweeper(self, interval: float) -> None:
        """Sweep the store every ``interval`` seconds in the background."""
        if self._sweeper is None and hasattr(self.store, "sweep"):
            self._sweeper = asyncio.create_task(self._sweep_loop(interval))
            logger.debug("cache_sweeper_started", interval=interval)

    async def stop_sweeper(self) -> None:
        if self._sweeper is not None:
            self._sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweeper
            self._sweeper = None
            logger.debug("cache_sweeper_stopped")

    async def close(self) -> None:
        """Stop the sweeper and close the backing store if it holds connections."""
        await self.stop_sweeper()
        close = getattr(self.store, "aclose", None)
        if close is not None:
            await close()
