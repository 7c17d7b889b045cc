"""Gateway container wiring providers, cache and services from Settings."""

from dataclasses import dataclass

import structlog

from market_gateway.cache.manager import CacheManager
from market_gateway.cache.memory import MemoryStore
from market_gateway.config import Settings
from market_gateway.data.alpha_vantage import AlphaVantageClient
from market_gateway.data.coingecko import CoinGeckoClient
from market_gateway.data.finnhub import FinnhubClient
from market_gateway.resilience.rate_limiter import TokenBucket
from market_gateway.services.crypto import CryptoService
from market_gateway.services.market import MarketService
from market_gateway.services.news import NewsService
from market_gateway.services.stocks import StocksService

logger = structlog.get_logger(__name__)


@dataclass
class Gateway:
    """Everything the HTTP surface needs, built once per process."""

    cache: CacheManager
    finnhub: FinnhubClient
    alpha_vantage: AlphaVantageClient
    coingecko: CoinGeckoClient
    stocks: StocksService
    crypto: CryptoService
    news: NewsService
    market: MarketService

    async def aclose(self) -> None:
        """Close provider HTTP clients and the cache store."""
        for client in (self.finnhub, self.alpha_vantage, self.coingecko):
            await client.close()
        await self.cache.close()
        logger.info("gateway_closed")


def _build_store(settings: Settings):
    if settings.REDIS_URL:
        import redis.asyncio as redis

        logger.info("cache_store_selected", backend="redis")
        return redis.Redis.from_url(settings.REDIS_URL, decode_responses=True)

    logger.info("cache_store_selected", backend="memory", max_entries=settings.CACHE_MAX_ENTRIES)
    return MemoryStore(max_entries=settings.CACHE_MAX_ENTRIES)


def build_gateway(settings: Settings) -> Gateway:
    """Build the gateway from settings.

    Each provider gets one token bucket shared by every call to it.
    """
    client_options = {
        "timeout": settings.UPSTREAM_TIMEOUT_SECONDS,
        "retry_attempts": settings.UPSTREAM_RETRY_ATTEMPTS,
    }

    finnhub = FinnhubClient(
        api_key=settings.FINNHUB_API_KEY,
        limiter=TokenBucket.per_minute(
            settings.FINNHUB_REQUESTS_PER_MINUTE,
            burst=settings.FINNHUB_BURST,
            name="finnhub",
        ),
        movers_interval=settings.MOVERS_REQUEST_INTERVAL_SECONDS,
        **client_options,
    )
    alpha_vantage = AlphaVantageClient(
        api_key=settings.ALPHA_VANTAGE_API_KEY,
        limiter=TokenBucket.per_minute(
            settings.ALPHA_VANTAGE_REQUESTS_PER_MINUTE,
            name="alpha_vantage",
        ),
        failure_policy=settings.ON_UPSTREAM_FAILURE,
        **client_options,
    )
    coingecko = CoinGeckoClient(
        limiter=TokenBucket.per_minute(
            settings.COINGECKO_REQUESTS_PER_MINUTE,
            name="coingecko",
        ),
        **client_options,
    )

    cache = CacheManager(
        _build_store(settings),
        coalesce=settings.COALESCE_CACHE_MISSES,
    )
    stocks = StocksService(finnhub, alpha_vantage, cache)

    logger.info(
        "gateway_built",
        chart_failure_policy=settings.ON_UPSTREAM_FAILURE.value,
        coalesce=settings.COALESCE_CACHE_MISSES,
    )
    return Gateway(
        cache=cache,
        finnhub=finnhub,
        alpha_vantage=alpha_vantage,
        coingecko=coingecko,
        stocks=stocks,
        crypto=CryptoService(coingecko, cache),
        news=NewsService(finnhub, cache),
        market=MarketService(stocks),
    )


# Global gateway instance
_gateway: Gateway | None = None


def get_gateway() -> Gateway | None:
    """Get the global gateway instance.

    Returns:
        Gateway or None if not initialized.
    """
    return _gateway


def set_gateway(gateway: Gateway) -> None:
    """Set the global gateway instance."""
    global _gateway
    _gateway = gateway


def reset_gateway() -> None:
    """Reset the global gateway (for testing)."""
    global _gateway
    _gateway = None
