"""Crypto aggregation service."""

from typing import Any

from market_gateway.cache.manager import CacheKeys, CacheManager, CacheType
from market_gateway.data.coingecko import CoinGeckoClient


class CryptoService:
    """Cache-aside wrapper over the CoinGecko client."""

    def __init__(self, coingecko: CoinGeckoClient, cache: CacheManager) -> None:
        self.coingecko = coingecko
        self.cache = cache

    async def get_quote(self, symbol: str) -> dict[str, Any]:
        """Get a coin's price, 24h change and volume (cached 30s)."""
        return await self.cache.get_or_compute(
            CacheKeys.crypto_quote(symbol),
            lambda: self.coingecko.get_quote(symbol),
            cache_type=CacheType.CRYPTO_QUOTE,
        )

    async def get_trending(self) -> Any:
        """Get the trending coins snapshot (cached 5 min)."""
        return await self.cache.get_or_compute(
            CacheKeys.crypto_trending(),
            self.coingecko.get_trending,
            cache_type=CacheType.CRYPTO_TRENDING,
        )
