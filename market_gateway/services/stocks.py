"""Stocks aggregation service.

Cache-aside wrappers over the Finnhub and Alpha Vantage clients. Every
cached value is the camelCase wire shape, so a hit is returned exactly as
it was stored.
"""

from typing import Any

import structlog

from market_gateway.cache.manager import CacheKeys, CacheManager, CacheType
from market_gateway.data.alpha_vantage import AlphaVantageClient
from market_gateway.data.finnhub import FinnhubClient
from market_gateway.data.models import MoverKind

logger = structlog.get_logger(__name__)


class StocksService:
    """Quotes, movers, search and charts for equities.

    Example:
        service = StocksService(finnhub, alpha_vantage, cache)
        quote = await service.get_quote("AAPL")
        print(quote["changePercent"])
    """

    def __init__(
        self,
        finnhub: FinnhubClient,
        alpha_vantage: AlphaVantageClient,
        cache: CacheManager,
    ) -> None:
        self.finnhub = finnhub
        self.alpha_vantage = alpha_vantage
        self.cache = cache
        self._logger = logger.bind(component="stocks_service")

    async def get_quote(self, symbol: str) -> dict[str, Any]:
        """Get a quote, served from cache for 15 seconds."""
        symbol = symbol.upper()

        async def fetch() -> dict[str, Any]:
            quote = await self.finnhub.get_quote(symbol)
            self._logger.info("quote_fetched", symbol=symbol, price=quote.price)
            return quote.to_wire()

        return await self.cache.get_or_compute(
            CacheKeys.quote(symbol),
            fetch,
            cache_type=CacheType.QUOTE,
        )

    async def _get_movers(self, kind: MoverKind) -> list[dict[str, Any]]:
        async def fetch() -> list[dict[str, Any]]:
            movers = await self.finnhub.get_market_movers(kind)
            return [quote.to_wire() for quote in movers]

        return await self.cache.get_or_compute(
            CacheKeys.movers(kind.value),
            fetch,
            cache_type=CacheType.MOVERS,
        )

    async def get_top_gainers(self) -> list[dict[str, Any]]:
        """Watch-list sorted by changePercent descending (at most 5)."""
        return await self._get_movers(MoverKind.GAINERS)

    async def get_top_losers(self) -> list[dict[str, Any]]:
        """Watch-list sorted by changePercent ascending (at most 5)."""
        return await self._get_movers(MoverKind.LOSERS)

    async def get_most_active(self) -> list[dict[str, Any]]:
        """Watch-list sorted by absolute change descending (at most 5)."""
        return await self._get_movers(MoverKind.ACTIVE)

    async def search_stocks(self, query: str) -> list[dict[str, Any]]:
        """Search symbols. Not cached."""
        matches = await self.finnhub.search_symbol(query)
        return [match.to_wire() for match in matches]

    async def get_chart_data(self, symbol: str, interval: str = "1D") -> list[dict[str, Any]]:
        """Get a chart series, served from cache for 5 minutes.

        Synthetic series are cached like real ones, so a throttled
        provider is not retried until the entry expires.
        """
        symbol = symbol.upper()

        async def fetch() -> list[dict[str, Any]]:
            points = await self.alpha_vantage.get_intraday_data(symbol, interval)
            return [point.to_wire() for point in points]

        return await self.cache.get_or_compute(
            CacheKeys.chart(symbol, interval),
            fetch,
            cache_type=CacheType.CHART,
        )
