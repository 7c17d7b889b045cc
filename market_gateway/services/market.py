"""Market-wide composites built from the stocks service.

Both composites fan out concurrently and fail soft: a sub-fetch that
raises is logged and replaced, never failing the whole response.
"""

import asyncio
from typing import Any

import structlog

from market_gateway.data.finnhub import MAX_MOVERS
from market_gateway.data.models import MarketOverview, Quote
from market_gateway.services.stocks import StocksService

logger = structlog.get_logger(__name__)

# Index-tracking ETFs standing in for S&P 500, Dow, Nasdaq-100 and Russell 2000
INDEX_BASKET: tuple[str, ...] = ("SPY", "DIA", "QQQ", "IWM")


class MarketService:
    """Market overview and index basket.

    Example:
        market = MarketService(stocks)
        overview = await market.get_overview()
        print(overview["topGainers"])
    """

    def __init__(self, stocks: StocksService, index_basket: tuple[str, ...] = INDEX_BASKET) -> None:
        self.stocks = stocks
        self.index_basket = index_basket
        self._logger = logger.bind(component="market_service")

    def _mover_list(self, name: str, result: Any) -> list[dict[str, Any]]:
        if isinstance(result, BaseException):
            self._logger.warning("overview_list_failed", list=name, error=str(result))
            return []
        if not isinstance(result, list):
            return []
        return result[:MAX_MOVERS]

    async def get_overview(self) -> dict[str, Any]:
        """Top gainers, top losers and most active, fetched concurrently."""
        gainers, losers, active = await asyncio.gather(
            self.stocks.get_top_gainers(),
            self.stocks.get_top_losers(),
            self.stocks.get_most_active(),
            return_exceptions=True,
        )

        overview = MarketOverview.model_validate(
            {
                "topGainers": self._mover_list("top_gainers", gainers),
                "topLosers": self._mover_list("top_losers", losers),
                "mostActive": self._mover_list("most_active", active),
            }
        )
        return overview.to_wire()

    async def get_indices(self) -> list[dict[str, Any]]:
        """Quotes for the index basket, in basket order."""
        results = await asyncio.gather(
            *(self.stocks.get_quote(symbol) for symbol in self.index_basket),
            return_exceptions=True,
        )

        indices: list[dict[str, Any]] = []
        for symbol, result in zip(self.index_basket, results):
            if isinstance(result, BaseException):
                self._logger.warning("index_quote_failed", symbol=symbol, error=str(result))
                indices.append(Quote.zero(symbol).to_wire())
            else:
                indices.append(result)
        return indices
