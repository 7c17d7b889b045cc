"""Tests for market-wide composites."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from market_gateway.data.errors import ProviderUnavailableError
from market_gateway.services.market import INDEX_BASKET, MarketService


def wire_quote(symbol: str, change_percent: float = 0.0) -> dict:
    return {
        "symbol": symbol,
        "name": symbol,
        "price": 100.0,
        "change": change_percent,
        "changePercent": change_percent,
        "high": None,
        "low": None,
        "open": None,
        "previousClose": None,
        "timestamp": None,
    }


@pytest.fixture
def stocks():
    """Stocks service stub."""
    service = MagicMock()
    service.get_top_gainers = AsyncMock(return_value=[wire_quote("AAPL", 5.0)])
    service.get_top_losers = AsyncMock(return_value=[wire_quote("MSFT", -3.0)])
    service.get_most_active = AsyncMock(return_value=[wire_quote(s) for s in "ABCDEFG"])
    service.get_quote = AsyncMock(side_effect=lambda symbol: wire_quote(symbol, 0.5))
    return service


class TestMarketService:
    """Tests for MarketService."""

    @pytest.mark.asyncio
    async def test_overview(self, stocks) -> None:
        """Test the overview combines the three lists, each at most five."""
        overview = await MarketService(stocks).get_overview()

        assert set(overview) == {"topGainers", "topLosers", "mostActive"}
        assert overview["topGainers"][0]["symbol"] == "AAPL"
        assert overview["topLosers"][0]["symbol"] == "MSFT"
        assert len(overview["mostActive"]) == 5

    @pytest.mark.asyncio
    async def test_overview_fail_soft(self, stocks) -> None:
        """Test a failing list degrades to empty without failing the rest."""
        stocks.get_top_losers.side_effect = ProviderUnavailableError("finnhub", "down")

        overview = await MarketService(stocks).get_overview()

        assert overview["topLosers"] == []
        assert overview["topGainers"][0]["symbol"] == "AAPL"

    @pytest.mark.asyncio
    async def test_overview_fetches_concurrently(self, stocks) -> None:
        """Test the three lists are requested concurrently."""
        started: list[str] = []
        release = asyncio.Event()

        def slow(name: str):
            async def fetch():
                started.append(name)
                await release.wait()
                return []
            return fetch

        stocks.get_top_gainers = slow("gainers")
        stocks.get_top_losers = slow("losers")
        stocks.get_most_active = slow("active")

        task = asyncio.create_task(MarketService(stocks).get_overview())
        await asyncio.sleep(0.01)
        assert sorted(started) == ["active", "gainers", "losers"]

        release.set()
        await task

    @pytest.mark.asyncio
    async def test_indices_in_basket_order(self, stocks) -> None:
        """Test index quotes come back in basket order."""
        indices = await MarketService(stocks).get_indices()

        assert [q["symbol"] for q in indices] == ["SPY", "DIA", "QQQ", "IWM"]
        assert INDEX_BASKET == ("SPY", "DIA", "QQQ", "IWM")

    @pytest.mark.asyncio
    async def test_indices_fail_soft_to_zero_quote(self, stocks) -> None:
        """Test a failed index quote becomes a zero quote in place."""

        async def quote(symbol: str) -> dict:
            if symbol == "QQQ":
                raise ProviderUnavailableError("finnhub", "down")
            return wire_quote(symbol, 0.5)

        stocks.get_quote = AsyncMock(side_effect=quote)

        indices = await MarketService(stocks).get_indices()

        assert [q["symbol"] for q in indices] == ["SPY", "DIA", "QQQ", "IWM"]
        assert indices[2]["price"] == 0.0
        assert indices[2]["changePercent"] == 0.0
        assert indices[0]["changePercent"] == 0.5
