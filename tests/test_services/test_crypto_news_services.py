"""Tests for the crypto and news aggregation services."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from market_gateway.cache.manager import CacheManager
from market_gateway.cache.memory import MemoryStore
from market_gateway.data.models import NewsArticle
from market_gateway.services.crypto import CryptoService
from market_gateway.services.news import NewsService


class TestCryptoService:
    """Tests for CryptoService."""

    @pytest.mark.asyncio
    async def test_quote_cached_for_thirty_seconds(self, clock) -> None:
        """Test crypto quotes live 30s under a lower-cased key."""
        coingecko = MagicMock()
        coingecko.get_quote = AsyncMock(return_value={"usd": 1.0, "usd_24h_change": 0.1, "usd_24h_vol": 5.0})
        store = MemoryStore(clock=clock)
        service = CryptoService(coingecko, CacheManager(store))

        await service.get_quote("Bitcoin")
        clock.advance(29)
        result = await service.get_quote("bitcoin")

        assert result["usd"] == 1.0
        assert coingecko.get_quote.await_count == 1
        clock.advance(2)
        await service.get_quote("bitcoin")
        assert coingecko.get_quote.await_count == 2

    @pytest.mark.asyncio
    async def test_trending_cached(self, clock) -> None:
        """Test the trending snapshot lives 300s."""
        coingecko = MagicMock()
        coingecko.get_trending = AsyncMock(return_value={"coins": []})
        store = MemoryStore(clock=clock)
        service = CryptoService(coingecko, CacheManager(store))

        assert await service.get_trending() == {"coins": []}
        await service.get_trending()

        coingecko.get_trending.assert_awaited_once()
        assert await store.ttl("crypto:trending") == 300


class TestNewsService:
    """Tests for NewsService."""

    @pytest.fixture
    def finnhub(self):
        """Finnhub client stub."""
        client = MagicMock()
        client.get_news = AsyncMock(
            return_value=[NewsArticle(id=1, headline="Fed holds rates", source="AP", url="https://n.test", datetime=5)]
        )
        return client

    @pytest.mark.asyncio
    async def test_news_cached_per_category(self, finnhub, clock) -> None:
        """Test each category is cached separately."""
        service = NewsService(finnhub, CacheManager(MemoryStore(clock=clock)))

        general = await service.get_news()
        await service.get_news("general")
        await service.get_news("forex")

        assert general[0]["headline"] == "Fed holds rates"
        assert [c.args[0] for c in finnhub.get_news.await_args_list] == ["general", "forex"]

    @pytest.mark.asyncio
    async def test_market_news_is_general(self, finnhub, clock) -> None:
        """Test market news shares the general category entry."""
        service = NewsService(finnhub, CacheManager(MemoryStore(clock=clock)))

        await service.get_news("general")
        market = await service.get_market_news()

        assert market[0]["id"] == 1
        finnhub.get_news.assert_awaited_once()
