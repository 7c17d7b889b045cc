"""News aggregation service."""

from typing import Any

from market_gateway.cache.manager import CacheKeys, CacheManager, CacheType
from market_gateway.data.finnhub import FinnhubClient

DEFAULT_CATEGORY = "general"


class NewsService:
    """Cache-aside wrapper over Finnhub market news, one entry per category."""

    def __init__(self, finnhub: FinnhubClient, cache: CacheManager) -> None:
        self.finnhub = finnhub
        self.cache = cache

    async def get_news(self, category: str = DEFAULT_CATEGORY) -> list[dict[str, Any]]:
        """Get news for a category (cached 5 min)."""

        async def fetch() -> list[dict[str, Any]]:
            articles = await self.finnhub.get_news(category)
            return [article.to_wire() for article in articles]

        return await self.cache.get_or_compute(
            CacheKeys.news(category),
            fetch,
            cache_type=CacheType.NEWS,
        )

    async def get_market_news(self) -> list[dict[str, Any]]:
        """General market news."""
        return await self.get_news(DEFAULT_CATEGORY)
