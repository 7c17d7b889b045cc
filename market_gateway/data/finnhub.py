"""Finnhub API client for quotes, market movers, symbol search and news.

Finnhub's free tier allows 60 calls per minute, so every call goes
through the shared provider bucket and the movers batch is additionally
paced, one watch-list symbol at a time.
"""

from typing import Any

import structlog
from pydantic import ValidationError

from market_gateway.data.base import BaseProviderClient
from market_gateway.data.errors import ProviderDataError, ProviderError, ProviderRateLimitError
from market_gateway.data.models import MoverKind, NewsArticle, Quote, SymbolMatch
from market_gateway.resilience.rate_limiter import TokenBucket

logger = structlog.get_logger(__name__)

# Symbols ranked by the movers endpoints
WATCH_LIST: tuple[str, ...] = ("AAPL", "MSFT", "GOOGL", "AMZN", "TSLA", "META")

MAX_MOVERS = 5


def rank_movers(quotes: list[Quote], kind: MoverKind | str) -> list[Quote]:
    """Order quotes for a mover list and keep the top entries.

    Sorting is stable, so equal keys keep fetch order.

    Args:
        quotes: Quotes in fetch order.
        kind: gainers (changePercent desc), losers (changePercent asc)
            or active (abs(change) desc).

    Returns:
        At most ``MAX_MOVERS`` quotes.
    """
    kind = MoverKind(kind)
    if kind is MoverKind.GAINERS:
        ranked = sorted(quotes, key=lambda q: q.change_percent, reverse=True)
    elif kind is MoverKind.LOSERS:
        ranked = sorted(quotes, key=lambda q: q.change_percent)
    else:
        ranked = sorted(quotes, key=lambda q: abs(q.change), reverse=True)
    return ranked[:MAX_MOVERS]


class FinnhubClient(BaseProviderClient):
    """Async client for the Finnhub REST API.

    Example:
        async with FinnhubClient(api_key="...") as client:
            quote = await client.get_quote("AAPL")
            gainers = await client.get_market_movers("gainers")
    """

    name = "finnhub"
    BASE_URL = "https://finnhub.io/api/v1"

    def __init__(
        self,
        api_key: str = "",
        limiter: TokenBucket | None = None,
        movers_interval: float = 1.0,
        watch_list: tuple[str, ...] = WATCH_LIST,
        **kwargs: Any,
    ) -> None:
        """Initialize the Finnhub client.

        Args:
            api_key: Finnhub API token. Sent as-is, even when empty.
            limiter: Token bucket shared by all Finnhub calls.
            movers_interval: Minimum seconds between watch-list fetches.
            watch_list: Symbols ranked by ``get_market_movers``.
            **kwargs: Passed to BaseProviderClient (timeout, retries, transport).
        """
        super().__init__(limiter=limiter, **kwargs)
        self.api_key = api_key
        self.movers_interval = movers_interval
        self.watch_list = tuple(s.upper() for s in watch_list)

    def _auth_params(self) -> dict[str, str]:
        return {"token": self.api_key}

    async def get_quote(self, symbol: str) -> Quote:
        """Get the current quote for a symbol.

        A rate-limited request does not fail: it yields a zero-valued
        quote so callers aggregating several symbols still get an answer.

        Args:
            symbol: Stock ticker symbol (e.g., "AAPL").

        Returns:
            Normalized Quote.

        Raises:
            ProviderError: For any failure other than rate limiting.
        """
        symbol = symbol.upper()

        try:
            data = await self._request("/quote", {"symbol": symbol})
        except ProviderRateLimitError as e:
            self._logger.warning("quote_rate_limited", symbol=symbol, retry_after=e.retry_after)
            return Quote.zero(symbol)

        if not isinstance(data, dict):
            raise ProviderDataError(self.name, f"Unexpected quote payload for {symbol}")

        try:
            return Quote(
                symbol=symbol,
                name=symbol,
                price=data.get("c") or 0.0,
                change=data.get("d") or 0.0,
                change_percent=data.get("dp") or 0.0,
                high=data.get("h"),
                low=data.get("l"),
                open=data.get("o"),
                previous_close=data.get("pc"),
                timestamp=data.get("t"),
            )
        except ValidationError as e:
            raise ProviderDataError(self.name, f"Malformed quote for {symbol}: {e}") from e

    async def get_market_movers(self, kind: MoverKind | str) -> list[Quote]:
        """Rank the watch-list by gainers, losers or activity.

        Symbols are fetched one at a time, paced by ``movers_interval``.
        A symbol that fails is logged and skipped.

        Args:
            kind: "gainers", "losers" or "active".

        Returns:
            Up to five quotes in ranking order.
        """
        kind = MoverKind(kind)
        pacer = TokenBucket.every(self.movers_interval, name="finnhub_movers") if self.movers_interval > 0 else None

        quotes: list[Quote] = []
        for symbol in self.watch_list:
            if pacer is not None:
                await pacer.acquire()
            try:
                quotes.append(await self.get_quote(symbol))
            except ProviderError as e:
                self._logger.warning("movers_symbol_skipped", symbol=symbol, error=str(e))

        self._logger.info(
            "movers_fetched",
            kind=kind.value,
            fetched=len(quotes),
            watch_list=len(self.watch_list),
        )
        return rank_movers(quotes, kind)

    async def search_symbol(self, query: str) -> list[SymbolMatch]:
        """Search for symbols matching a query.

        Args:
            query: Free-text query (ticker or company name).

        Returns:
            Matches as ``{symbol, description, type}``.
        """
        data = await self._request("/search", {"q": query})
        results = data.get("result") if isinstance(data, dict) else None
        if not isinstance(results, list):
            raise ProviderDataError(self.name, "Search response has no result list")

        return [
            SymbolMatch(
                symbol=str(item.get("symbol", "")),
                description=str(item.get("description", "")),
                type=str(item.get("type", "")),
            )
            for item in results
            if isinstance(item, dict)
        ]

    async def get_news(self, category: str = "general") -> list[NewsArticle]:
        """Get market news for a category.

        Args:
            category: Finnhub news category (general, forex, crypto, merger).

        Returns:
            Articles in provider order. Items that cannot be read are dropped.
        """
        data = await self._request("/news", {"category": category})
        if not isinstance(data, list):
            raise ProviderDataError(self.name, f"News response for {category} is not a list")

        articles: list[NewsArticle] = []
        for item in data:
            try:
                articles.append(NewsArticle.model_validate(item))
            except ValidationError as e:
                self._logger.warning("news_item_skipped", category=category, error=str(e))
        return articles
