"""CoinGecko client for crypto spot prices and trending coins.

No API key is required. Symbols are lower-cased and used directly as
CoinGecko coin ids (``bitcoin``, ``ethereum``); there is no ticker to id
resolution, so ``btc`` is not found.
"""

from typing import Any

from market_gateway.data.base import BaseProviderClient
from market_gateway.data.errors import ProviderDataError


class CoinGeckoClient(BaseProviderClient):
    """Async client for the CoinGecko public API.

    Example:
        async with CoinGeckoClient() as client:
            btc = await client.get_quote("bitcoin")
            print(btc["usd"], btc["usd_24h_change"])
    """

    name = "coingecko"
    BASE_URL = "https://api.coingecko.com/api/v3"

    async def get_quote(self, symbol: str) -> dict[str, Any]:
        """Get spot price, 24h change and 24h volume for one coin.

        Args:
            symbol: CoinGecko coin id (case-insensitive).

        Returns:
            ``{"usd", "usd_24h_change", "usd_24h_vol"}`` as returned upstream.

        Raises:
            ProviderDataError: If the coin id is unknown.
        """
        coin_id = symbol.lower()
        data = await self._request(
            "/simple/price",
            {
                "ids": coin_id,
                "vs_currencies": "usd",
                "include_24hr_change": "true",
                "include_24hr_vol": "true",
            },
        )

        quote = data.get(coin_id) if isinstance(data, dict) else None
        if not isinstance(quote, dict):
            raise ProviderDataError(self.name, f"Unknown coin id: {coin_id}")

        self._logger.debug("crypto_quote_fetched", coin=coin_id, price=quote.get("usd"))
        return quote

    async def get_trending(self) -> Any:
        """Get the trending coins snapshot, passed through verbatim."""
        return await self._request("/search/trending")
