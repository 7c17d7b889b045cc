"""Upstream data providers for the market gateway.

This module contains:
- Provider clients (Finnhub, Alpha Vantage, CoinGecko)
- Normalized data models
- The provider error hierarchy
- Synthetic chart data used as a fallback
"""

from market_gateway.data.alpha_vantage import AlphaVantageClient, map_interval
from market_gateway.data.base import BaseProviderClient
from market_gateway.data.coingecko import CoinGeckoClient
from market_gateway.data.errors import (
    ProviderDataError,
    ProviderError,
    ProviderRateLimitError,
    ProviderUnavailableError,
)
from market_gateway.data.finnhub import WATCH_LIST, FinnhubClient, rank_movers
from market_gateway.data.models import (
    ChartPoint,
    MarketOverview,
    MoverKind,
    NewsArticle,
    Quote,
    SymbolMatch,
)
from market_gateway.data.synthetic import generate_synthetic_candles

__all__ = [
    # Clients
    "AlphaVantageClient",
    "BaseProviderClient",
    "CoinGeckoClient",
    "FinnhubClient",
    # Models
    "ChartPoint",
    "MarketOverview",
    "MoverKind",
    "NewsArticle",
    "Quote",
    "SymbolMatch",
    # Errors
    "ProviderDataError",
    "ProviderError",
    "ProviderRateLimitError",
    "ProviderUnavailableError",
    # Helpers
    "WATCH_LIST",
    "generate_synthetic_candles",
    "map_interval",
    "rank_movers",
]
