"""Aggregation services: cache-aside reads over the provider clients."""

from market_gateway.services.crypto import CryptoService
from market_gateway.services.gateway import (
    Gateway,
    build_gateway,
    get_gateway,
    reset_gateway,
    set_gateway,
)
from market_gateway.services.market import INDEX_BASKET, MarketService
from market_gateway.services.news import NewsService
from market_gateway.services.stocks import StocksService

__all__ = [
    "CryptoService",
    "Gateway",
    "INDEX_BASKET",
    "MarketService",
    "NewsService",
    "StocksService",
    "build_gateway",
    "get_gateway",
    "reset_gateway",
    "set_gateway",
]
