"""Caching layer in front of the upstream providers."""

from market_gateway.cache.manager import CacheConfig, CacheKeys, CacheManager, CacheType
from market_gateway.cache.memory import CacheEntry, MemoryStore
from market_gateway.cache.metrics import CacheMetrics
from market_gateway.cache.singleflight import SingleFlight

__all__ = [
    "CacheConfig",
    "CacheEntry",
    "CacheKeys",
    "CacheManager",
    "CacheMetrics",
    "CacheType",
    "MemoryStore",
    "SingleFlight",
]
