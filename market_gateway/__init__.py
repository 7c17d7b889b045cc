"""Market data aggregation and caching gateway.

Re-exports quotes, movers, charts, crypto prices and news from upstream
providers behind a fixed HTTP contract, with TTL caching, per-provider
rate limiting and graceful degradation.
"""

__version__ = "1.0.0"
