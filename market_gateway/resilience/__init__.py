"""Rate limiting for upstream providers and inbound clients."""

from market_gateway.resilience.rate_limiter import (
    ClientBudget,
    RateLimiter,
    RateLimitExceeded,
    TokenBucket,
)

__all__ = [
    "ClientBudget",
    "RateLimitExceeded",
    "RateLimiter",
    "TokenBucket",
]
