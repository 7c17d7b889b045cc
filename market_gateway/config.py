"""Application configuration settings.

This module provides centralized configuration management using environment
variables with sensible defaults. Provider API keys are read here once and
injected into the provider clients; clients never touch the environment.
"""

import os
from dataclasses import dataclass, field
from enum import Enum


class FailurePolicy(str, Enum):
    """What the chart client does when the upstream provider fails."""

    PROPAGATE = "propagate"
    SYNTHESIZE = "synthesize"


def _get_bool_env(name: str, default: bool = False) -> bool:
    """Get a boolean value from environment variable.

    Args:
        name: Environment variable name.
        default: Default value if not set.

    Returns:
        Boolean value from environment.
    """
    value = os.getenv(name, "").lower()
    if value in ("true", "1", "yes", "on"):
        return True
    if value in ("false", "0", "no", "off"):
        return False
    return default


def _get_list_env(name: str, default: list[str]) -> list[str]:
    """Get a comma-separated list from environment variable."""
    value = os.getenv(name)
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


def _get_policy_env(name: str, default: FailurePolicy) -> FailurePolicy:
    value = os.getenv(name, "").strip().lower()
    if not value:
        return default
    try:
        return FailurePolicy(value)
    except ValueError as e:
        raise ValueError(
            f"{name} must be one of: {', '.join(p.value for p in FailurePolicy)}"
        ) from e


@dataclass
class Settings:
    """Gateway settings loaded from environment variables.

    Attributes:
        FINNHUB_API_KEY: Key for the quote/movers/search/news provider.
        ALPHA_VANTAGE_API_KEY: Key for the intraday chart provider.
        ON_UPSTREAM_FAILURE: Chart failure policy (propagate or synthesize).
        UPSTREAM_TIMEOUT_SECONDS: Timeout applied to every upstream call.
        UPSTREAM_RETRY_ATTEMPTS: Attempts for transport-level failures.
        FINNHUB_REQUESTS_PER_MINUTE: Finnhub token bucket refill rate.
        FINNHUB_BURST: Finnhub token bucket capacity.
        ALPHA_VANTAGE_REQUESTS_PER_MINUTE: Alpha Vantage refill rate.
        COINGECKO_REQUESTS_PER_MINUTE: CoinGecko refill rate.
        MOVERS_REQUEST_INTERVAL_SECONDS: Pacing between watch-list fetches.
        CACHE_MAX_ENTRIES: LRU capacity of the in-memory cache store.
        CACHE_SWEEP_INTERVAL_SECONDS: Period of the expired-entry sweep, 0 disables it.
        REDIS_URL: Optional Redis URL replacing the in-memory store.
        COALESCE_CACHE_MISSES: Collapse concurrent misses for one key.
        API_PREFIX: Route prefix for the gateway endpoints.
        CORS_ORIGINS: Allowed CORS origins.
        INBOUND_REQUESTS_PER_MINUTE: Per-client throttle, 0 disables it.
        HOST: Bind host.
        PORT: Bind port.
        LOG_LEVEL: Logging level.
    """

    # Providers
    FINNHUB_API_KEY: str = ""
    ALPHA_VANTAGE_API_KEY: str = ""
    ON_UPSTREAM_FAILURE: FailurePolicy = FailurePolicy.SYNTHESIZE
    UPSTREAM_TIMEOUT_SECONDS: float = 10.0
    UPSTREAM_RETRY_ATTEMPTS: int = 2

    # Upstream rate limits
    FINNHUB_REQUESTS_PER_MINUTE: int = 60
    FINNHUB_BURST: int = 10
    ALPHA_VANTAGE_REQUESTS_PER_MINUTE: int = 5
    COINGECKO_REQUESTS_PER_MINUTE: int = 30
    MOVERS_REQUEST_INTERVAL_SECONDS: float = 1.0

    # Caching
    CACHE_MAX_ENTRIES: int = 1000
    CACHE_SWEEP_INTERVAL_SECONDS: float = 60.0
    REDIS_URL: str | None = None
    COALESCE_CACHE_MISSES: bool = True

    # HTTP surface
    API_PREFIX: str = "/api"
    CORS_ORIGINS: list[str] = field(default_factory=lambda: ["*"])
    INBOUND_REQUESTS_PER_MINUTE: int = 100
    HOST: str = "0.0.0.0"
    PORT: int = 3001

    # Logging
    LOG_LEVEL: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables.

        Returns:
            Settings instance populated from environment.
        """
        return cls(
            FINNHUB_API_KEY=os.getenv("FINNHUB_API_KEY", ""),
            ALPHA_VANTAGE_API_KEY=os.getenv("ALPHA_VANTAGE_API_KEY", ""),
            ON_UPSTREAM_FAILURE=_get_policy_env(
                "ON_UPSTREAM_FAILURE", FailurePolicy.SYNTHESIZE
            ),
            UPSTREAM_TIMEOUT_SECONDS=float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "10")),
            UPSTREAM_RETRY_ATTEMPTS=int(os.getenv("UPSTREAM_RETRY_ATTEMPTS", "2")),
            FINNHUB_REQUESTS_PER_MINUTE=int(os.getenv("FINNHUB_REQUESTS_PER_MINUTE", "60")),
            FINNHUB_BURST=int(os.getenv("FINNHUB_BURST", "10")),
            ALPHA_VANTAGE_REQUESTS_PER_MINUTE=int(
                os.getenv("ALPHA_VANTAGE_REQUESTS_PER_MINUTE", "5")
            ),
            COINGECKO_REQUESTS_PER_MINUTE=int(os.getenv("COINGECKO_REQUESTS_PER_MINUTE", "30")),
            MOVERS_REQUEST_INTERVAL_SECONDS=float(
                os.getenv("MOVERS_REQUEST_INTERVAL_SECONDS", "1.0")
            ),
            CACHE_MAX_ENTRIES=int(os.getenv("CACHE_MAX_ENTRIES", "1000")),
            CACHE_SWEEP_INTERVAL_SECONDS=float(os.getenv("CACHE_SWEEP_INTERVAL_SECONDS", "60")),
            REDIS_URL=os.getenv("REDIS_URL") or None,
            COALESCE_CACHE_MISSES=_get_bool_env("COALESCE_CACHE_MISSES", default=True),
            API_PREFIX=os.getenv("API_PREFIX", "/api"),
            CORS_ORIGINS=_get_list_env("CORS_ORIGINS", ["*"]),
            INBOUND_REQUESTS_PER_MINUTE=int(os.getenv("INBOUND_REQUESTS_PER_MINUTE", "100")),
            HOST=os.getenv("HOST", "0.0.0.0"),
            PORT=int(os.getenv("PORT", "3001")),
            LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
        )


# Global settings instance
settings = Settings.from_env()
