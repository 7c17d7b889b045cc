"""Alpha Vantage client for intraday chart data.

The free tier allows five calls per minute and signals throttling inside
a 200 response (``Note`` / ``Information``), so the client inspects the
body as well as the status. What happens when the provider cannot serve
a chart is governed by ``FailurePolicy``:

- PROPAGATE: the ProviderError reaches the caller
- SYNTHESIZE: a 30-day synthetic daily series is returned instead
"""

import random
from datetime import datetime, timezone
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from market_gateway.config import FailurePolicy
from market_gateway.data.base import BaseProviderClient
from market_gateway.data.errors import ProviderDataError, ProviderError, ProviderRateLimitError
from market_gateway.data.models import ChartPoint
from market_gateway.data.synthetic import generate_synthetic_candles
from market_gateway.resilience.rate_limiter import TokenBucket

NATIVE_INTERVALS = ("1min", "5min", "15min", "30min", "60min")
DEFAULT_INTERVAL = "5min"

# Logical tokens that map to a different native interval
INTERVAL_ALIASES = {"1D": "60min"}

SYNTHETIC_DAYS = 30

_RATE_LIMIT_MARKERS = ("Note", "Information")


def map_interval(token: str) -> str:
    """Map a logical interval token to the provider's native interval.

    ``1D`` maps to ``60min`` (hourly bars, not a daily fetch); unknown
    tokens map to ``5min``.
    """
    if token in NATIVE_INTERVALS:
        return token
    return INTERVAL_ALIASES.get(token, DEFAULT_INTERVAL)


def _parse_timestamp(value: str, tz: ZoneInfo | timezone) -> int:
    fmt = "%Y-%m-%d %H:%M:%S" if " " in value else "%Y-%m-%d"
    return int(datetime.strptime(value, fmt).replace(tzinfo=tz).timestamp())


def _series_timezone(meta: Any) -> ZoneInfo | timezone:
    name = meta.get("6. Time Zone") if isinstance(meta, dict) else None
    if not name:
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


class AlphaVantageClient(BaseProviderClient):
    """Async client for Alpha Vantage intraday time series.

    Example:
        client = AlphaVantageClient(api_key="...", failure_policy=FailurePolicy.PROPAGATE)
        points = await client.get_intraday_data("IBM", "5min")
    """

    name = "alpha_vantage"
    BASE_URL = "https://www.alphavantage.co"

    def __init__(
        self,
        api_key: str = "",
        limiter: TokenBucket | None = None,
        failure_policy: FailurePolicy = FailurePolicy.SYNTHESIZE,
        rng: random.Random | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize the Alpha Vantage client.

        Args:
            api_key: Alpha Vantage API key. Sent as-is, even when empty.
            limiter: Token bucket shared by all Alpha Vantage calls.
            failure_policy: Whether failures propagate or yield synthetic data.
            rng: Random source for synthetic series.
            **kwargs: Passed to BaseProviderClient (timeout, retries, transport).
        """
        super().__init__(limiter=limiter, **kwargs)
        self.api_key = api_key
        self.failure_policy = FailurePolicy(failure_policy)
        self.rng = rng or random.Random()

    def _auth_params(self) -> dict[str, str]:
        return {"apikey": self.api_key}

    async def get_intraday_data(self, symbol: str, interval: str = "1D") -> list[ChartPoint]:
        """Get an intraday chart series, oldest point first.

        Args:
            symbol: Stock ticker symbol.
            interval: Logical interval token (1min..60min or 1D).

        Returns:
            ChartPoints strictly ascending by time.

        Raises:
            ProviderError: Only when the failure policy is PROPAGATE.
        """
        symbol = symbol.upper()
        native = map_interval(interval)

        try:
            data = await self._request(
                "/query",
                {
                    "function": "TIME_SERIES_INTRADAY",
                    "symbol": symbol,
                    "interval": native,
                },
            )
            points = self._parse_series(data, native)
        except ProviderError as e:
            if self.failure_policy is FailurePolicy.PROPAGATE:
                self._logger.warning("chart_fetch_failed", symbol=symbol, interval=native, error=str(e))
                raise
            self._logger.warning(
                "chart_synthesized",
                symbol=symbol,
                interval=native,
                error=str(e),
            )
            return generate_synthetic_candles(days=SYNTHETIC_DAYS, rng=self.rng)

        self._logger.info("chart_fetched", symbol=symbol, interval=native, points=len(points))
        return points

    def _parse_series(self, data: Any, native_interval: str) -> list[ChartPoint]:
        if not isinstance(data, dict):
            raise ProviderDataError(self.name, "Unexpected chart payload")

        for marker in _RATE_LIMIT_MARKERS:
            if marker in data:
                error = ProviderRateLimitError(self.name, message=str(data[marker]))
                self._penalize(error.retry_after)
                raise error

        if "Error Message" in data:
            raise ProviderDataError(self.name, str(data["Error Message"]))

        series = data.get(f"Time Series ({native_interval})")
        if not isinstance(series, dict):
            raise ProviderDataError(self.name, f"Missing time series for {native_interval}")

        tz = _series_timezone(data.get("Meta Data"))
        points: list[ChartPoint] = []
        try:
            # Provider order is newest first
            for stamp, values in reversed(list(series.items())):
                points.append(
                    ChartPoint(
                        time=_parse_timestamp(stamp, tz),
                        open=float(values["1. open"]),
                        high=float(values["2. high"]),
                        low=float(values["3. low"]),
                        close=float(values["4. close"]),
                        volume=int(float(values["5. volume"])),
                    )
                )
        except (KeyError, TypeError, ValueError) as e:
            raise ProviderDataError(self.name, f"Malformed time series entry: {e}") from e

        if any(a.time >= b.time for a, b in zip(points, points[1:])):
            by_time = {p.time: p for p in points}
            points = [by_time[t] for t in sorted(by_time)]
        return points
