"""Tests for the Alpha Vantage chart client."""

import asyncio
import random
import time
from datetime import datetime, timezone

import httpx
import pytest

from market_gateway.config import FailurePolicy
from market_gateway.data.alpha_vantage import AlphaVantageClient, map_interval
from market_gateway.data.errors import ProviderDataError, ProviderRateLimitError
from market_gateway.resilience.rate_limiter import TokenBucket


def series_payload(interval: str = "60min", timezone_name: str = "UTC") -> dict:
    # Newest first, as the provider returns it
    return {
        "Meta Data": {
            "1. Information": "Intraday (60min) open, high, low, close prices and volume",
            "2. Symbol": "IBM",
            "6. Time Zone": timezone_name,
        },
        f"Time Series ({interval})": {
            "2024-01-02 12:00:00": {
                "1. open": "102.0", "2. high": "103.0", "3. low": "101.5", "4. close": "102.5", "5. volume": "3000",
            },
            "2024-01-02 11:00:00": {
                "1. open": "101.0", "2. high": "102.5", "3. low": "100.5", "4. close": "102.0", "5. volume": "2000",
            },
            "2024-01-02 10:00:00": {
                "1. open": "100.0", "2. high": "101.5", "3. low": "99.5", "4. close": "101.0", "5. volume": "1000",
            },
        },
    }


def make_client(handler, policy: FailurePolicy = FailurePolicy.PROPAGATE, **kwargs) -> AlphaVantageClient:
    return AlphaVantageClient(
        api_key="av-key",
        failure_policy=policy,
        transport=httpx.MockTransport(handler),
        retry_wait=0,
        **kwargs,
    )


class TestMapInterval:
    """Tests for map_interval."""

    @pytest.mark.parametrize("token", ["1min", "5min", "15min", "30min", "60min"])
    def test_native_intervals_unchanged(self, token: str) -> None:
        """Test native tokens map to themselves."""
        assert map_interval(token) == token

    def test_daily_maps_to_hourly(self) -> None:
        """Test 1D is served from 60min bars."""
        assert map_interval("1D") == "60min"

    def test_unknown_defaults_to_five_minutes(self) -> None:
        """Test unknown tokens default to 5min."""
        assert map_interval("1W") == "5min"


class TestAlphaVantageClient:
    """Tests for AlphaVantageClient."""

    @pytest.mark.asyncio
    async def test_request_parameters(self) -> None:
        """Test function, symbol, native interval and key are sent."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=series_payload("60min"))

        client = make_client(handler)
        await client.get_intraday_data("ibm", "1D")

        params = seen[0].url.params
        assert seen[0].url.path == "/query"
        assert params["function"] == "TIME_SERIES_INTRADAY"
        assert params["symbol"] == "IBM"
        assert params["interval"] == "60min"
        assert params["apikey"] == "av-key"
        await client.close()

    @pytest.mark.asyncio
    async def test_series_reversed_to_ascending(self) -> None:
        """Test provider newest-first order is reversed."""
        client = make_client(lambda request: httpx.Response(200, json=series_payload("60min")))

        points = await client.get_intraday_data("IBM", "60min")

        provider_times = [
            int(datetime.strptime(s, "%Y-%m-%d %H:%M:%S").replace(tzinfo=timezone.utc).timestamp())
            for s in series_payload()["Time Series (60min)"]
        ]
        assert [p.time for p in points] == list(reversed(provider_times))
        assert all(a.time < b.time for a, b in zip(points, points[1:]))
        assert points[0].open == 100.0
        assert points[0].volume == 1000
        assert points[-1].close == 102.5
        await client.close()

    @pytest.mark.asyncio
    async def test_timestamps_use_series_time_zone(self) -> None:
        """Test timestamps honour the series time zone."""
        client = make_client(
            lambda request: httpx.Response(200, json=series_payload("60min", "US/Eastern"))
        )

        points = await client.get_intraday_data("IBM", "60min")

        # 10:00 EST is 15:00 UTC
        assert points[0].time == int(datetime(2024, 1, 2, 15, 0, tzinfo=timezone.utc).timestamp())
        await client.close()

    @pytest.mark.asyncio
    async def test_unordered_series_sorted(self) -> None:
        """Test an out-of-order series is still returned ascending."""
        payload = series_payload("5min")
        series = payload["Time Series (5min)"]
        payload["Time Series (5min)"] = dict(reversed(list(series.items())))
        client = make_client(lambda request: httpx.Response(200, json=payload))

        points = await client.get_intraday_data("IBM", "5min")

        assert all(a.time < b.time for a, b in zip(points, points[1:]))
        await client.close()

    @pytest.mark.asyncio
    async def test_rate_limit_note_propagates_in_strict_mode(self) -> None:
        """Test an in-body throttle note raises and penalizes the bucket."""
        limiter = TokenBucket(capacity=5, refill_rate=100.0)
        client = make_client(
            lambda request: httpx.Response(200, json={"Note": "Thank you for using Alpha Vantage!"}),
            limiter=limiter,
        )

        with pytest.raises(ProviderRateLimitError):
            await client.get_intraday_data("IBM", "5min")

        assert await limiter.consume() is False
        await client.close()

    @pytest.mark.asyncio
    async def test_synthesizes_quickly_during_backoff(self) -> None:
        """Test a chart request after a throttle note synthesizes without waiting."""
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(200, json={"Note": "Thank you for using Alpha Vantage!"})

        client = make_client(
            handler,
            policy=FailurePolicy.SYNTHESIZE,
            limiter=TokenBucket(capacity=5, refill_rate=100.0),
            timeout=0.5,
        )

        await client.get_intraday_data("IBM", "5min")
        points = await asyncio.wait_for(client.get_intraday_data("AAPL", "1D"), timeout=1.0)

        assert len(points) == 30
        assert calls == 1
        await client.close()

    @pytest.mark.asyncio
    async def test_strict_mode_raises_quickly_during_backoff(self) -> None:
        """Test strict mode surfaces the backoff as a rate limit error at once."""
        client = make_client(
            lambda request: httpx.Response(429, headers={"Retry-After": "45"}),
            limiter=TokenBucket(capacity=5, refill_rate=100.0),
            timeout=0.5,
        )

        with pytest.raises(ProviderRateLimitError):
            await client.get_intraday_data("IBM", "5min")
        with pytest.raises(ProviderRateLimitError) as exc_info:
            await asyncio.wait_for(client.get_intraday_data("IBM", "5min"), timeout=1.0)

        assert 44 < exc_info.value.retry_after <= 45
        await client.close()

    @pytest.mark.asyncio
    async def test_slow_refill_synthesizes_within_timeout(self) -> None:
        """Test a second chart inside the refill window degrades once the timeout passes."""
        client = make_client(
            lambda request: httpx.Response(200, json=series_payload("5min")),
            policy=FailurePolicy.SYNTHESIZE,
            limiter=TokenBucket.per_minute(5, name="alpha_vantage"),
            timeout=0.05,
        )

        first = await client.get_intraday_data("IBM", "5min")
        second = await asyncio.wait_for(client.get_intraday_data("IBM", "5min"), timeout=1.0)

        assert len(first) == 3
        assert len(second) == 30
        await client.close()

    @pytest.mark.asyncio
    async def test_error_message_propagates_in_strict_mode(self) -> None:
        """Test an error message body raises a data error."""
        client = make_client(
            lambda request: httpx.Response(200, json={"Error Message": "Invalid API call."})
        )

        with pytest.raises(ProviderDataError, match="Invalid API call"):
            await client.get_intraday_data("NOPE", "5min")
        await client.close()

    @pytest.mark.asyncio
    async def test_missing_series_propagates_in_strict_mode(self) -> None:
        """Test a body without the series key raises a data error."""
        client = make_client(lambda request: httpx.Response(200, json={"Meta Data": {}}))

        with pytest.raises(ProviderDataError):
            await client.get_intraday_data("IBM", "15min")
        await client.close()

    @pytest.mark.asyncio
    async def test_rate_limited_tsla_synthesizes_thirty_days(self) -> None:
        """Test a 429 for TSLA yields 30 daily points ending now."""
        client = make_client(lambda request: httpx.Response(429), policy=FailurePolicy.SYNTHESIZE)

        before = time.time()
        points = await client.get_intraday_data("TSLA", "1D")

        assert len(points) == 30
        assert all(a.time < b.time for a, b in zip(points, points[1:]))
        assert points[-1].time >= int(before) - 1
        assert points[-1].time - points[0].time == 29 * 86_400
        await client.close()

    @pytest.mark.asyncio
    async def test_synthesize_on_every_failure_kind(self) -> None:
        """Test the synthesize policy covers errors and missing series alike."""
        bodies = [
            httpx.Response(500),
            httpx.Response(200, json={"Information": "rate limit"}),
            httpx.Response(200, json={"Error Message": "bad"}),
            httpx.Response(200, json={}),
        ]
        for body in bodies:
            client = make_client(lambda request, body=body: body, policy=FailurePolicy.SYNTHESIZE)
            points = await client.get_intraday_data("IBM", "5min")
            assert len(points) == 30
            await client.close()

    @pytest.mark.asyncio
    async def test_synthetic_series_uses_injected_rng(self) -> None:
        """Test a seeded rng gives reproducible prices."""
        def failing(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429)

        first = make_client(failing, policy=FailurePolicy.SYNTHESIZE, rng=random.Random(7))
        second = make_client(failing, policy=FailurePolicy.SYNTHESIZE, rng=random.Random(7))

        a = await first.get_intraday_data("TSLA")
        b = await second.get_intraday_data("TSLA")

        assert [p.close for p in a] == [p.close for p in b]
        await first.close()
        await second.close()
