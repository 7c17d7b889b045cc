"""Synthetic daily candles used when the chart provider is unavailable."""

import random
import time

from market_gateway.data.models import ChartPoint

SECONDS_PER_DAY = 86_400


def generate_synthetic_candles(
    days: int = 30,
    rng: random.Random | None = None,
    now: float | None = None,
) -> list[ChartPoint]:
    """Generate a plausible random-walk daily series ending today.

    The base price is drawn from [100, 500). Each day moves by up to
    +/-2% of the current price, opens at the previous close, and has
    ``high >= max(open, close)`` and ``low <= min(open, close)``.

    Args:
        days: Number of daily candles.
        rng: Random source (seed it for reproducible output).
        now: Unix time of the last candle; defaults to the current time.

    Returns:
        Candles ordered oldest first.
    """
    rng = rng or random.Random()
    now = time.time() if now is None else now

    price = round(100 + rng.random() * 400, 2)
    points: list[ChartPoint] = []

    for i in range(days - 1, -1, -1):
        volatility = price * 0.02
        open_ = price
        close = round(open_ + (rng.random() * 2 - 1) * volatility, 2)
        high = round(max(open_, close) + rng.random() * volatility * 0.5, 2)
        low = round(min(open_, close) - rng.random() * volatility * 0.5, 2)

        points.append(
            ChartPoint(
                time=int(now - i * SECONDS_PER_DAY),
                open=open_,
                high=high,
                low=low,
                close=close,
                volume=rng.randint(1_000_000, 5_999_999),
            )
        )
        price = close

    return points
