"""Data models for the market data gateway.

This module defines the Pydantic models returned by the provider clients
and served by the gateway. Field names serialize in camelCase, which is
the shape the dashboard consumes (``changePercent``, ``previousClose``).
"""

import time
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class GatewayModel(BaseModel):
    """Base model: camelCase on the wire, snake_case in Python, immutable."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """Dump to the JSON-compatible camelCase shape used on the wire."""
        return self.model_dump(mode="json", by_alias=True)


class MoverKind(str, Enum):
    """Ranking applied to the watch-list."""

    GAINERS = "gainers"
    LOSERS = "losers"
    ACTIVE = "active"


class Quote(GatewayModel):
    """One symbol's quote at one fetch instant.

    Attributes:
        symbol: Upper-cased ticker symbol.
        name: Display name (the provider quote endpoint has none, so the symbol).
        price: Current price.
        change: Absolute change from previous close.
        change_percent: Percentage change from previous close.
        high: Day high.
        low: Day low.
        open: Day open.
        previous_close: Previous close.
        timestamp: Quote time in unix seconds.
    """

    symbol: str
    name: str
    price: float = 0.0
    change: float = 0.0
    change_percent: float = 0.0
    high: float | None = None
    low: float | None = None
    open: float | None = None
    previous_close: float | None = None
    timestamp: float | None = None

    @classmethod
    def zero(cls, symbol: str) -> "Quote":
        """Zero-valued placeholder for a symbol whose quote is unavailable."""
        symbol = symbol.upper()
        return cls(
            symbol=symbol,
            name=symbol,
            price=0.0,
            change=0.0,
            change_percent=0.0,
            high=0.0,
            low=0.0,
            open=0.0,
            previous_close=0.0,
            timestamp=time.time(),
        )


class ChartPoint(GatewayModel):
    """OHLCV candle; ``time`` is unix seconds."""

    time: int
    open: float
    high: float
    low: float
    close: float
    volume: int


class SymbolMatch(GatewayModel):
    """Symbol search hit."""

    symbol: str
    description: str = ""
    type: str = ""


class NewsArticle(GatewayModel):
    """News article passed through from the provider.

    Attributes:
        id: Provider article id.
        headline: Article headline.
        summary: Short summary.
        source: Publisher name.
        url: Article URL.
        image: Optional image URL.
        datetime: Publication time in unix seconds.
        category: Optional provider category.
    """

    model_config = ConfigDict(extra="allow")

    id: int | str
    headline: str = ""
    summary: str = ""
    source: str = ""
    url: str = ""
    image: str | None = None
    datetime: int = 0
    category: str | None = None


class MarketOverview(GatewayModel):
    """Composite of the three mover lists."""

    top_gainers: list[Quote] = Field(default_factory=list)
    top_losers: list[Quote] = Field(default_factory=list)
    most_active: list[Quote] = Field(default_factory=list)
