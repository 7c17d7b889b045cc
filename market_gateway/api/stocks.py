"""Stock quote, movers, search and chart endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, Query

from market_gateway.api.deps import require_gateway
from market_gateway.services.gateway import Gateway

router = APIRouter(prefix="/stocks", tags=["Stocks"])


@router.get("/quote/{symbol}")
async def get_quote(symbol: str, gateway: Gateway = Depends(require_gateway)) -> dict[str, Any]:
    """Current quote for a symbol (cached 15s)."""
    return await gateway.stocks.get_quote(symbol)


@router.get("/top-gainers")
async def get_top_gainers(gateway: Gateway = Depends(require_gateway)) -> list[dict[str, Any]]:
    """Watch-list sorted by changePercent, highest first."""
    return await gateway.stocks.get_top_gainers()


@router.get("/top-losers")
async def get_top_losers(gateway: Gateway = Depends(require_gateway)) -> list[dict[str, Any]]:
    """Watch-list sorted by changePercent, lowest first."""
    return await gateway.stocks.get_top_losers()


@router.get("/most-active")
async def get_most_active(gateway: Gateway = Depends(require_gateway)) -> list[dict[str, Any]]:
    """Watch-list sorted by absolute change, largest first."""
    return await gateway.stocks.get_most_active()


@router.get("/search")
async def search_stocks(
    q: str = Query(..., min_length=1, description="Ticker or company name"),
    gateway: Gateway = Depends(require_gateway),
) -> list[dict[str, Any]]:
    """Symbol search, uncached."""
    return await gateway.stocks.search_stocks(q)


@router.get("/chart/{symbol}")
async def get_chart(
    symbol: str,
    interval: str = Query(default="1D", description="1min, 5min, 15min, 30min, 60min or 1D"),
    gateway: Gateway = Depends(require_gateway),
) -> list[dict[str, Any]]:
    """Chart series, oldest point first (cached 5 min)."""
    return await gateway.stocks.get_chart_data(symbol, interval)
