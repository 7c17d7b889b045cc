"""Market overview and index endpoints."""

from typing import Any

from fastapi import APIRouter, Depends

from market_gateway.api.deps import require_gateway
from market_gateway.services.gateway import Gateway

router = APIRouter(prefix="/market", tags=["Market"])


@router.get("/overview")
async def get_overview(gateway: Gateway = Depends(require_gateway)) -> dict[str, Any]:
    """Top gainers, top losers and most active in one response."""
    return await gateway.market.get_overview()


@router.get("/indices")
async def get_indices(gateway: Gateway = Depends(require_gateway)) -> list[dict[str, Any]]:
    """Quotes for SPY, DIA, QQQ and IWM in that order."""
    return await gateway.market.get_indices()
