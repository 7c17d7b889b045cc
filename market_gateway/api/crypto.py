"""Crypto price endpoints."""

from typing import Any

from fastapi import APIRouter, Depends

from market_gateway.api.deps import require_gateway
from market_gateway.services.gateway import Gateway

router = APIRouter(prefix="/crypto", tags=["Crypto"])


@router.get("/quote/{symbol}")
async def get_crypto_quote(symbol: str, gateway: Gateway = Depends(require_gateway)) -> dict[str, Any]:
    """Spot price, 24h change and 24h volume for a CoinGecko coin id."""
    return await gateway.crypto.get_quote(symbol)


@router.get("/trending")
async def get_trending(gateway: Gateway = Depends(require_gateway)) -> Any:
    """Trending coins snapshot."""
    return await gateway.crypto.get_trending()
