"""Market news endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, Query

from market_gateway.api.deps import require_gateway
from market_gateway.services.gateway import Gateway

router = APIRouter(prefix="/news", tags=["News"])


@router.get("")
async def get_news(
    category: str = Query(default="general", description="general, forex, crypto or merger"),
    gateway: Gateway = Depends(require_gateway),
) -> list[dict[str, Any]]:
    """News for a category."""
    return await gateway.news.get_news(category)


@router.get("/market")
async def get_market_news(gateway: Gateway = Depends(require_gateway)) -> list[dict[str, Any]]:
    """General market news; same as ``/news?category=general``."""
    return await gateway.news.get_market_news()
