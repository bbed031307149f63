"""
Stock Prices API Router.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from classfolio.api.deps import get_price_service
from classfolio.services.price_freshness_service import PriceFreshnessService

router = APIRouter()

# ---------- Pydantic Schemas ----------

class StockQuoteSchema(BaseModel):
    symbol: str
    company_name: Optional[str]
    current_price: Decimal
    previous_close: Optional[Decimal]
    day_change: Optional[Decimal]
    day_change_percent: Optional[Decimal]
    market_status: Optional[str]
    last_updated: Optional[datetime]
    stale: bool = False

    class Config:
        from_attributes = True


# ---------- Endpoints ----------

@router.get("", response_model=list[StockQuoteSchema])
async def list_prices(
    symbol: str = "",
    limit: int = Query(default=100, ge=1, le=500),
    service: PriceFreshnessService = Depends(get_price_service),
):
    """List cached prices, optionally filtered by partial symbol."""
    return await service.list_prices(symbol=symbol, limit=limit)


@router.get("/search", response_model=list[StockQuoteSchema])
async def search_stocks(
    q: str = "",
    limit: int = Query(default=20, ge=1, le=100),
    service: PriceFreshnessService = Depends(get_price_service),
):
    """Search cached stocks by symbol or company name."""
    return await service.search_stocks(q, limit=limit)


@router.get("/{symbol}", response_model=StockQuoteSchema)
async def get_price(
    symbol: str,
    force_refresh: bool = False,
    service: PriceFreshnessService = Depends(get_price_service),
):
    """Get the current price, refetching from the provider when the cache is stale."""
    return await service.get_fresh_price(symbol, force_refresh=force_refresh)
