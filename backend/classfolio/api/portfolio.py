"""
Portfolio API Router.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from classfolio.api.deps import get_investment_service
from classfolio.services.investment_service import InvestmentService

router = APIRouter()

# ---------- Pydantic Schemas ----------

class HoldingCreate(BaseModel):
    user_id: UUID
    stock_symbol: str = Field(..., min_length=1, max_length=20)
    shares: int = Field(..., gt=0)


class HoldingSchema(BaseModel):
    user_id: UUID
    stock_symbol: str
    purchase_price: Decimal
    shares: int
    initial_value: Decimal
    purchase_date: datetime

    class Config:
        from_attributes = True


class PortfolioPerformanceSchema(BaseModel):
    user_id: UUID
    stock_symbol: str
    company_name: Optional[str]
    purchase_date: datetime
    purchase_price: Decimal
    shares: int
    initial_value: Decimal
    current_price: Decimal
    current_value: Decimal
    total_return: Decimal
    return_percentage: Decimal
    days_held: int
    market_status: Optional[str]
    last_updated: Optional[datetime]
    price_stale: bool


class EligibilitySchema(BaseModel):
    can_create: bool
    reason: Optional[str]
    has_holding: bool


class InvestmentCalculationSchema(BaseModel):
    stock_symbol: str
    current_price: Decimal
    available_funds: Decimal
    shares_purchasable: int
    total_cost: Decimal
    remaining_funds: Decimal


# ---------- Endpoints ----------

@router.post("", response_model=HoldingSchema, status_code=status.HTTP_201_CREATED)
async def create_holding(
    payload: HoldingCreate,
    service: InvestmentService = Depends(get_investment_service),
):
    """Make the user's single investment at the current price."""
    return await service.create_holding(payload.user_id, payload.stock_symbol, payload.shares)


@router.get("/calculate", response_model=InvestmentCalculationSchema)
async def calculate_investment(
    symbol: str,
    amount: Optional[Decimal] = Query(default=None, gt=0),
    service: InvestmentService = Depends(get_investment_service),
):
    """Shares purchasable for an amount (defaults to the starting balance)."""
    return await service.calculate_investment(symbol, amount)


@router.get("/{user_id}", response_model=PortfolioPerformanceSchema)
async def get_portfolio(
    user_id: UUID,
    service: InvestmentService = Depends(get_investment_service),
):
    """Current performance of the user's holding."""
    performance = await service.get_portfolio_performance(user_id)
    valuation, quote = performance.valuation, performance.quote
    return PortfolioPerformanceSchema(
        user_id=valuation.user_id,
        stock_symbol=valuation.stock_symbol,
        company_name=valuation.company_name,
        purchase_date=valuation.purchase_date,
        purchase_price=valuation.purchase_price,
        shares=valuation.shares,
        initial_value=valuation.initial_value,
        current_price=valuation.current_price,
        current_value=valuation.current_value,
        total_return=valuation.total_return,
        return_percentage=valuation.return_percentage,
        days_held=valuation.days_held,
        market_status=quote.market_status,
        last_updated=quote.last_updated,
        price_stale=quote.stale,
    )


@router.get("/{user_id}/eligibility", response_model=EligibilitySchema)
async def get_eligibility(
    user_id: UUID,
    service: InvestmentService = Depends(get_investment_service),
):
    """Whether the user may still make their investment."""
    return await service.can_create_holding(user_id)
