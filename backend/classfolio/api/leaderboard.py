"""
Leaderboard API Router.
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from classfolio.api.deps import get_leaderboard_service
from classfolio.services.leaderboard_service import LeaderboardService

router = APIRouter()

# ---------- Pydantic Schemas ----------

class LeaderboardEntrySchema(BaseModel):
    rank: int
    user_id: UUID
    class_id: Optional[UUID]
    stock_symbol: str
    company_name: Optional[str]
    shares: int
    purchase_price: Decimal
    purchase_date: datetime
    initial_value: Decimal
    current_price: Decimal
    current_value: Decimal
    total_return: Decimal
    return_percentage: Decimal
    days_held: int

    class Config:
        from_attributes = True


# ---------- Endpoints ----------

@router.get("", response_model=list[LeaderboardEntrySchema])
async def get_leaderboard(
    class_id: Optional[UUID] = None,
    service: LeaderboardService = Depends(get_leaderboard_service),
):
    """Ranked by return percentage, optionally within one class."""
    return await service.get_leaderboard(class_id)


@router.get("/{class_id}/users/{user_id}", response_model=LeaderboardEntrySchema)
async def get_user_rank(
    class_id: UUID,
    user_id: UUID,
    service: LeaderboardService = Depends(get_leaderboard_service),
):
    """A single student's entry on a class leaderboard."""
    return await service.get_user_rank(class_id, user_id)
