"""
Classes API Router.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from classfolio.api.deps import get_class_service
from classfolio.services.class_service import ClassService

router = APIRouter()

# ---------- Pydantic Schemas ----------

class ClassCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    semester: str = Field(..., max_length=50)
    start_date: date
    end_date: date
    is_active: bool = True


class ClassSchema(BaseModel):
    id: UUID
    name: str
    semester: str
    start_date: date
    end_date: date
    invite_code: str
    is_active: bool

    class Config:
        from_attributes = True


class JoinRequest(BaseModel):
    user_id: UUID
    invite_code: str = Field(..., max_length=6)


class MembershipSchema(BaseModel):
    user_id: UUID
    class_id: UUID
    starting_balance: Decimal
    joined_at: datetime
    school_class: Optional[ClassSchema] = None

    class Config:
        from_attributes = True


# ---------- Endpoints ----------

@router.post("", response_model=ClassSchema, status_code=status.HTTP_201_CREATED)
async def create_class(
    payload: ClassCreate,
    service: ClassService = Depends(get_class_service),
):
    """Create a class with a generated invite code."""
    return await service.create_class(
        name=payload.name,
        semester=payload.semester,
        start_date=payload.start_date,
        end_date=payload.end_date,
        is_active=payload.is_active,
    )


@router.get("", response_model=list[ClassSchema])
async def list_classes(
    is_active: Optional[bool] = None,
    service: ClassService = Depends(get_class_service),
):
    return await service.list_classes(is_active=is_active)


@router.post("/join", response_model=MembershipSchema, status_code=status.HTTP_201_CREATED)
async def join_class(
    payload: JoinRequest,
    service: ClassService = Depends(get_class_service),
):
    """Join a class by invite code."""
    return await service.join_class(payload.user_id, payload.invite_code)


@router.get("/users/{user_id}", response_model=list[MembershipSchema])
async def get_user_memberships(
    user_id: UUID,
    service: ClassService = Depends(get_class_service),
):
    return await service.get_user_memberships(user_id)


@router.get("/{class_id}", response_model=ClassSchema)
async def get_class(
    class_id: UUID,
    service: ClassService = Depends(get_class_service),
):
    return await service.get_class(class_id)


@router.get("/{class_id}/members", response_model=list[MembershipSchema])
async def get_class_members(
    class_id: UUID,
    service: ClassService = Depends(get_class_service),
):
    return await service.get_class_members(class_id)


@router.delete("/{class_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def leave_class(
    class_id: UUID,
    user_id: UUID,
    service: ClassService = Depends(get_class_service),
):
    """Always refused: students cannot leave a class."""
    await service.leave_class(class_id, user_id)
