from datetime import datetime, timezone
from decimal import Decimal
from sqlalchemy import Column, DateTime, Integer
from sqlalchemy.orm import declarative_mixin


# Every student starts with, and may invest at most, this balance
STARTING_BALANCE = Decimal("100000.00")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@declarative_mixin
class TimestampMixin:
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

@declarative_mixin
class IdMixin:
    id = Column(Integer, primary_key=True, autoincrement=True)
