from sqlalchemy import CheckConstraint, Column, DateTime, Integer, Numeric, String, Uuid
from classfolio.core.database import Base
from classfolio.models.base import STARTING_BALANCE, IdMixin, TimestampMixin

class Holding(Base, IdMixin, TimestampMixin):
    """
    A student's single simulated stock position.
    Created once per user and never modified.
    """
    __tablename__ = "holdings"
    __table_args__ = (
        CheckConstraint("shares > 0", name="ck_holdings_shares_positive"),
        CheckConstraint("purchase_price > 0", name="ck_holdings_purchase_price_positive"),
        CheckConstraint(f"initial_value <= {STARTING_BALANCE}", name="ck_holdings_initial_value_budget"),
    )

    user_id = Column(Uuid, unique=True, nullable=False)
    stock_symbol = Column(String(20), nullable=False, index=True)
    purchase_price = Column(Numeric(14, 4), nullable=False)
    shares = Column(Integer, nullable=False)
    initial_value = Column(Numeric(16, 4), nullable=False)
    purchase_date = Column(DateTime(timezone=True), nullable=False)
