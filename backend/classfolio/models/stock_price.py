from sqlalchemy import Column, String, Numeric, DateTime
from classfolio.core.database import Base

class StockPrice(Base):
    """
    Cached quote, one row per exchange-suffixed symbol.
    Overwritten in place by the price freshness upsert; never deleted.
    """
    __tablename__ = "stock_prices"

    symbol = Column(String(20), primary_key=True)
    company_name = Column(String(255), nullable=False)
    current_price = Column(Numeric(14, 4), nullable=False)
    previous_close = Column(Numeric(14, 4))
    day_change = Column(Numeric(14, 4))
    day_change_percent = Column(Numeric(10, 4))
    market_status = Column(String(20))  # open, closed, pre-market, after-hours
    last_updated = Column(DateTime(timezone=True), nullable=False)
