"""
Valuation Engine.

Pure computation of a holding's current worth against a quote.
"""
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from classfolio.core.exceptions import InvalidArgument, ZeroInitialValueError
from classfolio.models.base import utcnow
from classfolio.services.price_cache_store import as_utc
from classfolio.services.quotes.base import StockQuote


@dataclass
class Valuation:
    """Derived performance of one holding at one price."""
    user_id: UUID
    stock_symbol: str
    shares: int
    purchase_price: Decimal
    initial_value: Decimal
    purchase_date: datetime
    current_price: Decimal
    current_value: Decimal
    total_return: Decimal
    return_percentage: Decimal
    days_held: int
    company_name: Optional[str] = None


def valuate(holding, quote: StockQuote, now: Optional[datetime] = None) -> Valuation:
    """
    Value a holding at the quote's current price.

    Raises InvalidArgument if the quote is for a different symbol and
    ZeroInitialValueError if the holding's initial value is zero.
    """
    if quote.symbol != holding.stock_symbol:
        raise InvalidArgument(
            f"Quote symbol {quote.symbol} does not match holding symbol {holding.stock_symbol}"
        )

    initial_value = Decimal(holding.initial_value)
    if initial_value == 0:
        raise ZeroInitialValueError(
            f"Holding for user {holding.user_id} has zero initial value"
        )

    current_price = Decimal(quote.current_price)
    current_value = holding.shares * current_price
    total_return = current_value - initial_value
    return_percentage = total_return / initial_value * 100

    purchase_date = as_utc(holding.purchase_date)
    days_held = ((now or utcnow()) - purchase_date).days

    return Valuation(
        user_id=holding.user_id,
        stock_symbol=holding.stock_symbol,
        shares=holding.shares,
        purchase_price=Decimal(holding.purchase_price),
        initial_value=initial_value,
        purchase_date=purchase_date,
        current_price=current_price,
        current_value=current_value,
        total_return=total_return,
        return_percentage=return_percentage,
        days_held=days_held,
        company_name=quote.company_name,
    )
