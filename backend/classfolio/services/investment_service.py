"""
Investment Eligibility Service.

Enforces the single-shot investment model: one holding per student, bought
at the current price, costing no more than the starting balance.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_FLOOR
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from classfolio.core.exceptions import AlreadyInvested, BudgetExceeded, InvalidArgument, NotFound
from classfolio.core.metrics import metrics
from classfolio.core.redis import StreamNames, publish_event
from classfolio.models.base import STARTING_BALANCE, utcnow
from classfolio.models.holding import Holding
from classfolio.services.holding_store import HoldingStore
from classfolio.services.price_freshness_service import PriceFreshnessService
from classfolio.services.quotes.base import StockQuote
from classfolio.services.valuation import Valuation, valuate

logger = logging.getLogger(__name__)


@dataclass
class InvestmentCalculation:
    """How many whole shares a budget buys at the current price."""
    stock_symbol: str
    current_price: Decimal
    available_funds: Decimal
    shares_purchasable: int
    total_cost: Decimal
    remaining_funds: Decimal


@dataclass
class Eligibility:
    can_create: bool
    reason: Optional[str]
    has_holding: bool


@dataclass
class PortfolioPerformance:
    valuation: Valuation
    quote: StockQuote


class InvestmentService:
    """Create holdings and report on them."""

    def __init__(
        self,
        session: Optional[AsyncSession] = None,
        price_service: Optional[PriceFreshnessService] = None,
        holding_store: Optional[HoldingStore] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.price_service = price_service or PriceFreshnessService(session=session)
        self.holdings = holding_store or HoldingStore(session=session)
        self.clock = clock or utcnow
        self.budget = STARTING_BALANCE

    async def create_holding(self, user_id: UUID, symbol: str, shares: int) -> Holding:
        """
        Buy `shares` of `symbol` at the current price for `user_id`.

        The existing-holding check is a fast path; the unique constraint on
        holdings.user_id decides races between concurrent calls.
        """
        if isinstance(shares, bool) or not isinstance(shares, int) or shares <= 0:
            raise InvalidArgument("Shares must be a positive integer")

        if await self.holdings.get_by_user(user_id) is not None:
            metrics.investment_rejected(symbol, AlreadyInvested.code)
            raise AlreadyInvested("User already has a portfolio")

        quote = await self.price_service.get_fresh_price(symbol)
        purchase_price = Decimal(quote.current_price)
        total_cost = shares * purchase_price

        if total_cost > self.budget:
            metrics.investment_rejected(quote.symbol, BudgetExceeded.code)
            raise BudgetExceeded(
                f"Investment of {total_cost} exceeds available funds of {self.budget}"
            )

        holding = Holding(
            user_id=user_id,
            stock_symbol=quote.symbol,
            purchase_price=purchase_price,
            shares=shares,
            initial_value=total_cost,
            purchase_date=self.clock(),
        )
        try:
            holding = await self.holdings.insert(holding)
        except AlreadyInvested:
            metrics.investment_rejected(quote.symbol, AlreadyInvested.code)
            raise

        logger.info(f"User {user_id} bought {shares} {quote.symbol} at {purchase_price}")
        metrics.holding_created(quote.symbol, shares, float(total_cost))
        await publish_event(StreamNames.HOLDINGS, "holding_created", {
            "user_id": user_id,
            "stock_symbol": holding.stock_symbol,
            "shares": holding.shares,
            "initial_value": holding.initial_value,
        })
        return holding

    async def can_create_holding(self, user_id: UUID) -> Eligibility:
        existing = await self.holdings.get_by_user(user_id)
        if existing is not None:
            return Eligibility(can_create=False, reason="User already has a portfolio", has_holding=True)
        return Eligibility(can_create=True, reason=None, has_holding=False)

    async def calculate_investment(
        self, symbol: str, amount: Optional[Decimal] = None
    ) -> InvestmentCalculation:
        funds = self.budget if amount is None else Decimal(amount)
        if funds <= 0:
            raise InvalidArgument("Investment amount must be positive")

        quote = await self.price_service.get_fresh_price(symbol)
        price = Decimal(quote.current_price)
        shares = int((funds / price).to_integral_value(rounding=ROUND_FLOOR))
        total_cost = shares * price

        return InvestmentCalculation(
            stock_symbol=quote.symbol,
            current_price=price,
            available_funds=funds,
            shares_purchasable=shares,
            total_cost=total_cost,
            remaining_funds=funds - total_cost,
        )

    async def get_portfolio_performance(self, user_id: UUID) -> PortfolioPerformance:
        holding = await self.holdings.get_by_user(user_id)
        if holding is None:
            raise NotFound("No portfolio found", code="NO_PORTFOLIO")

        quote = await self.price_service.get_fresh_price(holding.stock_symbol)
        return PortfolioPerformance(
            valuation=valuate(holding, quote, now=self.clock()),
            quote=quote,
        )
