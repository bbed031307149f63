import uuid
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from classfolio.core.exceptions import (
    AlreadyInvested,
    BudgetExceeded,
    InvalidArgument,
    NotFound,
    UpstreamUnavailable,
)
from classfolio.core.metrics import metrics
from classfolio.models.base import STARTING_BALANCE
from classfolio.models.holding import Holding
from classfolio.services.holding_store import HoldingStore
from classfolio.services.investment_service import InvestmentService
from classfolio.services.price_freshness_service import PriceFreshnessService

from conftest import NOW, FakeQuoteProvider


class RacingHoldingStore(HoldingStore):
    """Misses the existing holding, as a concurrent request would."""

    async def get_by_user(self, user_id):
        return None


@pytest.fixture
def price_service(session, provider, clock):
    return PriceFreshnessService(session=session, provider=provider, clock=clock)


@pytest.fixture
def service(session, price_service, clock):
    return InvestmentService(session=session, price_service=price_service, clock=clock)


async def count_holdings(session, user_id=None):
    stmt = select(func.count()).select_from(Holding)
    if user_id is not None:
        stmt = stmt.where(Holding.user_id == user_id)
    return (await session.execute(stmt)).scalar_one()


async def test_create_holding_within_budget(service, session):
    user_id = uuid.uuid4()

    holding = await service.create_holding(user_id, "shop", 1169)

    assert holding.user_id == user_id
    assert holding.stock_symbol == "SHOP.TO"
    assert holding.shares == 1169
    assert holding.purchase_price == Decimal("85.50")
    assert holding.initial_value == Decimal("99949.50")
    assert await count_holdings(session, user_id) == 1
    assert metrics.get_summary()["holdings_created"] == 1


async def test_cost_equal_to_budget_is_accepted(session, clock):
    prices = PriceFreshnessService(session=session, provider=FakeQuoteProvider({"BIG.TO": "1000.00"}), clock=clock)
    service = InvestmentService(session=session, price_service=prices, clock=clock)

    holding = await service.create_holding(uuid.uuid4(), "BIG", 100)

    assert holding.initial_value == Decimal("100000.00")


async def test_over_budget_is_rejected_without_writing(service, session):
    user_id = uuid.uuid4()

    with pytest.raises(BudgetExceeded):
        await service.create_holding(user_id, "SHOP.TO", 1170)

    assert await count_holdings(session) == 0
    assert metrics.get_summary()["investments_rejected"] == 1


async def test_second_holding_is_rejected(service, session):
    user_id = uuid.uuid4()
    await service.create_holding(user_id, "SHOP.TO", 100)

    with pytest.raises(AlreadyInvested):
        await service.create_holding(user_id, "RY.TO", 10)

    assert await count_holdings(session, user_id) == 1


async def test_unique_constraint_catches_racing_insert(service, session, price_service, clock):
    user_id = uuid.uuid4()
    await service.create_holding(user_id, "SHOP.TO", 100)
    racer = InvestmentService(
        session=session,
        price_service=price_service,
        holding_store=RacingHoldingStore(session=session),
        clock=clock,
    )

    with pytest.raises(AlreadyInvested):
        await racer.create_holding(user_id, "TD.TO", 50)

    assert await count_holdings(session, user_id) == 1
    holding = await HoldingStore(session=session).get_by_user(user_id)
    assert holding.stock_symbol == "SHOP.TO"


@pytest.mark.parametrize("shares", [0, -5, 2.5, "10", True])
async def test_invalid_share_counts(service, shares):
    with pytest.raises(InvalidArgument):
        await service.create_holding(uuid.uuid4(), "SHOP.TO", shares)


async def test_price_unavailable_creates_nothing(session, clock):
    prices = PriceFreshnessService(
        session=session,
        provider=FakeQuoteProvider(error=UpstreamUnavailable("down")),
        clock=clock,
    )
    service = InvestmentService(session=session, price_service=prices, clock=clock)

    with pytest.raises(UpstreamUnavailable):
        await service.create_holding(uuid.uuid4(), "SHOP.TO", 10)

    assert await count_holdings(session) == 0


async def test_calculate_investment_floors_shares(service):
    calc = await service.calculate_investment("SHOP.TO")

    assert calc.shares_purchasable == 1169
    assert calc.total_cost == Decimal("99949.50")
    assert calc.remaining_funds == Decimal("50.50")
    assert calc.available_funds == Decimal("100000.00")


async def test_calculate_investment_with_amount(service):
    calc = await service.calculate_investment("RY", Decimal("1000"))

    assert calc.stock_symbol == "RY.TO"
    assert calc.shares_purchasable == 6
    assert calc.total_cost == Decimal("900.00")
    assert calc.remaining_funds == Decimal("100.00")


async def test_calculate_investment_rejects_non_positive_amount(service):
    with pytest.raises(InvalidArgument):
        await service.calculate_investment("RY.TO", Decimal("0"))


async def test_eligibility(service):
    user_id = uuid.uuid4()

    before = await service.can_create_holding(user_id)
    await service.create_holding(user_id, "TD.TO", 10)
    after = await service.can_create_holding(user_id)

    assert before.can_create and not before.has_holding and before.reason is None
    assert not after.can_create and after.has_holding
    assert after.reason == "User already has a portfolio"


async def test_portfolio_performance(service, clock):
    user_id = uuid.uuid4()
    await service.create_holding(user_id, "SHOP.TO", 1000)
    clock.advance(days=3)

    performance = await service.get_portfolio_performance(user_id)

    assert performance.quote.symbol == "SHOP.TO"
    assert performance.valuation.days_held == 3
    assert performance.valuation.current_value == 1000 * performance.quote.current_price
    assert performance.valuation.purchase_date == NOW


async def test_portfolio_performance_without_holding(service):
    with pytest.raises(NotFound) as exc_info:
        await service.get_portfolio_performance(uuid.uuid4())
    assert exc_info.value.code == "NO_PORTFOLIO"


def test_budget_check_constraint_matches_service_budget():
    constraint = next(
        c for c in Holding.__table__.constraints if c.name == "ck_holdings_initial_value_budget"
    )

    assert InvestmentService().budget == STARTING_BALANCE
    assert str(constraint.sqltext) == f"initial_value <= {STARTING_BALANCE}"
