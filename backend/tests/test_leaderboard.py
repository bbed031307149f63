import uuid
from datetime import timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from classfolio.core.exceptions import InvalidArgument, NotFound, UpstreamUnavailable
from classfolio.models.class_membership import ClassMembership
from classfolio.models.holding import Holding
from classfolio.services.class_service import ClassService
from classfolio.services.leaderboard_service import LeaderboardService, rank
from classfolio.services.price_cache_store import PriceCacheStore
from classfolio.services.price_freshness_service import PriceFreshnessService
from classfolio.services.quotes.alpha_vantage_provider import AlphaVantageProvider
from classfolio.services.quotes.base import StockQuote
from classfolio.services.valuation import Valuation

from conftest import NOW, FakeQuoteProvider


def make_valuation(user_id, return_percentage):
    pct = Decimal(str(return_percentage))
    return Valuation(
        user_id=user_id,
        stock_symbol="SHOP.TO",
        shares=1000,
        purchase_price=Decimal("100"),
        initial_value=Decimal("100000"),
        purchase_date=NOW,
        current_price=Decimal("100") * (1 + pct / 100),
        current_value=Decimal("100000") * (1 + pct / 100),
        total_return=Decimal("1000") * pct,
        return_percentage=pct,
        days_held=0,
    )


def test_rank_sorts_descending_with_sequential_ranks():
    users = [uuid.uuid4() for _ in range(4)]
    valuations = [
        make_valuation(users[0], -2.5),
        make_valuation(users[1], 15),
        make_valuation(users[2], 3.22),
        make_valuation(users[3], 0),
    ]

    entries = rank(valuations)

    assert [e.rank for e in entries] == [1, 2, 3, 4]
    assert [e.user_id for e in entries] == [users[1], users[2], users[3], users[0]]
    percentages = [e.return_percentage for e in entries]
    assert percentages == sorted(percentages, reverse=True)


def test_ties_get_distinct_ranks_ordered_by_user_id():
    a = uuid.UUID("00000000-0000-0000-0000-00000000000a")
    b = uuid.UUID("00000000-0000-0000-0000-00000000000b")

    first = rank([make_valuation(b, 5), make_valuation(a, 5)])
    second = rank([make_valuation(a, 5), make_valuation(b, 5)])

    assert [(e.rank, e.user_id) for e in first] == [(1, a), (2, b)]
    assert [(e.rank, e.user_id) for e in first] == [(e.rank, e.user_id) for e in second]


def test_rank_filters_to_class_members():
    class_id, other_class = uuid.uuid4(), uuid.uuid4()
    inside, outside = uuid.uuid4(), uuid.uuid4()
    memberships = [
        SimpleNamespace(user_id=inside, class_id=class_id),
        SimpleNamespace(user_id=outside, class_id=other_class),
    ]

    entries = rank(
        [make_valuation(outside, 20), make_valuation(inside, 1)],
        class_id=class_id,
        memberships=memberships,
    )

    assert [(e.rank, e.user_id, e.class_id) for e in entries] == [(1, inside, class_id)]


def test_rank_within_class_requires_memberships():
    with pytest.raises(InvalidArgument):
        rank([], class_id=uuid.uuid4())


def test_rank_of_nothing_is_empty():
    assert rank([]) == []


async def seed_holding(session, user_id, symbol, shares, price):
    price = Decimal(price)
    session.add(Holding(
        user_id=user_id,
        stock_symbol=symbol,
        purchase_price=price,
        shares=shares,
        initial_value=shares * price,
        purchase_date=NOW - timedelta(days=7),
    ))
    await session.flush()


async def seed_price(session, symbol, price, age=timedelta(minutes=1)):
    await PriceCacheStore(session=session).upsert(StockQuote(
        symbol=symbol,
        company_name=symbol,
        current_price=Decimal(price),
        last_updated=NOW - age,
    ))


@pytest.fixture
async def school_class(session):
    service = ClassService(session=session)
    return await service.create_class("Intro to Investing", "Fall 2025", NOW.date(), NOW.date() + timedelta(days=90))


def make_service(session, provider, clock):
    prices = PriceFreshnessService(session=session, provider=provider, clock=clock)
    return LeaderboardService(session=session, price_service=prices, clock=clock)


async def test_leaderboard_values_holdings_at_cached_prices(session, provider, clock):
    alice, bob = uuid.uuid4(), uuid.uuid4()
    await seed_holding(session, alice, "SHOP.TO", 1170, "85.00")
    await seed_holding(session, bob, "RY.TO", 600, "160.00")
    await seed_price(session, "SHOP.TO", "88.25")
    await seed_price(session, "RY.TO", "150.00")

    entries = await make_service(session, provider, clock).get_leaderboard()

    assert [(e.rank, e.user_id) for e in entries] == [(1, alice), (2, bob)]
    assert entries[0].current_value == Decimal("103252.50")
    assert entries[0].days_held == 7
    assert entries[1].total_return == Decimal("-6000.00")
    assert provider.calls == []


async def test_class_leaderboard_only_ranks_members(session, provider, clock, school_class):
    member, outsider = uuid.uuid4(), uuid.uuid4()
    session.add(ClassMembership(user_id=member, class_id=school_class.id, starting_balance=100000, joined_at=NOW))
    await seed_holding(session, member, "SHOP.TO", 100, "85.50")
    await seed_holding(session, outsider, "SHOP.TO", 100, "10.00")
    await seed_price(session, "SHOP.TO", "90.00")

    entries = await make_service(session, provider, clock).get_leaderboard(school_class.id)

    assert [(e.rank, e.user_id, e.class_id) for e in entries] == [(1, member, school_class.id)]


async def test_holders_of_unpriceable_symbols_are_skipped(session, clock):
    priced, unpriced = uuid.uuid4(), uuid.uuid4()
    await seed_holding(session, priced, "SHOP.TO", 100, "85.50")
    await seed_holding(session, unpriced, "XYZ.TO", 100, "10.00")
    await seed_price(session, "SHOP.TO", "90.00")
    failing = FakeQuoteProvider(error=UpstreamUnavailable("provider down"))

    entries = await make_service(session, failing, clock).get_leaderboard()

    assert [e.user_id for e in entries] == [priced]


async def test_stale_prices_still_rank_when_provider_fails(session, clock):
    user = uuid.uuid4()
    await seed_holding(session, user, "SHOP.TO", 100, "85.50")
    await seed_price(session, "SHOP.TO", "90.00", age=timedelta(days=1))
    failing = FakeQuoteProvider(error=UpstreamUnavailable("provider down"))

    entries = await make_service(session, failing, clock).get_leaderboard()

    assert entries[0].current_price == Decimal("90.00")


async def test_user_rank_in_class(session, provider, clock, school_class):
    first, second = uuid.uuid4(), uuid.uuid4()
    for user, price in ((first, "50.00"), (second, "80.00")):
        session.add(ClassMembership(user_id=user, class_id=school_class.id, starting_balance=100000, joined_at=NOW))
        await seed_holding(session, user, "SHOP.TO", 100, price)
    await seed_price(session, "SHOP.TO", "85.50")
    service = make_service(session, provider, clock)

    entry = await service.get_user_rank(school_class.id, second)
    assert entry.rank == 2

    with pytest.raises(NotFound):
        await service.get_user_rank(school_class.id, uuid.uuid4())


async def test_missing_api_key_ranks_on_cached_prices(session, clock):
    cached, uncached = uuid.uuid4(), uuid.uuid4()
    await seed_holding(session, cached, "SHOP.TO", 100, "85.50")
    await seed_holding(session, uncached, "XYZ.TO", 100, "10.00")
    await seed_price(session, "SHOP.TO", "90.00", age=timedelta(hours=1))
    unconfigured = AlphaVantageProvider(api_key="")

    entries = await make_service(session, unconfigured, clock).get_leaderboard()

    assert [(e.rank, e.user_id) for e in entries] == [(1, cached)]
    assert entries[0].current_price == Decimal("90.00")
