import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import classfolio.models  # noqa: F401  registers tables on Base.metadata
from classfolio.core.config import settings
from classfolio.core.database import Base
from classfolio.core.exceptions import UpstreamUnavailable
from classfolio.core.metrics import metrics
from classfolio.services.quotes.base import QuoteProvider, StockQuote

NOW = datetime(2025, 9, 2, 15, 0, tzinfo=timezone.utc)


class FrozenClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeQuoteProvider(QuoteProvider):
    """Serves configured prices; raises `error` for every call when set."""

    name = "fake"

    def __init__(self, prices=None, error: Exception | None = None):
        self.prices = {symbol: Decimal(str(price)) for symbol, price in (prices or {}).items()}
        self.error = error
        self.calls: list[str] = []

    async def fetch_quote(self, symbol: str) -> StockQuote:
        self.calls.append(symbol)
        if self.error is not None:
            raise self.error
        if symbol not in self.prices:
            raise UpstreamUnavailable(f"No quote for {symbol}")
        price = self.prices[symbol]
        return StockQuote(
            symbol=symbol,
            current_price=price,
            previous_close=price - Decimal("1.25"),
            day_change=Decimal("1.25"),
            day_change_percent=Decimal("1.4837"),
            market_status="open",
            last_updated=datetime.now(timezone.utc),
        )


class FakeStreamClient:
    """Async Redis stand-in recording XADD attempts; with hang=True they never complete."""

    def __init__(self, hang: bool = False, error: Exception | None = None):
        self.hang = hang
        self.error = error
        self.entries: list[tuple[str, dict]] = []

    async def xadd(self, stream, fields):
        self.entries.append((stream, fields))
        if self.hang:
            await asyncio.Event().wait()
        if self.error is not None:
            raise self.error


@pytest.fixture(autouse=True)
def isolate_side_channels(monkeypatch):
    monkeypatch.setattr(settings, "REALTIME_EVENTS_ENABLED", False)
    monkeypatch.setattr(settings, "ALPHA_VANTAGE_API_KEY", "test-key")
    metrics.clear_buffer()
    yield
    metrics.clear_buffer()


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Let SQLAlchemy own BEGIN so SAVEPOINTs behave under pysqlite
    @event.listens_for(engine.sync_engine, "connect")
    def _connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def session(engine):
    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with maker() as session:
        yield session


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def provider():
    return FakeQuoteProvider({"SHOP.TO": "85.50", "RY.TO": "150.00", "TD.TO": "80.00"})
