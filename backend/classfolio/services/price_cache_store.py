import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from classfolio.core.database import AsyncSessionLocal, dialect_insert
from classfolio.models.stock_price import StockPrice
from classfolio.services.quotes.base import StockQuote

logger = logging.getLogger(__name__)

UPDATABLE_COLUMNS = (
    "company_name",
    "current_price",
    "previous_close",
    "day_change",
    "day_change_percent",
    "market_status",
    "last_updated",
)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive timestamps read back from drivers that drop tzinfo."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class PriceCacheStore:
    """Durable quote cache: one stock_prices row per symbol, upsert by key."""

    def __init__(self, session: Optional[AsyncSession] = None):
        self.session = session

    async def get(self, symbol: str) -> Optional[StockQuote]:
        async with self._get_session() as session:
            stmt = (
                select(StockPrice)
                .where(StockPrice.symbol == symbol)
                .execution_options(populate_existing=True)
            )
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()
            return self._to_quote(row) if row is not None else None

    async def upsert(self, quote: StockQuote) -> StockQuote:
        """Insert or overwrite the row for quote.symbol and return it as stored."""
        values = {"symbol": quote.symbol}
        values.update({column: getattr(quote, column) for column in UPDATABLE_COLUMNS})

        async with self._get_session() as session:
            stmt = dialect_insert(session, StockPrice).values(**values)
            stmt = stmt.on_conflict_do_update(
                index_elements=["symbol"],
                set_={column: getattr(stmt.excluded, column) for column in UPDATABLE_COLUMNS},
            )
            async with session.begin_nested():
                await session.execute(stmt)

        stored = await self.get(quote.symbol)
        if stored is None:
            raise RuntimeError(f"Upserted quote for {quote.symbol} not readable")
        return stored

    async def list_quotes(self, symbol_filter: str = "", limit: Optional[int] = 100) -> list[StockQuote]:
        async with self._get_session() as session:
            stmt = select(StockPrice)
            if symbol_filter:
                stmt = stmt.where(StockPrice.symbol.ilike(f"%{symbol_filter}%"))
            stmt = stmt.order_by(StockPrice.company_name.asc(), StockPrice.symbol.asc())
            if limit:
                stmt = stmt.limit(limit)
            result = await session.execute(stmt)
            return [self._to_quote(row) for row in result.scalars().all()]

    async def search(self, query: str, limit: int = 20) -> list[StockQuote]:
        """Match symbol or company name, case-insensitively."""
        pattern = f"%{query}%"
        async with self._get_session() as session:
            stmt = (
                select(StockPrice)
                .where(or_(StockPrice.symbol.ilike(pattern), StockPrice.company_name.ilike(pattern)))
                .order_by(StockPrice.company_name.asc(), StockPrice.symbol.asc())
                .limit(limit)
            )
            result = await session.execute(stmt)
            return [self._to_quote(row) for row in result.scalars().all()]

    @staticmethod
    def _to_quote(row: StockPrice) -> StockQuote:
        return StockQuote(
            symbol=row.symbol,
            company_name=row.company_name,
            current_price=row.current_price,
            previous_close=row.previous_close,
            day_change=row.day_change,
            day_change_percent=row.day_change_percent,
            market_status=row.market_status,
            last_updated=as_utc(row.last_updated),
        )

    @asynccontextmanager
    async def _get_session(self):
        if self.session is not None:
            yield self.session
        else:
            async with AsyncSessionLocal() as session:
                try:
                    yield session
                    await session.commit()
                except Exception:
                    await session.rollback()
                    raise
