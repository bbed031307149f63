import logging
from contextlib import asynccontextmanager
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from classfolio.core.database import AsyncSessionLocal
from classfolio.core.exceptions import AlreadyInvested
from classfolio.models.holding import Holding

logger = logging.getLogger(__name__)


class HoldingStore:
    """Holdings keyed by user_id; the unique constraint is the source of truth."""

    def __init__(self, session: Optional[AsyncSession] = None):
        self.session = session

    async def get_by_user(self, user_id: UUID) -> Optional[Holding]:
        async with self._get_session() as session:
            result = await session.execute(select(Holding).where(Holding.user_id == user_id))
            return result.scalar_one_or_none()

    async def insert(self, holding: Holding) -> Holding:
        """
        Persist a new holding. A duplicate user_id raises AlreadyInvested and
        leaves nothing written.
        """
        async with self._get_session() as session:
            try:
                async with session.begin_nested():
                    session.add(holding)
            except IntegrityError as e:
                if "user_id" in str(e.orig):
                    raise AlreadyInvested("User already has a portfolio") from e
                raise
            await session.refresh(holding)
            return holding

    async def list_all(self) -> list[Holding]:
        async with self._get_session() as session:
            result = await session.execute(select(Holding).order_by(Holding.id.asc()))
            return list(result.scalars().all())

    async def list_for_users(self, user_ids: Iterable[UUID]) -> list[Holding]:
        ids = list(user_ids)
        if not ids:
            return []
        async with self._get_session() as session:
            result = await session.execute(
                select(Holding).where(Holding.user_id.in_(ids)).order_by(Holding.id.asc())
            )
            return list(result.scalars().all())

    async def held_symbols(self) -> list[str]:
        async with self._get_session() as session:
            result = await session.execute(
                select(Holding.stock_symbol).distinct().order_by(Holding.stock_symbol.asc())
            )
            return list(result.scalars().all())

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
