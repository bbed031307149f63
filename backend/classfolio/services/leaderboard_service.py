"""
Leaderboard Ranking Service.

Ranks students by return percentage, optionally within one class.
Ties get distinct sequential ranks, ordered by user_id.
"""
import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterable, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from classfolio.core.exceptions import ConfigurationError, InvalidArgument, NotFound, UpstreamUnavailable
from classfolio.core.metrics import metrics
from classfolio.models.base import utcnow
from classfolio.services.class_service import ClassService
from classfolio.services.holding_store import HoldingStore
from classfolio.services.price_freshness_service import PriceFreshnessService
from classfolio.services.quotes.base import StockQuote
from classfolio.services.valuation import Valuation, valuate

logger = logging.getLogger(__name__)


@dataclass
class LeaderboardEntry:
    rank: int
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
    class_id: Optional[UUID] = None


def rank(
    valuations: Iterable[Valuation],
    class_id: Optional[UUID] = None,
    memberships: Optional[Iterable] = None,
) -> list[LeaderboardEntry]:
    """
    Order valuations by return_percentage descending and number them 1..N.

    With class_id, only users holding a membership in that class are kept;
    memberships must then be supplied (objects with user_id and class_id).
    """
    candidates = list(valuations)
    if class_id is not None:
        if memberships is None:
            raise InvalidArgument("memberships are required to rank within a class")
        members = {m.user_id for m in memberships if m.class_id == class_id}
        candidates = [v for v in candidates if v.user_id in members]

    ordered = sorted(candidates, key=lambda v: (-v.return_percentage, str(v.user_id)))
    return [
        LeaderboardEntry(rank=position, class_id=class_id, **asdict(valuation))
        for position, valuation in enumerate(ordered, start=1)
    ]


class LeaderboardService:
    """Assemble holdings, fresh prices and memberships into ranked leaderboards."""

    def __init__(
        self,
        session: Optional[AsyncSession] = None,
        price_service: Optional[PriceFreshnessService] = None,
        holding_store: Optional[HoldingStore] = None,
        class_service: Optional[ClassService] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.price_service = price_service or PriceFreshnessService(session=session)
        self.holdings = holding_store or HoldingStore(session=session)
        self.classes = class_service or ClassService(session=session)
        self.clock = clock or utcnow

    async def get_leaderboard(self, class_id: Optional[UUID] = None) -> list[LeaderboardEntry]:
        memberships = None
        if class_id is not None:
            memberships = await self.classes.get_class_members(class_id)
            holdings = await self.holdings.list_for_users(m.user_id for m in memberships)
        else:
            holdings = await self.holdings.list_all()

        quotes = await self._quotes_for({h.stock_symbol for h in holdings})
        now = self.clock()

        valuations: list[Valuation] = []
        skipped = 0
        for holding in holdings:
            quote = quotes.get(holding.stock_symbol)
            if quote is None:
                skipped += 1
                continue
            valuations.append(valuate(holding, quote, now=now))

        entries = rank(valuations, class_id=class_id, memberships=memberships)
        metrics.leaderboard_built(len(entries), skipped, str(class_id) if class_id else None)
        return entries

    async def get_user_rank(self, class_id: UUID, user_id: UUID) -> LeaderboardEntry:
        for entry in await self.get_leaderboard(class_id):
            if entry.user_id == user_id:
                return entry
        raise NotFound("User not found in class leaderboard", code="NO_RANK")

    async def _quotes_for(self, symbols: set[str]) -> dict[str, StockQuote]:
        # Sequential: the session is not safe for concurrent use
        quotes: dict[str, StockQuote] = {}
        for symbol in sorted(symbols):
            try:
                quotes[symbol] = await self.price_service.get_fresh_price(symbol)
            except ConfigurationError as e:
                logger.error(f"Quote provider misconfigured, ranking {symbol} on cached price: {e}")
                cached = await self._cached_quote(symbol)
                if cached is not None:
                    quotes[symbol] = cached
            except (UpstreamUnavailable, NotFound) as e:
                logger.warning(f"Leaderboard skipping holders of {symbol}: {e}")
        return quotes

    async def _cached_quote(self, symbol: str) -> Optional[StockQuote]:
        try:
            return (await self.price_service.get_cached_price(symbol)).as_stale()
        except NotFound:
            logger.warning(f"Leaderboard skipping holders of {symbol}: nothing cached")
            return None
