"""
Price Freshness Service.

Decides per symbol whether to serve the cached quote or refetch it from the
quote provider. The cache is a read-through buffer: reads stay available when
the provider is down (stale data is served) and cache writes are best-effort.
"""
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from classfolio.core.config import settings
from classfolio.core.exceptions import ConfigurationError, NotFound, UpstreamUnavailable
from classfolio.core.metrics import metrics
from classfolio.core.redis import StreamNames, publish_event
from classfolio.models.base import utcnow
from classfolio.services.price_cache_store import PriceCacheStore, as_utc
from classfolio.services.quotes import QuoteProvider, StockQuote, get_quote_provider
from classfolio.services.symbols import normalize_symbol

logger = logging.getLogger(__name__)

MIN_SEARCH_LENGTH = 2


class PriceFreshnessService:
    """Serve quotes from the cache while fresh, otherwise refetch and upsert."""

    def __init__(
        self,
        session: Optional[AsyncSession] = None,
        store: Optional[PriceCacheStore] = None,
        provider: Optional[QuoteProvider] = None,
        clock: Optional[Callable[[], datetime]] = None,
        stale_after: Optional[timedelta] = None,
    ):
        self.store = store or PriceCacheStore(session=session)
        self.provider = provider or get_quote_provider()
        self.clock = clock or utcnow
        self.stale_after = stale_after or timedelta(minutes=settings.PRICE_STALE_MINUTES)

    def is_stale(self, quote: StockQuote, now: datetime) -> bool:
        if quote.last_updated is None:
            return True
        return now - as_utc(quote.last_updated) > self.stale_after

    async def get_fresh_price(self, symbol: str, force_refresh: bool = False) -> StockQuote:
        """
        Return the quote for symbol, refetching when forced, missing or stale.

        On provider failure a cached quote (even a stale one) is returned with
        stale=True; with nothing cached UpstreamUnavailable is raised.
        ConfigurationError always propagates.
        """
        canonical = normalize_symbol(symbol)
        cached = await self.store.get(canonical)
        now = self.clock()

        if not force_refresh and cached is not None and not self.is_stale(cached, now):
            metrics.cache_hit(canonical, (now - as_utc(cached.last_updated)).total_seconds())
            return cached

        try:
            fetched = await self.provider.fetch_quote(canonical)
        except ConfigurationError:
            raise
        except Exception as e:
            error = e if isinstance(e, UpstreamUnavailable) else UpstreamUnavailable(
                f"Quote provider failed for {canonical}: {e}"
            )
            if cached is not None:
                logger.warning(f"Quote refresh failed for {canonical}, serving cached data: {e}")
                metrics.stale_fallback(canonical, error.code)
                return cached.as_stale()
            metrics.upstream_failure(canonical, error.code)
            if error is e:
                raise
            raise error from e

        record = StockQuote(
            symbol=canonical,
            company_name=fetched.company_name or (cached.company_name if cached else None) or canonical,
            current_price=fetched.current_price,
            previous_close=fetched.previous_close,
            day_change=fetched.day_change,
            day_change_percent=fetched.day_change_percent,
            market_status=fetched.market_status,
            last_updated=now,
        )

        try:
            stored = await self.store.upsert(record)
        except Exception as e:
            logger.warning(f"Failed to update price cache for {canonical}, returning provider data: {e}")
            metrics.price_refreshed(canonical, float(record.current_price), persisted=False)
            return record

        metrics.price_refreshed(canonical, float(stored.current_price), persisted=True)
        await publish_event(StreamNames.PRICE_UPDATES, "price_updated", {
            "symbol": stored.symbol,
            "current_price": stored.current_price,
            "last_updated": stored.last_updated,
        })
        return stored

    async def get_cached_price(self, symbol: str) -> StockQuote:
        canonical = normalize_symbol(symbol)
        cached = await self.store.get(canonical)
        if cached is None:
            raise NotFound(f"No price on record for {canonical}")
        return cached

    async def list_prices(self, symbol: str = "", limit: Optional[int] = 100) -> list[StockQuote]:
        return await self.store.list_quotes(symbol_filter=symbol.strip().upper(), limit=limit)

    async def search_stocks(self, query: str, limit: int = 20) -> list[StockQuote]:
        """Search by symbol or company name; queries under two characters match nothing."""
        query = (query or "").strip()
        if len(query) < MIN_SEARCH_LENGTH:
            return []
        return await self.store.search(query, limit=limit)
