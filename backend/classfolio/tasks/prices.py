from classfolio.scheduler.celery_app import app
from classfolio.core.database import AsyncSessionLocal, engine
from classfolio.core.exceptions import ConfigurationError
from classfolio.services.holding_store import HoldingStore
from classfolio.services.price_freshness_service import PriceFreshnessService
import asyncio
import logging

logger = logging.getLogger(__name__)


async def refresh_prices(service: PriceFreshnessService, symbols: list[str]) -> dict:
    """
    Force-refresh each symbol. A symbol served from stale cache counts as failed.
    ConfigurationError aborts the run.
    """
    refreshed: list[str] = []
    failed: list[str] = []

    for symbol in symbols:
        try:
            quote = await service.get_fresh_price(symbol, force_refresh=True)
        except ConfigurationError:
            raise
        except Exception as e:
            logger.error(f"Price refresh failed for {symbol}: {e}")
            failed.append(symbol)
            continue
        if quote.stale:
            failed.append(symbol)
        else:
            refreshed.append(symbol)

    return {"refreshed": refreshed, "failed": failed}


async def _refresh_held_prices() -> dict:
    try:
        async with AsyncSessionLocal() as session:
            symbols = await HoldingStore(session=session).held_symbols()
            result = await refresh_prices(PriceFreshnessService(session=session), symbols)
            await session.commit()
            return result
    finally:
        # Pooled connections are bound to this run's event loop
        await engine.dispose()


@app.task(name="classfolio.tasks.prices.refresh_held_prices")
def refresh_held_prices():
    """
    Scheduled task keeping every held symbol's cached quote fresh,
    so leaderboard reads rarely wait on the provider.
    """
    result = asyncio.run(_refresh_held_prices())

    if result["failed"]:
        logger.warning(f"Failed to refresh {len(result['failed'])} symbols: {result['failed']}")
    logger.info(f"Refreshed {len(result['refreshed'])} held symbols")

    return {
        "status": "completed",
        "refreshed": len(result["refreshed"]),
        "failed": len(result["failed"]),
    }
