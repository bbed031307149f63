#!/usr/bin/env python3
"""
Refresh cached TSX quotes from the quote provider.

Usage:
    python scripts/refresh_prices.py SHOP RY TD.TO
    python scripts/refresh_prices.py --held
"""

import asyncio
import logging
import os
import sys
from argparse import ArgumentParser

# Add backend to path
sys.path.append(os.path.join(os.path.dirname(__file__), ".."))

from classfolio.core.database import AsyncSessionLocal
from classfolio.services.holding_store import HoldingStore
from classfolio.services.price_freshness_service import PriceFreshnessService
from classfolio.tasks.prices import refresh_prices

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def run(symbols: list[str], held: bool) -> dict:
    async with AsyncSessionLocal() as session:
        if held:
            symbols = symbols + await HoldingStore(session=session).held_symbols()
        logger.info(f"Refreshing {len(symbols)} symbols: {symbols}")

        result = await refresh_prices(PriceFreshnessService(session=session), symbols)
        await session.commit()
        return result


def main():
    parser = ArgumentParser(description="Refresh cached stock prices")
    parser.add_argument("symbols", nargs="*", help="Symbols, with or without the .TO suffix")
    parser.add_argument(
        "--held",
        action="store_true",
        help="Also refresh every symbol currently held by a student"
    )
    args = parser.parse_args()

    if not args.symbols and not args.held:
        parser.error("give at least one symbol or --held")

    try:
        result = asyncio.run(run(args.symbols, args.held))
    except Exception as e:
        logger.error(f"Refresh failed: {e}", exc_info=True)
        sys.exit(1)

    for symbol in result["failed"]:
        logger.error(f"  {symbol}: not refreshed")

    if result["failed"]:
        logger.error(f"✗ {len(result['failed'])} symbols failed, {len(result['refreshed'])} refreshed")
        sys.exit(1)
    logger.info(f"✓ Refreshed {len(result['refreshed'])} symbols")
    sys.exit(0)


if __name__ == "__main__":
    main()
