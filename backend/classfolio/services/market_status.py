from datetime import datetime, time
from typing import Optional
from zoneinfo import ZoneInfo

from classfolio.core.config import settings

OPEN = "open"
CLOSED = "closed"
PRE_MARKET = "pre-market"
AFTER_HOURS = "after-hours"

MARKET_STATUSES = (OPEN, CLOSED, PRE_MARKET, AFTER_HOURS)

PRE_MARKET_START = time(7, 0)
REGULAR_START = time(9, 30)
REGULAR_END = time(16, 0)
AFTER_HOURS_END = time(17, 0)


def market_status(now: Optional[datetime] = None) -> str:
    """
    TSX session status for the given instant, evaluated in Toronto time.
    Sessions: pre-market 07:00-09:30, regular 09:30-16:00, after-hours 16:00-17:00.
    Exchange holidays are not modelled.
    """
    tz = ZoneInfo(settings.MARKET_TIMEZONE)
    local = now.astimezone(tz) if now is not None else datetime.now(tz)

    if local.weekday() >= 5:
        return CLOSED

    t = local.time()
    if PRE_MARKET_START <= t < REGULAR_START:
        return PRE_MARKET
    if REGULAR_START <= t < REGULAR_END:
        return OPEN
    if REGULAR_END <= t < AFTER_HOURS_END:
        return AFTER_HOURS
    return CLOSED
