"""
Metrics API endpoint for observability.
"""
from typing import Optional
from fastapi import APIRouter, Query
from pydantic import BaseModel

from classfolio.core.metrics import metrics

router = APIRouter()


class MetricsSummary(BaseModel):
    """Summary of metrics over a time period."""
    period_hours: int
    total_events: int
    by_category: dict
    by_event: dict
    cache_hit_rate: Optional[float]
    stale_fallbacks: int
    upstream_failures: int
    holdings_created: int
    investments_rejected: int


@router.get("/summary", response_model=MetricsSummary)
async def get_metrics_summary(
    hours: int = Query(default=24, ge=1, le=168, description="Hours of history to include")
) -> MetricsSummary:
    """
    Get aggregated summary of recent metrics.

    Returns counts and rates for price cache, investment and membership events.
    """
    summary = metrics.get_summary(hours=hours)
    return MetricsSummary(**summary)
