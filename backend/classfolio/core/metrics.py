"""
Metrics emission system for observability.

Provides structured metrics for:
- Price cache decisions (hits, refreshes, stale fallbacks)
- Investment outcomes (created, rejected)
- Leaderboard builds
- Class membership changes

Metrics are emitted to:
1. Python logging (immediate visibility)
2. Redis stream (real-time consumers, dashboard)
3. In-memory buffer (API aggregation)
"""
import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, List, Set

from classfolio.core.redis import StreamNames, xadd_bounded

logger = logging.getLogger(__name__)


@dataclass
class MetricEvent:
    """Structured metric event."""
    timestamp: datetime
    category: str          # "price", "investment", "leaderboard", "membership"
    event_type: str        # "cache_hit", "stale_fallback", etc.
    symbol: Optional[str]
    value: float
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "category": self.category,
            "event_type": self.event_type,
            "symbol": self.symbol,
            "value": self.value,
            "metadata": self.metadata
        }


class MetricsEmitter:
    """
    Emit structured metrics to multiple destinations.

    The async Redis client is optional and attached lazily; without it events
    are only logged and buffered. Stream publishing runs as a background task
    on the running event loop so emit() never waits on Redis.
    """

    # Category constants
    CATEGORY_PRICE = "price"
    CATEGORY_INVESTMENT = "investment"
    CATEGORY_LEADERBOARD = "leaderboard"
    CATEGORY_MEMBERSHIP = "membership"

    def __init__(self, redis_client=None, buffer_size: int = 1000):
        """
        Initialize metrics emitter.

        Args:
            redis_client: Optional async Redis client for stream publishing
            buffer_size: Max events to keep in memory buffer
        """
        self.redis = redis_client
        self.buffer_size = buffer_size
        self._buffer: List[MetricEvent] = []
        self._enabled = True
        self._pending: Set[asyncio.Task] = set()

    def set_redis(self, redis_client) -> None:
        """Set Redis client (for lazy initialization)."""
        self.redis = redis_client

    def enable(self) -> None:
        """Enable metrics emission."""
        self._enabled = True

    def disable(self) -> None:
        """Disable metrics emission (for testing)."""
        self._enabled = False

    def emit(
        self,
        category: str,
        event_type: str,
        value: float,
        symbol: str = None,
        metadata: dict = None
    ) -> Optional[MetricEvent]:
        """
        Emit a metric event.

        Args:
            category: Event category (price, investment, leaderboard, membership)
            event_type: Specific event type within category
            value: Numeric value (1.0 for counters, actual value for numeric)
            symbol: Optional stock symbol
            metadata: Additional context as key-value pairs

        Returns:
            The emitted MetricEvent
        """
        if not self._enabled:
            return None

        event = MetricEvent(
            timestamp=datetime.now(timezone.utc),
            category=category,
            event_type=event_type,
            symbol=symbol,
            value=value,
            metadata=metadata or {}
        )

        meta_str = f" {metadata}" if metadata else ""
        logger.info(
            f"METRIC [{category}/{event_type}] "
            f"symbol={symbol} value={value}{meta_str}"
        )

        self._buffer.append(event)
        if len(self._buffer) > self.buffer_size:
            self._buffer = self._buffer[-self.buffer_size:]

        if self.redis is not None:
            self._schedule_publish(event)

        return event

    def _schedule_publish(self, event: MetricEvent) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"No running event loop, metric {event.event_type} not published")
            return
        task = loop.create_task(self._publish(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _publish(self, event: MetricEvent) -> None:
        try:
            await xadd_bounded(self.redis, StreamNames.METRICS, {
                "data": json.dumps(event.to_dict())
            })
        except Exception as e:
            logger.warning(f"Failed to publish metric to Redis: {e!r}")

    async def flush(self) -> None:
        """Wait for in-flight stream publishes to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending))

    # =========================================================================
    # Convenience methods for common metrics
    # =========================================================================

    # Price cache metrics
    def cache_hit(self, symbol: str, age_seconds: float) -> MetricEvent:
        """Record a fresh cached quote served without refetching."""
        return self.emit(
            self.CATEGORY_PRICE, "cache_hit", 1.0,
            symbol=symbol,
            metadata={"age_seconds": round(age_seconds, 1)}
        )

    def price_refreshed(self, symbol: str, price: float, persisted: bool) -> MetricEvent:
        """Record a quote fetched from the upstream provider."""
        return self.emit(
            self.CATEGORY_PRICE, "refreshed", price,
            symbol=symbol,
            metadata={"persisted": persisted}
        )

    def stale_fallback(self, symbol: str, reason: str) -> MetricEvent:
        """Record a stale cached quote served after an upstream failure."""
        return self.emit(
            self.CATEGORY_PRICE, "stale_fallback", 1.0,
            symbol=symbol,
            metadata={"reason": reason}
        )

    def upstream_failure(self, symbol: str, reason: str) -> MetricEvent:
        """Record an upstream failure with nothing cached to fall back on."""
        return self.emit(
            self.CATEGORY_PRICE, "upstream_failure", 1.0,
            symbol=symbol,
            metadata={"reason": reason}
        )

    # Investment metrics
    def holding_created(self, symbol: str, shares: int, total_cost: float) -> MetricEvent:
        """Record a new holding."""
        return self.emit(
            self.CATEGORY_INVESTMENT, "created", total_cost,
            symbol=symbol,
            metadata={"shares": shares}
        )

    def investment_rejected(self, symbol: str, reason: str) -> MetricEvent:
        """Record a rejected investment."""
        return self.emit(
            self.CATEGORY_INVESTMENT, "rejected", 1.0,
            symbol=symbol,
            metadata={"reason": reason}
        )

    # Leaderboard metrics
    def leaderboard_built(self, entries: int, skipped: int,
                          class_id: Optional[str]) -> MetricEvent:
        """Record a leaderboard computation."""
        return self.emit(
            self.CATEGORY_LEADERBOARD, "built", entries,
            metadata={"skipped": skipped, "class_id": class_id}
        )

    # Membership metrics
    def member_joined(self, class_id: str) -> MetricEvent:
        """Record a student joining a class."""
        return self.emit(
            self.CATEGORY_MEMBERSHIP, "joined", 1.0,
            metadata={"class_id": class_id}
        )

    # =========================================================================
    # Aggregation methods
    # =========================================================================

    def get_buffer(self) -> List[MetricEvent]:
        """Get buffered events (for API)."""
        return list(self._buffer)

    def get_summary(self, hours: int = 24) -> dict:
        """
        Get aggregated summary of recent metrics.

        Args:
            hours: How many hours of data to include

        Returns:
            Dictionary with aggregated metrics
        """
        cutoff = datetime.now(timezone.utc) - timedelta(hours=hours)
        recent = [e for e in self._buffer if e.timestamp >= cutoff]

        by_category: Dict[str, int] = {}
        by_event: Dict[str, int] = {}

        for event in recent:
            by_category[event.category] = by_category.get(event.category, 0) + 1
            key = f"{event.category}/{event.event_type}"
            by_event[key] = by_event.get(key, 0) + 1

        hits = by_event.get("price/cache_hit", 0)
        refreshes = by_event.get("price/refreshed", 0)
        lookups = hits + refreshes + by_event.get("price/stale_fallback", 0)

        return {
            "period_hours": hours,
            "total_events": len(recent),
            "by_category": by_category,
            "by_event": by_event,
            "cache_hit_rate": hits / lookups if lookups > 0 else None,
            "stale_fallbacks": by_event.get("price/stale_fallback", 0),
            "upstream_failures": by_event.get("price/upstream_failure", 0),
            "holdings_created": by_event.get("investment/created", 0),
            "investments_rejected": by_event.get("investment/rejected", 0),
        }

    def clear_buffer(self) -> int:
        """Clear buffer and return count of cleared events."""
        count = len(self._buffer)
        self._buffer = []
        return count


# Global singleton instance
metrics = MetricsEmitter()
