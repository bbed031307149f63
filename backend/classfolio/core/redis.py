"""
Redis connection and stream management.

Provides the async Redis client and best-effort publishing of realtime
change events.
"""

import asyncio
import json
import logging
from typing import Any, Optional
from redis.asyncio import Redis as AsyncRedis
from classfolio.core.config import settings

logger = logging.getLogger(__name__)

# Async Redis client (for request handlers and metrics)
async_redis_client: Optional[AsyncRedis] = None


async def get_async_redis() -> AsyncRedis:
    """Get async Redis client."""
    global async_redis_client
    if async_redis_client is None:
        async_redis_client = AsyncRedis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT_SEC,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SEC,
        )
    return async_redis_client


async def close_redis() -> None:
    """Close Redis connections."""
    global async_redis_client

    if async_redis_client is not None:
        await async_redis_client.close()
        async_redis_client = None


# Redis Stream Names
class StreamNames:
    """Redis Stream names for realtime change notifications."""

    PRICE_UPDATES = "price-updates"
    HOLDINGS = "holdings"
    CLASS_MEMBERSHIPS = "class-memberships"
    METRICS = "metrics"


async def xadd_bounded(client, stream: str, fields: dict[str, Any]) -> None:
    """XADD that gives up after REDIS_PUBLISH_TIMEOUT_SEC."""
    await asyncio.wait_for(
        client.xadd(stream, fields),
        timeout=settings.REDIS_PUBLISH_TIMEOUT_SEC,
    )


async def publish_event(stream: str, event_type: str, payload: dict[str, Any]) -> bool:
    """
    Publish a change event to a Redis stream.

    Returns False when publishing is disabled, fails or times out; failures
    are logged and never propagated to the caller.
    """
    if not settings.REALTIME_EVENTS_ENABLED:
        return False

    try:
        r = await get_async_redis()
        await xadd_bounded(r, stream, {
            "event_type": event_type,
            "data": json.dumps(payload, default=str),
        })
        return True
    except Exception as e:
        logger.warning(f"Failed to publish {event_type} to {stream}: {e!r}")
        return False
