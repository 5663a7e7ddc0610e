"""Shared Redis client for the bid-session event relay.

PostgreSQL is the source of truth; Redis only fans committed events out to
WebSocket and notification workers. An unreachable Redis degrades event
delivery but never blocks bidding, so startup only warns about it.
"""

import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from config.settings import settings

logger = logging.getLogger(__name__)

_client: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    global _client  # noqa: PLW0603
    if _client is None:
        _client = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
            socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
            health_check_interval=30,
        )
    return _client


async def ping_redis() -> bool:
    """True if Redis answered; logs a warning and returns False otherwise."""
    client = await get_redis()
    try:
        await client.ping()
    except RedisError:
        logger.warning(
            "Redis unreachable at startup, events will be dropped until it returns",
            exc_info=True,
        )
        return False
    return True


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None
