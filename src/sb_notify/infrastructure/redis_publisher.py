"""RedisEventPublisher: fans session events out over Redis pub/sub.

Events are published after the database transaction has committed, so a
delivery failure cannot be rolled back into the operation; it is logged and
dropped. Subscribers resynchronize by reading the session over REST.
"""

import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from config.settings import settings
from src.sb_common.redis_client import get_redis
from src.sb_notify.domain.events import SessionEvent

logger = logging.getLogger(__name__)


def channel_for(session_id: str) -> str:
    return f"{settings.EVENT_CHANNEL_PREFIX}:{session_id}"


class RedisEventPublisher:
    def __init__(self, client: aioredis.Redis | None = None) -> None:
        self._client = client

    async def _get_client(self) -> aioredis.Redis:
        if self._client is None:
            self._client = await get_redis()
        return self._client

    async def publish(self, event: SessionEvent) -> None:
        channel = channel_for(event.session_id)
        try:
            client = await self._get_client()
            receivers = await client.publish(channel, event.to_message())
        except RedisError:
            logger.warning(
                "Event publish failed: type=%s channel=%s",
                event.type.value,
                channel,
                exc_info=True,
            )
            return
        logger.debug(
            "Event published: type=%s channel=%s receivers=%s",
            event.type.value,
            channel,
            receivers,
        )
