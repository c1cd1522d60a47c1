"""Notification publishers.

``NotificationPublisher`` is the boundary; the Redis implementation publishes
JSON on pub/sub. Delivery is best effort, nobody waits for a subscriber.
"""

import json
from typing import Any, Protocol

from config.settings import settings
from src.mk_common.redis_client import get_redis


class NotificationPublisher(Protocol):
    async def publish(self, channel: str, payload: dict[str, Any]) -> None: ...


class RedisNotificationPublisher:
    def __init__(self, channel_prefix: str | None = None) -> None:
        self._prefix = channel_prefix or settings.NOTIFICATION_CHANNEL_PREFIX

    def channel_for(self, recipient_id: str) -> str:
        return f"{self._prefix}.{recipient_id}"

    async def publish(self, channel: str, payload: dict[str, Any]) -> None:
        redis = await get_redis()
        await redis.publish(channel, json.dumps(payload))
