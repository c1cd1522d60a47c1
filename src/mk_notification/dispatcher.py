"""Fire-and-forget dispatch of notification events.

``notify`` schedules publication as an asyncio task and returns at once;
callers (usually still inside a request) never await delivery. Failed
deliveries are logged, not retried. ``drain`` waits for in-flight tasks and
is used on shutdown and in tests.
"""

import asyncio
import logging

from src.mk_notification.events import NotificationEvent
from src.mk_notification.publisher import NotificationPublisher, RedisNotificationPublisher

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    def __init__(
        self,
        publisher: NotificationPublisher | None = None,
        channel_prefix: str | None = None,
    ) -> None:
        redis_publisher = RedisNotificationPublisher(channel_prefix)
        self._publisher: NotificationPublisher = publisher or redis_publisher
        self._channel_for = redis_publisher.channel_for
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def notify(self, event: NotificationEvent) -> None:
        task = asyncio.create_task(self._deliver(event))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def notify_all(self, events: list[NotificationEvent]) -> None:
        for event in events:
            self.notify(event)

    async def _deliver(self, event: NotificationEvent) -> None:
        channel = self._channel_for(event.recipient_id)
        try:
            await self._publisher.publish(channel, event.to_payload())
        except Exception:
            logger.exception("Notification %s to %s failed", event.event_type, channel)
            return
        logger.debug("Notification %s published on %s", event.event_type, channel)

    async def drain(self) -> None:
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)


_dispatcher: NotificationDispatcher | None = None


def get_dispatcher() -> NotificationDispatcher:
    global _dispatcher  # noqa: PLW0603
    if _dispatcher is None:
        _dispatcher = NotificationDispatcher()
    return _dispatcher
