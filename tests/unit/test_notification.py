"""Unit tests for notification events and the fire-and-forget dispatcher."""

import asyncio
import json
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, patch

from src.mk_notification.dispatcher import NotificationDispatcher
from src.mk_notification.events import BidOvertaken, OrderStateChanged
from src.mk_notification.publisher import RedisNotificationPublisher


class _Recorder:
    def __init__(self, fail: bool = False) -> None:
        self.sent: list[tuple[str, dict[str, Any]]] = []
        self.fail = fail

    async def publish(self, channel: str, payload: dict[str, Any]) -> None:
        await asyncio.sleep(0)
        if self.fail:
            raise ConnectionError("redis down")
        self.sent.append((channel, payload))


class TestEvents:
    def test_payload_is_json_safe(self) -> None:
        event = BidOvertaken(
            "alice", listing_id="lst_1", your_amount=Decimal("10.00"), new_highest=Decimal("12.50")
        )
        payload = event.to_payload()
        assert payload["event_type"] == "BidOvertaken"
        assert payload["your_amount"] == "10.00"
        assert payload["recipient_id"] == "alice"
        json.dumps(payload)


class TestDispatcher:
    async def test_notify_returns_before_delivery(self) -> None:
        recorder = _Recorder()
        dispatcher = NotificationDispatcher(publisher=recorder, channel_prefix="test")

        dispatcher.notify(OrderStateChanged("bob", order_id="ord_1", previous_state="PAID",
                                            new_state="PREPARING"))
        assert recorder.sent == []
        assert dispatcher.pending == 1

        await dispatcher.drain()
        [(channel, payload)] = recorder.sent
        assert channel == "test.bob"
        assert payload["new_state"] == "PREPARING"
        assert dispatcher.pending == 0

    async def test_failure_is_logged_not_raised(self) -> None:
        dispatcher = NotificationDispatcher(publisher=_Recorder(fail=True), channel_prefix="t")
        dispatcher.notify_all([
            OrderStateChanged("a", order_id="o", previous_state="", new_state="PAID"),
            OrderStateChanged("b", order_id="o", previous_state="", new_state="PAID"),
        ])
        await dispatcher.drain()
        assert dispatcher.pending == 0


class TestRedisPublisher:
    async def test_publishes_json(self) -> None:
        redis = AsyncMock()
        with patch("src.mk_notification.publisher.get_redis", AsyncMock(return_value=redis)):
            publisher = RedisNotificationPublisher("mk.events")
            await publisher.publish(publisher.channel_for("u1"), {"x": 1})
        redis.publish.assert_awaited_once_with("mk.events.u1", '{"x": 1}')
