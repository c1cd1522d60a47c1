"""Notification events emitted by the transaction core.

Events are plain dataclasses; ``to_payload`` gives the JSON body published
on the ``<prefix>.<user_id>`` channel of the recipient.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from src.mk_common.datetime_utils import utc_now


@dataclass(frozen=True)
class NotificationEvent:
    recipient_id: str
    occurred_at: datetime = field(default_factory=utc_now, kw_only=True)

    @property
    def event_type(self) -> str:
        return type(self).__name__

    def to_payload(self) -> dict[str, Any]:
        body = asdict(self)
        for key, value in body.items():
            if isinstance(value, Decimal):
                body[key] = str(value)
            elif isinstance(value, datetime):
                body[key] = value.isoformat()
        body["event_type"] = self.event_type
        return body


@dataclass(frozen=True)
class OrderStateChanged(NotificationEvent):
    order_id: str
    previous_state: str
    new_state: str


@dataclass(frozen=True)
class BidOvertaken(NotificationEvent):
    """Sent to the previous highest bidder when a higher bid is accepted."""

    listing_id: str
    your_amount: Decimal
    new_highest: Decimal


@dataclass(frozen=True)
class AuctionAwarded(NotificationEvent):
    listing_id: str
    order_id: str
    amount: Decimal


@dataclass(frozen=True)
class ConfirmationCodeIssued(NotificationEvent):
    order_id: str


@dataclass(frozen=True)
class ReviewReceived(NotificationEvent):
    """Sent to the seller when a buyer reviews a delivered order."""

    review_id: str
    listing_id: str
    score: int
