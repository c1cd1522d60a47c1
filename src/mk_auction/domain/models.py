"""Domain models for mk_auction: pure dataclasses."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from src.mk_common.datetime_utils import utc_now
from src.mk_common.enums import AuctionStatus


@dataclass(frozen=True)
class Bid:
    id: str
    listing_id: str
    bidder_id: str
    amount: Decimal
    accepted: bool               # passed the strict-increase rule when placed
    created_at: datetime = field(default_factory=utc_now)
    rejection_reason: str | None = None


@dataclass
class AuctionState:
    """Persisted running maximum of one auction listing."""

    listing_id: str
    seller_id: str
    status: AuctionStatus = AuctionStatus.OPEN
    highest_bid_id: str | None = None
    highest_amount: Decimal | None = None
    highest_bidder_id: str | None = None
    order_id: str | None = None
    version: int = 0
