from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from src.mk_auction.domain.models import AuctionState, Bid
from src.mk_common.datetime_utils import utc_now
from src.mk_common.enums import AuctionStatus


@dataclass
class AuctionBook:
    """In-memory bid state of one auction listing.

    Keeps only the running maximum, so ``highest`` is O(1) however many bids
    arrive. Earlier bids live in storage and are never modified here.
    """

    listing_id: str
    seller_id: str
    status: AuctionStatus = AuctionStatus.OPEN
    highest: Bid | None = None
    order_id: str | None = None
    version: int = 0
    bid_count: int = 0

    @classmethod
    def from_state(cls, state: AuctionState, highest: Bid | None) -> "AuctionBook":
        return cls(
            listing_id=state.listing_id,
            seller_id=state.seller_id,
            status=state.status,
            highest=highest,
            order_id=state.order_id,
            version=state.version,
        )

    @property
    def highest_amount(self) -> Decimal | None:
        return self.highest.amount if self.highest else None

    @property
    def is_awarded(self) -> bool:
        return self.status == AuctionStatus.AWARDED

    def rejection_reason(self, bidder_id: str, amount: Decimal) -> str | None:
        """None when the bid would be accepted; ties with the highest are rejected."""
        if self.is_awarded:
            return "auction already awarded"
        if bidder_id == self.seller_id:
            return "seller cannot bid on own listing"
        if self.highest is not None and amount <= self.highest.amount:
            return f"amount must exceed current highest {self.highest.amount}"
        return None

    def place(
        self,
        bid_id: str,
        bidder_id: str,
        amount: Decimal,
        created_at: datetime | None = None,
    ) -> Bid:
        """Evaluate one bid; an accepted bid becomes the new highest."""
        reason = self.rejection_reason(bidder_id, amount)
        bid = Bid(
            id=bid_id,
            listing_id=self.listing_id,
            bidder_id=bidder_id,
            amount=amount,
            accepted=reason is None,
            created_at=created_at or utc_now(),
            rejection_reason=reason,
        )
        self.bid_count += 1
        if bid.accepted:
            self.highest = bid
        return bid

    def award(self, order_id: str) -> None:
        self.status = AuctionStatus.AWARDED
        self.order_id = order_id
