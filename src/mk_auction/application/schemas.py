"""Pydantic schemas for bidding endpoints."""

from decimal import Decimal

from pydantic import BaseModel, Field

from src.mk_auction.domain.models import Bid
from src.mk_common.enums import DeliveryMethod
from src.mk_common.money import money_to_display


class PlaceBidRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)


class AcceptBidRequest(BaseModel):
    delivery_method: DeliveryMethod = DeliveryMethod.PICKUP
    shipping_address: str | None = Field(None, max_length=500)


class BidResponse(BaseModel):
    id: str
    listing_id: str
    bidder_id: str
    amount: Decimal
    amount_display: str
    accepted: bool
    rejection_reason: str | None
    created_at: str

    @classmethod
    def from_domain(cls, bid: Bid) -> "BidResponse":
        return cls(
            id=bid.id,
            listing_id=bid.listing_id,
            bidder_id=bid.bidder_id,
            amount=bid.amount,
            amount_display=money_to_display(bid.amount),
            accepted=bid.accepted,
            rejection_reason=bid.rejection_reason,
            created_at=bid.created_at.isoformat(),
        )


class HighestBidResponse(BaseModel):
    listing_id: str
    highest: BidResponse | None


class AcceptBidResponse(BaseModel):
    listing_id: str
    order_id: str
    already_accepted: bool
    winning_bid: BidResponse | None
