"""Repository Protocol for auctions and bids."""

from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_auction.domain.models import AuctionState, Bid


class AuctionRepositoryProtocol(Protocol):
    async def get_or_create_auction(
        self, db: AsyncSession, listing_id: str, seller_id: str
    ) -> AuctionState: ...

    async def get_bid(self, db: AsyncSession, bid_id: str) -> Bid | None: ...

    async def raise_highest(
        self, db: AsyncSession, listing_id: str, bid_id: str, bidder_id: str, amount: Decimal
    ) -> int | None: ...

    async def insert_bid(self, db: AsyncSession, bid: Bid) -> None: ...

    async def mark_awarded(
        self, db: AsyncSession, listing_id: str, order_id: str, expected_version: int
    ) -> int | None: ...

    async def list_bids(
        self, db: AsyncSession, listing_id: str, limit: int, accepted_only: bool
    ) -> list[Bid]: ...
