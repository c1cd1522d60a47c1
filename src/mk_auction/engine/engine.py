"""AuctionEngine: per-listing serialized bidding and award."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_auction.domain.models import Bid
from src.mk_auction.domain.repository import AuctionRepositoryProtocol
from src.mk_auction.engine.auction_book import AuctionBook
from src.mk_auction.infrastructure.persistence import AuctionRepository
from src.mk_catalog.domain.models import Listing
from src.mk_common.datetime_utils import utc_now
from src.mk_common.enums import AuctionStatus, ListingKind
from src.mk_common.errors import (
    ConcurrentModificationError,
    ForbiddenError,
    InvalidStateTransitionError,
    ValidationError,
)
from src.mk_common.id_generator import generate_id
from src.mk_common.locks import KeyedLocks

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BidOutcome:
    bid: Bid
    overtaken: Bid | None = None  # previous highest, when this bid replaced it

    @property
    def accepted(self) -> bool:
        return self.bid.accepted


@dataclass(frozen=True)
class AwardOutcome:
    order_id: str
    winning_bid: Bid | None
    already_accepted: bool = False


class AuctionEngine:
    def __init__(self, repo: AuctionRepositoryProtocol | None = None) -> None:
        self._repo: AuctionRepositoryProtocol = repo or AuctionRepository()
        self._books: dict[str, AuctionBook] = {}
        self._locks = KeyedLocks()

    async def rebuild_book(self, listing: Listing, db: AsyncSession) -> AuctionBook:
        """Lazy rebuild from storage on first use or after error eviction."""
        state = await self._repo.get_or_create_auction(db, listing.id, listing.seller_id)
        highest = (
            await self._repo.get_bid(db, state.highest_bid_id) if state.highest_bid_id else None
        )
        book = AuctionBook.from_state(state, highest)
        self._books[listing.id] = book
        return book

    async def _get_book(self, listing: Listing, db: AsyncSession) -> AuctionBook:
        book = self._books.get(listing.id)
        if book is None:
            book = await self.rebuild_book(listing, db)
        return book

    def evict(self, listing_id: str) -> None:
        self._books.pop(listing_id, None)

    async def highest_bid(self, listing: Listing, db: AsyncSession) -> Bid | None:
        async with self._locks.hold(listing.id):
            return (await self._get_book(listing, db)).highest

    async def place_bid(
        self, listing: Listing, bidder_id: str, amount: Decimal, db: AsyncSession
    ) -> BidOutcome:
        """Evaluate, record and commit one bid.

        A rejected bid is stored for audit, never as highest. The commit runs
        before the listing lock is released, so the next bid is always judged
        against committed state.
        """
        if amount <= 0:
            raise ValidationError(f"bid amount must be positive, got {amount}")
        async with self._locks.hold(listing.id):
            try:
                async with db.begin_nested():
                    outcome = await self._place_bid_inner(listing, bidder_id, amount, db)
                await db.commit()
            except Exception:
                await db.rollback()
                # evicted book is rebuilt from storage on the next request
                self.evict(listing.id)
                raise
        return outcome

    async def _place_bid_inner(
        self, listing: Listing, bidder_id: str, amount: Decimal, db: AsyncSession
    ) -> BidOutcome:
        bid_id = generate_id("bid_")
        now = utc_now()

        listing_reason = _listing_rejection(listing)
        if listing_reason is not None:
            bid = Bid(
                id=bid_id,
                listing_id=listing.id,
                bidder_id=bidder_id,
                amount=amount,
                accepted=False,
                created_at=now,
                rejection_reason=listing_reason,
            )
            await self._repo.insert_bid(db, bid)
            return BidOutcome(bid=bid)

        book = await self._get_book(listing, db)
        previous = book.highest
        bid = book.place(bid_id, bidder_id, amount, created_at=now)

        if bid.accepted:
            new_version = await self._repo.raise_highest(db, listing.id, bid.id, bidder_id, amount)
            if new_version is None:
                # Another process committed an equal or higher bid first.
                raise ConcurrentModificationError("Auction", listing.id)
            book.version = new_version

        await self._repo.insert_bid(db, bid)
        logger.info(
            "Bid %s on %s by %s amount=%s accepted=%s",
            bid.id, listing.id, bidder_id, amount, bid.accepted,
        )
        overtaken = previous if bid.accepted and previous is not None else None
        return BidOutcome(bid=bid, overtaken=overtaken)

    async def accept_highest_bid(
        self,
        listing: Listing,
        seller_id: str,
        db: AsyncSession,
        create_order: Callable[[Bid], Awaitable[str]],
    ) -> AwardOutcome:
        """Award the auction to its highest bid and commit, all under the listing lock.

        Repeated calls return the same order.
        """
        if not listing.is_owned_by(seller_id):
            raise ForbiddenError("only the seller can accept a bid")
        if listing.kind != ListingKind.AUCTION:
            raise InvalidStateTransitionError(
                f"{listing.kind.value} listing", AuctionStatus.AWARDED.value
            )
        async with self._locks.hold(listing.id):
            try:
                async with db.begin_nested():
                    outcome = await self._accept_inner(listing, db, create_order)
                await db.commit()
            except Exception:
                await db.rollback()
                self.evict(listing.id)
                raise
        return outcome

    async def _accept_inner(
        self,
        listing: Listing,
        db: AsyncSession,
        create_order: Callable[[Bid], Awaitable[str]],
    ) -> AwardOutcome:
        book = await self._get_book(listing, db)
        if book.is_awarded and book.order_id is not None:
            return AwardOutcome(
                order_id=book.order_id, winning_bid=book.highest, already_accepted=True
            )
        if book.highest is None:
            raise InvalidStateTransitionError(
                f"{AuctionStatus.OPEN.value} (no bids)", AuctionStatus.AWARDED.value
            )

        order_id = await create_order(book.highest)
        new_version = await self._repo.mark_awarded(db, listing.id, order_id, book.version)
        if new_version is None:
            raise ConcurrentModificationError("Auction", listing.id)
        book.version = new_version
        book.award(order_id)
        logger.info(
            "Auction %s awarded to %s at %s (order %s)",
            listing.id, book.highest.bidder_id, book.highest.amount, order_id,
        )
        return AwardOutcome(order_id=order_id, winning_bid=book.highest)


def _listing_rejection(listing: Listing) -> str | None:
    if listing.kind != ListingKind.AUCTION:
        return "listing is not an auction"
    if not listing.is_active:
        return f"listing is not active (status={listing.status.value})"
    return None
