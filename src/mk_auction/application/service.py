"""AuctionService: bid placement, highest bid, award, history.

The engine commits bids and awards under the listing lock. A rejected bid is
therefore already committed (audit trail) when BidRejectedError is raised.
"""

import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_auction.domain.models import Bid
from src.mk_auction.domain.repository import AuctionRepositoryProtocol
from src.mk_auction.engine.engine import AuctionEngine, AwardOutcome
from src.mk_auction.infrastructure.persistence import AuctionRepository
from src.mk_catalog.domain.models import Listing
from src.mk_catalog.domain.repository import CatalogProtocol
from src.mk_catalog.infrastructure.persistence import ListingRepository
from src.mk_common.enums import DeliveryMethod
from src.mk_common.errors import BidRejectedError, ListingNotFoundError
from src.mk_notification.dispatcher import NotificationDispatcher, get_dispatcher
from src.mk_notification.events import AuctionAwarded, BidOvertaken
from src.mk_order.application.service import OrderService

logger = logging.getLogger(__name__)

_engine: AuctionEngine | None = None


def get_auction_engine() -> AuctionEngine:
    global _engine  # noqa: PLW0603
    if _engine is None:
        _engine = AuctionEngine()
    return _engine


class AuctionService:
    def __init__(
        self,
        engine: AuctionEngine | None = None,
        repo: AuctionRepositoryProtocol | None = None,
        catalog: CatalogProtocol | None = None,
        orders: OrderService | None = None,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        self._engine = engine
        self._repo: AuctionRepositoryProtocol = repo or AuctionRepository()
        self._catalog: CatalogProtocol = catalog or ListingRepository()
        self._orders = orders or OrderService()
        self._dispatcher = dispatcher

    @property
    def engine(self) -> AuctionEngine:
        return self._engine or get_auction_engine()

    @property
    def dispatcher(self) -> NotificationDispatcher:
        return self._dispatcher or get_dispatcher()

    async def _listing(self, db: AsyncSession, listing_id: str) -> Listing:
        listing = await self._catalog.get_listing(db, listing_id)
        if listing is None:
            raise ListingNotFoundError(listing_id)
        return listing

    async def place_bid(
        self, db: AsyncSession, listing_id: str, bidder_id: str, amount: Decimal
    ) -> Bid:
        listing = await self._listing(db, listing_id)
        outcome = await self.engine.place_bid(listing, bidder_id, amount, db)

        if not outcome.accepted:
            raise BidRejectedError(outcome.bid.rejection_reason or "rejected")

        overtaken = outcome.overtaken
        if overtaken is not None and overtaken.bidder_id != bidder_id:
            self.dispatcher.notify(
                BidOvertaken(
                    overtaken.bidder_id,
                    listing_id=listing_id,
                    your_amount=overtaken.amount,
                    new_highest=outcome.bid.amount,
                )
            )
        return outcome.bid

    async def highest_bid(self, db: AsyncSession, listing_id: str) -> Bid | None:
        listing = await self._listing(db, listing_id)
        highest = await self.engine.highest_bid(listing, db)
        # the first read of a listing may have created its auction row
        await db.commit()
        return highest

    async def accept_highest_bid(
        self,
        db: AsyncSession,
        listing_id: str,
        seller_id: str,
        delivery_method: DeliveryMethod = DeliveryMethod.PICKUP,
        shipping_address: str | None = None,
    ) -> AwardOutcome:
        listing = await self._listing(db, listing_id)

        async def create_order(winning: Bid) -> str:
            order = await self._orders.create_from_auction(
                db,
                listing,
                winning.bidder_id,
                winning.amount,
                delivery_method=delivery_method,
                shipping_address=shipping_address,
            )
            return order.id

        outcome = await self.engine.accept_highest_bid(listing, seller_id, db, create_order)

        if not outcome.already_accepted and outcome.winning_bid is not None:
            self.dispatcher.notify(
                AuctionAwarded(
                    outcome.winning_bid.bidder_id,
                    listing_id=listing_id,
                    order_id=outcome.order_id,
                    amount=outcome.winning_bid.amount,
                )
            )
        return outcome

    async def list_bids(
        self, db: AsyncSession, listing_id: str, limit: int = 50, accepted_only: bool = False
    ) -> list[Bid]:
        await self._listing(db, listing_id)
        return await self._repo.list_bids(db, listing_id, limit, accepted_only)
