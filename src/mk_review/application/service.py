"""ReviewService: buyer reviews of delivered orders and score averages.

Only the buyer of a DELIVERED order may review it, once per listing. The
pre-check gives the usual error; a concurrent duplicate is caught by the
``uq_reviews_buyer_listing`` constraint and surfaces as the same error.
"""

import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.enums import OrderState
from src.mk_common.errors import (
    ForbiddenError,
    OrderNotFoundError,
    OrderNotReviewableError,
    ReviewExistsError,
)
from src.mk_common.id_generator import generate_id
from src.mk_notification.dispatcher import NotificationDispatcher, get_dispatcher
from src.mk_notification.events import ReviewReceived
from src.mk_order.domain.repository import OrderRepositoryProtocol
from src.mk_order.infrastructure.persistence import OrderRepository
from src.mk_review.domain.models import Review
from src.mk_review.domain.repository import ReviewRepositoryProtocol
from src.mk_review.infrastructure.persistence import ReviewRepository
from src.mk_stats.domain.aggregator import EconomicStats, compute_stats

logger = logging.getLogger(__name__)

DEFAULT_RECENT_LIMIT = 20


class ReviewService:
    def __init__(
        self,
        repo: ReviewRepositoryProtocol | None = None,
        orders: OrderRepositoryProtocol | None = None,
        dispatcher: NotificationDispatcher | None = None,
    ) -> None:
        self._repo: ReviewRepositoryProtocol = repo or ReviewRepository()
        self._orders: OrderRepositoryProtocol = orders or OrderRepository()
        self._dispatcher = dispatcher

    @property
    def dispatcher(self) -> NotificationDispatcher:
        if self._dispatcher is None:
            self._dispatcher = get_dispatcher()
        return self._dispatcher

    async def submit(
        self, db: AsyncSession, user_id: str, order_id: str, score: int, comment: str
    ) -> Review:
        order = await self._orders.get(db, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        if not order.is_buyer(user_id):
            raise ForbiddenError("only the buyer can review an order")
        if order.state != OrderState.DELIVERED:
            raise OrderNotReviewableError(order_id, order.state.value)
        if await self._repo.exists_for(db, user_id, order.listing_id):
            raise ReviewExistsError(order.listing_id)

        review = Review.create(
            review_id=generate_id("rev_"),
            order_id=order.id,
            listing_id=order.listing_id,
            buyer_id=user_id,
            seller_id=order.seller_id,
            score=score,
            comment=comment,
        )
        try:
            saved = await self._repo.insert(db, review)
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Review submitted: id=%s listing=%s seller=%s score=%d",
            saved.id, saved.listing_id, saved.seller_id, saved.score,
        )
        self.dispatcher.notify(
            ReviewReceived(
                recipient_id=saved.seller_id,
                review_id=saved.id,
                listing_id=saved.listing_id,
                score=saved.score,
            )
        )
        return saved

    async def has_reviewed(self, db: AsyncSession, user_id: str, listing_id: str) -> bool:
        return await self._repo.exists_for(db, user_id, listing_id)

    async def seller_summary(self, db: AsyncSession, seller_id: str) -> EconomicStats:
        """Min/max/mean/count of the scores a seller received."""
        scores = await self._repo.scores_for_seller(db, seller_id)
        return compute_stats(Decimal(s) for s in scores)

    async def listing_summary(self, db: AsyncSession, listing_id: str) -> EconomicStats:
        scores = await self._repo.scores_for_listing(db, listing_id)
        return compute_stats(Decimal(s) for s in scores)

    async def list_for_seller(
        self, db: AsyncSession, seller_id: str, limit: int = DEFAULT_RECENT_LIMIT
    ) -> list[Review]:
        return await self._repo.list_for_seller(db, seller_id, limit)

    async def list_for_listing(
        self, db: AsyncSession, listing_id: str, limit: int = DEFAULT_RECENT_LIMIT
    ) -> list[Review]:
        return await self._repo.list_for_listing(db, listing_id, limit)
