"""Unit tests for reviews: domain rules, ReviewService, repository error mapping."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from src.mk_common.enums import OrderState
from src.mk_common.errors import (
    ForbiddenError,
    OrderNotFoundError,
    OrderNotReviewableError,
    ReviewExistsError,
    ValidationError,
)
from src.mk_notification.events import ReviewReceived
from src.mk_review.application.schemas import ReviewSummaryResponse
from src.mk_review.application.service import ReviewService
from src.mk_review.domain.models import Review
from src.mk_review.infrastructure.persistence import ReviewRepository
from tests.unit.helpers import make_order


def _review(**kwargs: object) -> Review:
    defaults: dict[str, object] = {
        "review_id": "rev_1",
        "order_id": "ord_1",
        "listing_id": "lst_1",
        "buyer_id": "buyer",
        "seller_id": "seller",
        "score": 4,
        "comment": "Book as described, quick pickup.",
    }
    defaults.update(kwargs)
    return Review.create(**defaults)  # type: ignore[arg-type]


class TestReviewModel:
    def test_create_strips_comment(self) -> None:
        review = _review(comment="  Great seller  ")
        assert review.comment == "Great seller"
        assert review.visible is True

    @pytest.mark.parametrize("score", [0, 6, -1])
    def test_score_out_of_range(self, score: int) -> None:
        with pytest.raises(ValidationError):
            _review(score=score)

    @pytest.mark.parametrize("score", [1, 5])
    def test_score_bounds_accepted(self, score: int) -> None:
        assert _review(score=score).score == score

    def test_blank_comment(self) -> None:
        with pytest.raises(ValidationError):
            _review(comment="   ")

    def test_comment_too_long(self) -> None:
        with pytest.raises(ValidationError):
            _review(comment="x" * 1001)

    def test_stars(self) -> None:
        assert _review(score=3).stars == "★★★☆☆"


class _Harness:
    def __init__(self, order_state: OrderState = OrderState.DELIVERED) -> None:
        self.orders = AsyncMock()
        self.orders.get.return_value = make_order(state=order_state)
        self.repo = AsyncMock()
        self.repo.exists_for.return_value = False
        self.repo.insert.side_effect = lambda db, r: r
        self.dispatcher = MagicMock()
        self.db = AsyncMock()
        self.service = ReviewService(
            repo=self.repo, orders=self.orders, dispatcher=self.dispatcher
        )

    async def submit(self, user_id: str = "buyer", score: int = 5) -> Review:
        return await self.service.submit(self.db, user_id, "ord_1", score, "Smooth hand-off")


class TestSubmit:
    async def test_buyer_reviews_delivered_order(self) -> None:
        h = _Harness()
        review = await h.submit(score=5)

        assert review.id.startswith("rev_")
        assert review.listing_id == "lst_1"
        assert review.seller_id == "seller"
        assert review.buyer_id == "buyer"
        h.repo.insert.assert_awaited_once()
        h.db.commit.assert_awaited_once()

        event = h.dispatcher.notify.call_args.args[0]
        assert isinstance(event, ReviewReceived)
        assert event.recipient_id == "seller"
        assert event.score == 5

    async def test_missing_order(self) -> None:
        h = _Harness()
        h.orders.get.return_value = None
        with pytest.raises(OrderNotFoundError):
            await h.submit()

    @pytest.mark.parametrize("user_id", ["seller", "stranger"])
    async def test_only_buyer_may_review(self, user_id: str) -> None:
        h = _Harness()
        with pytest.raises(ForbiddenError):
            await h.submit(user_id=user_id)
        h.repo.insert.assert_not_awaited()

    @pytest.mark.parametrize(
        "state",
        [OrderState.PAID, OrderState.IN_TRANSIT, OrderState.CANCELLED, OrderState.REFUNDED],
    )
    async def test_order_must_be_delivered(self, state: OrderState) -> None:
        h = _Harness(order_state=state)
        with pytest.raises(OrderNotReviewableError):
            await h.submit()
        h.repo.insert.assert_not_awaited()

    async def test_second_review_of_listing_rejected(self) -> None:
        h = _Harness()
        h.repo.exists_for.return_value = True
        with pytest.raises(ReviewExistsError):
            await h.submit()
        h.repo.exists_for.assert_awaited_once_with(h.db, "buyer", "lst_1")
        h.repo.insert.assert_not_awaited()

    async def test_duplicate_caught_at_insert_rolls_back(self) -> None:
        h = _Harness()
        h.repo.insert.side_effect = ReviewExistsError("lst_1")
        with pytest.raises(ReviewExistsError):
            await h.submit()
        h.db.rollback.assert_awaited_once()
        h.db.commit.assert_not_awaited()
        h.dispatcher.notify.assert_not_called()

    async def test_invalid_score_never_reaches_storage(self) -> None:
        h = _Harness()
        with pytest.raises(ValidationError):
            await h.submit(score=9)
        h.repo.insert.assert_not_awaited()


class TestSummaries:
    async def test_seller_average(self) -> None:
        h = _Harness()
        h.repo.scores_for_seller.return_value = [5, 4, 4]

        stats = await h.service.seller_summary(h.db, "seller")

        assert stats.count == 3
        assert stats.min == Decimal(4)
        assert stats.max == Decimal(5)
        assert stats.mean == Decimal("4.33")

    async def test_listing_average(self) -> None:
        h = _Harness()
        h.repo.scores_for_listing.return_value = [2, 5]

        stats = await h.service.listing_summary(h.db, "lst_1")

        assert stats.mean == Decimal("3.50")
        h.repo.scores_for_listing.assert_awaited_once_with(h.db, "lst_1")

    async def test_no_reviews(self) -> None:
        h = _Harness()
        h.repo.scores_for_seller.return_value = []

        stats = await h.service.seller_summary(h.db, "seller")

        assert stats.count == 0
        assert stats.mean == Decimal(0)

    async def test_summary_response(self) -> None:
        h = _Harness()
        h.repo.scores_for_seller.return_value = [3, 5]
        stats = await h.service.seller_summary(h.db, "seller")

        body = ReviewSummaryResponse.build(stats, [_review()]).model_dump(mode="json")

        assert body["scores"]["count"] == 2
        assert body["scores"]["min"] == 3
        assert Decimal(body["scores"]["average"]) == Decimal("4.00")
        assert body["recent"][0]["stars"] == "★★★★☆"


def _integrity_error(message: str) -> IntegrityError:
    return IntegrityError("INSERT INTO reviews", {}, Exception(message))


class TestRepository:
    async def test_unique_violation_maps_to_review_exists(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = _integrity_error(
            'duplicate key value violates unique constraint "uq_reviews_buyer_listing"'
        )

        with pytest.raises(ReviewExistsError) as exc_info:
            await ReviewRepository().insert(db, _review())

        assert exc_info.value.http_status == 409
        assert isinstance(exc_info.value.__cause__, IntegrityError)

    async def test_foreign_key_violation_propagates(self) -> None:
        db = AsyncMock()
        db.execute.side_effect = _integrity_error(
            'insert or update on table "reviews" violates foreign key constraint'
        )

        with pytest.raises(IntegrityError):
            await ReviewRepository().insert(db, _review())

    async def test_exists_for(self) -> None:
        db = AsyncMock()
        result = MagicMock()
        result.fetchone.return_value = (1,)
        db.execute.return_value = result

        assert await ReviewRepository().exists_for(db, "buyer", "lst_1") is True
