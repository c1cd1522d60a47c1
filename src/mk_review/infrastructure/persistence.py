"""ReviewRepository: raw SQL over the reviews table.

Only visible reviews are listed or scored. One review per (buyer, listing)
is enforced by ``uq_reviews_buyer_listing``; ``insert`` maps a hit on it to
ReviewExistsError.
"""

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.errors import InternalError, ReviewExistsError
from src.mk_review.domain.models import Review

_UNIQUE_REVIEW = "uq_reviews_buyer_listing"

_COLUMNS = (
    "id, order_id, listing_id, buyer_id, seller_id, score, comment, visible, created_at"
)

_INSERT_SQL = text(f"""
    INSERT INTO reviews (
        id, order_id, listing_id, buyer_id, seller_id, score, comment, visible, created_at
    ) VALUES (
        :id, :order_id, :listing_id, :buyer_id, :seller_id, :score, :comment, :visible,
        :created_at
    )
    RETURNING {_COLUMNS}
""")

_EXISTS_SQL = text(
    "SELECT 1 FROM reviews WHERE buyer_id = :buyer_id AND listing_id = :listing_id LIMIT 1"
)

_LIST_FOR_SELLER_SQL = text(f"""
    SELECT {_COLUMNS} FROM reviews
    WHERE seller_id = :seller_id AND visible = TRUE
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_LIST_FOR_LISTING_SQL = text(f"""
    SELECT {_COLUMNS} FROM reviews
    WHERE listing_id = :listing_id AND visible = TRUE
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")

_SELLER_SCORES_SQL = text(
    "SELECT score FROM reviews WHERE seller_id = :seller_id AND visible = TRUE"
)

_LISTING_SCORES_SQL = text(
    "SELECT score FROM reviews WHERE listing_id = :listing_id AND visible = TRUE"
)


def _row_to_review(row: object) -> Review:
    return Review(
        id=row.id,  # type: ignore[attr-defined]
        order_id=row.order_id,  # type: ignore[attr-defined]
        listing_id=row.listing_id,  # type: ignore[attr-defined]
        buyer_id=row.buyer_id,  # type: ignore[attr-defined]
        seller_id=row.seller_id,  # type: ignore[attr-defined]
        score=row.score,  # type: ignore[attr-defined]
        comment=row.comment,  # type: ignore[attr-defined]
        visible=row.visible,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class ReviewRepository:
    async def insert(self, db: AsyncSession, review: Review) -> Review:
        try:
            result = await db.execute(
                _INSERT_SQL,
                {
                    "id": review.id,
                    "order_id": review.order_id,
                    "listing_id": review.listing_id,
                    "buyer_id": review.buyer_id,
                    "seller_id": review.seller_id,
                    "score": review.score,
                    "comment": review.comment,
                    "visible": review.visible,
                    "created_at": review.created_at,
                },
            )
        except IntegrityError as exc:
            if _UNIQUE_REVIEW in str(exc.orig):
                raise ReviewExistsError(review.listing_id) from exc
            raise
        row = result.fetchone()
        if row is None:
            raise InternalError("Review insert returned no rows")
        return _row_to_review(row)

    async def exists_for(self, db: AsyncSession, buyer_id: str, listing_id: str) -> bool:
        result = await db.execute(_EXISTS_SQL, {"buyer_id": buyer_id, "listing_id": listing_id})
        return result.fetchone() is not None

    async def list_for_seller(self, db: AsyncSession, seller_id: str, limit: int) -> list[Review]:
        result = await db.execute(_LIST_FOR_SELLER_SQL, {"seller_id": seller_id, "limit": limit})
        return [_row_to_review(row) for row in result.fetchall()]

    async def list_for_listing(
        self, db: AsyncSession, listing_id: str, limit: int
    ) -> list[Review]:
        result = await db.execute(
            _LIST_FOR_LISTING_SQL, {"listing_id": listing_id, "limit": limit}
        )
        return [_row_to_review(row) for row in result.fetchall()]

    async def scores_for_seller(self, db: AsyncSession, seller_id: str) -> list[int]:
        result = await db.execute(_SELLER_SCORES_SQL, {"seller_id": seller_id})
        return [row.score for row in result.fetchall()]

    async def scores_for_listing(self, db: AsyncSession, listing_id: str) -> list[int]:
        result = await db.execute(_LISTING_SCORES_SQL, {"listing_id": listing_id})
        return [row.score for row in result.fetchall()]
