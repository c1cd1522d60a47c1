"""ListingRepository: raw SQL over the listings table."""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_catalog.domain.models import Listing
from src.mk_common.enums import Category, ListingKind, ListingStatus
from src.mk_common.errors import InternalError, ListingNotFoundError
from src.mk_common.money import to_money

_COLUMNS = (
    "id, seller_id, title, description, category, price, kind, status, created_at, updated_at"
)

_GET_LISTING_SQL = text(f"SELECT {_COLUMNS} FROM listings WHERE id = :id")

_INSERT_LISTING_SQL = text(f"""
    INSERT INTO listings (id, seller_id, title, description, category, price, kind, status)
    VALUES (:id, :seller_id, :title, :description, :category, :price, :kind, :status)
    RETURNING {_COLUMNS}
""")

_SET_STATUS_SQL = text("""
    UPDATE listings SET status = :status, updated_at = NOW()
    WHERE id = :id
    RETURNING id
""")

_LIST_LISTINGS_SQL = text(f"""
    SELECT {_COLUMNS} FROM listings
    WHERE (CAST(:seller_id AS TEXT) IS NULL OR seller_id = :seller_id)
      AND (CAST(:status AS TEXT) IS NULL OR status = :status)
      AND (CAST(:kind AS TEXT) IS NULL OR kind = :kind)
    ORDER BY created_at DESC
    LIMIT :limit
""")


def _row_to_listing(row: object) -> Listing:
    return Listing(
        id=row.id,  # type: ignore[attr-defined]
        seller_id=row.seller_id,  # type: ignore[attr-defined]
        title=row.title,  # type: ignore[attr-defined]
        description=row.description,  # type: ignore[attr-defined]
        category=Category(row.category),  # type: ignore[attr-defined]
        price=to_money(row.price),  # type: ignore[attr-defined]
        kind=ListingKind(row.kind),  # type: ignore[attr-defined]
        status=ListingStatus(row.status),  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
        updated_at=row.updated_at,  # type: ignore[attr-defined]
    )


class ListingRepository:
    async def get_listing(self, db: AsyncSession, listing_id: str) -> Listing | None:
        row = (await db.execute(_GET_LISTING_SQL, {"id": listing_id})).fetchone()
        return _row_to_listing(row) if row else None

    async def set_listing_status(
        self, db: AsyncSession, listing_id: str, status: ListingStatus
    ) -> None:
        result = await db.execute(_SET_STATUS_SQL, {"id": listing_id, "status": status.value})
        if result.fetchone() is None:
            raise ListingNotFoundError(listing_id)

    async def create(self, db: AsyncSession, listing: Listing) -> Listing:
        result = await db.execute(
            _INSERT_LISTING_SQL,
            {
                "id": listing.id,
                "seller_id": listing.seller_id,
                "title": listing.title,
                "description": listing.description,
                "category": listing.category.value,
                "price": listing.price,
                "kind": listing.kind.value,
                "status": listing.status.value,
            },
        )
        row = result.fetchone()
        if row is None:
            raise InternalError("Listing insert returned no rows")
        return _row_to_listing(row)

    async def list_listings(
        self,
        db: AsyncSession,
        seller_id: str | None,
        status: str | None,
        kind: str | None,
        limit: int,
    ) -> list[Listing]:
        result = await db.execute(
            _LIST_LISTINGS_SQL,
            {"seller_id": seller_id, "status": status, "kind": kind, "limit": limit},
        )
        return [_row_to_listing(row) for row in result.fetchall()]
