"""AuctionRepository: auctions (running maximum) and bids (append-only).

``raise_highest`` is the storage-side strict-increase guard: the UPDATE only
matches while the stored maximum is lower than the new amount, so two
processes racing on one listing cannot both win.
"""

from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_auction.domain.models import AuctionState, Bid
from src.mk_common.enums import AuctionStatus
from src.mk_common.errors import InternalError
from src.mk_common.money import to_money

_ENSURE_AUCTION_SQL = text("""
    INSERT INTO auctions (listing_id, seller_id, status)
    VALUES (:listing_id, :seller_id, 'OPEN')
    ON CONFLICT (listing_id) DO NOTHING
""")

_GET_AUCTION_SQL = text("""
    SELECT listing_id, seller_id, status, highest_bid_id, highest_amount,
           highest_bidder_id, order_id, version
    FROM auctions WHERE listing_id = :listing_id
""")

_RAISE_HIGHEST_SQL = text("""
    UPDATE auctions
    SET highest_bid_id = :bid_id,
        highest_amount = :amount,
        highest_bidder_id = :bidder_id,
        version = version + 1,
        updated_at = NOW()
    WHERE listing_id = :listing_id
      AND status = 'OPEN'
      AND (highest_amount IS NULL OR highest_amount < :amount)
    RETURNING version
""")

_MARK_AWARDED_SQL = text("""
    UPDATE auctions
    SET status = 'AWARDED',
        order_id = :order_id,
        version = version + 1,
        updated_at = NOW()
    WHERE listing_id = :listing_id AND status = 'OPEN' AND version = :expected_version
    RETURNING version
""")

_INSERT_BID_SQL = text("""
    INSERT INTO bids (id, listing_id, bidder_id, amount, accepted, rejection_reason, created_at)
    VALUES (:id, :listing_id, :bidder_id, :amount, :accepted, :rejection_reason, :created_at)
""")

_BID_COLUMNS = "id, listing_id, bidder_id, amount, accepted, rejection_reason, created_at"

_GET_BID_SQL = text(f"SELECT {_BID_COLUMNS} FROM bids WHERE id = :id")

_LIST_BIDS_SQL = text(f"""
    SELECT {_BID_COLUMNS} FROM bids
    WHERE listing_id = :listing_id
      AND (:accepted_only = FALSE OR accepted = TRUE)
    ORDER BY created_at DESC, id DESC
    LIMIT :limit
""")


def _row_to_state(row: object) -> AuctionState:
    amount = row.highest_amount  # type: ignore[attr-defined]
    return AuctionState(
        listing_id=row.listing_id,  # type: ignore[attr-defined]
        seller_id=row.seller_id,  # type: ignore[attr-defined]
        status=AuctionStatus(row.status),  # type: ignore[attr-defined]
        highest_bid_id=row.highest_bid_id,  # type: ignore[attr-defined]
        highest_amount=to_money(amount) if amount is not None else None,
        highest_bidder_id=row.highest_bidder_id,  # type: ignore[attr-defined]
        order_id=row.order_id,  # type: ignore[attr-defined]
        version=row.version,  # type: ignore[attr-defined]
    )


def _row_to_bid(row: object) -> Bid:
    return Bid(
        id=row.id,  # type: ignore[attr-defined]
        listing_id=row.listing_id,  # type: ignore[attr-defined]
        bidder_id=row.bidder_id,  # type: ignore[attr-defined]
        amount=to_money(row.amount),  # type: ignore[attr-defined]
        accepted=row.accepted,  # type: ignore[attr-defined]
        rejection_reason=row.rejection_reason,  # type: ignore[attr-defined]
        created_at=row.created_at,  # type: ignore[attr-defined]
    )


class AuctionRepository:
    async def get_or_create_auction(
        self, db: AsyncSession, listing_id: str, seller_id: str
    ) -> AuctionState:
        await db.execute(_ENSURE_AUCTION_SQL, {"listing_id": listing_id, "seller_id": seller_id})
        row = (await db.execute(_GET_AUCTION_SQL, {"listing_id": listing_id})).fetchone()
        if row is None:
            raise InternalError(f"Auction row missing for listing {listing_id} after upsert")
        return _row_to_state(row)

    async def get_bid(self, db: AsyncSession, bid_id: str) -> Bid | None:
        row = (await db.execute(_GET_BID_SQL, {"id": bid_id})).fetchone()
        return _row_to_bid(row) if row else None

    async def raise_highest(
        self, db: AsyncSession, listing_id: str, bid_id: str, bidder_id: str, amount: Decimal
    ) -> int | None:
        """New version, or None when the stored maximum already reached ``amount``."""
        result = await db.execute(
            _RAISE_HIGHEST_SQL,
            {"listing_id": listing_id, "bid_id": bid_id, "bidder_id": bidder_id, "amount": amount},
        )
        row = result.fetchone()
        return row.version if row else None

    async def insert_bid(self, db: AsyncSession, bid: Bid) -> None:
        await db.execute(
            _INSERT_BID_SQL,
            {
                "id": bid.id,
                "listing_id": bid.listing_id,
                "bidder_id": bid.bidder_id,
                "amount": bid.amount,
                "accepted": bid.accepted,
                "rejection_reason": bid.rejection_reason,
                "created_at": bid.created_at,
            },
        )

    async def mark_awarded(
        self, db: AsyncSession, listing_id: str, order_id: str, expected_version: int
    ) -> int | None:
        result = await db.execute(
            _MARK_AWARDED_SQL,
            {"listing_id": listing_id, "order_id": order_id, "expected_version": expected_version},
        )
        row = result.fetchone()
        return row.version if row else None

    async def list_bids(
        self, db: AsyncSession, listing_id: str, limit: int, accepted_only: bool
    ) -> list[Bid]:
        result = await db.execute(
            _LIST_BIDS_SQL,
            {"listing_id": listing_id, "limit": limit, "accepted_only": accepted_only},
        )
        return [_row_to_bid(row) for row in result.fetchall()]
