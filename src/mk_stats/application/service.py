"""StatsService: read-only rollups re-derived from orders, bids and movements."""

from datetime import date

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.datetime_utils import day_bounds
from src.mk_common.errors import ValidationError
from src.mk_common.money import to_money
from src.mk_stats.domain.aggregator import (
    EconomicStats,
    ValueRecord,
    by_category,
    by_kind,
    by_seller,
    group_stats,
    window_stats,
)
from src.mk_stats.domain.report import ActivityReport

# Bounds are applied in SQL to keep the scan small and again in Python by the
# aggregator, which owns the inclusive-window rule.
_SALES_SQL = text("""
    SELECT o.total_price AS amount, o.updated_at AS occurred_at,
           l.category AS category, o.seller_id AS seller_id, o.origin AS kind
    FROM orders o JOIN listings l ON l.id = o.listing_id
    WHERE o.state = 'DELIVERED'
      AND (CAST(:lower AS TIMESTAMPTZ) IS NULL OR o.updated_at >= :lower)
      AND (CAST(:upper AS TIMESTAMPTZ) IS NULL OR o.updated_at <= :upper)
""")

_MOVEMENTS_SQL = text("""
    SELECT amount, created_at AS occurred_at, movement_type AS kind
    FROM movements
    WHERE user_id = :user_id
      AND (CAST(:lower AS TIMESTAMPTZ) IS NULL OR created_at >= :lower)
      AND (CAST(:upper AS TIMESTAMPTZ) IS NULL OR created_at <= :upper)
""")

_BID_COUNTS_SQL = text("""
    SELECT COUNT(*) AS total, COUNT(*) FILTER (WHERE accepted) AS accepted
    FROM bids
    WHERE (CAST(:lower AS TIMESTAMPTZ) IS NULL OR created_at >= :lower)
      AND (CAST(:upper AS TIMESTAMPTZ) IS NULL OR created_at <= :upper)
""")

_AWARDED_SQL = text("""
    SELECT COUNT(*) FROM auctions
    WHERE status = 'AWARDED'
      AND (CAST(:lower AS TIMESTAMPTZ) IS NULL OR updated_at >= :lower)
      AND (CAST(:upper AS TIMESTAMPTZ) IS NULL OR updated_at <= :upper)
""")

_ORDERS_BY_ORIGIN_SQL = text("""
    SELECT origin, COUNT(*) AS n FROM orders
    WHERE (CAST(:lower AS TIMESTAMPTZ) IS NULL OR created_at >= :lower)
      AND (CAST(:upper AS TIMESTAMPTZ) IS NULL OR created_at <= :upper)
    GROUP BY origin
""")

_LISTING_COUNTS_SQL = text("""
    SELECT COUNT(*) AS total, COUNT(*) FILTER (WHERE status = 'ACTIVE') AS active
    FROM listings
    WHERE (CAST(:lower AS TIMESTAMPTZ) IS NULL OR created_at >= :lower)
      AND (CAST(:upper AS TIMESTAMPTZ) IS NULL OR created_at <= :upper)
""")

_UNITS_SOLD_SQL = text("""
    SELECT l.category AS category, SUM(o.quantity) AS units
    FROM orders o JOIN listings l ON l.id = o.listing_id
    WHERE o.state = 'DELIVERED'
      AND (CAST(:lower AS TIMESTAMPTZ) IS NULL OR o.updated_at >= :lower)
      AND (CAST(:upper AS TIMESTAMPTZ) IS NULL OR o.updated_at <= :upper)
    GROUP BY l.category
""")


def _bounds(period_start: date | None, period_end: date | None) -> dict[str, object]:
    if period_start and period_end and period_start > period_end:
        raise ValidationError("period_start must not be after period_end")
    lower, upper = day_bounds(period_start, period_end)
    return {"lower": lower, "upper": upper}


def _to_record(row: object) -> ValueRecord:
    return ValueRecord(
        amount=to_money(row.amount),  # type: ignore[attr-defined]
        occurred_at=row.occurred_at,  # type: ignore[attr-defined]
        category=getattr(row, "category", None),
        seller_id=getattr(row, "seller_id", None),
        kind=getattr(row, "kind", None),
    )


class StatsService:
    async def _sales_records(
        self, db: AsyncSession, period_start: date | None, period_end: date | None
    ) -> list[ValueRecord]:
        result = await db.execute(_SALES_SQL, _bounds(period_start, period_end))
        return [_to_record(row) for row in result.fetchall()]

    async def sales_stats(
        self, db: AsyncSession, period_start: date | None = None, period_end: date | None = None
    ) -> EconomicStats:
        records = await self._sales_records(db, period_start, period_end)
        return window_stats(records, period_start, period_end)

    async def sales_stats_by(
        self,
        db: AsyncSession,
        grouping: str,
        period_start: date | None = None,
        period_end: date | None = None,
    ) -> dict[str, EconomicStats]:
        key = {"category": by_category, "seller": by_seller}.get(grouping)
        if key is None:
            raise ValidationError(f"unknown grouping {grouping!r}")
        records = await self._sales_records(db, period_start, period_end)
        return group_stats(records, key, period_start, period_end)

    async def movement_stats(
        self,
        db: AsyncSession,
        user_id: str,
        period_start: date | None = None,
        period_end: date | None = None,
    ) -> dict[str, EconomicStats]:
        params = {"user_id": user_id, **_bounds(period_start, period_end)}
        result = await db.execute(_MOVEMENTS_SQL, params)
        records = [_to_record(row) for row in result.fetchall()]
        return group_stats(records, by_kind, period_start, period_end)

    async def activity_report(
        self, db: AsyncSession, period_start: date | None = None, period_end: date | None = None
    ) -> ActivityReport:
        params = _bounds(period_start, period_end)
        bids = (await db.execute(_BID_COUNTS_SQL, params)).one()
        awarded = (await db.execute(_AWARDED_SQL, params)).scalar_one()
        origins = (await db.execute(_ORDERS_BY_ORIGIN_SQL, params)).fetchall()
        listings = (await db.execute(_LISTING_COUNTS_SQL, params)).one()
        units = (await db.execute(_UNITS_SOLD_SQL, params)).fetchall()
        sales = window_stats(
            await self._sales_records(db, period_start, period_end), period_start, period_end
        )
        return ActivityReport(
            period_start=period_start,
            period_end=period_end,
            total_bids=bids.total,
            accepted_bids=bids.accepted,
            awarded_auctions=awarded,
            orders_by_origin={row.origin: row.n for row in origins},
            total_listings=listings.total,
            active_listings=listings.active,
            units_sold_by_category={row.category: int(row.units) for row in units},
            sales=sales,
        )
