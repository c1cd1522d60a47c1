"""Pydantic schemas for stats endpoints."""

from decimal import Decimal
from typing import Literal

from pydantic import BaseModel

from src.mk_common.money import money_to_display
from src.mk_stats.domain.aggregator import EconomicStats
from src.mk_stats.domain.report import ActivityReport

SalesGrouping = Literal["none", "category", "seller"]


class StatsResponse(BaseModel):
    min: Decimal
    max: Decimal
    mean: Decimal
    mean_display: str
    total: Decimal
    total_display: str
    count: int
    period_start: str | None
    period_end: str | None

    @classmethod
    def from_domain(cls, s: EconomicStats) -> "StatsResponse":
        return cls(
            min=s.min,
            max=s.max,
            mean=s.mean,
            mean_display=money_to_display(s.mean),
            total=s.total,
            total_display=money_to_display(s.total),
            count=s.count,
            period_start=s.period_start.isoformat() if s.period_start else None,
            period_end=s.period_end.isoformat() if s.period_end else None,
        )


class ActivityReportResponse(BaseModel):
    period_start: str | None
    period_end: str | None
    has_data: bool
    total_bids: int
    accepted_bids: int
    bid_acceptance_rate: Decimal
    awarded_auctions: int
    orders_by_origin: dict[str, int]
    most_popular_origin: str | None
    total_listings: int
    active_listings: int
    active_listing_rate: Decimal
    units_sold_by_category: dict[str, int]
    best_selling_category: str | None
    sales: StatsResponse

    @classmethod
    def from_domain(cls, r: ActivityReport) -> "ActivityReportResponse":
        return cls(
            period_start=r.period_start.isoformat() if r.period_start else None,
            period_end=r.period_end.isoformat() if r.period_end else None,
            has_data=r.has_data,
            total_bids=r.total_bids,
            accepted_bids=r.accepted_bids,
            bid_acceptance_rate=r.bid_acceptance_rate,
            awarded_auctions=r.awarded_auctions,
            orders_by_origin=r.orders_by_origin,
            most_popular_origin=r.most_popular_origin,
            total_listings=r.total_listings,
            active_listings=r.active_listings,
            active_listing_rate=r.active_listing_rate,
            units_sold_by_category=r.units_sold_by_category,
            best_selling_category=r.best_selling_category,
            sales=StatsResponse.from_domain(r.sales),
        )
