"""Activity report over a period: bids, orders, listings and sales."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from src.mk_common.enums import OrderOrigin
from src.mk_common.money import ZERO, round_half_up
from src.mk_stats.domain.aggregator import EconomicStats

_HUNDRED = Decimal("100")


def percentage(part: int, whole: int) -> Decimal:
    if whole == 0:
        return round_half_up(ZERO)
    return round_half_up(Decimal(part) * _HUNDRED / Decimal(whole))


def _top(counts: dict[str, int], order: list[str] | None = None) -> str | None:
    """Key with the highest positive count; ties go to the earliest key in ``order``."""
    keys = order if order is not None else sorted(counts)
    best: str | None = None
    best_count = 0
    for name in keys:
        count = counts.get(name, 0)
        if count > best_count:
            best, best_count = name, count
    return best


@dataclass(frozen=True)
class ActivityReport:
    period_start: date | None
    period_end: date | None
    total_bids: int = 0
    accepted_bids: int = 0
    awarded_auctions: int = 0
    orders_by_origin: dict[str, int] = field(default_factory=dict)
    total_listings: int = 0
    active_listings: int = 0
    units_sold_by_category: dict[str, int] = field(default_factory=dict)
    sales: EconomicStats = field(default_factory=EconomicStats.empty)

    @property
    def bid_acceptance_rate(self) -> Decimal:
        return percentage(self.accepted_bids, self.total_bids)

    @property
    def active_listing_rate(self) -> Decimal:
        return percentage(self.active_listings, self.total_listings)

    @property
    def total_orders(self) -> int:
        return sum(self.orders_by_origin.values())

    @property
    def most_popular_origin(self) -> str | None:
        return _top(self.orders_by_origin, [o.value for o in OrderOrigin])

    @property
    def best_selling_category(self) -> str | None:
        return _top(self.units_sold_by_category)

    @property
    def has_data(self) -> bool:
        return bool(self.total_bids or self.total_orders or self.total_listings)
