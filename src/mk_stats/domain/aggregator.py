"""Economic statistics: pure functions over monetary values.

Stats are derived on demand from orders and movements and are never a
source of truth. The mean is the only rounded figure (2 places, HALF_UP).
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from src.mk_common.money import ZERO, round_half_up


@dataclass(frozen=True)
class EconomicStats:
    min: Decimal
    max: Decimal
    mean: Decimal
    total: Decimal
    count: int
    period_start: date | None = None
    period_end: date | None = None

    @classmethod
    def empty(
        cls, period_start: date | None = None, period_end: date | None = None
    ) -> "EconomicStats":
        return cls(ZERO, ZERO, ZERO, ZERO, 0, period_start, period_end)


@dataclass(frozen=True)
class ValueRecord:
    """One monetary fact with the attributes stats can be grouped by."""

    amount: Decimal
    occurred_at: datetime
    category: str | None = None
    seller_id: str | None = None
    kind: str | None = None


class _Accumulator:
    __slots__ = ("low", "high", "total", "count")

    def __init__(self) -> None:
        self.low: Decimal | None = None
        self.high: Decimal | None = None
        self.total = ZERO
        self.count = 0

    def add(self, value: Decimal) -> None:
        if self.low is None or value < self.low:
            self.low = value
        if self.high is None or value > self.high:
            self.high = value
        self.total += value
        self.count += 1

    def result(self, period_start: date | None, period_end: date | None) -> EconomicStats:
        if self.count == 0:
            return EconomicStats.empty(period_start, period_end)
        return EconomicStats(
            min=self.low,  # type: ignore[arg-type]
            max=self.high,  # type: ignore[arg-type]
            mean=round_half_up(self.total / self.count),
            total=self.total,
            count=self.count,
            period_start=period_start,
            period_end=period_end,
        )


def compute_stats(
    values: Iterable[Decimal],
    period_start: date | None = None,
    period_end: date | None = None,
) -> EconomicStats:
    acc = _Accumulator()
    for value in values:
        acc.add(value)
    return acc.result(period_start, period_end)


def in_window(moment: datetime | date, period_start: date | None, period_end: date | None) -> bool:
    """Inclusive on both ends, compared by calendar date."""
    day = moment.date() if isinstance(moment, datetime) else moment
    if period_start is not None and day < period_start:
        return False
    if period_end is not None and day > period_end:
        return False
    return True


def window_stats(
    records: Iterable[ValueRecord],
    period_start: date | None = None,
    period_end: date | None = None,
) -> EconomicStats:
    return compute_stats(
        (r.amount for r in records if in_window(r.occurred_at, period_start, period_end)),
        period_start,
        period_end,
    )


def group_stats(
    records: Iterable[ValueRecord],
    key: Callable[[ValueRecord], str | None],
    period_start: date | None = None,
    period_end: date | None = None,
) -> dict[str, EconomicStats]:
    """One pass, one aggregate per key. Records outside the window or without a key are skipped."""
    groups: dict[str, _Accumulator] = {}
    for record in records:
        if not in_window(record.occurred_at, period_start, period_end):
            continue
        group = key(record)
        if group is None:
            continue
        acc = groups.get(group)
        if acc is None:
            acc = groups[group] = _Accumulator()
        acc.add(record.amount)
    return {name: acc.result(period_start, period_end) for name, acc in groups.items()}


def by_category(record: ValueRecord) -> str | None:
    return record.category


def by_seller(record: ValueRecord) -> str | None:
    return record.seller_id


def by_kind(record: ValueRecord) -> str | None:
    return record.kind
