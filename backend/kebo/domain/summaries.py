from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Protocol

from .periods import Period, PeriodKind, compute_custom_range_window, compute_period_window

ZERO = Decimal("0")


class CategorisedAmount(Protocol):
    category: str
    amount: Decimal


class NutritionFacts(Protocol):
    category: str
    calories: Decimal
    protein: Decimal
    carbs: Decimal
    fat: Decimal


# find_records(user_id, start, end, category) -> records with start <= occurred_at < end
RecordFinder = Callable[[int, datetime, datetime, str | None], Sequence]


@dataclass(slots=True, frozen=True)
class CategoryBreakdown:
    category: str
    total: Decimal
    count: int

    def to_dict(self) -> dict[str, object]:
        return {"category": self.category, "total": str(self.total), "count": self.count}


@dataclass(slots=True, frozen=True)
class Summary:
    period_label: str
    start: datetime
    end: datetime
    total_amount: Decimal
    entry_count: int
    by_category: list[CategoryBreakdown] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        return {
            "period_label": self.period_label,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "total_amount": str(self.total_amount),
            "entry_count": self.entry_count,
            "by_category": [item.to_dict() for item in self.by_category],
        }


@dataclass(slots=True, frozen=True)
class NutritionTotals:
    calories: Decimal = ZERO
    protein: Decimal = ZERO
    carbs: Decimal = ZERO
    fat: Decimal = ZERO
    entry_count: int = 0

    def add(self, other: NutritionTotals) -> NutritionTotals:
        return NutritionTotals(
            calories=self.calories + other.calories,
            protein=self.protein + other.protein,
            carbs=self.carbs + other.carbs,
            fat=self.fat + other.fat,
            entry_count=self.entry_count + other.entry_count,
        )


@dataclass(slots=True, frozen=True)
class NutritionSummary:
    period_label: str
    start: datetime
    end: datetime
    totals: NutritionTotals
    by_meal: dict[str, NutritionTotals] = field(default_factory=dict)


def _to_decimal(value: object) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def reduce_by_category(records: Iterable[CategorisedAmount]) -> tuple[Decimal, int, list[CategoryBreakdown]]:
    """Fold records into an overall total, a count and per-category totals.

    Order independent: the result does not depend on iteration order.
    """
    total = ZERO
    count = 0
    buckets: dict[str, tuple[Decimal, int]] = {}
    for record in records:
        amount = _to_decimal(record.amount)
        total += amount
        count += 1
        bucket_total, bucket_count = buckets.get(record.category, (ZERO, 0))
        buckets[record.category] = (bucket_total + amount, bucket_count + 1)

    breakdown = [
        CategoryBreakdown(category=category, total=bucket_total, count=bucket_count)
        for category, (bucket_total, bucket_count) in buckets.items()
    ]
    return total, count, breakdown


def sorted_by_total(breakdown: Iterable[CategoryBreakdown]) -> list[CategoryBreakdown]:
    """Largest category first; ties fall back to the category name."""
    return sorted(breakdown, key=lambda item: (-item.total, item.category))


def summarise(period: Period, records: Iterable[CategorisedAmount]) -> Summary:
    total, count, breakdown = reduce_by_category(records)
    return Summary(
        period_label=period.label,
        start=period.start,
        end=period.end,
        total_amount=total,
        entry_count=count,
        by_category=breakdown,
    )


def compute_summary(
    find_records: RecordFinder,
    user_id: int,
    period: PeriodKind | str,
    reference_date: date | str | None = None,
    category: str | None = None,
    *,
    tz_offset_hours: int,
) -> Summary:
    """Summarise a user's records for a named period.

    Storage errors raised by ``find_records`` propagate unchanged.
    """
    window = compute_period_window(period, reference_date, tz_offset_hours)
    records = find_records(user_id, window.start, window.end, category)
    return summarise(window, records)


def compute_custom_range_summary(
    find_records: RecordFinder,
    user_id: int,
    start_date: date | str,
    end_date: date | str,
    *,
    tz_offset_hours: int,
) -> Summary:
    window = compute_custom_range_window(start_date, end_date, tz_offset_hours)
    records = find_records(user_id, window.start, window.end, None)
    return summarise(window, records)


def reduce_nutrition(records: Iterable[NutritionFacts]) -> tuple[NutritionTotals, dict[str, NutritionTotals]]:
    totals = NutritionTotals()
    by_meal: dict[str, NutritionTotals] = {}
    for record in records:
        entry = NutritionTotals(
            calories=_to_decimal(record.calories),
            protein=_to_decimal(record.protein),
            carbs=_to_decimal(record.carbs),
            fat=_to_decimal(record.fat),
            entry_count=1,
        )
        totals = totals.add(entry)
        by_meal[record.category] = by_meal.get(record.category, NutritionTotals()).add(entry)
    return totals, by_meal


def compute_daily_nutrition(
    find_records: RecordFinder,
    user_id: int,
    reference_date: date | str | None = None,
    *,
    tz_offset_hours: int,
) -> NutritionSummary:
    window = compute_period_window(PeriodKind.DAY, reference_date, tz_offset_hours)
    records = find_records(user_id, window.start, window.end, None)
    totals, by_meal = reduce_nutrition(records)
    return NutritionSummary(
        period_label=window.label,
        start=window.start,
        end=window.end,
        totals=totals,
        by_meal=by_meal,
    )
