"""Calendar period windows under a fixed UTC offset.

Every window is half-open, ``[start, end)``, with both ends expressed as
timezone-aware UTC instants. Local midnight is mapped to UTC by subtracting
the offset, so with an offset of -5 a local day starts at 05:00 UTC.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum

CUSTOM_RANGE_LABEL = "Custom Range"


class PeriodKind(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


PERIOD_LABELS: dict[PeriodKind, str] = {
    PeriodKind.DAY: "Today",
    PeriodKind.WEEK: "This Week",
    PeriodKind.MONTH: "This Month",
    PeriodKind.YEAR: "This Year",
}


@dataclass(slots=True, frozen=True)
class Period:
    start: datetime
    end: datetime
    label: str

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end


def local_timezone(tz_offset_hours: int) -> timezone:
    return timezone(timedelta(hours=tz_offset_hours))


def local_now(tz_offset_hours: int) -> datetime:
    return datetime.now(local_timezone(tz_offset_hours))


def local_today(tz_offset_hours: int) -> date:
    return local_now(tz_offset_hours).date()


def parse_local_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string. Raises ``ValueError`` when malformed."""
    return date.fromisoformat(value.strip()[:10])


def local_midnight_utc(day: date, tz_offset_hours: int) -> datetime:
    """Return the UTC instant of local midnight on ``day``."""
    return datetime.combine(day, time.min, tzinfo=timezone.utc) - timedelta(hours=tz_offset_hours)


def start_of_week(day: date) -> date:
    # date.weekday(): Monday == 0 ... Sunday == 6
    return day - timedelta(days=(day.weekday() + 1) % 7)


def first_of_next_month(day: date) -> date:
    if day.month == 12:
        return date(day.year + 1, 1, 1)
    return date(day.year, day.month + 1, 1)


def compute_period_window(
    period_kind: PeriodKind | str,
    reference_date: date | str | None,
    tz_offset_hours: int,
) -> Period:
    """Compute the ``[start, end)`` UTC window for a named local period.

    ``reference_date`` may be a ``date``, a ``YYYY-MM-DD`` string, or ``None``
    for today in the given offset. Weeks start on Sunday.
    """
    kind = PeriodKind(period_kind)
    if reference_date is None:
        day = local_today(tz_offset_hours)
    elif isinstance(reference_date, str):
        day = parse_local_date(reference_date)
    else:
        day = reference_date

    if kind is PeriodKind.DAY:
        local_start = day
        local_end = day + timedelta(days=1)
    elif kind is PeriodKind.WEEK:
        local_start = start_of_week(day)
        local_end = local_start + timedelta(days=7)
    elif kind is PeriodKind.MONTH:
        local_start = day.replace(day=1)
        local_end = first_of_next_month(local_start)
    else:
        local_start = date(day.year, 1, 1)
        local_end = date(day.year + 1, 1, 1)

    return Period(
        start=local_midnight_utc(local_start, tz_offset_hours),
        end=local_midnight_utc(local_end, tz_offset_hours),
        label=PERIOD_LABELS[kind],
    )


def compute_custom_range_window(
    start_date: date | str,
    end_date: date | str,
    tz_offset_hours: int,
) -> Period:
    """Window covering ``start_date`` through ``end_date`` inclusive, in local days."""
    if isinstance(start_date, str):
        start_date = parse_local_date(start_date)
    if isinstance(end_date, str):
        end_date = parse_local_date(end_date)
    return Period(
        start=local_midnight_utc(start_date, tz_offset_hours),
        end=local_midnight_utc(end_date + timedelta(days=1), tz_offset_hours),
        label=CUSTOM_RANGE_LABEL,
    )
