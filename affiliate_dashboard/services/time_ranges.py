"""Time range resolver.

Derives, from one injected `now`, every calendar boundary a report needs:

* fixed month boundaries (this month, previous month), inclusive of the last
  millisecond of the month, for the month-over-month cards;
* the current ISO week for the Monday-Sunday chart;
* the effective window for range-filterable charts: `[start, end + 1 day)`
  when the caller supplied both dates, otherwise the current month.

All values are naive UTC.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional

from affiliate_dashboard.utils import get_logger
from affiliate_dashboard.utils.time import parse_date_param, start_of_day, to_naive_utc

logger = get_logger(__name__)

END_OF_DAY_PRECISION = timedelta(milliseconds=1)


@dataclass(frozen=True)
class TimeWindow:
    """A time span used to filter events.

    `end_inclusive` distinguishes the closed month boundaries from the
    half-open windows used everywhere else.
    """
    start: datetime
    end: datetime
    end_inclusive: bool = False

    def contains(self, moment: datetime) -> bool:
        if moment < self.start:
            return False
        return moment <= self.end if self.end_inclusive else moment < self.end

    @property
    def first_day(self) -> date:
        return self.start.date()

    @property
    def last_day(self) -> date:
        """Last calendar day touched by the window."""
        if self.end_inclusive:
            return self.end.date()
        return (self.end - END_OF_DAY_PRECISION).date()

    @property
    def day_count(self) -> int:
        return (self.last_day - self.first_day).days + 1


@dataclass(frozen=True)
class ReportTimeRange:
    now: datetime
    current_month: TimeWindow
    previous_month: TimeWindow
    current_week: TimeWindow
    effective: TimeWindow
    custom: bool

    @property
    def totals_window(self) -> Optional[TimeWindow]:
        """Window for the headline totals: lifetime unless a range was supplied."""
        return self.effective if self.custom else None


def month_bounds(moment: datetime) -> TimeWindow:
    first = datetime(moment.year, moment.month, 1)
    if moment.month == 12:
        next_first = datetime(moment.year + 1, 1, 1)
    else:
        next_first = datetime(moment.year, moment.month + 1, 1)
    return TimeWindow(first, next_first - END_OF_DAY_PRECISION, end_inclusive=True)


def previous_month_bounds(moment: datetime) -> TimeWindow:
    first_of_current = datetime(moment.year, moment.month, 1)
    return month_bounds(first_of_current - timedelta(days=1))


def week_bounds(moment: datetime) -> TimeWindow:
    monday = start_of_day(moment) - timedelta(days=moment.weekday())
    return TimeWindow(monday, monday + timedelta(days=7))


def resolve_effective_window(
    now: datetime,
    start_date: str | date | None = None,
    end_date: str | date | None = None,
) -> tuple[TimeWindow, bool]:
    """Return (window, custom). Malformed or inverted ranges fall back to the month."""
    start = parse_date_param(start_date)
    end = parse_date_param(end_date)
    month = month_bounds(now)
    if start is None or end is None:
        if start_date or end_date:
            logger.debug(
                "Ignoring incomplete or malformed date range",
                start_date=str(start_date), end_date=str(end_date),
            )
        return TimeWindow(month.start, month.end + END_OF_DAY_PRECISION), False
    if start > end:
        logger.warning("Ignoring inverted date range", start_date=start.isoformat(), end_date=end.isoformat())
        return TimeWindow(month.start, month.end + END_OF_DAY_PRECISION), False
    return TimeWindow(start_of_day(start), start_of_day(end) + timedelta(days=1)), True


def resolve_time_range(
    now: datetime,
    start_date: str | date | None = None,
    end_date: str | date | None = None,
) -> ReportTimeRange:
    """Resolve every boundary for one report request from a single `now`."""
    now = to_naive_utc(now)
    effective, custom = resolve_effective_window(now, start_date, end_date)
    return ReportTimeRange(
        now=now,
        current_month=month_bounds(now),
        previous_month=previous_month_bounds(now),
        current_week=week_bounds(now),
        effective=effective,
        custom=custom,
    )


__all__ = [
    "TimeWindow",
    "ReportTimeRange",
    "month_bounds",
    "previous_month_bounds",
    "week_bounds",
    "resolve_effective_window",
    "resolve_time_range",
]
