"""Bucket generator for zero-filled time series.

A `BucketSpan` is a lazy, finite, restartable sequence: iterating it yields
fresh zero-valued buckets in chronological order every time. `fill` merges
aggregate rows by exact label match and drops rows outside the span, so a
chart never loses an x-axis point and never gains a stray one.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Iterator

from affiliate_dashboard.config import DAY_LABEL_FORMAT, HOUR_LABEL_FORMAT, RECENT_ACTIVITY_WINDOWS
from affiliate_dashboard.services.time_ranges import TimeWindow
from affiliate_dashboard.utils.time import start_of_day

HOURLY = "hour"
DAILY = "day"

_STEPS = {
    HOURLY: (timedelta(hours=1), HOUR_LABEL_FORMAT),
    DAILY: (timedelta(days=1), DAY_LABEL_FORMAT),
}


@dataclass
class Bucket:
    period: str
    value: int | float = 0


class BucketSpan:
    """`points` contiguous buckets of one granularity starting at `start`."""

    def __init__(self, start: datetime, points: int, granularity: str = DAILY):
        if granularity not in _STEPS:
            raise ValueError(f"Unknown bucket granularity: {granularity}")
        if points < 0:
            raise ValueError("points must be >= 0")
        self.start = start
        self.points = points
        self.granularity = granularity
        self._step, self._label_format = _STEPS[granularity]

    @property
    def end(self) -> datetime:
        """Exclusive end of the last bucket."""
        return self.start + self._step * self.points

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.start, self.end)

    def __len__(self) -> int:
        return self.points

    def __iter__(self) -> Iterator[Bucket]:
        for index in range(self.points):
            yield Bucket(period=(self.start + self._step * index).strftime(self._label_format))

    def labels(self) -> list[str]:
        return [bucket.period for bucket in self]

    def fill(self, rows: Iterable[tuple[str, int | float]]) -> list[Bucket]:
        """Zero-filled buckets with aggregate values merged in by label."""
        buckets = list(self)
        by_label = {bucket.period: bucket for bucket in buckets}
        for period, value in rows:
            bucket = by_label.get(period)
            if bucket is None:
                # outside the span (clock skew, late events)
                continue
            bucket.value += value or 0
        return buckets

    def __repr__(self) -> str:
        return f"BucketSpan(start={self.start.isoformat()}, points={self.points}, granularity={self.granularity!r})"


def hourly_last_24h(now: datetime) -> BucketSpan:
    points = int(RECENT_ACTIVITY_WINDOWS["last_24_hours"]["points"])
    current_hour = now.replace(minute=0, second=0, microsecond=0)
    return BucketSpan(current_hour - timedelta(hours=points - 1), points, HOURLY)


def _daily_ending_today(now: datetime, points: int) -> BucketSpan:
    return BucketSpan(start_of_day(now) - timedelta(days=points - 1), points, DAILY)


def daily_last_7d(now: datetime) -> BucketSpan:
    return _daily_ending_today(now, int(RECENT_ACTIVITY_WINDOWS["last_7_days"]["points"]))


def daily_last_30d(now: datetime) -> BucketSpan:
    return _daily_ending_today(now, int(RECENT_ACTIVITY_WINDOWS["last_30_days"]["points"]))


def daily_for_window(window: TimeWindow) -> BucketSpan:
    """One bucket per calendar day touched by the resolved effective window."""
    return BucketSpan(start_of_day(window.first_day), window.day_count, DAILY)


__all__ = [
    "HOURLY",
    "DAILY",
    "Bucket",
    "BucketSpan",
    "hourly_last_24h",
    "daily_last_7d",
    "daily_last_30d",
    "daily_for_window",
]
