"""Time utilities: the injectable clock and naive-UTC normalisation.

The engine stores and compares naive UTC datetimes. The only place "now" is
read is `utc_now`; everything downstream receives it as an argument.
"""
from __future__ import annotations
from datetime import date, datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def fixed_clock(instant: datetime) -> Clock:
    """Clock that always returns `instant` (tests, replays)."""
    def _clock() -> datetime:
        return instant
    return _clock

def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)

def start_of_day(value: datetime | date) -> datetime:
    return datetime(value.year, value.month, value.day)

def parse_date_param(raw: str | date | None) -> date | None:
    """Parse a YYYY-MM-DD query value; anything unparseable is None."""
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    try:
        return date.fromisoformat(raw.strip())
    except (ValueError, AttributeError):
        return None

__all__ = [
    "Clock",
    "utc_now",
    "fixed_clock",
    "to_naive_utc",
    "start_of_day",
    "parse_date_param",
]
