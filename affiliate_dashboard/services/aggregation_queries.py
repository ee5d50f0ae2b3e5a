"""Aggregation query layer.

Grouped, read-only aggregate reads against the tracking store. Every method
opens and closes its own session, so the assembler can run them concurrently
on worker threads without sharing a Session (Sessions are not thread-safe).

A `publisher_id` of None scopes the reads to the whole platform.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Optional

from sqlalchemy import case, func, literal_column
from sqlalchemy.orm import Query, Session

from affiliate_dashboard.config import DAY_LABEL_FORMAT, HOUR_LABEL_FORMAT, REPORTING_SETTINGS
from affiliate_dashboard.models.db import Click, Conversion, ConversionStatus, Offer, OfferPublisher
from affiliate_dashboard.services.buckets import DAILY, HOURLY
from affiliate_dashboard.services.commission import CutLookup, OfferClickCounts, OfferCount
from affiliate_dashboard.services.time_ranges import TimeWindow
from affiliate_dashboard.utils.metrics import as_count, as_money

SessionFactory = Callable[[], Session]

# to_char patterns matching DAY_LABEL_FORMAT / HOUR_LABEL_FORMAT
_POSTGRES_PATTERNS = {
    DAILY: "YYYY-MM-DD",
    HOURLY: "HH24:00",
}
_STRFTIME_PATTERNS = {
    DAILY: DAY_LABEL_FORMAT,
    HOURLY: HOUR_LABEL_FORMAT,
}


@dataclass(frozen=True)
class OfferConversionTotals:
    offer_id: int
    publisher_id: int
    conversions: int
    commission: float
    revenue: float
    approved: int

    def as_offer_count(self) -> OfferCount:
        return OfferCount(offer_id=self.offer_id, publisher_id=self.publisher_id, raw_count=self.conversions)


@dataclass(frozen=True)
class WeekdayClicks:
    day: str
    weekday_label: str
    clicks: int


class AggregationQueries:
    """Aggregate reads for one report scope."""

    def __init__(self, session_factory: SessionFactory, publisher_id: Optional[int] = None):
        self._session_factory = session_factory
        self.publisher_id = publisher_id

    @property
    def platform_wide(self) -> bool:
        return self.publisher_id is None

    # ------------------------------------------------------------------ #
    # helpers
    # ------------------------------------------------------------------ #
    def _scoped(self, query: Query, model: Any) -> Query:
        if self.publisher_id is None:
            return query
        return query.filter(model.publisher_id == self.publisher_id)

    @staticmethod
    def _within(query: Query, column: Any, window: Optional[TimeWindow]) -> Query:
        if window is None:
            return query
        query = query.filter(column >= window.start)
        if window.end_inclusive:
            return query.filter(column <= window.end)
        return query.filter(column < window.end)

    @staticmethod
    def _period(session: Session, column: Any, granularity: str):
        """Period label expression (YYYY-MM-DD or HH:00) for the bound dialect.

        The pattern is inlined rather than bound so SELECT and GROUP BY render
        the identical expression.
        """
        if session.get_bind().dialect.name == "postgresql":
            return func.to_char(column, literal_column(f"'{_POSTGRES_PATTERNS[granularity]}'"))
        return func.strftime(literal_column(f"'{_STRFTIME_PATTERNS[granularity]}'"), column)

    def _count_by_period(self, model: Any, column: Any, window: TimeWindow, granularity: str) -> list[tuple[str, int]]:
        with self._session_factory() as session:
            period = self._period(session, column, granularity).label("period")
            query = session.query(period, func.count(model.id))
            query = self._within(self._scoped(query, model), column, window)
            rows = query.group_by(period).order_by(period).all()
        return [(label, as_count(count)) for label, count in rows]

    # ------------------------------------------------------------------ #
    # configuration reads
    # ------------------------------------------------------------------ #
    def commission_cuts(self) -> CutLookup:
        """(offer_id, publisher_id) -> cut for every agreement in this scope.

        Platform-wide this is every agreement; each publisher's counts are
        still shaved only by their own agreement for the offer.
        """
        with self._session_factory() as session:
            query = session.query(
                OfferPublisher.offer_id,
                OfferPublisher.publisher_id,
                OfferPublisher.commission_cut,
            )
            rows = self._scoped(query, OfferPublisher).all()
        return CutLookup({(offer_id, publisher_id): cut for offer_id, publisher_id, cut in rows})

    def offer_names(self) -> dict[int, str]:
        with self._session_factory() as session:
            rows = session.query(Offer.id, Offer.name).all()
        return {offer_id: name for offer_id, name in rows if name}

    # ------------------------------------------------------------------ #
    # per-(offer, publisher) aggregates
    #
    # Rows are keyed by the pair so each publisher's counts meet only their
    # own agreement's cut. Publisher-scoped reads yield one pair per offer.
    # ------------------------------------------------------------------ #
    def clicks_by_offer(self, window: Optional[TimeWindow] = None) -> list[OfferCount]:
        """Raw click counts per (offer, publisher); `window=None` means lifetime."""
        with self._session_factory() as session:
            query = session.query(Click.offer_id, Click.publisher_id, func.count(Click.id))
            query = self._within(self._scoped(query, Click), Click.timestamp, window)
            rows = (
                query.group_by(Click.offer_id, Click.publisher_id)
                .order_by(Click.offer_id, Click.publisher_id)
                .all()
            )
        return [
            OfferCount(offer_id=offer_id, publisher_id=publisher_id, raw_count=as_count(count))
            for offer_id, publisher_id, count in rows
        ]

    def conversions_by_offer(self, window: Optional[TimeWindow] = None) -> list[OfferConversionTotals]:
        """Conversion counts, summed commission / amount and approvals per (offer, publisher)."""
        with self._session_factory() as session:
            query = session.query(
                Conversion.offer_id,
                Conversion.publisher_id,
                func.count(Conversion.id),
                func.coalesce(func.sum(Conversion.commission_amount), 0),
                func.coalesce(func.sum(Conversion.amount), 0),
                func.coalesce(
                    func.sum(case((Conversion.status == ConversionStatus.APPROVED, 1), else_=0)), 0
                ),
            )
            query = self._within(self._scoped(query, Conversion), Conversion.created_at, window)
            rows = (
                query.group_by(Conversion.offer_id, Conversion.publisher_id)
                .order_by(Conversion.offer_id, Conversion.publisher_id)
                .all()
            )
        precision = int(REPORTING_SETTINGS["money_precision"])
        return [
            OfferConversionTotals(
                offer_id=offer_id,
                publisher_id=publisher_id,
                conversions=as_count(count),
                commission=as_money(commission, precision),
                revenue=as_money(revenue, precision),
                approved=as_count(approved),
            )
            for offer_id, publisher_id, count, commission, revenue, approved in rows
        ]

    def click_counts_by_offer(self, window: TimeWindow) -> list[OfferClickCounts]:
        """Unique (first-occurrence) and total clicks per (offer, publisher)."""
        with self._session_factory() as session:
            query = session.query(
                Click.offer_id,
                Click.publisher_id,
                func.coalesce(func.sum(case((Click.is_unique == True, 1), else_=0)), 0),  # noqa: E712
                func.count(Click.id),
            )
            query = self._within(self._scoped(query, Click), Click.timestamp, window)
            rows = (
                query.group_by(Click.offer_id, Click.publisher_id)
                .order_by(Click.offer_id, Click.publisher_id)
                .all()
            )
        return [
            OfferClickCounts(
                offer_id=offer_id,
                publisher_id=publisher_id,
                unique_count=as_count(unique),
                total_count=as_count(total),
            )
            for offer_id, publisher_id, unique, total in rows
        ]

    # ------------------------------------------------------------------ #
    # time-bucketed aggregates
    # ------------------------------------------------------------------ #
    def clicks_by_day(self, window: TimeWindow) -> list[tuple[str, int]]:
        return self._count_by_period(Click, Click.timestamp, window, DAILY)

    def clicks_by_hour(self, window: TimeWindow) -> list[tuple[str, int]]:
        return self._count_by_period(Click, Click.timestamp, window, HOURLY)

    def conversions_by_day(self, window: TimeWindow) -> list[tuple[str, int]]:
        return self._count_by_period(Conversion, Conversion.created_at, window, DAILY)

    def commission_by_day(self, window: TimeWindow) -> list[tuple[str, float]]:
        with self._session_factory() as session:
            period = self._period(session, Conversion.created_at, DAILY).label("period")
            query = session.query(period, func.coalesce(func.sum(Conversion.commission_amount), 0))
            query = self._within(self._scoped(query, Conversion), Conversion.created_at, window)
            rows = query.group_by(period).order_by(period).all()
        precision = int(REPORTING_SETTINGS["money_precision"])
        return [(label, as_money(total, precision)) for label, total in rows]

    def clicks_by_weekday(self, week: TimeWindow) -> list[WeekdayClicks]:
        """Daily clicks for the given week, tagged with Mon..Sun labels."""
        labels = REPORTING_SETTINGS["weekday_labels"]
        return [
            WeekdayClicks(day=day, weekday_label=labels[date.fromisoformat(day).weekday()], clicks=clicks)
            for day, clicks in self.clicks_by_day(week)
        ]

    # ------------------------------------------------------------------ #
    # traffic sources
    # ------------------------------------------------------------------ #
    def clicks_by_geo(self, window: TimeWindow, limit: Optional[int] = None) -> list[tuple[str, int]]:
        """Top geos by click count; ties keep their (alphabetical) input order."""
        unknown = str(REPORTING_SETTINGS["unknown_label"])
        with self._session_factory() as session:
            query = session.query(Click.geo, func.count(Click.id))
            query = self._within(self._scoped(query, Click), Click.timestamp, window)
            rows = query.group_by(Click.geo).order_by(Click.geo).all()
        merged: dict[str, int] = {}
        for geo, count in rows:
            label = geo or unknown
            merged[label] = merged.get(label, 0) + as_count(count)
        ranked = sorted(merged.items(), key=lambda item: -item[1])
        return ranked[:limit] if limit is not None else ranked


__all__ = [
    "SessionFactory",
    "OfferConversionTotals",
    "WeekdayClicks",
    "AggregationQueries",
]
