"""Metrics assembler: the dashboard report pipeline.

Steps for one request:
1. Resolve every time boundary from the injected `now`.
2. Load the commission cut lookup for the scope (before any shaving).
3. Fan out every aggregate read concurrently, each on its own worker thread
   and session, and join them. Any failure aborts the report.
4. Shave conversion totals and unique / total clicks.
5. Derive the conversion rate from shaved conversions over net unique clicks.
6. Left-join the weekly clicks onto the Mon..Sun template.
7. Zero-fill every series through the bucket generator.
8. Label offer rows, falling back to "Unknown".
9. Return one fully typed `DashboardReport`.

Nothing is persisted; identical inputs against an unchanged store produce an
identical report.
"""
from __future__ import annotations

import asyncio
import time
from datetime import date, datetime
from functools import partial
from typing import Any, Callable, Optional

from affiliate_dashboard.config import REPORTING_SETTINGS
from affiliate_dashboard.exceptions import InvalidReportRequest, ReportComputationError
from affiliate_dashboard.models.db.enums import ReportScope
from affiliate_dashboard.models.schemas.dashboard import (
    DashboardReport,
    NamedValue,
    OfferPerformance,
    RecentActivity,
    ReportWindow,
    TimeSeriesPoint,
    WeekdayPoint,
)
from affiliate_dashboard.services.aggregation_queries import (
    AggregationQueries,
    OfferConversionTotals,
    SessionFactory,
    WeekdayClicks,
)
from affiliate_dashboard.services.buckets import (
    Bucket,
    BucketSpan,
    daily_for_window,
    daily_last_7d,
    daily_last_30d,
    hourly_last_24h,
)
from affiliate_dashboard.services.commission import (
    CutLookup,
    OfferClickCounts,
    OfferCount,
    aggregate_shaved_clicks,
    aggregate_shaved_counts,
)
from affiliate_dashboard.services.time_ranges import ReportTimeRange, resolve_time_range
from affiliate_dashboard.utils import get_logger, log_performance
from affiliate_dashboard.utils.metrics import rate_pct

logger = get_logger(__name__)


def _guarded(name: str, read: Callable[[], Any]) -> Callable[[], Any]:
    """Wrap an aggregate read so any failure aborts the report naming the aggregate.

    The original exception (SQLAlchemy, driver, OS or a bug in the read itself)
    is chained as `__cause__`.
    """
    def _run() -> Any:
        try:
            return read()
        except Exception as exc:
            raise ReportComputationError(details=f"{name}: {type(exc).__name__}", aggregate=name) from exc
    return _run


class MetricsAssembler:
    """Builds one dashboard report for the scope of its `AggregationQueries`."""

    def __init__(self, queries: AggregationQueries, *, timeout: Optional[float] = None):
        self.queries = queries
        if timeout is None:
            timeout = float(REPORTING_SETTINGS["aggregate_timeout_seconds"])
        self.timeout = timeout if timeout > 0 else None
        self.log = logger.bind(scope=self.scope.value, publisher_id=queries.publisher_id)

    @property
    def scope(self) -> ReportScope:
        return ReportScope.PLATFORM if self.queries.platform_wide else ReportScope.PUBLISHER

    # ------------------------------------------------------------------ #
    # fan-out / fan-in
    # ------------------------------------------------------------------ #
    def _plan(
        self,
        time_range: ReportTimeRange,
        recent: Optional[dict[str, BucketSpan]],
    ) -> dict[str, Callable[[], Any]]:
        q = self.queries
        effective = time_range.effective
        plan: dict[str, Callable[[], Any]] = {
            "offer_names": q.offer_names,
            "clicks_total": partial(q.clicks_by_offer, time_range.totals_window),
            "clicks_this_month": partial(q.clicks_by_offer, time_range.current_month),
            "clicks_previous_month": partial(q.clicks_by_offer, time_range.previous_month),
            "conversions_total": partial(q.conversions_by_offer, time_range.totals_window),
            "conversions_this_month": partial(q.conversions_by_offer, time_range.current_month),
            "conversions_previous_month": partial(q.conversions_by_offer, time_range.previous_month),
            "weekly_clicks": partial(q.clicks_by_weekday, time_range.current_week),
            "traffic_sources": partial(
                q.clicks_by_geo, effective, int(REPORTING_SETTINGS["top_traffic_sources"])
            ),
            "clicks_over_time": partial(q.clicks_by_day, effective),
            "conversion_trend": partial(q.conversions_by_day, effective),
            "commissions_over_time": partial(q.commission_by_day, effective),
            "conversions_window": partial(q.conversions_by_offer, effective),
            "click_counts_window": partial(q.click_counts_by_offer, effective),
        }
        if recent is not None:
            plan["recent_24h"] = partial(q.clicks_by_hour, recent["last_24_hours"].window)
            plan["recent_7d"] = partial(q.clicks_by_day, recent["last_7_days"].window)
            plan["recent_30d"] = partial(q.clicks_by_day, recent["last_30_days"].window)
        return plan

    async def _fan_out(self, plan: dict[str, Callable[[], Any]], timeout: Optional[float]) -> dict[str, Any]:
        self.log.debug("Dispatching aggregate reads", aggregates=len(plan))
        tasks = [asyncio.to_thread(_guarded(name, read)) for name, read in plan.items()]
        results = await asyncio.wait_for(asyncio.gather(*tasks), timeout=timeout)
        return dict(zip(plan.keys(), results))

    async def _load(
        self,
        time_range: ReportTimeRange,
        recent: Optional[dict[str, BucketSpan]],
    ) -> tuple[CutLookup, dict[str, Any]]:
        # one deadline covers the cut lookup and the fan-out together
        loop = asyncio.get_running_loop()
        deadline = None if self.timeout is None else loop.time() + self.timeout

        def remaining() -> Optional[float]:
            return None if deadline is None else max(deadline - loop.time(), 0.0)

        try:
            cuts = await asyncio.wait_for(
                asyncio.to_thread(_guarded("commission_cuts", self.queries.commission_cuts)),
                timeout=remaining(),
            )
            results = await self._fan_out(self._plan(time_range, recent), remaining())
        except asyncio.TimeoutError as exc:
            self.log.warning("Aggregate reads timed out", timeout_seconds=self.timeout)
            raise ReportComputationError(details=f"aggregates exceeded {self.timeout}s") from exc
        return cuts, results

    # ------------------------------------------------------------------ #
    # public entry
    # ------------------------------------------------------------------ #
    async def assemble(
        self,
        now: datetime,
        start_date: str | date | None = None,
        end_date: str | date | None = None,
        *,
        include_recent_activity: bool = True,
    ) -> DashboardReport:
        started = time.time()
        time_range = resolve_time_range(now, start_date, end_date)
        recent = None
        if include_recent_activity:
            recent = {
                "last_24_hours": hourly_last_24h(time_range.now),
                "last_7_days": daily_last_7d(time_range.now),
                "last_30_days": daily_last_30d(time_range.now),
            }

        cuts, results = await self._load(time_range, recent)
        report = self._build(time_range, cuts, results, recent)

        duration_ms = (time.time() - started) * 1000
        log_performance(
            operation="assemble_dashboard_report",
            duration_ms=duration_ms,
            additional_data={
                "scope": self.scope.value,
                "publisher_id": self.queries.publisher_id,
                "aggregates": len(results),
            },
        )
        return report

    # ------------------------------------------------------------------ #
    # assembly
    # ------------------------------------------------------------------ #
    def _build(
        self,
        time_range: ReportTimeRange,
        cuts: CutLookup,
        results: dict[str, Any],
        recent: Optional[dict[str, BucketSpan]],
    ) -> DashboardReport:
        names: dict[int, str] = results["offer_names"]
        unknown = str(REPORTING_SETTINGS["unknown_label"])
        money = int(REPORTING_SETTINGS["money_precision"])

        def conversion_counts(key: str) -> list[OfferCount]:
            return [row.as_offer_count() for row in results[key]]

        totals = aggregate_shaved_counts(conversion_counts("conversions_total"), cuts)
        this_month = aggregate_shaved_counts(conversion_counts("conversions_this_month"), cuts)
        previous_month = aggregate_shaved_counts(conversion_counts("conversions_previous_month"), cuts)
        window_conversions = aggregate_shaved_counts(conversion_counts("conversions_window"), cuts)
        click_counts: list[OfferClickCounts] = results["click_counts_window"]
        clicks = aggregate_shaved_clicks(click_counts, cuts)

        conversion_rate = rate_pct(
            window_conversions.shaved_total,
            clicks.net_unique,
            int(REPORTING_SETTINGS["conversion_rate_precision"]),
        )

        conversion_totals: list[OfferConversionTotals] = results["conversions_total"]
        daily = daily_for_window(time_range.effective)

        return DashboardReport(
            scope=self.scope.value,
            publisher_id=self.queries.publisher_id,
            window=ReportWindow(
                start=time_range.effective.first_day,
                end=time_range.effective.end.date(),
                custom=time_range.custom,
            ),
            total_clicks=_sum_counts(results["clicks_total"]),
            total_conversions=totals.shaved_total,
            total_earning=round(sum(row.commission for row in conversion_totals), money),
            total_revenue=round(sum(row.revenue for row in conversion_totals), money),
            approved_conversions=sum(row.approved for row in conversion_totals),
            clicks_this_month=_sum_counts(results["clicks_this_month"]),
            clicks_previous_month=_sum_counts(results["clicks_previous_month"]),
            sales_this_month=this_month.shaved_total,
            sales_previous_month=previous_month.shaved_total,
            commission_this_month=round(sum(row.commission for row in results["conversions_this_month"]), money),
            commission_previous_month=round(
                sum(row.commission for row in results["conversions_previous_month"]), money
            ),
            unique_clicks=clicks.raw_unique,
            net_unique_clicks=clicks.net_unique,
            net_total_clicks=clicks.net_total,
            conversion_rate=conversion_rate,
            weekly_clicks=_weekly_series(results["weekly_clicks"]),
            traffic_sources=[NamedValue(name=name, value=value) for name, value in results["traffic_sources"]],
            clicks_over_time=_points(daily.fill(results["clicks_over_time"])),
            conversion_trend=_points(daily.fill(results["conversion_trend"])),
            commissions_over_time=_points(daily.fill(results["commissions_over_time"]), money),
            conversions_by_offer=_conversions_by_offer(results["conversions_window"], names, unknown),
            top_performing_offers=_top_offers(click_counts, results["conversions_window"], names, unknown),
            recent_activity=_recent_activity(recent, results),
            raw_total_conversions=totals.raw_total,
            conversions_difference=totals.raw_total - totals.shaved_total,
            avg_commission_cut=round(totals.weighted_avg_cut, int(REPORTING_SETTINGS["cut_precision"])),
        )


def _sum_counts(rows: list[OfferCount]) -> int:
    return sum(row.raw_count for row in rows)


def _points(buckets: list[Bucket], precision: Optional[int] = None) -> list[TimeSeriesPoint]:
    if precision is None:
        return [TimeSeriesPoint(period=b.period, value=b.value) for b in buckets]
    return [TimeSeriesPoint(period=b.period, value=round(float(b.value), precision)) for b in buckets]


def _weekly_series(rows: list[WeekdayClicks]) -> list[WeekdayPoint]:
    counts: dict[str, int] = {}
    for row in rows:
        counts[row.weekday_label] = counts.get(row.weekday_label, 0) + row.clicks
    return [WeekdayPoint(day=label, clicks=counts.get(label, 0)) for label in REPORTING_SETTINGS["weekday_labels"]]


def _merge_offer_totals(rows: list[OfferConversionTotals]) -> dict[int, tuple[int, float]]:
    """offer_id -> (conversions, revenue) summed over publishers, in offer id order."""
    merged: dict[int, tuple[int, float]] = {}
    for row in rows:
        conversions, revenue = merged.get(row.offer_id, (0, 0.0))
        merged[row.offer_id] = (conversions + row.conversions, revenue + row.revenue)
    return merged


def _conversions_by_offer(
    rows: list[OfferConversionTotals], names: dict[int, str], unknown: str
) -> list[NamedValue]:
    # offers arrive in id order; the stable sort keeps that as tie-break
    merged = _merge_offer_totals(rows)
    ranked = sorted(
        ((offer_id, conversions) for offer_id, (conversions, _) in merged.items() if conversions > 0),
        key=lambda item: -item[1],
    )
    return [NamedValue(name=names.get(offer_id, unknown), value=conversions) for offer_id, conversions in ranked]


def _top_offers(
    click_counts: list[OfferClickCounts],
    conversions: list[OfferConversionTotals],
    names: dict[int, str],
    unknown: str,
) -> list[OfferPerformance]:
    money = int(REPORTING_SETTINGS["money_precision"])
    clicks_by_offer: dict[int, int] = {}
    for row in click_counts:
        clicks_by_offer[row.offer_id] = clicks_by_offer.get(row.offer_id, 0) + row.total_count
    totals_by_offer = _merge_offer_totals(conversions)
    rows = []
    for offer_id in sorted(set(clicks_by_offer) | set(totals_by_offer)):
        converted, revenue = totals_by_offer.get(offer_id, (0, 0.0))
        rows.append(
            OfferPerformance(
                offer_id=offer_id,
                offer_name=names.get(offer_id, unknown),
                clicks=clicks_by_offer.get(offer_id, 0),
                conversions=converted,
                revenue=round(revenue, money),
            )
        )
    rows.sort(key=lambda row: (-row.revenue, -row.conversions, -row.clicks, row.offer_id))
    return rows[: int(REPORTING_SETTINGS["top_performing_offers"])]


def _recent_activity(recent: Optional[dict[str, BucketSpan]], results: dict[str, Any]) -> Optional[RecentActivity]:
    if recent is None:
        return None
    return RecentActivity(
        last_24_hours=_points(recent["last_24_hours"].fill(results["recent_24h"])),
        last_7_days=_points(recent["last_7_days"].fill(results["recent_7d"])),
        last_30_days=_points(recent["last_30_days"].fill(results["recent_30d"])),
    )


def _require_publisher_id(publisher_id: Any) -> int:
    if publisher_id is None or publisher_id == "":
        raise InvalidReportRequest("Publisher identity is required")
    try:
        value = int(publisher_id)
    except (TypeError, ValueError):
        raise InvalidReportRequest("Publisher identity must be an integer id", details=str(publisher_id))
    if value <= 0:
        raise InvalidReportRequest("Publisher identity must be positive", details=str(publisher_id))
    return value


async def build_publisher_report(
    session_factory: SessionFactory,
    publisher_id: Any,
    now: datetime,
    start_date: str | date | None = None,
    end_date: str | date | None = None,
    *,
    include_recent_activity: bool = True,
    timeout: Optional[float] = None,
) -> DashboardReport:
    """Report scoped to one publisher's clicks, conversions and agreements."""
    queries = AggregationQueries(session_factory, _require_publisher_id(publisher_id))
    assembler = MetricsAssembler(queries, timeout=timeout)
    return await assembler.assemble(now, start_date, end_date, include_recent_activity=include_recent_activity)


async def build_platform_report(
    session_factory: SessionFactory,
    now: datetime,
    start_date: str | date | None = None,
    end_date: str | date | None = None,
    *,
    include_recent_activity: bool = True,
    timeout: Optional[float] = None,
) -> DashboardReport:
    """Platform-wide report across every publisher."""
    assembler = MetricsAssembler(AggregationQueries(session_factory), timeout=timeout)
    return await assembler.assemble(now, start_date, end_date, include_recent_activity=include_recent_activity)


__all__ = [
    "MetricsAssembler",
    "build_publisher_report",
    "build_platform_report",
]
