"""
Pydantic schemas for the assembled dashboard report.

The report is a fixed structure; the recent activity block is the only part a
caller can ask to omit.
"""
from datetime import date
from typing import List, Optional, Union
from pydantic import Field
from .base import CamelModel

Number = Union[int, float]

class TimeSeriesPoint(CamelModel):
    """One bucket of a zero-filled series. `period` is YYYY-MM-DD or HH:00."""
    period: str
    value: Number = 0

class WeekdayPoint(CamelModel):
    day: str = Field(description="Mon..Sun")
    clicks: int = 0

class NamedValue(CamelModel):
    name: str
    value: int

class OfferPerformance(CamelModel):
    offer_id: int
    offer_name: str
    clicks: int
    conversions: int
    revenue: float

class ReportWindow(CamelModel):
    """Resolved effective window; `end` is exclusive."""
    start: date
    end: date
    custom: bool = Field(description="True when the caller supplied a valid start and end date")

class RecentActivity(CamelModel):
    last_24_hours: List[TimeSeriesPoint]
    last_7_days: List[TimeSeriesPoint]
    last_30_days: List[TimeSeriesPoint]

class DashboardReport(CamelModel):
    scope: str = Field(description="publisher | platform")
    publisher_id: Optional[int] = None
    window: ReportWindow

    # Totals (lifetime, or the effective window when one was supplied)
    total_clicks: int
    total_conversions: int = Field(description="Conversions after commission cut")
    total_earning: float = Field(description="Summed commission_amount, never shaved")
    total_revenue: float
    approved_conversions: int

    # Month-over-month cards
    clicks_this_month: int
    clicks_previous_month: int
    sales_this_month: int
    sales_previous_month: int
    commission_this_month: float
    commission_previous_month: float

    # Unique click totals for the effective window
    unique_clicks: int
    net_unique_clicks: int
    net_total_clicks: int
    conversion_rate: float

    weekly_clicks: List[WeekdayPoint]
    traffic_sources: List[NamedValue]
    clicks_over_time: List[TimeSeriesPoint]
    conversion_trend: List[TimeSeriesPoint]
    commissions_over_time: List[TimeSeriesPoint]
    conversions_by_offer: List[NamedValue]
    top_performing_offers: List[OfferPerformance]
    recent_activity: Optional[RecentActivity] = None

    # Diagnostics
    raw_total_conversions: int
    conversions_difference: int
    avg_commission_cut: float
