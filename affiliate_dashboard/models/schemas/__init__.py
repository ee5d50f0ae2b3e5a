from .base import CamelModel, ErrorResponse
from .dashboard import (
    TimeSeriesPoint,
    WeekdayPoint,
    NamedValue,
    OfferPerformance,
    ReportWindow,
    RecentActivity,
    DashboardReport,
)

__all__ = [
    "CamelModel",
    "ErrorResponse",
    "TimeSeriesPoint",
    "WeekdayPoint",
    "NamedValue",
    "OfferPerformance",
    "ReportWindow",
    "RecentActivity",
    "DashboardReport",
]
