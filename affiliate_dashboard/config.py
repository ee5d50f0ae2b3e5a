"""Core application configuration & reporting rules.

Every tunable that shapes a dashboard report (list sizes, labels, rounding,
timeouts, recent activity windows) lives here so it can be adjusted without
diving into service logic. Values are module constants read from the
environment; tests may monkeypatch the dicts.
"""
from __future__ import annotations

import os
from typing import Final

DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+pysqlite:///./dashboard.db")

# ------------------------------- Reporting -------------------------------- #
REPORTING_SETTINGS: dict[str, int | float | str | tuple[str, ...]] = {
	# Geo groups shown in the traffic sources card.
	"top_traffic_sources": 5,
	# Rows in the top performing offers table.
	"top_performing_offers": 10,
	# Label for offers / geos that cannot be resolved.
	"unknown_label": "Unknown",
	# Canonical Monday-Sunday template for the weekly chart.
	"weekday_labels": ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"),
	"conversion_rate_precision": 2,
	"money_precision": 2,
	"cut_precision": 2,
	# Upper bound for the whole concurrent aggregate fan-out.
	"aggregate_timeout_seconds": float(os.getenv("AGGREGATE_TIMEOUT_SECONDS", "30")),
}

# --------------------------- Recent activity ------------------------------ #
RECENT_ACTIVITY_WINDOWS: dict[str, dict[str, int | str]] = {
	"last_24_hours": {"granularity": "hour", "points": 24},
	"last_7_days": {"granularity": "day", "points": 7},
	"last_30_days": {"granularity": "day", "points": 30},
}

# Label formats shared by the bucket generator and the SQL period expressions.
DAY_LABEL_FORMAT: Final = "%Y-%m-%d"
HOUR_LABEL_FORMAT: Final = "%H:00"

__all__ = [
	"DATABASE_URL",
	"REPORTING_SETTINGS",
	"RECENT_ACTIVITY_WINDOWS",
	"DAY_LABEL_FORMAT",
	"HOUR_LABEL_FORMAT",
]
