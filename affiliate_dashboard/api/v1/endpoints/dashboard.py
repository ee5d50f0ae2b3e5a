"""
Dashboard endpoints: publisher-scoped and platform-wide reports.
"""
from __future__ import annotations
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from affiliate_dashboard.api.deps import get_clock, get_publisher_id, get_session_factory
from affiliate_dashboard.exceptions import InvalidReportRequest, ReportComputationError
from affiliate_dashboard.models.schemas import DashboardReport, ErrorResponse
from affiliate_dashboard.services.aggregation_queries import SessionFactory
from affiliate_dashboard.services.metrics_assembler import build_platform_report, build_publisher_report
from affiliate_dashboard.utils import get_logger, log_report_event
from affiliate_dashboard.utils.observability import REQUEST_ID_HEADER
from affiliate_dashboard.utils.time import Clock

router = APIRouter()
logger = get_logger(__name__)

FETCH_FAILED_MESSAGE = "Failed to fetch dashboard data"

ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse, "description": "Missing or malformed publisher identity"},
    status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse, "description": FETCH_FAILED_MESSAGE},
}


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request.headers.get(REQUEST_ID_HEADER, "unknown")


def _computation_failed(exc: ReportComputationError, request_id: str, **context) -> HTTPException:
    cause = exc.__cause__
    logger.error(
        "Dashboard report computation failed",
        aggregate=exc.aggregate,
        error=str(exc),
        cause=repr(cause) if cause is not None else None,
        request_id=request_id,
        exc_info=True,
        **context,
    )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=FETCH_FAILED_MESSAGE)


@router.get(
    "/dashboard",
    response_model=DashboardReport,
    responses=ERROR_RESPONSES,
    summary="Publisher dashboard report",
)
async def get_publisher_dashboard(
    request: Request,
    publisher_id: int = Depends(get_publisher_id),
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD, inclusive"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD, inclusive"),
    include_recent: bool = Query(True, description="Include the 24h / 7d / 30d activity block"),
    session_factory: SessionFactory = Depends(get_session_factory),
    clock: Clock = Depends(get_clock),
):
    """
    Dashboard metrics for the calling publisher.

    Totals, month-over-month cards and commission-adjusted conversions use the
    publisher's own commission agreements. A malformed or inverted date range
    is ignored and the charts cover the current month.
    """
    request_id = _request_id(request)
    log_report_event(
        "publisher_dashboard_requested",
        {"start_date": start_date, "end_date": end_date, "include_recent": include_recent},
        publisher_id=publisher_id,
        request_id=request_id,
    )
    try:
        report = await build_publisher_report(
            session_factory,
            publisher_id,
            clock(),
            start_date,
            end_date,
            include_recent_activity=include_recent,
        )
    except InvalidReportRequest as exc:
        logger.warning("Invalid dashboard request", error=str(exc), request_id=request_id)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    except ReportComputationError as exc:
        raise _computation_failed(exc, request_id, publisher_id=publisher_id)

    logger.info(
        "Publisher dashboard computed",
        publisher_id=publisher_id,
        total_clicks=report.total_clicks,
        total_conversions=report.total_conversions,
        request_id=request_id,
    )
    return report


@router.get(
    "/admin/dashboard",
    response_model=DashboardReport,
    responses=ERROR_RESPONSES,
    summary="Platform-wide dashboard report",
)
async def get_platform_dashboard(
    request: Request,
    start_date: Optional[str] = Query(None, description="YYYY-MM-DD, inclusive"),
    end_date: Optional[str] = Query(None, description="YYYY-MM-DD, inclusive"),
    include_recent: bool = Query(True, description="Include the 24h / 7d / 30d activity block"),
    session_factory: SessionFactory = Depends(get_session_factory),
    clock: Clock = Depends(get_clock),
):
    """Same report across every publisher; each offer's cut is the mean of its agreements."""
    request_id = _request_id(request)
    log_report_event(
        "platform_dashboard_requested",
        {"start_date": start_date, "end_date": end_date, "include_recent": include_recent},
        request_id=request_id,
    )
    try:
        report = await build_platform_report(
            session_factory,
            clock(),
            start_date,
            end_date,
            include_recent_activity=include_recent,
        )
    except ReportComputationError as exc:
        raise _computation_failed(exc, request_id, scope="platform")

    logger.info(
        "Platform dashboard computed",
        total_clicks=report.total_clicks,
        total_conversions=report.total_conversions,
        request_id=request_id,
    )
    return report
