"""
Dependencies for database sessions, the report clock, and caller scope.

Each is a seam tests override through `app.dependency_overrides`.
"""
from typing import Optional
from fastapi import Header, HTTPException, Query, status
from affiliate_dashboard.database import SessionLocal
from affiliate_dashboard.services.aggregation_queries import SessionFactory
from affiliate_dashboard.utils import get_logger
from affiliate_dashboard.utils.time import Clock, utc_now

logger = get_logger(__name__)

def get_session_factory() -> SessionFactory:
    """
    Session factory dependency.

    Reports fan out into concurrent reads that each need their own session,
    so endpoints receive the factory rather than a single Session.
    """
    return SessionLocal

def get_clock() -> Clock:
    """The single source of "now" for a report request."""
    return utc_now

def get_publisher_id(
    publisher_id: Optional[str] = Query(None, description="Publisher whose data the report covers"),
    x_publisher_id: Optional[str] = Header(None, alias="X-Publisher-ID"),
) -> int:
    """
    Resolve the already-authenticated publisher identity for the request.

    Accepts the `publisher_id` query parameter or the `X-Publisher-ID` header
    (set by the authenticating proxy). The engine trusts the value; it only
    checks that one is present and well formed.

    Raises:
        HTTPException: 400 if the identity is missing or not a positive integer
    """
    raw = publisher_id if publisher_id not in (None, "") else x_publisher_id
    if raw in (None, ""):
        logger.warning("Dashboard request without publisher identity")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="publisher_id is required"
        )
    try:
        value = int(raw)
    except ValueError:
        value = 0
    if value <= 0:
        logger.warning("Dashboard request with malformed publisher identity", publisher_id=raw)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="publisher_id must be a positive integer"
        )
    return value
