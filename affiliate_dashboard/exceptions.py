"""
Exception hierarchy for report computation.

    ReportError (base)
    ├── InvalidReportRequest     - caller supplied an unusable scope (HTTP 400)
    └── ReportComputationError   - an aggregate read failed or timed out (HTTP 500)

Configuration gaps (no commission agreement, unnamed offer) are not errors.
"""


class ReportError(Exception):
    """Base exception for dashboard report failures."""

    def __init__(self, message: str, details: str = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class InvalidReportRequest(ReportError):
    """Missing or malformed publisher identity on the publisher-scoped path."""


class ReportComputationError(ReportError):
    """
    A data-layer failure aborted the report.

    No partial report is produced and nothing is retried; the original
    exception is chained as __cause__ for the caller to log.
    """

    def __init__(self, message: str = "Failed to compute report", details: str = None, aggregate: str = None):
        super().__init__(message, details)
        self.aggregate = aggregate


__all__ = ["ReportError", "InvalidReportRequest", "ReportComputationError"]
