"""
Utilities package initialization.
"""
from .logger import get_logger, log_report_event, log_performance, setup_logging

__all__ = ["get_logger", "log_report_event", "log_performance", "setup_logging"]
