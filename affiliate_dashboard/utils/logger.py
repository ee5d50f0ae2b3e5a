"""
Centralized logging configuration.

Every module logs through `get_logger(__name__)`, which returns a
`StructuredLogger` namespaced under `affiliate_dashboard`. Keyword arguments
become structured context: the console shows the message, the rotating file
handler writes one JSON object per line with the context merged in.

    logger = get_logger(__name__).bind(scope="publisher", publisher_id=7)
    logger.info("Report computed", duration_ms=41.2)
"""
import logging
import logging.config
import json
import sys
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from pathlib import Path

LOGGER_NAMESPACE = "affiliate_dashboard"

# LogRecord attributes copied into every JSON line
_RECORD_FIELDS = {
    "level": "levelname",
    "logger": "name",
    "module": "module",
    "function": "funcName",
    "line": "lineno",
    "thread": "threadName",
}

class JSONFormatter(logging.Formatter):
    """One JSON object per record; structured context is merged at top level."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "message": record.getMessage(),
        }
        for key, attr in _RECORD_FIELDS.items():
            entry[key] = getattr(record, attr, None)
        entry.update(getattr(record, "context", None) or {})
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)

class StructuredLogger:
    """Logger wrapper carrying bound context plus per-call keyword context."""

    def __init__(self, name: str, context: Optional[Dict[str, Any]] = None):
        self.logger = logging.getLogger(name)
        self.context: Dict[str, Any] = dict(context or {})

    def bind(self, **context) -> "StructuredLogger":
        """Child logger whose lines all carry `context`."""
        return StructuredLogger(self.logger.name, {**self.context, **context})

    def _log(self, level: int, message: str, exc_info: bool = False, **kwargs):
        if not self.logger.isEnabledFor(level):
            return
        merged = {**self.context, **kwargs}
        context = {k: v for k, v in merged.items() if v is not None}
        self.logger.log(level, message, exc_info=exc_info, extra={"context": context})

    def debug(self, message: str, **kwargs):
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs):
        self._log(logging.ERROR, message, **kwargs)

def _console_handler(log_level: str) -> Dict[str, Any]:
    return {
        "class": "logging.StreamHandler",
        "stream": sys.stdout,
        "formatter": "standard",
        "level": log_level,
    }

def _file_handler(log_file: str, log_level: str) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "filename": log_file,
        "maxBytes": 10 * 1024 * 1024,  # 10MB
        "backupCount": 5,
        "formatter": "json",
        "level": log_level,
    }

def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    enable_console: bool = True
) -> None:
    """
    Configure application logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path for JSON lines; empty or None disables the file handler
        enable_console: Whether to log to stdout
    """
    handlers: Dict[str, Dict[str, Any]] = {}
    if enable_console:
        handlers["console"] = _console_handler(log_level)
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handlers["file"] = _file_handler(log_file, log_level)
    names = list(handlers)

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {"()": JSONFormatter},
            "standard": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": handlers,
        "loggers": {
            LOGGER_NAMESPACE: {"level": log_level, "handlers": names, "propagate": False},
            "uvicorn": {"level": "INFO", "handlers": names, "propagate": False},
            # Aggregate SQL is noisy at INFO
            "sqlalchemy.engine": {"level": "WARNING", "handlers": names, "propagate": False},
        },
        "root": {"level": log_level, "handlers": names},
    })

def get_logger(name: str) -> StructuredLogger:
    """Return a structured logger namespaced under the application logger."""
    if name.startswith(LOGGER_NAMESPACE):
        return StructuredLogger(name)
    return StructuredLogger(f"{LOGGER_NAMESPACE}.{name}")

def log_report_event(
    event_type: str,
    details: Dict[str, Any],
    publisher_id: Optional[int] = None,
    request_id: Optional[str] = None
) -> None:
    """
    Audit line for a report request.

    Args:
        event_type: e.g. 'publisher_dashboard_requested'
        details: Event-specific details
        publisher_id: Publisher the report was scoped to, if any
        request_id: Request ID for tracing
    """
    get_logger("audit").info(
        f"Report event: {event_type}",
        event_type=event_type,
        publisher_id=publisher_id,
        request_id=request_id,
        **details
    )

def log_performance(
    operation: str,
    duration_ms: float,
    additional_data: Optional[Dict[str, Any]] = None
) -> None:
    """Log the latency of an operation with optional context."""
    get_logger("performance").info(
        f"Performance: {operation}",
        operation=operation,
        duration_ms=round(duration_ms, 2),
        **(additional_data or {})
    )
