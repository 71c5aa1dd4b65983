"""
Logging configuration for the Showtime Booking Platform.

Everything goes through the standard library: ``setup_logging`` installs a
``dictConfig`` with request-id and sensitive-data filters on every handler,
and the ``log_*_event`` helpers emit structured records on dedicated child
loggers (``showtime_booking_platform.business`` and friends) so they can be
routed separately.
"""

import json
import logging
import logging.config
import re
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config import get_settings

APP_LOGGER = "showtime_booking_platform"

# Levels for libraries that are noisy at the application level
LIBRARY_LOG_LEVELS = {
    "uvicorn": "INFO",
    "uvicorn.access": "INFO",
    "celery": "INFO",
    "sqlalchemy.engine": "WARNING",
    "sqlalchemy.pool": "WARNING",
    "redis": "WARNING",
}

LOG_FILTERS = ["request_id", "sensitive_data"]
MAX_LOG_BYTES = 10 * 1024 * 1024


def _rotating_file_handler(filename: str, level: str, formatter: str, backup_count: int) -> Dict[str, Any]:
    Path(filename).parent.mkdir(parents=True, exist_ok=True)
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": formatter,
        "filename": filename,
        "maxBytes": MAX_LOG_BYTES,
        "backupCount": backup_count,
        "filters": LOG_FILTERS,
    }


def setup_logging(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    enable_json_logging: bool = False
) -> None:
    """
    Configure logging for the API process and the Celery worker.

    Args:
        log_level: Level of the application loggers and the console handler
        log_file: Also write to this rotating file when given
        enable_json_logging: Emit one JSON object per record instead of text
    """
    settings = get_settings()
    formatter = "json" if enable_json_logging else "detailed"

    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": log_level,
            "formatter": formatter,
            "stream": sys.stdout,
            "filters": LOG_FILTERS,
        }
    }
    shared_handlers: List[str] = ["console"]

    if log_file:
        handlers["file"] = _rotating_file_handler(log_file, log_level, formatter, backup_count=5)
        shared_handlers.append("file")

    app_handlers = list(shared_handlers)
    if settings.environment == "production":
        error_file = log_file.replace(".log", "_errors.log") if log_file else "logs/errors.log"
        handlers["error_file"] = _rotating_file_handler(error_file, "ERROR", formatter, backup_count=10)
        app_handlers.append("error_file")

    loggers: Dict[str, Dict[str, Any]] = {
        APP_LOGGER: {"level": log_level, "handlers": app_handlers, "propagate": False}
    }
    for name, level in LIBRARY_LOG_LEVELS.items():
        loggers[name] = {"level": level, "handlers": list(shared_handlers), "propagate": False}

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {
                "format": "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d [%(request_id)s] %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "json": {"()": f"{APP_LOGGER}.utils.logging_config.JSONFormatter"},
        },
        "filters": {
            "request_id": {"()": f"{APP_LOGGER}.utils.logging_config.RequestIDFilter"},
            "sensitive_data": {"()": f"{APP_LOGGER}.utils.logging_config.SensitiveDataFilter"},
        },
        "handlers": handlers,
        "loggers": loggers,
        "root": {"level": log_level, "handlers": list(shared_handlers)},
    })

    sys.excepthook = _log_uncaught_exception


def _log_uncaught_exception(exc_type, exc_value, exc_traceback):
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return

    logging.getLogger(f"{APP_LOGGER}.exceptions").critical(
        "Uncaught exception",
        exc_info=(exc_type, exc_value, exc_traceback),
        extra={"exception_type": exc_type.__name__}
    )


class RequestIDFilter(logging.Filter):
    """Stamps each record with the id of the request being served."""

    def filter(self, record):
        if not getattr(record, "request_id", None):
            # Imported lazily: the middleware package imports this module's users
            from ..middleware.logging import request_id_var
            record.request_id = request_id_var.get()
        return True


class SensitiveDataFilter(logging.Filter):
    """Masks credentials and hold tokens before a record is written."""

    MASK = "***MASKED***"
    SENSITIVE_KEYS = {
        "password", "token", "secret", "authorization",
        "cookie", "api_key", "access_token", "holder_token",
    }
    BEARER_PATTERN = re.compile(r"(?i)bearer\s+[A-Za-z0-9._\-]+")
    JWT_PATTERN = re.compile(r"\beyJ[A-Za-z0-9_\-]+\.[A-Za-z0-9_\-]+\.[A-Za-z0-9_\-]+")

    def filter(self, record):
        if isinstance(record.msg, str):
            record.msg = self._mask_text(record.msg)

        for key, value in list(record.__dict__.items()):
            if key in self.SENSITIVE_KEYS:
                setattr(record, key, self.MASK)
            elif isinstance(value, dict):
                setattr(record, key, self._mask(value))

        return True

    def _mask_text(self, text: str) -> str:
        text = self.BEARER_PATTERN.sub(f"Bearer {self.MASK}", text)
        return self.JWT_PATTERN.sub(self.MASK, text)

    def _mask(self, value):
        if isinstance(value, dict):
            return {
                key: self.MASK if str(key).lower() in self.SENSITIVE_KEYS else self._mask(item)
                for key, item in value.items()
            }
        if isinstance(value, str):
            return self._mask_text(value)
        if isinstance(value, (list, tuple)):
            return type(value)(self._mask(item) for item in value)
        return value


class JSONFormatter(logging.Formatter):
    """One JSON object per record; extra fields are nested under ``extra``."""

    STANDARD_ATTRS = set(
        logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__
    ) | {"message", "asctime", "request_id"}

    def format(self, record):
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "request_id": getattr(record, "request_id", None),
        }

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extra = {key: value for key, value in record.__dict__.items() if key not in self.STANDARD_ATTRS}
        if extra:
            entry["extra"] = extra

        return json.dumps(entry, default=str, ensure_ascii=False)


def log_performance(operation_name: str, duration: float, **kwargs):
    """Record how long an operation took."""
    logging.getLogger(f"{APP_LOGGER}.performance").info(
        f"Performance: {operation_name} completed in {duration:.4f}s",
        extra={"operation": operation_name, "duration": duration, "performance_metric": True, **kwargs}
    )


def log_business_event(event_type: str, details: Dict[str, Any], user_id: Optional[str] = None):
    """Record a reservation lifecycle event (hold, confirmation, release, expiry)."""
    logging.getLogger(f"{APP_LOGGER}.business").info(
        f"Business event: {event_type}",
        extra={"event_type": event_type, "business_event": True, "user_id": user_id, **details}
    )


def log_security_event(event_type: str, details: Dict[str, Any], severity: str = "WARNING"):
    """Record an authentication or authorization event."""
    logger = logging.getLogger(f"{APP_LOGGER}.security")
    logger.log(
        logging.getLevelName(severity.upper()),
        f"Security event: {event_type}",
        extra={"event_type": event_type, "security_event": True, "severity": severity, **details}
    )
