"""
Centralized logging configuration with structured logging support.
"""
import json
import logging
import logging.config
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from vocabcat.core.config import settings

# Identifier of the examinee session currently being driven. Set by the
# session manager so every log line of one adaptive run can be correlated.
session_id_context: ContextVar[Optional[str]] = ContextVar("session_id", default=None)


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for production logging.

    Produces structured log entries with consistent fields for log aggregation.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        timestamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        log_entry: Dict[str, Any] = {
            "timestamp": timestamp.isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        session_id = session_id_context.get()
        if session_id:
            log_entry["session_id"] = session_id

        # Structured fields attached through ``extra=``
        for field_name in ("item_index", "theta", "se", "items_administered"):
            if hasattr(record, field_name):
                log_entry[field_name] = getattr(record, field_name)

        if record.levelno >= logging.ERROR:
            log_entry["source"] = f"{record.pathname}:{record.lineno}"

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level: Optional[str] = None, json_output: Optional[bool] = None) -> None:
    """
    Configure logging for the engine and its command-line entry point.

    Args:
        level: Log level name. Defaults to ``settings.LOG_LEVEL``.
        json_output: Force JSON (True) or human-readable (False) output.
            Defaults to JSON only when ``settings.ENV`` is ``production``.
    """
    log_level_name = level or settings.LOG_LEVEL
    log_level = getattr(logging, log_level_name.upper(), logging.INFO)

    if json_output is None:
        json_output = settings.ENV == "production"

    logging_config: Dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "json": {
                "()": JSONFormatter,
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": "json" if json_output else "default",
                "stream": sys.stderr,
            },
        },
        "root": {
            "level": logging.WARNING,
            "handlers": ["console"],
        },
        "loggers": {
            "vocabcat": {
                "level": log_level,
                "handlers": ["console"],
                "propagate": False,
            },
        },
    }

    logging.config.dictConfig(logging_config)

