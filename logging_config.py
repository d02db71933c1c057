from __future__ import annotations

import logging
import time
from logging.config import dictConfig

from settings import get_settings

# record attributes passed through ``extra=`` by the services
CONTEXT_KEYS = (
    "email",
    "clause",
    "column",
    "operator",
    "row_number",
    "reason",
    "row_count",
    "accepted",
    "duration_ms",
)

_configured = False


class ContextualFormatter(logging.Formatter):
    """UTC formatter that appends ``key=value`` pairs for the known context keys."""

    converter = time.gmtime

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = " ".join(
            f"{key}={getattr(record, key)}"
            for key in CONTEXT_KEYS
            if getattr(record, key, None) is not None
        )
        return f"{message} | {context}" if context else message


def configure_logging() -> None:
    """Install the contextual stream handler on the root logger, once per process."""
    global _configured
    if _configured:
        return

    log_level = get_settings().log_level
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "contextual": {
                    "()": ContextualFormatter,
                    "fmt": "%(asctime)sZ | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                }
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "level": log_level,
                    "formatter": "contextual",
                }
            },
            "loggers": {
                # engine echo stays off unless explicitly raised
                "sqlalchemy.engine": {"level": "WARNING"},
            },
            "root": {"handlers": ["default"], "level": log_level},
        }
    )

    _configured = True
