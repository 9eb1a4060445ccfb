"""
Logging setup shared by the API process and background import runs.

Log lines go to stdout in a single pipe-delimited format so import progress
can be followed alongside request logs.
"""
from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Optional


_is_configured = False

# Third-party loggers that are too chatty at INFO during bulk imports.
_QUIET_LOGGERS = ("sqlalchemy.engine", "multipart", "openpyxl")


def configure_logging(level: Optional[str] = None) -> None:
    """
    Install the console handler once per process.

    Args:
        level: Optional log level override (e.g., "DEBUG", "INFO").
    """
    global _is_configured

    if _is_configured:
        return

    log_level = (level or "INFO").upper()

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "pipeline": {
                    "format": "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%d %H:%M:%S",
                }
            },
            "handlers": {
                "stdout": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stdout",
                    "formatter": "pipeline",
                    "level": log_level,
                }
            },
            "root": {
                "handlers": ["stdout"],
                "level": log_level,
            },
            "loggers": {
                name: {"level": "WARNING"} for name in _QUIET_LOGGERS
            },
        }
    )

    logging.getLogger("app").setLevel(log_level)

    _is_configured = True
