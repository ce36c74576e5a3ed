"""
Logging Configuration

One stdout handler for the service, the uvicorn loggers and the scripts.

Lifecycle events carry ``file_id``, ``from_state`` and ``to_state`` in
their ``extra``; :class:`LifecycleFormatter` appends them so that a
stuck document can be traced with a plain ``grep file=<id>``.

Usage::

    from docvault.core.logging import setup_logging

    setup_logging()            # LOG_LEVEL from settings
    setup_logging("DEBUG")     # explicit override (scripts)
"""

from __future__ import annotations

import logging
import sys
from logging.config import dictConfig
from typing import Any

from docvault.core.config import settings

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_LIFECYCLE_FIELDS = ("file_id", "from_state", "to_state")


class LifecycleFormatter(logging.Formatter):
    """Appends ``[file=... from -> to]`` to records that carry lifecycle extras."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        file_id = getattr(record, "file_id", None)
        if file_id is None:
            return message
        previous = getattr(record, "from_state", "?")
        current = getattr(record, "to_state", "?")
        return f"{message} [file={file_id} {previous} -> {current}]"


def build_logging_config(level: str) -> dict[str, Any]:
    handler = {
        "class": "logging.StreamHandler",
        "stream": sys.stdout,
        "formatter": "lifecycle",
    }
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "lifecycle": {
                "()": LifecycleFormatter,
                "format": LOG_FORMAT,
                "datefmt": DATE_FORMAT,
            },
        },
        "handlers": {"stdout": handler},
        "root": {"level": "WARNING", "handlers": ["stdout"]},
        "loggers": {
            "docvault": {"level": level, "handlers": ["stdout"], "propagate": False},
            "uvicorn": {"level": "INFO", "handlers": ["stdout"], "propagate": False},
            "uvicorn.access": {"level": "INFO", "handlers": ["stdout"], "propagate": False},
            # SQL echo only when explicitly debugging the service
            "sqlalchemy.engine": {
                "level": "INFO" if level == "DEBUG" else "WARNING",
                "handlers": ["stdout"],
                "propagate": False,
            },
        },
    }


def setup_logging(level: str | None = None) -> None:
    """Configure logging once, before the app object or a script starts."""
    dictConfig(build_logging_config((level or settings.LOG_LEVEL).upper()))
