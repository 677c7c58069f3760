"""
Logging configuration (dictConfig).
Every module logs through logging.getLogger(__name__); this wires the root handler.
"""
from __future__ import annotations

import logging.config
from typing import Any

from campus_notify.core.config import settings


def build_logging_config(level: str) -> dict[str, Any]:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "verbose": {
                "format": "[{asctime}] {levelname} {name} - {message}",
                "style": "{",
            },
        },
        "handlers": {
            "console": {
                "level": level,
                "class": "logging.StreamHandler",
                "formatter": "verbose",
            },
        },
        "loggers": {
            "campus_notify": {"level": level, "propagate": True},
            # SQL echo is governed by settings.DEBUG on the engine
            "sqlalchemy.engine": {"level": "WARNING", "propagate": True},
        },
        "root": {
            "handlers": ["console"],
            "level": level,
        },
    }


def configure_logging(level: str | None = None) -> None:
    """Apply the dictConfig for the process. Safe to call more than once."""
    logging.config.dictConfig(build_logging_config(level or settings.LOG_LEVEL))
