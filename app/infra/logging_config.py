"""Process-wide logging setup."""

from __future__ import annotations

import logging
import logging.config

from app.config import get_settings

ROOT_LOGGER = "helpdesk"
LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"


class LoggingConfig:
    """Configure the ``helpdesk`` logger tree once per process."""

    _configured = False

    def __init__(self, level: str | None = None) -> None:
        if LoggingConfig._configured:
            return
        level = (level or get_settings().log_level or "INFO").upper()
        logging.config.dictConfig(
            {
                "version": 1,
                "disable_existing_loggers": False,
                "formatters": {"default": {"format": LOG_FORMAT}},
                "handlers": {
                    "console": {
                        "class": "logging.StreamHandler",
                        "formatter": "default",
                    }
                },
                "loggers": {
                    ROOT_LOGGER: {
                        "handlers": ["console"],
                        "level": level,
                        "propagate": False,
                    },
                    "uvicorn.access": {"level": "WARNING"},
                },
            }
        )
        LoggingConfig._configured = True


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger under the ``helpdesk`` namespace."""
    if not name:
        return logging.getLogger(ROOT_LOGGER)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
