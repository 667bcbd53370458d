"""Process-wide logging configuration."""

from __future__ import annotations

from logging.config import dictConfig

from commflock.core.settings import settings

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Install a single stream handler for the ``commflock`` logger tree."""
    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": {"format": LOG_FORMAT}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "loggers": {
                "commflock": {
                    "handlers": ["console"],
                    "level": (level or settings.log_level).upper(),
                    "propagate": True,
                },
            },
        }
    )
