"""Logging bootstrap utilities."""

from __future__ import annotations

import logging
from logging.config import dictConfig

from .config import LogLevel, get_settings

# Attributes every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "taskName"}


class ContextFormatter(logging.Formatter):
    """Appends ``extra`` fields to dotted event names: ``stream.connected key=sk-1``."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = {key: value for key, value in vars(record).items() if key not in _RECORD_ATTRS}
        if not context:
            return line
        pairs = " ".join(f"{key}={value}" for key, value in sorted(context.items()))
        return f"{line} {pairs}"


def configure_logging(level: LogLevel | str | None = None) -> None:
    """Route the overlay, httpx and uvicorn loggers to one stderr handler."""

    if level is None:
        level = get_settings().log_level
    resolved_level = (level.value if isinstance(level, LogLevel) else level).upper()

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "context": {
                    "()": ContextFormatter,
                    "fmt": "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
                    "datefmt": "%Y-%m-%dT%H:%M:%S",
                }
            },
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "formatter": "context",
                    "level": resolved_level,
                }
            },
            "loggers": {
                "": {"handlers": ["stderr"], "level": resolved_level, "propagate": False},
                # one line per backend request would drown the alert events
                "httpx": {"handlers": ["stderr"], "level": "WARNING", "propagate": False},
                "httpcore": {"handlers": ["stderr"], "level": "WARNING", "propagate": False},
                "uvicorn": {"handlers": ["stderr"], "level": resolved_level, "propagate": False},
                "uvicorn.error": {"handlers": ["stderr"], "level": resolved_level, "propagate": False},
                "uvicorn.access": {"handlers": ["stderr"], "level": "WARNING", "propagate": False},
            },
        }
    )

    logging.getLogger(__name__).debug("logging.configured", extra={"level": resolved_level})
