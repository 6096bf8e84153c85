"""Logging setup for the SocialHub API process."""

from __future__ import annotations

import contextvars
import logging
import os
from logging.config import dictConfig
from typing import Optional

trace_id_ctx: contextvars.ContextVar[str | None] = contextvars.ContextVar("trace_id", default=None)

_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
HTTP_CLIENT_LOG_LEVEL = "WARNING"


class ChannelAliasFilter(logging.Filter):
    """Shorten library logger names in the channel column."""

    NAME_MAP = {
        "uvicorn.access": "uvicorn.access",
        "uvicorn.error": "uvicorn",
        "uvicorn": "uvicorn",
        "sqlalchemy.engine": "sqlalchemy",
        "httpx": "http",
        "httpcore": "http",
    }
    PREFIX = "socialhub."

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - trivial
        name = self.NAME_MAP.get(record.name, record.name)
        if name.startswith(self.PREFIX):
            name = name[len(self.PREFIX):]
        record.channel = name
        return True


class TraceIdFilter(logging.Filter):
    """Inject trace_id from context into log records."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - trivial
        record.trace_id = trace_id_ctx.get() or "-"
        return True


def _resolve_log_level(default: Optional[str] = None) -> str:
    for candidate in (os.getenv("LOG_LEVEL", ""), default or ""):
        level = candidate.strip().upper()
        if level in _LEVELS:
            return level
    return "INFO"


def _library_logger(level: str) -> dict:
    return {"handlers": ["console"], "level": level, "propagate": False}


def configure_logging(default_level: Optional[str] = None) -> None:
    """Install console handlers and per-library levels."""

    level = _resolve_log_level(default_level)
    line = "%(asctime)s | %(levelname)-8s | %(channel)-24s | [%(trace_id)s] | %(message)s"

    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "channel": {"()": "socialhub.core.logging_config.ChannelAliasFilter"},
            "trace": {"()": "socialhub.core.logging_config.TraceIdFilter"},
        },
        "formatters": {
            "default": {"format": line, "datefmt": "%Y-%m-%d %H:%M:%S"},
            "access": {
                "format": "%(asctime)s | %(levelname)-8s | %(channel)-24s | %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "level": level,
                "stream": "ext://sys.stdout",
                "filters": ["channel", "trace"],
            },
            "access_console": {
                "class": "logging.StreamHandler",
                "formatter": "access",
                "level": "INFO",
                "stream": "ext://sys.stdout",
                "filters": ["channel", "trace"],
            },
        },
        "loggers": {
            "": {"handlers": ["console"], "level": level},
            "uvicorn": _library_logger(level),
            "uvicorn.error": _library_logger(level),
            "uvicorn.access": {
                "handlers": ["access_console"],
                "level": "INFO",
                "propagate": False,
            },
            "sqlalchemy": _library_logger("WARNING"),
            "redis": _library_logger("WARNING"),
            # httpx logs full request URLs at INFO. Graph API token exchanges carry
            # the code, client secret and user token in the query string.
            "httpx": _library_logger(HTTP_CLIENT_LOG_LEVEL),
            "httpcore": _library_logger(HTTP_CLIENT_LOG_LEVEL),
        },
    }

    dictConfig(config)
    logging.getLogger(__name__).debug("Logging configured with level %s", level)
