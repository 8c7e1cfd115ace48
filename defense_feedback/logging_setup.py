"""Logging configuration for the feedback service and client engine.

A single stdout handler on the root logger; module loggers need no setup of
their own. Every record carries the current request id (or "-" outside a
request) so service logs can be joined with the X-Request-Id the client saw.
The level defaults to INFO and can be raised or lowered with LOG_LEVEL.
"""
from __future__ import annotations

from contextvars import ContextVar
import logging
from logging.config import dictConfig
import os

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


def _level() -> str:
    level = (os.environ.get("LOG_LEVEL") or "INFO").strip().upper()
    return level if isinstance(logging.getLevelName(level), int) else "INFO"


def _dict_config(level: str) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"request_id": {"()": RequestIdFilter}},
        "formatters": {
            "default": {
                "format": "%(asctime)s %(levelname)s:%(name)s:[%(request_id)s] %(message)s",
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": level,
                "formatter": "default",
                "filters": ["request_id"],
                "stream": "ext://sys.stdout",
            }
        },
        "root": {"level": level, "handlers": ["console"]},
        "loggers": {
            "uvicorn": {"level": "INFO", "handlers": ["console"], "propagate": False},
            "uvicorn.error": {"level": "INFO", "handlers": ["console"], "propagate": False},
            "uvicorn.access": {"level": "WARNING", "handlers": ["console"], "propagate": False},
            # Request lines from the fallback chain are logged by our own modules
            "httpx": {"level": "WARNING"},
        },
    }


def configure_logging() -> None:
    """Install the console handler once; a root that already has handlers is left alone."""
    if logging.getLogger().handlers:
        return
    dictConfig(_dict_config(_level()))


__all__ = ["RequestIdFilter", "configure_logging", "request_id_var"]
