"""Logging configuration for the Quiz Funnel service.

A single stdout handler on the root logger, installed through dictConfig.
Every record carries the id of the HTTP request that produced it (``-``
outside a request), so the steps of one reconciliation can be read together.
The level comes from ``LOG_LEVEL`` and defaults to INFO.
"""
from __future__ import annotations

import logging
import os
from contextvars import ContextVar
from logging.config import dictConfig
from typing import Any, Dict, Optional

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"
_UVICORN_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


def _dict_config(level: str) -> Dict[str, Any]:
    loggers: Dict[str, Any] = {
        name: {"level": level, "handlers": ["stdout"], "propagate": False} for name in _UVICORN_LOGGERS
    }
    # statement echo stays opt-in
    loggers["sqlalchemy.engine"] = {"level": "WARNING"}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"request_id": {"()": RequestIdFilter}},
        "formatters": {"line": {"format": _FORMAT}},
        "handlers": {
            "stdout": {
                "class": "logging.StreamHandler",
                "formatter": "line",
                "filters": ["request_id"],
                "stream": "ext://sys.stdout",
            }
        },
        "root": {"level": level, "handlers": ["stdout"]},
        "loggers": loggers,
    }


def configure_logging(level: Optional[str] = None) -> None:
    """Install the handler once; a root logger that already has handlers is left alone."""
    if logging.getLogger().handlers:
        return
    dictConfig(_dict_config((level or os.environ.get("LOG_LEVEL") or "INFO").upper()))


__all__ = ["configure_logging", "request_id_var", "RequestIdFilter"]
