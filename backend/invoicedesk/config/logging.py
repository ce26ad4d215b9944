"""Structured logging configuration.

Provides JSON-formatted logs with an optional request_id correlation field.
structlog renders its own events as JSON; stdlib loggers go through JsonFormatter.
"""
from __future__ import annotations

import json
import logging as _logging
import sys
import time
from typing import Any, Dict, Optional

import structlog

from .settings import get_settings


class JsonFormatter(_logging.Formatter):
    def format(self, record) -> str:  # noqa: D401 - record is LogRecord
        base: Dict[str, Any] = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created)),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, "request_id"):
            base["request_id"] = getattr(record, "request_id")
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False)


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging for application startup."""
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    handler = _logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    root = _logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level or get_settings().LOG_LEVEL)


def bind_context(logger: _logging.Logger, **kwargs: Any):
    """Bind contextual attributes to a logger via `LoggerAdapter` semantics."""
    if not kwargs:
        return logger
    return _logging.LoggerAdapter(logger, extra=kwargs)


__all__ = ["JsonFormatter", "configure_logging", "bind_context"]
