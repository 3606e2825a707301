"""
Logging setup: JSON lines in production, readable text elsewhere.
Every record carries the request's correlation id when there is one.
"""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

from flask import g, has_app_context

CORRELATION_HEADER = "X-Request-ID"


def get_correlation_id() -> str:
    if has_app_context():
        return getattr(g, "correlation_id", "") or ""
    return ""


class CorrelationIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id()
        return True


class JsonLogFormatter(logging.Formatter):
    """Serialize log records into compact JSON lines."""

    extra_fields = ("method", "path", "status_code", "duration_ms", "user_id")

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", ""),
        }
        for key in self.extra_fields:
            value = getattr(record, key, None)
            if value not in (None, ""):
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(correlation_id)s] %(message)s"


def setup_logging(level: str = "INFO", json_output: bool = False) -> None:
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(JsonLogFormatter() if json_output else logging.Formatter(TEXT_FORMAT))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.addHandler(handler)
