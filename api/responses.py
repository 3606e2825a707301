"""
Response envelopes. Every body carries the correlation id and a UTC timestamp.
- success: {"data"?, "message"?, "correlation_id", "timestamp"}
- error:   {"error": {"code", "message", "correlation_id", "timestamp"}}
"""
from __future__ import annotations

from flask import jsonify

from utils.clock import utcnow
from utils.logger import get_correlation_id


def _timestamp() -> str:
    return utcnow().isoformat().replace("+00:00", "Z")


def respond_json(data, status: int = 200, message: str | None = None):
    payload = {}
    if data is not None:
        payload["data"] = data
    if message:
        payload["message"] = message
    payload["correlation_id"] = get_correlation_id()
    payload["timestamp"] = _timestamp()
    return jsonify(payload), status


def respond_message(message: str, status: int = 200):
    return respond_json(None, status=status, message=message)


def error_response(code: str, message: str, status: int):
    payload = {
        "error": {
            "code": code,
            "message": message,
            "correlation_id": get_correlation_id(),
            "timestamp": _timestamp(),
        }
    }
    return jsonify(payload), status
