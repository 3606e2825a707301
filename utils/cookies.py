"""
Refresh credential cookie. The access token never travels in a cookie.
"""
from __future__ import annotations

from datetime import timedelta

REFRESH_COOKIE_NAME = "refresh_token"


def set_refresh_cookie(response, value: str, ttl: timedelta, secure: bool):
    response.set_cookie(
        REFRESH_COOKIE_NAME,
        value,
        max_age=int(ttl.total_seconds()),
        path="/",
        httponly=True,
        samesite="Lax",
        secure=secure,
    )
    return response


def clear_refresh_cookie(response, secure: bool):
    response.set_cookie(
        REFRESH_COOKIE_NAME,
        "",
        max_age=0,
        expires=0,
        path="/",
        httponly=True,
        samesite="Lax",
        secure=secure,
    )
    return response


def read_refresh_cookie(request) -> str | None:
    return request.cookies.get(REFRESH_COOKIE_NAME) or None
