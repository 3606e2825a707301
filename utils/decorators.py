"""
Request gates, applied as view decorators:

    @bp.get("/driver/whoami")
    @jwt_required()
    @roles_required(UserRole.DRIVER)
    def whoami(): ...

jwt_required verifies the bearer token and puts an Identity on flask.g for
this request only. roles_required reads that identity; it never verifies
tokens itself.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import wraps

from flask import current_app, g, request

from api.errors import Forbidden, Unauthorized
from utils.security import TokenError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    user_id: str
    role: str
    token_id: str = ""


def _extract_bearer_token(authorization: str) -> str:
    parts = (authorization or "").strip().split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return ""
    return parts[1].strip()


def current_identity() -> Identity | None:
    return getattr(g, "identity", None)


def jwt_required():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            token = _extract_bearer_token(request.headers.get("Authorization", ""))
            if not token:
                raise Unauthorized("Missing or invalid Authorization header")
            signer = current_app.extensions["signer"]
            try:
                claims = signer.verify_access(token)
            except TokenError as e:
                logger.info("access token rejected: %s", e.kind)
                raise Unauthorized("Invalid or expired access token") from e

            g.identity = Identity(user_id=claims.user_id, role=claims.role, token_id=claims.token_id)
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def roles_required(*allowed_roles):
    """
    Allow access if the injected identity's role is in allowed_roles.
    401 when no identity was injected (jwt_required missing or below this one).
    """
    allowed = {getattr(role, "value", role) for role in allowed_roles}

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            identity = current_identity()
            if identity is None:
                logger.error("roles_required on %s without an authenticated identity", request.path)
                raise Unauthorized()
            if identity.role not in allowed:
                raise Forbidden()
            return fn(*args, **kwargs)

        return wrapper

    return decorator
