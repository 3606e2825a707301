"""
Authentication blueprint:
- POST /auth/login        -> access token in the body, refresh credential in a cookie
- POST /auth/refresh      -> rotates the refresh cookie, new access token
- POST /auth/logout       -> revokes the cookie's session (always succeeds)
- POST /auth/logout-all   -> revokes every session of the caller
- GET  /auth/me           -> identity carried by the access token

Tokens and sessions are handled by AuthService; this module only deals with
HTTP: body parsing, cookies, client address, envelopes.
"""
from __future__ import annotations

from flask import Blueprint, current_app, g, request

from api.responses import respond_json, respond_message
from api.auth_service import IssuedTokens
from models.schemas.user import IdentityOutSchema, TokenOutSchema
from utils.clock import utcnow
from utils.cookies import clear_refresh_cookie, read_refresh_cookie, set_refresh_cookie
from utils.decorators import current_identity, jwt_required
from utils.net import client_ip, user_agent

bp = Blueprint("auth", __name__, url_prefix="/auth")

token_out_schema = TokenOutSchema()
identity_out_schema = IdentityOutSchema()


def _service():
    return current_app.extensions["auth_service"]


def _cookie_secure() -> bool:
    return current_app.config.get("COOKIE_SECURE", False)


def _token_response(tokens: IssuedTokens):
    body, status = respond_json(
        token_out_schema.dump(
            {
                "access_token": tokens.access_token,
                "token_type": "bearer",
                "expires_in": max(0, int((tokens.access_expires_at - utcnow()).total_seconds())),
                "expires_at": tokens.access_expires_at,
            }
        )
    )
    set_refresh_cookie(body, tokens.refresh_value, tokens.refresh_ttl, _cookie_secure())
    body.headers["Cache-Control"] = "no-store"
    return body, status


@bp.post("/login")
def login():
    """
    Login: access token in the body, refresh token in an HttpOnly cookie
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns access token, sets refresh_token cookie)
      400:
        description: Malformed body
      401:
        description: Invalid credentials
    """
    payload = request.get_json(silent=True)
    tokens = _service().login(
        payload,
        user_agent=user_agent(request),
        ip=client_ip(request),
        deadline=g.deadline,
    )
    return _token_response(tokens)


@bp.post("/refresh")
def refresh():
    """
    Rotate the refresh cookie and obtain a new access token
    ---
    tags:
      - Auth
    responses:
      200:
        description: OK (new access token, rotated cookie)
      401:
        description: Missing, expired, revoked or reused refresh token
    """
    tokens = _service().refresh(read_refresh_cookie(request), deadline=g.deadline)
    return _token_response(tokens)


@bp.post("/logout")
def logout():
    """
    Logout: revoke the session behind the refresh cookie
    ---
    tags:
      - Auth
    responses:
      200:
        description: Logged out (also when no valid cookie was sent)
    """
    _service().logout(read_refresh_cookie(request), deadline=g.deadline)
    body, status = respond_message("Logged out")
    clear_refresh_cookie(body, _cookie_secure())
    return body, status


@bp.post("/logout-all")
@jwt_required()
def logout_all():
    """
    Revoke every session of the authenticated user
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: All sessions revoked
      401:
        description: Unauthorized
    """
    identity = current_identity()
    revoked = _service().logout_everywhere(identity.user_id, deadline=g.deadline)
    body, status = respond_json({"revoked_sessions": revoked}, message="Logged out everywhere")
    clear_refresh_cookie(body, _cookie_secure())
    return body, status


@bp.get("/me")
@jwt_required()
def me():
    """
    Identity carried by the access token
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return respond_json(identity_out_schema.dump(current_identity()))
