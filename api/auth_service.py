"""
Authentication service: login, refresh (rotation + reuse detection), logout.

No Flask request access here. The blueprint hands in the parsed body, the
user agent, the resolved client IP and the request deadline, and turns the
returned IssuedTokens into a body and a cookie.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta

from marshmallow import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from api.errors import BadRequest, DatabaseError, InvalidCredentials, RequestTimeout, Unauthorized
from models import storage
from models.db_storage import is_timeout
from models.schemas.user import LoginSchema
from models.session_store import ReuseDetected, SessionExpired, SessionNotFound, SessionStore
from models.user import UserRole
from models.user_store import UserStore
from utils.deadline import Deadline, DeadlineExceeded
from utils.security import Signer, burn_password_check, hash_password, verify_password

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuedTokens:
    access_token: str
    access_expires_at: datetime
    refresh_value: str
    refresh_ttl: timedelta
    user_id: str


class AuthService:
    def __init__(
        self,
        signer: Signer,
        sessions: SessionStore,
        users: UserStore,
        refresh_ttl: timedelta,
        password_min_length: int = 8,
        password_verifier=verify_password,
        db=storage,
    ):
        self.signer = signer
        self.sessions = sessions
        self.users = users
        self.refresh_ttl = refresh_ttl
        self._login_schema = LoginSchema(password_min_length=password_min_length)
        self._verify_password = password_verifier
        self._db = db

    def login(self, payload, user_agent: str, ip: str | None,
              deadline: Deadline | None = None) -> IssuedTokens:
        try:
            data = self._login_schema.load(payload if payload is not None else {})
        except ValidationError as exc:
            raise BadRequest("Invalid input") from exc
        email, password = data["email"], data["password"]

        with self._boundary(deadline, "user lookup"):
            user = self.users.get_by_email(email)

        self._check(deadline, "password verification")
        if user is None:
            burn_password_check(password)
            logger.info("login failed: unknown email")
            raise InvalidCredentials()
        password_ok = self._verify_password(password, user.password_hash)
        if not user.is_active or not password_ok:
            logger.info("login failed for user=%s (active=%s)", user.id, user.is_active)
            raise InvalidCredentials()

        tokens = self._issue(user.id, user.role_name, user_agent, ip, deadline)
        logger.info("login succeeded for user=%s", user.id)
        return tokens

    def refresh(self, raw_value: str | None, deadline: Deadline | None = None) -> IssuedTokens:
        if not raw_value:
            raise Unauthorized("Missing refresh token")
        credential_hash = self.signer.hash_refresh_value(raw_value)

        with self._boundary(deadline, "session lookup"):
            try:
                current = self.sessions.find_by_hash(credential_hash)
            except SessionNotFound:
                raise Unauthorized("Invalid refresh token", clear_cookie=True)
            if current.is_expired():
                raise Unauthorized("Refresh token expired", clear_cookie=True)
            session_id, user_id = current.id, current.user_id
            user = self.users.get(user_id)
            if user is None or not user.is_active:
                self.sessions.revoke_all_for_user(user_id)
                logger.warning("refresh for inactive or missing user=%s; sessions revoked", user_id)
                raise Unauthorized("Invalid refresh token", clear_cookie=True)
            role = user.role_name

        new_value = self.signer.mint_refresh_value()
        with self._boundary(deadline, "session rotation"):
            try:
                self.sessions.rotate(session_id, self.signer.hash_refresh_value(new_value), self.refresh_ttl)
            except ReuseDetected as exc:
                logger.warning(
                    "refresh token reuse: family=%s user=%s revoked", exc.family_id, exc.user_id
                )
                raise Unauthorized("Invalid refresh token", clear_cookie=True) from exc
            except (SessionExpired, SessionNotFound) as exc:
                raise Unauthorized("Invalid refresh token", clear_cookie=True) from exc

        access_token, expires_at = self.signer.mint_access(user_id, role)
        logger.info("refresh rotated session for user=%s", user_id)
        return IssuedTokens(access_token, expires_at, new_value, self.refresh_ttl, user_id)

    def logout(self, raw_value: str | None, deadline: Deadline | None = None) -> None:
        """Unknown or missing credentials count as already logged out."""
        if not raw_value:
            return
        with self._boundary(deadline, "session revoke"):
            try:
                record = self.sessions.find_by_hash(self.signer.hash_refresh_value(raw_value))
            except SessionNotFound:
                return
            self.sessions.revoke(record.id)
        logger.info("logout revoked session for user=%s", record.user_id)

    def logout_everywhere(self, user_id: str, deadline: Deadline | None = None) -> int:
        with self._boundary(deadline, "revoke all sessions"):
            count = self.sessions.revoke_all_for_user(user_id)
        logger.info("logout everywhere for user=%s revoked=%d", user_id, count)
        return count

    def bootstrap_admin(self, email: str, password: str) -> None:
        """Create the configured admin once; an existing account is left untouched."""
        if not email or not password:
            return
        with self._boundary(None, "bootstrap admin"):
            if self.users.get_by_email(email) is not None:
                return
            user = self.users.create(email, hash_password(password), role=UserRole.ADMIN)
        logger.info("bootstrap admin created user=%s", user.id)

    def _issue(self, user_id: str, role: str, user_agent: str, ip: str | None,
               deadline: Deadline | None) -> IssuedTokens:
        access_token, expires_at = self.signer.mint_access(user_id, role)
        refresh_value = self.signer.mint_refresh_value()
        with self._boundary(deadline, "session create"):
            self.sessions.create(
                user_id, self.signer.hash_refresh_value(refresh_value), user_agent, ip, self.refresh_ttl
            )
        return IssuedTokens(access_token, expires_at, refresh_value, self.refresh_ttl, user_id)

    @staticmethod
    def _check(deadline: Deadline | None, stage: str) -> None:
        if deadline is None:
            return
        try:
            deadline.check(stage)
        except DeadlineExceeded as exc:
            raise RequestTimeout() from exc

    @contextmanager
    def _boundary(self, deadline: Deadline | None, stage: str):
        """
        Storage call under the request deadline: checked before the call and
        handed to storage as a lock-wait/statement cap. Running out of time
        becomes RequestTimeout; any other storage failure becomes DatabaseError.
        """
        self._check(deadline, stage)
        budget = deadline.remaining() if deadline is not None else None
        try:
            with self._db.bounded(budget):
                yield
        except SQLAlchemyError as exc:
            if is_timeout(exc) or (deadline is not None and deadline.remaining() <= 0):
                logger.warning("storage call ran past the request deadline during %s", stage)
                raise RequestTimeout() from exc
            logger.error("storage failure during %s", stage, exc_info=exc)
            raise DatabaseError() from exc
