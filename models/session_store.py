"""
Refresh-session persistence.

Every issued refresh credential has one row, looked up by the HMAC of the
raw value. Rotation chains sessions through `replaced_by`; all sessions of
one login share a `family_id`. A refresh credential is single use: handing
back one that was already rotated or revoked is treated as theft and the
whole family is revoked.
"""
from __future__ import annotations

import logging
import uuid
from datetime import timedelta

from models import storage
from models.session import RefreshSession, USER_AGENT_MAX
from utils.clock import utcnow

logger = logging.getLogger(__name__)


class SessionStoreError(Exception):
    """Base class for session lifecycle failures."""


class SessionNotFound(SessionStoreError):
    pass


class SessionExpired(SessionStoreError):
    pass


class ReuseDetected(SessionStoreError):
    """An already-consumed refresh credential was presented again."""

    def __init__(self, family_id: str, user_id: str):
        super().__init__(f"refresh credential reuse in family {family_id}")
        self.family_id = family_id
        self.user_id = user_id


class SessionStore:
    """
    Session operations against the relational store.
    All methods commit their own unit of work and roll back on failure;
    SQLAlchemy errors propagate to the caller.
    """

    def __init__(self, db=storage):
        self._db = db

    @property
    def _session(self):
        return self._db.get_session()

    def create(self, user_id: str, credential_hash: str, user_agent: str | None,
               ip: str | None, ttl: timedelta) -> RefreshSession:
        """Start a new family with its first session."""
        now = utcnow()
        record = RefreshSession(
            user_id=user_id,
            token_hash=credential_hash,
            user_agent=(user_agent or "")[:USER_AGENT_MAX],
            ip=ip,
            created_at=now,
            expires_at=now + ttl,
            family_id=str(uuid.uuid4()),
        )
        self._db.new(record)
        self._db.save()
        return record

    def find_by_hash(self, credential_hash: str) -> RefreshSession:
        record = (
            self._session.query(RefreshSession)
            .filter(RefreshSession.token_hash == credential_hash)
            .first()
        )
        if record is None:
            raise SessionNotFound("no session for credential")
        return record

    def get(self, session_id: str) -> RefreshSession | None:
        return self._db.get(RefreshSession, session_id)

    def rotate(self, old_session_id: str, new_credential_hash: str, ttl: timedelta) -> RefreshSession:
        """
        Replace a current session with its successor in one transaction.

        The predecessor is claimed with a conditional UPDATE, so of any number
        of concurrent callers exactly one sees a row change. Everyone else
        gets ReuseDetected and the family is revoked.
        """
        db = self._session
        old = db.get(RefreshSession, old_session_id)
        if old is None:
            raise SessionNotFound("no session to rotate")
        family_id, user_id = old.family_id, old.user_id

        now = utcnow()
        successor = RefreshSession(
            user_id=user_id,
            token_hash=new_credential_hash,
            user_agent=old.user_agent,
            ip=old.ip,
            created_at=now,
            expires_at=now + ttl,
            family_id=family_id,
        )
        try:
            db.add(successor)
            db.flush()
            claimed = (
                db.query(RefreshSession)
                .filter(
                    RefreshSession.id == old_session_id,
                    RefreshSession.revoked_at.is_(None),
                    RefreshSession.replaced_by.is_(None),
                    RefreshSession.expires_at > now,
                )
                .update({RefreshSession.replaced_by: successor.id}, synchronize_session=False)
            )
            if claimed == 1:
                db.commit()
                db.expire(old)
                return successor
            db.rollback()
        except Exception:
            db.rollback()
            raise

        old = (
            db.query(RefreshSession)
            .populate_existing()
            .filter(RefreshSession.id == old_session_id)
            .first()
        )
        if old is None:
            raise SessionNotFound("session vanished during rotation")
        if old.revoked_at is not None or old.replaced_by is not None:
            revoked = self.revoke_family(family_id)
            logger.warning(
                "refresh reuse detected; revoked family=%s user=%s sessions=%d",
                family_id, user_id, revoked,
            )
            raise ReuseDetected(family_id, user_id)
        raise SessionExpired("session expired")

    def revoke(self, session_id: str) -> None:
        """Idempotent: an already revoked session keeps its original revoked_at."""
        self._revoke_where(RefreshSession.id == session_id)

    def revoke_all_for_user(self, user_id: str) -> int:
        return self._revoke_where(RefreshSession.user_id == user_id)

    def revoke_family(self, family_id: str) -> int:
        return self._revoke_where(RefreshSession.family_id == family_id)

    def _revoke_where(self, criterion) -> int:
        db = self._session
        try:
            count = (
                db.query(RefreshSession)
                .filter(criterion, RefreshSession.revoked_at.is_(None))
                .update({RefreshSession.revoked_at: utcnow()}, synchronize_session=False)
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
        # bulk update bypasses the identity map
        db.expire_all()
        return count
