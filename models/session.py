"""
RefreshSession model: one row per issued refresh credential.
Fields:
- token_hash (unique) - HMAC of the raw refresh value, never the value itself
- user_id (String(36)) - FK to users.id
- family_id - shared by every session descended from one login
- replaced_by - successor session id once rotated
- revoked_at, expires_at
Rows are kept after rotation/revocation; they are what reuse detection reads.
"""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base
from utils.clock import as_utc, utcnow

USER_AGENT_MAX = 512


class RefreshSession(BaseModel, Base):
    __tablename__ = "sessions"

    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    user_agent = Column(String(USER_AGENT_MAX), nullable=False, default="")
    ip = Column(String(45), nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    replaced_by = Column(String(36), ForeignKey("sessions.id"), nullable=True)
    family_id = Column(String(36), nullable=False, index=True)

    user = relationship("User", back_populates="sessions")

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) >= as_utc(self.expires_at)

    def is_usable(self, now: datetime | None = None) -> bool:
        """Usable for refresh: not revoked, not rotated, not expired."""
        return self.revoked_at is None and self.replaced_by is None and not self.is_expired(now)

    def __repr__(self):
        return f"<RefreshSession id={self.id} family={self.family_id}>"
