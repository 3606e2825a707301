"""
User lookups consumed by the authentication service.
"""
from __future__ import annotations

from models import storage
from models.user import User, UserRole, normalize_email


class UserStore:
    def __init__(self, db=storage):
        self._db = db

    def get_by_email(self, email: str) -> User | None:
        session = self._db.get_session()
        return session.query(User).filter(User.email == normalize_email(email)).first()

    def get(self, user_id: str) -> User | None:
        return self._db.get(User, user_id)

    def create(self, email: str, password_hash: str, role: UserRole = UserRole.RIDER,
               is_active: bool = True) -> User:
        user = User(email=email, password_hash=password_hash, role=role, is_active=is_active)
        self._db.new(user)
        self._db.save()
        return user
