import enum

from sqlalchemy import Column, String, Boolean, Enum
from sqlalchemy.orm import relationship, validates

from models.base_model import Base, BaseModel


class UserRole(str, enum.Enum):
    RIDER = "rider"
    DRIVER = "driver"
    ADMIN = "admin"


ROLE_VALUES = frozenset(role.value for role in UserRole)


def normalize_email(value):
    return value.strip().lower() if isinstance(value, str) else value


class User(BaseModel, Base):
    __tablename__ = "users"

    # stored normalized, so the unique index is effectively case-insensitive
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(
        Enum(UserRole, name="user_role", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=UserRole.RIDER,
    )
    is_active = Column(Boolean, nullable=False, default=True)

    sessions = relationship(
        "RefreshSession",
        back_populates="user",
        passive_deletes=True,
        lazy="dynamic",
    )

    @validates("email")
    def _normalize_email(self, key, value):
        return normalize_email(value)

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")

    @property
    def role_name(self) -> str:
        return self.role.value if isinstance(self.role, UserRole) else str(self.role)
