"""ORM model for application users (auth and RBAC)."""

import enum

from sqlalchemy import Column, DateTime, String

from shareai.models.base import Base, new_id, utcnow


class Role(str, enum.Enum):
    """Closed set of roles; values are what is stored in users.role."""

    USER = "user"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value: str) -> "Role | None":
        """Return the Role for value, or None if it is not a recognized role."""
        try:
            return cls(value)
        except ValueError:
            return None


class User(Base):
    """
    User account for JWT authentication and role-based access control.

    password_hash is never serialized outward; role defaults to 'user'.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    username = Column(String(50), nullable=False, unique=True, index=True)
    email = Column(String(100), nullable=False, unique=True, index=True)
    password_hash = Column(String(100), nullable=False)
    nickname = Column(String(50), nullable=False, default="")
    avatar = Column(String(255), nullable=False, default="")
    role = Column(String(20), nullable=False, default=Role.USER.value)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN.value
