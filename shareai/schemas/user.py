"""Request/response schemas for user accounts."""

from datetime import datetime

from pydantic import BaseModel, Field

from shareai.models.user import Role, User
from shareai.services.storage import FileStorage


class UserResponse(BaseModel):
    """Public view of a user; never carries the password hash."""

    id: str
    username: str
    email: str
    nickname: str
    avatar: str = Field(default="", description="Public avatar URL, empty if none")
    role: Role
    created_at: datetime | None = None
    updated_at: datetime | None = None
    token: str | None = Field(default=None, description="Access token (register/login only)")

    @classmethod
    def from_user(
        cls, user: User, storage: FileStorage, token: str | None = None
    ) -> "UserResponse":
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            nickname=user.nickname or "",
            avatar=storage.url(user.avatar or ""),
            role=Role.parse(user.role) or Role.USER,
            created_at=user.created_at,
            updated_at=user.updated_at,
            token=token,
        )


class UpdateUserRequest(BaseModel):
    """Username/email change; omitted or empty fields are left unchanged."""

    username: str | None = Field(default=None, max_length=50)
    email: str | None = Field(default=None, max_length=100)


class UpdateRoleRequest(BaseModel):
    role: str = Field(..., description="New role: 'user' or 'admin'")


class UsersListResponse(BaseModel):
    """Response for GET /users (admin only)."""

    total: int = Field(..., ge=0)
    users: list[UserResponse]
