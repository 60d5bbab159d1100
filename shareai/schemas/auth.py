"""Request/response schemas for auth endpoints."""

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    """New account; format and length rules are enforced by the user service."""

    username: str = Field(..., max_length=50, description="Unique username (3-50 chars)")
    email: str = Field(..., max_length=100, description="Unique email address")
    password: str = Field(..., max_length=128, description="Password (at least 6 chars)")


class LoginRequest(BaseModel):
    """Credentials for login."""

    username: str = Field(..., min_length=1, max_length=50, description="Username")
    password: str = Field(..., min_length=1, max_length=128, description="Password")


class MessageResponse(BaseModel):
    message: str
