"""Pydantic request/response schemas."""

from shareai.schemas.auth import LoginRequest, MessageResponse, RegisterRequest
from shareai.schemas.deploy import DeployRequest, DeployResponse
from shareai.schemas.health import HealthResponse
from shareai.schemas.image import (
    ImageCreate,
    ImageListResponse,
    ImageResponse,
    ImageUpdate,
)
from shareai.schemas.user import (
    UpdateRoleRequest,
    UpdateUserRequest,
    UserResponse,
    UsersListResponse,
)

__all__ = [
    "DeployRequest",
    "DeployResponse",
    "HealthResponse",
    "ImageCreate",
    "ImageListResponse",
    "ImageResponse",
    "ImageUpdate",
    "LoginRequest",
    "MessageResponse",
    "RegisterRequest",
    "UpdateRoleRequest",
    "UpdateUserRequest",
    "UserResponse",
    "UsersListResponse",
]
