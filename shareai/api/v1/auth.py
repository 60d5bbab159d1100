"""Registration, login, logout and the auth dependencies (get_current_user, require_admin)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Header, status

from shareai.api.deps import get_auth_service, get_storage, get_user_service
from shareai.core.errors import UnauthorizedError
from shareai.models.user import Role
from shareai.schemas.auth import LoginRequest, MessageResponse, RegisterRequest
from shareai.schemas.user import UserResponse
from shareai.services.auth import AuthContext, AuthService, require_role
from shareai.services.storage import FileStorage
from shareai.services.users import UserService

router = APIRouter()


def get_current_user(
    auth: Annotated[AuthService, Depends(get_auth_service)],
    authorization: Annotated[str | None, Header()] = None,
) -> AuthContext:
    """Dependency: require a valid, non-blacklisted Bearer JWT. Raises 401 otherwise."""
    return auth.authenticate(authorization)


def get_optional_user(
    auth: Annotated[AuthService, Depends(get_auth_service)],
    authorization: Annotated[str | None, Header()] = None,
) -> AuthContext | None:
    """Dependency for public routes: the caller if the token authenticates, else None."""
    if not authorization:
        return None
    try:
        return auth.authenticate(authorization)
    except UnauthorizedError:
        return None


def require_admin(
    current_user: Annotated[AuthContext, Depends(get_current_user)],
) -> AuthContext:
    """Dependency: require authenticated user with role 'admin'. Raises 403 for non-admin."""
    require_role(current_user, Role.ADMIN)
    return current_user


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    users: Annotated[UserService, Depends(get_user_service)],
    storage: Annotated[FileStorage, Depends(get_storage)],
) -> UserResponse:
    """Create an account with role 'user' and return it with an access token."""
    user, token = users.register(body.username, body.email, body.password)
    return UserResponse.from_user(user, storage, token=token)


@router.post("/login", response_model=UserResponse)
def login(
    body: LoginRequest,
    users: Annotated[UserService, Depends(get_user_service)],
    storage: Annotated[FileStorage, Depends(get_storage)],
) -> UserResponse:
    """
    Authenticate with username and password; returns the user with a JWT access token.
    Include the token in the Authorization header as: Bearer <token>
    """
    user, token = users.login(body.username, body.password)
    return UserResponse.from_user(user, storage, token=token)


@router.post("/logout", response_model=MessageResponse)
def logout(
    current_user: Annotated[AuthContext, Depends(get_current_user)],
    users: Annotated[UserService, Depends(get_user_service)],
) -> MessageResponse:
    """Invalidate the presented token until it would have expired anyway."""
    users.logout(current_user)
    return MessageResponse(message="Successfully logged out")
