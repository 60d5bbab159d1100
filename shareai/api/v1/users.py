"""User profile, account and admin endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from shareai.api.deps import get_storage, get_user_service, read_upload
from shareai.api.v1.auth import get_current_user, require_admin
from shareai.schemas.auth import MessageResponse
from shareai.schemas.user import (
    UpdateRoleRequest,
    UpdateUserRequest,
    UserResponse,
    UsersListResponse,
)
from shareai.services.auth import AuthContext
from shareai.services.pagination import MAX_PAGE_SIZE
from shareai.services.storage import FileStorage
from shareai.services.users import UserService

router = APIRouter()


@router.get("/profile", response_model=UserResponse)
def get_profile(
    current_user: Annotated[AuthContext, Depends(get_current_user)],
    users: Annotated[UserService, Depends(get_user_service)],
    storage: Annotated[FileStorage, Depends(get_storage)],
) -> UserResponse:
    return UserResponse.from_user(users.get_profile(current_user.user_id), storage)


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    current_user: Annotated[AuthContext, Depends(get_current_user)],
    users: Annotated[UserService, Depends(get_user_service)],
    storage: Annotated[FileStorage, Depends(get_storage)],
    nickname: Annotated[str | None, Form()] = None,
    avatar: Annotated[UploadFile | None, File()] = None,
) -> UserResponse:
    """
    Update nickname and/or avatar (multipart form).

    A new avatar replaces the stored file; the previous one is deleted.
    """
    upload = await read_upload(avatar)
    user = users.update_profile(current_user.user_id, nickname=nickname, avatar=upload)
    return UserResponse.from_user(user, storage)


@router.get("", response_model=UsersListResponse)
def list_users(
    _admin: Annotated[AuthContext, Depends(require_admin)],
    users: Annotated[UserService, Depends(get_user_service)],
    storage: Annotated[FileStorage, Depends(get_storage)],
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(ge=1, le=MAX_PAGE_SIZE)] = 10,
    search: Annotated[str | None, Query(max_length=100)] = None,
) -> UsersListResponse:
    """List users (admin only), optionally filtered by username/email substring."""
    items, total = users.list_users(page, page_size, search)
    return UsersListResponse(
        total=total,
        users=[UserResponse.from_user(u, storage) for u in items],
    )


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: str,
    body: UpdateUserRequest,
    current_user: Annotated[AuthContext, Depends(get_current_user)],
    users: Annotated[UserService, Depends(get_user_service)],
    storage: Annotated[FileStorage, Depends(get_storage)],
) -> UserResponse:
    """Change username and/or email of your own account (admins: any account)."""
    user = users.update_username_email(
        current_user, user_id, username=body.username, email=body.email
    )
    return UserResponse.from_user(user, storage)


@router.put("/{user_id}/role", response_model=MessageResponse)
def update_user_role(
    user_id: str,
    body: UpdateRoleRequest,
    admin: Annotated[AuthContext, Depends(require_admin)],
    users: Annotated[UserService, Depends(get_user_service)],
) -> MessageResponse:
    """Grant or revoke admin (admin only; not on your own account)."""
    users.update_role(admin.user_id, user_id, body.role)
    return MessageResponse(message="User role updated successfully")
