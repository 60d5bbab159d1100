"""FastAPI dependencies that hand request handlers their configured services."""

from typing import Annotated

from fastapi import Depends, Request, UploadFile
from sqlalchemy.orm import Session

from shareai.core.cache import CacheStore, get_cache
from shareai.core.config import Settings
from shareai.core.database import get_db
from shareai.services.auth import AuthService
from shareai.services.deploy import DeployService
from shareai.services.images import ImageService
from shareai.services.storage import FileStorage, UploadedFile
from shareai.services.users import UserService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> FileStorage:
    return request.app.state.storage


def get_auth_service(
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[CacheStore, Depends(get_cache)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> AuthService:
    return AuthService(db, cache, settings)


def get_user_service(
    db: Annotated[Session, Depends(get_db)],
    auth: Annotated[AuthService, Depends(get_auth_service)],
    storage: Annotated[FileStorage, Depends(get_storage)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> UserService:
    return UserService(db, auth, storage, bcrypt_rounds=settings.BCRYPT_ROUNDS)


def get_image_service(
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[CacheStore, Depends(get_cache)],
    storage: Annotated[FileStorage, Depends(get_storage)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> ImageService:
    return ImageService(db, cache, storage, list_cache_ttl=settings.IMAGE_LIST_CACHE_TTL_SEC)


def get_deploy_service(db: Annotated[Session, Depends(get_db)]) -> DeployService:
    return DeployService(db)


async def read_upload(file: UploadFile | None) -> UploadedFile | None:
    """Read a multipart file part into memory; a part without a filename counts as absent."""
    if file is None or not file.filename:
        return None
    data = await file.read()
    return UploadedFile(
        filename=file.filename,
        content_type=file.content_type or "",
        data=data,
    )
