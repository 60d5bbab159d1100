"""Health check endpoint with database and cache connectivity checks."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shareai.api.deps import get_app_settings
from shareai.core.cache import CacheStore, get_cache
from shareai.core.config import Settings
from shareai.core.database import check_db_connected, get_db
from shareai.schemas.health import HealthResponse

router = APIRouter()


@router.get("", response_model=HealthResponse)
def get_health(
    db: Annotated[Session, Depends(get_db)],
    cache: Annotated[CacheStore, Depends(get_cache)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> HealthResponse:
    """
    Return service health status plus database and Redis connectivity.
    Used by load balancers and monitoring.
    """
    return HealthResponse(
        status="ok",
        environment=settings.APP_ENV,
        database="connected" if check_db_connected(db) else "disconnected",
        cache="connected" if cache.ping() else "disconnected",
    )
