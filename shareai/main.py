"""FastAPI application factory. No business logic; only wiring and middleware."""

import logging
import time
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy.orm import Session, sessionmaker

from shareai.api.v1 import router as v1_router
from shareai.core.cache import CacheStore, create_redis_client
from shareai.core.config import Settings, get_settings
from shareai.core.database import create_db_engine, create_session_factory
from shareai.core.errors import install_exception_handlers
from shareai.services.storage import FileStorage

logger = logging.getLogger(__name__)


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def build_log_formatter() -> logging.Formatter:
    """Formatter whose timestamps are UTC, matching the Z suffix."""
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    formatter.converter = time.gmtime
    return formatter


def configure_logging(settings: Settings) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(build_log_formatter())
    logging.basicConfig(level=settings.LOG_LEVEL, handlers=[handler])


def create_app(
    settings: Settings | None = None,
    *,
    session_factory: sessionmaker[Session] | None = None,
    cache: CacheStore | None = None,
) -> FastAPI:
    """
    Build the application with its store, cache and file storage clients.

    Tests pass their own session_factory and cache; otherwise both are built
    from settings.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(
        title="ShareAI Platform API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    if session_factory is None:
        session_factory = create_session_factory(create_db_engine(settings))
    if cache is None:
        cache = CacheStore(create_redis_client(settings))

    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.cache = cache
    app.state.storage = FileStorage.from_settings(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Origin", "Content-Type", "Accept", "Authorization"],
    )
    install_exception_handlers(app)

    app.include_router(v1_router, prefix=settings.API_V1_PREFIX)

    Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

    @app.get("/")
    def root() -> dict[str, str]:
        """Root route; minimal payload for discovery."""
        return {"message": "ShareAI Platform API"}

    logger.info("Application configured env=%s api_prefix=%s", settings.APP_ENV, settings.API_V1_PREFIX)
    return app
