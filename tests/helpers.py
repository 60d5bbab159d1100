"""Shared test fixtures: settings, in-memory SQLite sessions and an in-memory redis double."""

import time
from typing import Any

from sqlalchemy.orm import Session, sessionmaker

from shareai.core.cache import CacheStore
from shareai.core.config import Settings
from shareai.core.database import create_db_engine, create_session_factory
from shareai.core.security import hash_password
from shareai.models import Base, Image, User
from shareai.models.user import Role

TEST_PASSWORD = "secret1"


def make_settings(upload_dir: str = "uploads-test", **overrides: Any) -> Settings:
    values: dict[str, Any] = {
        "DATABASE_URL": "sqlite://",
        "REDIS_URL": "redis://localhost:6379/15",
        "JWT_SECRET": "test-secret",
        "JWT_EXPIRE_MINUTES": 60,
        "BCRYPT_ROUNDS": 4,
        "UPLOAD_DIR": upload_dir,
        "PUBLIC_BASE_URL": "http://testserver",
        "LOG_LEVEL": "WARNING",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_session_factory(settings: Settings) -> sessionmaker[Session]:
    """Fresh in-memory database with the full schema."""
    engine = create_db_engine(settings)
    Base.metadata.create_all(engine)
    return create_session_factory(engine)


class InMemoryRedis:
    """Subset of the redis.Redis API used by CacheStore (decode_responses=True)."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.expiry: dict[str, float] = {}
        self.ttls: dict[str, int] = {}

    def _alive(self, key: str) -> bool:
        deadline = self.expiry.get(key)
        if deadline is not None and deadline <= time.monotonic():
            self.data.pop(key, None)
            self.expiry.pop(key, None)
        return key in self.data

    def ping(self) -> bool:
        return True

    def get(self, key: str) -> str | None:
        return self.data.get(key) if self._alive(key) else None

    def set(self, key: str, value: Any, ex: int | None = None) -> bool:
        self.data[key] = value if isinstance(value, str) else str(value)
        if ex is not None:
            self.expiry[key] = time.monotonic() + ex
            self.ttls[key] = ex
        return True

    def exists(self, *keys: str) -> int:
        return sum(1 for key in keys if self._alive(key))


def make_cache() -> tuple[CacheStore, InMemoryRedis]:
    client = InMemoryRedis()
    return CacheStore(client), client


def add_user(
    db: Session,
    username: str,
    role: Role = Role.USER,
    password: str = TEST_PASSWORD,
) -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        password_hash=hash_password(password, rounds=4),
        nickname=username,
        role=role.value,
    )
    db.add(user)
    db.commit()
    return user


def add_image(db: Session, author: User, name: str = "nginx", **fields: Any) -> Image:
    values: dict[str, Any] = {
        "name": name,
        "description": f"{name} image",
        "author": author.id,
        "image_registry": "docker.io",
        "namespace": "library",
        "repository": name,
        "tag": "latest",
        "digest": f"sha256:{name}",
        "platform": "linux/amd64",
    }
    values.update(fields)
    image = Image(**values)
    db.add(image)
    db.commit()
    return image
