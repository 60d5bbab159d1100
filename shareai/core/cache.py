"""Redis-backed key-value store: token blacklist and cached listing responses."""

import json
import logging
from typing import Any

import redis
from fastapi import Request

from shareai.core.config import Settings

logger = logging.getLogger(__name__)

BLACKLIST_PREFIX = "blacklist:"


def create_redis_client(settings: Settings) -> redis.Redis:
    """Build a redis client from REDIS_URL. Connections are opened lazily."""
    return redis.Redis.from_url(
        settings.REDIS_URL,
        socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SEC,
        socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT_SEC,
        decode_responses=True,
    )


class CacheStore:
    """
    Thin wrapper over a redis client.

    Read paths are best-effort: a redis failure is logged and reported as a miss.
    Only ``blacklist`` lets errors propagate, since a logout that silently fails
    would leave the token usable.
    """

    def __init__(self, client: redis.Redis) -> None:
        self.client = client

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except redis.RedisError:
            return False

    def is_blacklisted(self, token: str) -> bool:
        try:
            return self.client.exists(BLACKLIST_PREFIX + token) > 0
        except redis.RedisError as e:
            logger.warning("Blacklist lookup failed, treating token as valid: %s", e)
            return False

    def blacklist(self, token: str, user_id: str, ttl_seconds: int) -> None:
        self.client.set(BLACKLIST_PREFIX + token, user_id, ex=max(1, int(ttl_seconds)))

    def get_json(self, key: str) -> Any | None:
        try:
            raw = self.client.get(key)
        except redis.RedisError as e:
            logger.warning("Cache read failed for %s: %s", key, e)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Discarding undecodable cache entry %s", key)
            return None

    def set_json(self, key: str, value: Any, ttl_seconds: int) -> None:
        try:
            self.client.set(key, json.dumps(value, default=str), ex=ttl_seconds)
        except (redis.RedisError, TypeError, ValueError) as e:
            logger.warning("Cache write failed for %s: %s", key, e)


def get_cache(request: Request) -> CacheStore:
    """Dependency returning the process-wide CacheStore from app.state."""
    return request.app.state.cache
