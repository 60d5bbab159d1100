"""Bearer token issuance, request authentication, role checks and logout."""

import logging
from dataclasses import dataclass, field
from typing import Any

import jwt
from sqlalchemy.orm import Session

from shareai.core.cache import CacheStore
from shareai.core.config import Settings
from shareai.core.errors import ForbiddenError, UnauthorizedError
from shareai.core.security import (
    create_access_token,
    decode_access_token,
    token_remaining_seconds,
)
from shareai.models.user import Role, User

logger = logging.getLogger(__name__)


@dataclass
class AuthContext:
    """Caller identity attached to an authenticated request."""

    user_id: str
    role: Role
    token: str
    claims: dict[str, Any] = field(default_factory=dict)

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN


def parse_bearer(authorization: str | None) -> str:
    """Return the raw token from an ``Authorization: Bearer <token>`` header value."""
    if not authorization:
        raise UnauthorizedError("Authorization header is required")
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise UnauthorizedError("Invalid authorization header format")
    return parts[1]


def has_role(ctx: AuthContext, role: Role) -> bool:
    return ctx.role is role


def require_role(ctx: AuthContext, role: Role) -> None:
    if not has_role(ctx, role):
        raise ForbiddenError("Admin access required" if role is Role.ADMIN else "Forbidden")


class AuthService:
    """
    Token lifecycle for one request.

    authenticate() performs at most one cache read (blacklist) and one store read
    (user lookup); invalidate() performs one cache write.
    """

    def __init__(self, db: Session, cache: CacheStore, settings: Settings) -> None:
        self.db = db
        self.cache = cache
        self.settings = settings

    def issue_token(self, user_id: str) -> str:
        return create_access_token(user_id, self.settings)

    def authenticate(self, authorization: str | None) -> AuthContext:
        token = parse_bearer(authorization)

        if self.cache.is_blacklisted(token):
            raise UnauthorizedError("Token has been invalidated")

        try:
            claims = decode_access_token(token, self.settings)
        except jwt.PyJWTError:
            raise UnauthorizedError("Invalid or expired token")

        user_id = claims.get("sub")
        if not user_id or not isinstance(user_id, str):
            raise UnauthorizedError("Invalid token payload")

        user = self.db.get(User, user_id)
        if user is None:
            raise UnauthorizedError("User not found")

        return AuthContext(
            user_id=user.id,
            role=Role.parse(user.role) or Role.USER,
            token=token,
            claims=claims,
        )

    def invalidate(self, ctx: AuthContext) -> None:
        """Blacklist the caller's token for the rest of its validity."""
        ttl = token_remaining_seconds(ctx.claims)
        self.cache.blacklist(ctx.token, ctx.user_id, ttl)
        logger.info("Token invalidated for user_id=%s ttl=%ss", ctx.user_id, ttl)
