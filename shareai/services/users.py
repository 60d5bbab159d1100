"""User accounts: registration, login, profile and role management."""

import logging
import re

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from shareai.core.errors import (
    DuplicateError,
    ForbiddenError,
    InvalidCredentialsError,
    NotFoundError,
    ValidationError,
)
from shareai.core.security import (
    EMAIL_MAX_LEN,
    NICKNAME_MAX_LEN,
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    USERNAME_MIN_LEN,
    hash_password,
    verify_password,
)
from shareai.models.user import Role, User
from shareai.services.auth import AuthContext, AuthService
from shareai.services.pagination import MAX_PAGE_SIZE, contains_pattern
from shareai.services.storage import AVATARS, FileStorage, UploadedFile

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}$")


def validate_username(username: str) -> str:
    username = (username or "").strip()
    if not (USERNAME_MIN_LEN <= len(username) <= USERNAME_MAX_LEN):
        raise ValidationError(
            f"username must be between {USERNAME_MIN_LEN} and {USERNAME_MAX_LEN} characters"
        )
    return username


def validate_email(email: str) -> str:
    email = (email or "").strip()
    if len(email) > EMAIL_MAX_LEN or not EMAIL_RE.match(email):
        raise ValidationError("invalid email format")
    return email


def validate_password(password: str) -> None:
    if len(password or "") < PASSWORD_MIN_LEN:
        raise ValidationError(f"password must be at least {PASSWORD_MIN_LEN} characters")
    if len(password) > PASSWORD_MAX_LEN:
        raise ValidationError(f"password must be at most {PASSWORD_MAX_LEN} characters")


class UserService:
    def __init__(
        self,
        db: Session,
        auth: AuthService,
        storage: FileStorage,
        bcrypt_rounds: int = 12,
    ) -> None:
        self.db = db
        self.auth = auth
        self.storage = storage
        self.bcrypt_rounds = bcrypt_rounds

    def _get(self, user_id: str) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("user not found")
        return user

    def _username_taken(self, username: str, exclude_id: str | None = None) -> bool:
        query = self.db.query(User.id).filter(User.username == username)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        return query.first() is not None

    def _email_taken(self, email: str, exclude_id: str | None = None) -> bool:
        query = self.db.query(User.id).filter(User.email == email)
        if exclude_id is not None:
            query = query.filter(User.id != exclude_id)
        return query.first() is not None

    def _commit_unique(self) -> None:
        """Commit, turning a lost race on username/email uniqueness into DuplicateError."""
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateError("username or email already exists")

    def register(self, username: str, email: str, password: str) -> tuple[User, str]:
        """Create a user with the default role and return it with a fresh token."""
        email = validate_email(email)
        validate_password(password)
        username = validate_username(username)

        if self._username_taken(username):
            raise DuplicateError("username already exists")
        if self._email_taken(email):
            raise DuplicateError("email already exists")

        user = User(
            username=username,
            email=email,
            password_hash=hash_password(password, rounds=self.bcrypt_rounds),
            nickname=username,
            role=Role.USER.value,
        )
        self.db.add(user)
        self._commit_unique()
        self.db.refresh(user)
        logger.info("Registered user_id=%s username=%s", user.id, user.username)
        return user, self.auth.issue_token(user.id)

    def login(self, username: str, password: str) -> tuple[User, str]:
        user = self.db.query(User).filter(User.username == (username or "").strip()).first()
        if user is None or not verify_password(password or "", user.password_hash):
            logger.info("Failed login attempt for username=%s", username)
            raise InvalidCredentialsError()
        return user, self.auth.issue_token(user.id)

    def logout(self, ctx: AuthContext) -> None:
        self.auth.invalidate(ctx)

    def get_profile(self, user_id: str) -> User:
        return self._get(user_id)

    def update_profile(
        self,
        user_id: str,
        nickname: str | None = None,
        avatar: UploadedFile | None = None,
    ) -> User:
        """Set nickname and/or replace the avatar; empty values leave fields unchanged."""
        user = self._get(user_id)

        if nickname:
            nickname = nickname.strip()
            if len(nickname) > NICKNAME_MAX_LEN:
                raise ValidationError(
                    f"nickname must be at most {NICKNAME_MAX_LEN} characters"
                )
            if nickname:
                user.nickname = nickname

        old_avatar = None
        new_avatar = None
        if avatar is not None:
            new_avatar = self.storage.save(avatar, AVATARS)
            old_avatar = user.avatar
            user.avatar = new_avatar

        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            if new_avatar:
                self.storage.delete(new_avatar)
            raise
        if old_avatar:
            self.storage.delete(old_avatar)
        self.db.refresh(user)
        return user

    def update_username_email(
        self,
        caller: AuthContext,
        target_id: str,
        username: str | None = None,
        email: str | None = None,
    ) -> User:
        """Change username and/or email of target; self-service or admin only."""
        if caller.user_id != target_id and not caller.is_admin:
            raise ForbiddenError("permission denied")
        user = self._get(target_id)

        if username:
            username = validate_username(username)
            if self._username_taken(username, exclude_id=user.id):
                raise DuplicateError("username already exists")
            user.username = username
        if email:
            email = validate_email(email)
            if self._email_taken(email, exclude_id=user.id):
                raise DuplicateError("email already exists")
            user.email = email

        self._commit_unique()
        self.db.refresh(user)
        return user

    def update_role(self, caller_id: str, target_id: str, new_role: str) -> None:
        """Admin-only role change; an admin may not change their own role."""
        caller = self.db.get(User, caller_id)
        if caller is None or not caller.is_admin:
            raise ForbiddenError("permission denied: requires admin role")
        if caller_id == target_id:
            raise ForbiddenError("cannot change your own role")
        role = Role.parse(new_role)
        if role is None:
            raise ValidationError("invalid role")
        target = self._get(target_id)

        previous = target.role
        target.role = role.value
        self.db.commit()
        logger.info(
            "Role change by admin_id=%s: user_id=%s %s -> %s",
            caller_id,
            target_id,
            previous,
            role.value,
        )

    def list_users(
        self,
        page: int,
        page_size: int,
        search: str | None = None,
    ) -> tuple[list[User], int]:
        """Page through users (1-indexed), optionally filtered by username/email substring."""
        if page is None or page < 1:
            raise ValidationError("page must be at least 1")
        if page_size is None or not (1 <= page_size <= MAX_PAGE_SIZE):
            raise ValidationError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")

        query = self.db.query(User)
        if search:
            pattern = contains_pattern(search.strip())
            query = query.filter(
                or_(
                    User.username.ilike(pattern, escape="\\"),
                    User.email.ilike(pattern, escape="\\"),
                )
            )
        total = query.count()
        users = (
            query.order_by(User.created_at, User.id)
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return users, total

