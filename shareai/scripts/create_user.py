"""
Create a user (e.g. the first admin, since only admins can grant roles). Run from project root:
  python -m shareai.scripts.create_user USERNAME EMAIL PASSWORD [role]
Example:
  python -m shareai.scripts.create_user admin admin@example.com your-secure-password admin
"""
import argparse
import sys

from dotenv import load_dotenv

from shareai.core.config import get_settings
from shareai.core.database import create_db_engine, create_session_factory
from shareai.core.errors import ServiceError
from shareai.core.security import hash_password
from shareai.models.user import Role, User
from shareai.services.users import validate_email, validate_password, validate_username


def main() -> int:
    load_dotenv()
    parser = argparse.ArgumentParser(description="Create a ShareAI user.")
    parser.add_argument("username", help="Username (3-50 chars)")
    parser.add_argument("email", help="Email address")
    parser.add_argument("password", help="Password (at least 6 chars)")
    parser.add_argument(
        "role", nargs="?", default=Role.USER.value, choices=[r.value for r in Role]
    )
    args = parser.parse_args()

    try:
        username = validate_username(args.username)
        email = validate_email(args.email)
        validate_password(args.password)
    except ServiceError as e:
        print(e.message, file=sys.stderr)
        return 1

    settings = get_settings()
    db = create_session_factory(create_db_engine(settings))()
    try:
        existing = (
            db.query(User)
            .filter((User.username == username) | (User.email == email))
            .first()
        )
        if existing:
            print(f"User '{username}' or email '{email}' already exists.", file=sys.stderr)
            return 1
        user = User(
            username=username,
            email=email,
            password_hash=hash_password(args.password, rounds=settings.BCRYPT_ROUNDS),
            nickname=username,
            role=args.role,
        )
        db.add(user)
        db.commit()
        print(f"Created user '{username}' with role '{args.role}' (id {user.id}).")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
