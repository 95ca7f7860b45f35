"""
Create a user (e.g. the first admin). Run from project root:
  python -m app.scripts.create_user USERNAME PASSWORD [ROLES]
Example:
  python -m app.scripts.create_user administrator your-secure-password ADMIN,USER
"""
import argparse
import logging
import sys

from app.core.database import session_scope
from app.core.errors import AuthServiceError
from app.core.logging_setup import configure_logging
from app.core.security import PASSWORD_MAX_LEN, PASSWORD_MIN_LEN, hash_password
from app.models.user import User
from app.services.users import UserDirectory

configure_logging()
logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a Bastion user account.")
    parser.add_argument("username", help="Username (6-31 chars)")
    parser.add_argument("password", help="Password (8-31 chars)")
    parser.add_argument(
        "roles",
        nargs="?",
        default="USER",
        help="Comma-separated roles from USER, ADMIN (default: USER; '' for none)",
    )
    args = parser.parse_args(argv)

    if not (PASSWORD_MIN_LEN <= len(args.password) <= PASSWORD_MAX_LEN):
        print(
            f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters.",
            file=sys.stderr,
        )
        return 1

    with session_scope() as db:
        user = User(
            name=args.username.strip(),
            password=hash_password(args.password),
            roles=args.roles,
        )
        try:
            user = UserDirectory(db).create(user)
        except AuthServiceError as e:
            print(e.message, file=sys.stderr)
            return 1
        logger.info("Created user '%s' (id=%s) with roles '%s'.", user.name, user.id, user.roles)
    return 0


if __name__ == "__main__":
    sys.exit(main())
