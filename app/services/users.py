"""User directory: CRUD over user accounts with role-vocabulary and uniqueness checks."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.errors import ConflictError, NotFoundError, ValidationFailedError
from app.core.security import (
    ALL_ROLES,
    ROLES_MAX_LEN,
    USERNAME_MAX_LEN,
    USERNAME_MIN_LEN,
    join_roles,
    split_roles,
)
from app.models.user import User

logger = logging.getLogger(__name__)

UNIQUE_NAME_CONSTRAINT = "constraint_unique_name"
DUPLICATE_NAME_MESSAGE = "Name already exists."
STALE_UPDATE_MESSAGE = "Old data: please refresh and try again"


def normalize_roles(roles: str | list[str] | None) -> str:
    """
    Validate a role list against the fixed vocabulary and return its stored form.

    Blank input is valid (no roles). Any unknown role rejects the whole list.
    Duplicates collapse; first-seen order is kept.
    """
    tokens = split_roles(roles) if isinstance(roles, str) or roles is None else [
        r.strip() for r in roles if r and r.strip()
    ]
    unknown = [r for r in tokens if r not in ALL_ROLES]
    if unknown:
        raise ValidationFailedError(
            f"Roles contain unrecognized values: {', '.join(unknown)}. "
            f"Allowed: {', '.join(sorted(ALL_ROLES))}.",
            field="roles",
        )
    stored = join_roles(list(dict.fromkeys(tokens)))
    if len(stored) > ROLES_MAX_LEN:
        raise ValidationFailedError(
            f"Roles must be at most {ROLES_MAX_LEN} characters.", field="roles"
        )
    return stored


def validate_roles(roles: str | list[str] | None) -> bool:
    """True when every role is in the vocabulary (an empty list is valid)."""
    try:
        normalize_roles(roles)
    except ValidationFailedError:
        return False
    return True


def _validate_name(name: str | None) -> str:
    if name is None or not (USERNAME_MIN_LEN <= len(name) <= USERNAME_MAX_LEN):
        raise ValidationFailedError(
            f"Name size must be between {USERNAME_MIN_LEN} and {USERNAME_MAX_LEN}.",
            field="name",
        )
    return name


def _is_unique_name_violation(exc: IntegrityError) -> bool:
    text = str(exc.orig) if exc.orig is not None else str(exc)
    return UNIQUE_NAME_CONSTRAINT in text or "unique" in text.lower()


class UserDirectory:
    """
    Account store backed by a SQLAlchemy session.

    Uniqueness of name is enforced by the database constraint; concurrent
    updates are detected by the version column.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def create(self, user: User) -> User:
        """Persist a new user. Any client-supplied id is discarded."""
        user.id = None
        _validate_name(user.name)
        user.roles = normalize_roles(user.roles)

        if self.find_by_name(user.name) is not None:
            raise ConflictError(DUPLICATE_NAME_MESSAGE)

        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            if _is_unique_name_violation(e):
                raise ConflictError(DUPLICATE_NAME_MESSAGE, cause=e) from e
            raise
        self.db.refresh(user)
        logger.info("Created user id=%s name=%s roles=%s", user.id, user.name, user.roles)
        return user

    def update(self, user: User) -> User:
        """
        Overwrite name, password and roles of an existing user.

        user is a detached carrier: id is required, version (if set) must be current.
        """
        if user.id is None:
            raise ValidationFailedError(
                "An existing id is required to update a user.", field="id"
            )
        _validate_name(user.name)
        roles = normalize_roles(user.roles)

        existing = self.find(user.id)
        if existing is None:
            raise NotFoundError(f"User {user.id} not found.")
        if user.version is not None and user.version != existing.version:
            raise ConflictError(STALE_UPDATE_MESSAGE)

        existing.name = user.name
        if user.password:
            existing.password = user.password
        existing.roles = roles
        try:
            self.db.commit()
        except StaleDataError as e:
            self.db.rollback()
            raise ConflictError(STALE_UPDATE_MESSAGE, cause=e) from e
        except IntegrityError as e:
            self.db.rollback()
            if _is_unique_name_violation(e):
                raise ConflictError(DUPLICATE_NAME_MESSAGE, cause=e) from e
            raise
        self.db.refresh(existing)
        logger.info("Updated user id=%s name=%s roles=%s", existing.id, existing.name, existing.roles)
        return existing

    def find(self, user_id: int) -> User | None:
        return self.db.get(User, user_id)

    def find_by_name(self, name: str) -> User | None:
        return self.db.query(User).filter(User.name == name).first()

    def find_all(self) -> list[User]:
        return self.db.query(User).order_by(User.name.asc()).all()

    def find_all_by_role(self, role: str) -> list[User]:
        """Users whose stored roles contain role, ordered by name."""
        return (
            self.db.query(User)
            .filter(User.roles.contains(role, autoescape=True))
            .order_by(User.name.asc())
            .all()
        )

    def count(self) -> int:
        return self.db.query(User).count()

    def delete(self, user_id: int) -> None:
        """Remove a user. Unknown ids are ignored. Outstanding tokens are not revoked."""
        user = self.find(user_id)
        if user is None:
            return
        name = user.name
        self.db.delete(user)
        self.db.commit()
        logger.info("Deleted user id=%s name=%s", user_id, name)
