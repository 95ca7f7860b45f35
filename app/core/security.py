"""Password hashing, role vocabulary and input limits for user accounts."""

from enum import Enum

import bcrypt

# Bcrypt cost (rounds); 12 is a good default for security vs speed.
BCRYPT_ROUNDS = 12

USERNAME_MIN_LEN = 6
USERNAME_MAX_LEN = 31
PASSWORD_MIN_LEN = 8
PASSWORD_MAX_LEN = 31
ROLES_MAX_LEN = 511

# Stored role lists are comma-delimited strings; token role claims use the same form.
ROLE_DELIMITER = ","


class UserRole(str, Enum):
    """Fixed role vocabulary. Values are what gets stored and put in role claims."""

    USER = "USER"
    ADMIN = "ADMIN"


ALL_ROLES = frozenset(role.value for role in UserRole)


def split_roles(roles: str | None) -> list[str]:
    """Split a delimited role string into trimmed, non-empty tokens (order kept)."""
    if not roles:
        return []
    return [r.strip() for r in roles.split(ROLE_DELIMITER) if r.strip()]


def join_roles(roles: list[str] | tuple[str, ...]) -> str:
    return ROLE_DELIMITER.join(roles)


def hash_password(plain_password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False
