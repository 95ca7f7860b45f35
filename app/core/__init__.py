"""Core app configuration, database, key material and error kinds."""

from app.core.config import get_settings, settings
from app.core.database import get_db
from app.core.errors import AuthServiceError, ErrorKind
from app.core.keys import KeyPair, load_key_pair

__all__ = [
    "AuthServiceError",
    "ErrorKind",
    "KeyPair",
    "get_db",
    "get_settings",
    "load_key_pair",
    "settings",
]
