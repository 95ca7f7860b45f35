"""Closed set of error kinds raised by the auth services and translated once at the HTTP boundary."""

from enum import Enum

# Generic message for every credential failure so callers cannot enumerate users or roles.
INVALID_CREDENTIALS_MESSAGE = "Invalid username or password."


class ErrorKind(str, Enum):
    INVALID_CREDENTIALS = "invalid_credentials"
    VALIDATION = "validation"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    INTERNAL = "internal"


class AuthServiceError(Exception):
    """Base error for service operations; kind decides the external response."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(message)


class InvalidCredentialsError(AuthServiceError):
    """Unknown username, wrong password, or a role the principal does not hold."""

    kind = ErrorKind.INVALID_CREDENTIALS

    def __init__(self) -> None:
        super().__init__(INVALID_CREDENTIALS_MESSAGE)


class ValidationFailedError(AuthServiceError):
    """Input rejected by a domain rule (unknown role, bad length, missing identifier)."""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class ConflictError(AuthServiceError):
    """Write lost against a duplicate name or a concurrent update."""

    kind = ErrorKind.CONFLICT


class NotFoundError(AuthServiceError):
    kind = ErrorKind.NOT_FOUND


class KeyMaterialError(AuthServiceError):
    """Signing keys could not be loaded; the service must not start."""

    kind = ErrorKind.INTERNAL
