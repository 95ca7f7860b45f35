"""Credential authenticator: verify username/password against the user directory."""

import logging

from app.core.errors import InvalidCredentialsError
from app.core.security import verify_password
from app.schemas.auth import Principal
from app.services.users import UserDirectory

logger = logging.getLogger(__name__)


class CredentialAuthenticator:
    """
    Checks credentials and produces a Principal.

    Every failure raises the same InvalidCredentialsError so that unknown
    usernames, bad passwords and missing roles are indistinguishable.
    """

    def __init__(self, directory: UserDirectory) -> None:
        self.directory = directory

    def authenticate(self, username: str, password: str) -> Principal:
        """Return the principal with its full stored role set."""
        user = self.directory.find_by_name(username)
        if user is None or not verify_password(password, user.password):
            logger.info("Authentication failed")
            raise InvalidCredentialsError()
        return Principal(username=user.name, roles=user.role_list)

    def authenticate_for_role(self, username: str, password: str, role: str) -> Principal:
        """
        Authenticate, then narrow the principal to exactly one role.

        role is matched case-insensitively; the principal carries the stored spelling.
        """
        principal = self.authenticate(username, password)
        wanted = (role or "").strip().upper()
        matched = [r for r in principal.roles if r.upper() == wanted]
        if not wanted or not matched:
            logger.info("Role-scoped authentication failed")
            raise InvalidCredentialsError()
        return Principal(username=principal.username, roles=[matched[0]])
