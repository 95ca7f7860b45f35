"""Request authentication filter: turn a presented token into a Principal (or nothing)."""

import logging
from collections.abc import Mapping

from app.schemas.auth import Principal
from app.services.tokens import TokenEngine
from app.services.users import UserDirectory

logger = logging.getLogger(__name__)

def token_from_request(
    cookies: Mapping[str, str],
    bearer: str | None,
    cookie_name: str = "jwt",
) -> str | None:
    """
    Session cookie first (browsers), then the bearer credentials (devices).

    bearer is the already-parsed Authorization: Bearer value, or None.
    """
    token = cookies.get(cookie_name)
    if token and token.strip():
        return token.strip()
    if bearer and bearer.strip():
        return bearer.strip()
    return None


class RequestAuthenticationFilter:
    """
    Opportunistic per-request authentication.

    Never rejects a request: every failure yields None and leaves the decision
    to downstream authorization. Roles come from the token's claim, so a
    role-narrowed token only grants the role it was minted for.
    """

    def __init__(self, engine: TokenEngine, directory: UserDirectory) -> None:
        self.engine = engine
        self.directory = directory

    def authenticate(
        self,
        token: str | None,
        current: Principal | None = None,
    ) -> Principal | None:
        if not token:
            return current

        subject = self.engine.extract_subject(token)
        if not subject:
            return current
        if current is not None:
            return current

        if self.directory.find_by_name(subject) is None:
            logger.info("Token subject no longer exists; request stays unauthenticated")
            return None

        result = self.engine.validate(token)
        if not result.valid:
            return None
        return Principal(username=result.subject, roles=result.roles)
