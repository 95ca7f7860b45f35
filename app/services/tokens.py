"""Token engine: mint and validate RS-signed JWTs carrying a subject and a roles claim."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import jwt

from app.core.keys import KeyPair
from app.core.security import UserRole, join_roles, split_roles

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

CLAIM_ROLES = "roles"
REQUIRED_CLAIMS = ["exp", "iat", "iss", "sub"]

DEFAULT_ADMIN_TTL = timedelta(minutes=30)
DEFAULT_USER_TTL = timedelta(days=31)
NO_TTL = timedelta(0)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class TokenValidation:
    """Outcome of validating a token. subject and roles_claim are empty unless valid."""

    valid: bool
    subject: str = ""
    roles_claim: str = ""

    @classmethod
    def invalid(cls) -> TokenValidation:
        return cls(valid=False)

    @property
    def roles(self) -> list[str]:
        return split_roles(self.roles_claim)


class TokenEngine:
    """
    Creates and verifies signed tokens with a process-wide key pair.

    Tokens are never stored; validity is signature + issuer + expiry at check time.
    Minting uses the injected clock; expiry is checked against wall-clock time.
    """

    def __init__(
        self,
        key_pair: KeyPair,
        issuer: str,
        algorithm: str = "RS256",
        admin_ttl: timedelta = DEFAULT_ADMIN_TTL,
        user_ttl: timedelta = DEFAULT_USER_TTL,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._key_pair = key_pair
        self.issuer = issuer
        self.algorithm = algorithm
        self.admin_ttl = admin_ttl
        self.user_ttl = user_ttl
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings, key_pair: KeyPair) -> TokenEngine:
        return cls(
            key_pair,
            issuer=settings.JWT_ISSUER,
            algorithm=settings.JWT_ALGORITHM,
            admin_ttl=timedelta(minutes=settings.JWT_ADMIN_TTL_MINUTES),
            user_ttl=timedelta(days=settings.JWT_USER_TTL_DAYS),
        )

    def ttl_for_roles(self, roles_claim: str | None) -> timedelta:
        """
        Pick a TTL from the roles claim, most restrictive first.

        ADMIN anywhere in the claim -> admin TTL; else USER -> user TTL; else zero.
        """
        roles = split_roles(roles_claim)
        if UserRole.ADMIN.value in roles:
            return self.admin_ttl
        if UserRole.USER.value in roles:
            return self.user_ttl
        return NO_TTL

    def mint(self, subject: str, roles_claim: str, ttl: timedelta) -> str:
        """Sign a compact JWT for subject with the given roles claim, valid for ttl."""
        now = self._clock()
        payload: dict[str, Any] = {
            "iss": self.issuer,
            "sub": subject,
            CLAIM_ROLES: roles_claim,
            "iat": now,
            "exp": now + ttl,
        }
        return jwt.encode(payload, self._key_pair.private_key, algorithm=self.algorithm)

    def mint_for_roles(self, subject: str, roles: list[str] | tuple[str, ...]) -> str:
        """Mint a token whose lifetime follows ttl_for_roles of the joined roles."""
        roles_claim = join_roles(roles)
        return self.mint(subject, roles_claim, self.ttl_for_roles(roles_claim))

    def _claims(self, token: str | None) -> dict[str, Any] | None:
        if not isinstance(token, str) or not token.strip():
            return None
        try:
            claims = jwt.decode(
                token.strip(),
                self._key_pair.public_key,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.PyJWTError as e:
            logger.warning("Rejected token: %s", e)
            return None
        except (ValueError, TypeError) as e:
            logger.warning("Rejected unparseable token: %s", type(e).__name__)
            return None
        if not isinstance(claims.get("sub"), str) or not isinstance(claims.get(CLAIM_ROLES, ""), str):
            logger.warning("Rejected token: subject or roles claim has the wrong type")
            return None
        return claims

    def validate(self, token: str | None) -> TokenValidation:
        """Verify signature, issuer and expiry. Never raises; bad input is just invalid."""
        claims = self._claims(token)
        if claims is None:
            return TokenValidation.invalid()
        return TokenValidation(
            valid=True,
            subject=claims["sub"],
            roles_claim=claims.get(CLAIM_ROLES, ""),
        )

    def is_valid(self, token: str | None) -> bool:
        return self.validate(token).valid

    def extract_subject(self, token: str | None) -> str:
        """Subject of a valid token, or "" when the token does not verify."""
        return self.validate(token).subject

    def extract_roles(self, token: str | None) -> str:
        """Roles claim of a valid token, or "" when the token does not verify."""
        return self.validate(token).roles_claim
