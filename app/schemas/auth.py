"""Request/response schemas for auth and user-management endpoints."""

from pydantic import BaseModel, Field

from app.core.security import (
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    USERNAME_MIN_LEN,
)


class LoginRequest(BaseModel):
    """Credentials for login."""

    username: str = Field(..., min_length=1, max_length=255, description="Username")
    password: str = Field(..., min_length=1, max_length=128, description="Password")


class TokenResponse(BaseModel):
    """Signed JWT returned after successful authentication."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Seconds until the token expires")


class Principal(BaseModel):
    """Authenticated identity (username and roles) established for one request."""

    username: str
    roles: list[str] = Field(default_factory=list)

    def has_role(self, role: str) -> bool:
        return role in self.roles


class UserCreateRequest(BaseModel):
    """Body for creating or replacing a user account."""

    username: str = Field(
        ..., min_length=USERNAME_MIN_LEN, max_length=USERNAME_MAX_LEN, description="Unique username"
    )
    password: str = Field(
        ..., min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN, description="Plain password"
    )
    roles: list[str] = Field(default_factory=list, description="Subset of USER, ADMIN")
    version: int | None = Field(
        default=None, description="Version last read; a stale value is rejected with 409"
    )


class UserInfo(BaseModel):
    """User entry returned by the API (no password)."""

    id: int
    username: str
    roles: list[str]
    version: int

    @classmethod
    def from_user(cls, user: object) -> "UserInfo":
        return cls(
            id=user.id,
            username=user.name,
            roles=user.role_list,
            version=user.version,
        )
