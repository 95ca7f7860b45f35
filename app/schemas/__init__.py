"""Pydantic request/response schemas."""

from app.schemas.auth import (
    LoginRequest,
    Principal,
    TokenResponse,
    UserCreateRequest,
    UserInfo,
)
from app.schemas.health import HealthResponse

__all__ = [
    "HealthResponse",
    "LoginRequest",
    "Principal",
    "TokenResponse",
    "UserCreateRequest",
    "UserInfo",
]
