"""Login endpoints (token and cookie flows) and the auth dependencies every route builds on."""

from collections.abc import Callable
from typing import Annotated

from fastapi import APIRouter, Depends, Form, HTTPException, Request, Response, status
from fastapi.responses import RedirectResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.security import join_roles
from app.schemas.auth import LoginRequest, Principal, TokenResponse
from app.services.authenticator import CredentialAuthenticator
from app.services.request_auth import RequestAuthenticationFilter, token_from_request
from app.services.tokens import TokenEngine
from app.services.users import UserDirectory

router = APIRouter()
security = HTTPBearer(auto_error=False)


def get_optional_token_engine(request: Request) -> TokenEngine | None:
    return getattr(request.app.state, "token_engine", None)


def get_token_engine(
    engine: Annotated[TokenEngine | None, Depends(get_optional_token_engine)],
) -> TokenEngine:
    """Dependency: the process-wide token engine built at startup."""
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Signing keys are not loaded.",
        )
    return engine


def get_directory(db: Annotated[Session, Depends(get_db)]) -> UserDirectory:
    return UserDirectory(db)


def authenticate_request(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    engine: Annotated[TokenEngine | None, Depends(get_optional_token_engine)],
    directory: Annotated[UserDirectory, Depends(get_directory)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> Principal | None:
    """
    Router-wide dependency: runs once per request before any handler.

    Returns the request's Principal or None; never rejects the request.
    """
    token = token_from_request(
        request.cookies,
        credentials.credentials if credentials is not None else None,
        cookie_name=settings.JWT_COOKIE_NAME,
    )
    current = getattr(request.state, "principal", None)
    if engine is None:
        request.state.principal = current
        return current
    principal = RequestAuthenticationFilter(engine, directory).authenticate(token, current)
    request.state.principal = principal
    return principal


def require_authenticated(
    principal: Annotated[Principal | None, Depends(authenticate_request)],
) -> Principal:
    """Dependency: 401 unless the request carried a valid token."""
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal


def require_role(role: str) -> Callable[[Principal], Principal]:
    """Dependency factory: 403 unless the authenticated principal holds role."""

    def check_role(
        principal: Annotated[Principal, Depends(require_authenticated)],
    ) -> Principal:
        if not principal.has_role(role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{role.capitalize()} access required",
            )
        return principal

    return check_role


def _token_response(engine: TokenEngine, principal: Principal) -> TokenResponse:
    token = engine.mint_for_roles(principal.username, principal.roles)
    ttl = engine.ttl_for_roles(join_roles(principal.roles))
    return TokenResponse(access_token=token, expires_in=int(ttl.total_seconds()))


def _safe_redirect(target: str) -> str:
    """Only same-site relative paths; anything else falls back to '/'."""
    if not target.startswith("/") or target.startswith("//") or "\\" in target:
        return "/"
    return target


def _set_session_cookie(response: Response, settings: Settings, value: str, max_age: int) -> None:
    response.set_cookie(
        key=settings.JWT_COOKIE_NAME,
        value=value,
        max_age=max_age,
        path="/",
        secure=settings.is_production,
        httponly=True,
        samesite="strict",
    )


@router.post("/authenticate", response_model=TokenResponse)
def authenticate(
    body: LoginRequest,
    directory: Annotated[UserDirectory, Depends(get_directory)],
    engine: Annotated[TokenEngine, Depends(get_token_engine)],
) -> TokenResponse:
    """
    Authenticate with username and password; returns a JWT for all of the user's roles.
    Send it back as a `jwt` cookie or as: Authorization: Bearer <access_token>
    """
    principal = CredentialAuthenticator(directory).authenticate(body.username, body.password)
    return _token_response(engine, principal)


@router.post("/authenticate/{role}", response_model=TokenResponse)
def authenticate_for_role(
    role: str,
    body: LoginRequest,
    directory: Annotated[UserDirectory, Depends(get_directory)],
    engine: Annotated[TokenEngine, Depends(get_token_engine)],
) -> TokenResponse:
    """
    Authenticate for one specific role; the token carries only that role.

    A user holding USER and ADMIN can ask for USER to get the long-lived device token.
    """
    principal = CredentialAuthenticator(directory).authenticate_for_role(
        body.username, body.password, role
    )
    return _token_response(engine, principal)


@router.post("/log_in", status_code=status.HTTP_303_SEE_OTHER)
def log_in(
    username: Annotated[str, Form()],
    password: Annotated[str, Form()],
    directory: Annotated[UserDirectory, Depends(get_directory)],
    engine: Annotated[TokenEngine, Depends(get_token_engine)],
    settings: Annotated[Settings, Depends(get_settings)],
    redirect: str = "/",
) -> RedirectResponse:
    """Browser login: sets the session cookie and redirects (303) to `redirect`."""
    principal = CredentialAuthenticator(directory).authenticate(username, password)
    token = engine.mint_for_roles(principal.username, principal.roles)
    max_age = int(engine.ttl_for_roles(engine.extract_roles(token)).total_seconds())

    response = RedirectResponse(_safe_redirect(redirect), status_code=status.HTTP_303_SEE_OTHER)
    _set_session_cookie(response, settings, token, max_age)
    return response


@router.get("/log_out")
def log_out(
    response: Response,
    settings: Annotated[Settings, Depends(get_settings)],
) -> dict[str, str]:
    """Expire the session cookie on the client. Tokens are not revoked server-side."""
    _set_session_cookie(response, settings, "", 0)
    return {"message": "Logged out."}


@router.get("/me", response_model=Principal)
def me(
    principal: Annotated[Principal, Depends(require_authenticated)],
) -> Principal:
    """Return the identity established for this request."""
    return principal
