"""FastAPI application entrypoint. No business logic; only wiring, startup and error translation."""

from dotenv import load_dotenv

load_dotenv()

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1 import router as v1_router
from app.core.config import settings
from app.core.errors import AuthServiceError, ErrorKind
from app.core.keys import load_key_pair
from app.core.logging_setup import configure_logging
from app.services.tokens import TokenEngine

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Single translation point from service error kinds to HTTP statuses.
ERROR_STATUS = {
    ErrorKind.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.VALIDATION: status.HTTP_422_UNPROCESSABLE_CONTENT,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}
INTERNAL_ERROR_MESSAGE = "An unexpected error has occurred."


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Load signing keys before serving. A KeyMaterialError here aborts startup."""
    key_pair = load_key_pair(settings)
    app.state.token_engine = TokenEngine.from_settings(settings, key_pair)
    logger.info("Bastion Auth ready (env=%s, issuer=%s)", settings.APP_ENV, settings.JWT_ISSUER)
    yield


app = FastAPI(
    title="Bastion Auth API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.APP_ENV == "dev" else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AuthServiceError)
def handle_auth_service_error(request: Request, exc: AuthServiceError) -> JSONResponse:
    """Map the error kind to a status; internal details never reach the client."""
    status_code = ERROR_STATUS.get(exc.kind, status.HTTP_500_INTERNAL_SERVER_ERROR)
    if exc.kind is ErrorKind.INTERNAL:
        logger.error("Internal error on %s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=status_code, content={"detail": INTERNAL_ERROR_MESSAGE})
    headers = None
    if exc.kind is ErrorKind.INVALID_CREDENTIALS:
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(status_code=status_code, content={"detail": exc.message}, headers=headers)


app.include_router(v1_router, prefix=settings.API_V1_PREFIX)


@app.get("/")
def root() -> dict[str, str]:
    """Root route; minimal payload for discovery."""
    return {"message": "Bastion Auth API"}
