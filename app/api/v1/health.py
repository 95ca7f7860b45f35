"""Health check endpoint: database connectivity and signing-key availability."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.database import check_db_connected, get_db
from app.schemas.health import HealthResponse

router = APIRouter()


@router.get("", response_model=HealthResponse)
def get_health(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> HealthResponse:
    """
    Return service health status. Public; used by load balancers and monitoring.
    """
    db_status = "connected" if check_db_connected(db) else "disconnected"
    keys_status = (
        "loaded" if getattr(request.app.state, "token_engine", None) is not None else "missing"
    )
    return HealthResponse(
        status="ok" if db_status == "connected" and keys_status == "loaded" else "degraded",
        environment=settings.APP_ENV,
        database=db_status,
        signing_keys=keys_status,
    )
