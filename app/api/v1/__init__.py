"""API v1 routes. Every route runs the request authentication dependency first."""

from fastapi import APIRouter, Depends

from app.api.v1 import auth, health, users

router = APIRouter(dependencies=[Depends(auth.authenticate_request)])
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, tags=["auth"])
router.include_router(users.router, prefix="/user", tags=["users"])
