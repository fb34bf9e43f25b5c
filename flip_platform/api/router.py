"""Main API router."""

from fastapi import APIRouter

from flip_platform.api import dashboard, health, placeholders
from flip_platform.auth import callback

# JSON API, mounted under /api
api_router = APIRouter()

api_router.include_router(
    health.router,
    tags=["Health"],
)
api_router.include_router(
    placeholders.router,
    tags=["Placeholders"],
)

# Browser-facing routes, mounted at the root
site_router = APIRouter()

site_router.include_router(
    callback.router,
    prefix="/auth",
    tags=["Authentication"],
)
site_router.include_router(
    dashboard.router,
    tags=["Dashboard"],
)
