"""
🧭 Media CMS • API v1 Router Aggregator
=======================================

Exports the **combined `router`** plus each sub-router.

    from app.api.v1.routers import router as api_v1_router
    app.include_router(api_v1_router, prefix="/api/v1")

Auth and rate limits live in the child routers; this module only composes.
"""

from fastapi import APIRouter

from .discovery import router as discovery_router
from .episodes import router as episodes_router
from .programs import router as programs_router
from .uploads import router as uploads_router


def build_v1_router() -> APIRouter:
    """Compose programs, episodes, upload signing and public discovery under one router."""
    v1 = APIRouter()
    v1.include_router(programs_router)
    v1.include_router(episodes_router)
    v1.include_router(uploads_router)
    v1.include_router(discovery_router)
    return v1


router = build_v1_router()

__all__ = [
    "router",
    "build_v1_router",
    "programs_router",
    "episodes_router",
    "uploads_router",
    "discovery_router",
]
