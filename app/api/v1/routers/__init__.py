"""
🧭 Family VHS • API Router Aggregator
====================================

Exports the combined `router` plus each sub-router.

Quick usage
-----------
    from app.api.v1.routers import router
    app.include_router(router, prefix="/api")

Auth and rate limits live in the child routers; this layer only composes.
"""

from fastapi import APIRouter

from .session import router as session_router
from .videos import router as videos_router


def build_router() -> APIRouter:
    r = APIRouter()
    r.include_router(session_router)
    r.include_router(videos_router)
    return r


router = build_router()

__all__ = ["router", "build_router", "session_router", "videos_router"]
