"""Versioned API (v1).

The combined router lives in `app.api.v1.routers.router` and is mounted by
`app.main.create_app` under `API_PREFIX`:

    from app.api.v1.routers import router as api_v1_router
"""

# Keep `routers` unshadowed so dotted paths like
# "app.api.v1.routers.videos" stay patchable from tests.

__all__ = []
