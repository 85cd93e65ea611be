# app/main.py
from __future__ import annotations

"""
# Family VHS API — Application Entrypoint (FastAPI)

ASGI application factory for the password-gated family video gallery.

## Design Goals
- Deterministic, testable **app factory** (`create_app`) that takes its
  collaborators (S3 client, session authenticator) as arguments; defaults are
  built from `settings` exactly once.
- Explicit **middleware order**:
  1) request id → 2) security headers → 3) CORS → 4) gzip → 5) rate limits.
- Centralized exception handling with the gallery's `{success, error}` shape.

## Probes
- `/healthz`: liveness (process up).
- `/readyz`: readiness (bucket reachable).
- `/metrics`: Prometheus exposition.
"""

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.gzip import GZipMiddleware
from starlette.responses import JSONResponse, Response

from app.core import logger as _logsetup  # noqa: F401  (configures loguru on import)
from app.core.config import Settings, settings as default_settings
from app.core.exception_handlers import (
    app_exception_handler,
    global_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from app.core.exceptions import AppException
from app.core.limiter import install_rate_limiter
from app.middleware.request_id import RequestIDMiddleware
from app.security_headers import configure_cors, install_security
from app.services.auth_service import SessionAuthenticator
from app.utils.aws import S3Client, S3StorageError

logger = logging.getLogger("app.main")


# ─────────────────────────────────────────────────────────────────────────────
# 🔄 Lifespan
# ─────────────────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    logger.info("Family VHS API starting up (bucket=%s)", getattr(app.state.s3, "bucket", None))
    if app.state.s3 is None:
        logger.warning("No storage client; video routes will fail until S3_BUCKET_NAME is set")
    try:
        yield
    finally:
        logger.info("Family VHS API shutting down")


def _build_s3(settings: Settings) -> Optional[S3Client]:
    try:
        return S3Client.from_settings(settings)
    except S3StorageError as e:
        logger.warning("Storage unavailable: %s", e)
        return None


# ─────────────────────────────────────────────────────────────────────────────
# 🏗️ App factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(
    *,
    settings: Settings = default_settings,
    s3: Optional[S3Client] = None,
    authenticator: Optional[SessionAuthenticator] = None,
) -> FastAPI:
    """
    Build and configure the FastAPI app instance.

    Args:
        settings: configuration source for defaults.
        s3: storage client; built from `settings` when omitted.
        authenticator: session gate; built from `settings` when omitted.
    """
    enable_docs = settings.ENABLE_DOCS
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        docs_url="/docs" if enable_docs else None,
        redoc_url="/redoc" if enable_docs else None,
        openapi_url="/openapi.json" if enable_docs else None,
        lifespan=lifespan,
    )
    app.state.s3 = s3 if s3 is not None else _build_s3(settings)
    app.state.authenticator = authenticator or SessionAuthenticator.from_settings(settings)

    # ── Middlewares (added innermost first; request id ends up outermost) ──
    install_rate_limiter(app)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(GZipMiddleware, minimum_size=1024)
    configure_cors(app)
    install_security(app)
    app.add_middleware(RequestIDMiddleware)

    # ── Exception handlers ──────────────────────────────────────────────────
    app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, global_exception_handler)  # type: ignore[arg-type]

    # ── Routers ─────────────────────────────────────────────────────────────
    from app.api.v1.routers import router as api_router

    app.include_router(api_router, prefix=settings.API_PREFIX)

    # ── Meta endpoints ──────────────────────────────────────────────────────
    @app.get("/healthz", tags=["meta"])
    async def healthz() -> dict[str, bool]:
        return {"ok": True}

    @app.get("/readyz", tags=["meta"])
    async def readyz() -> JSONResponse:
        s3_client = app.state.s3
        storage_ok = bool(s3_client is not None and await asyncio.to_thread(s3_client.ping))
        body = {"ready": storage_ok, "checks": {"storage": storage_ok}}
        return JSONResponse(body, status_code=200 if storage_ok else 503)

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> Response:
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


# ─────────────────────────────────────────────────────────────────────────────
# 🚀 Module-level ASGI app for Uvicorn
# ─────────────────────────────────────────────────────────────────────────────
app = create_app()
__all__ = ["create_app", "app"]


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=os.getenv("RELOAD", "1") == "1",
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )
