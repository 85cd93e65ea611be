from __future__ import annotations

"""
JSON exception handlers.

FastAPI integrates these via app/main.py. Every error is rendered as
`{"success": false, "error": "<message>"}` so the gallery client can treat
any 401 as "session gone, prompt for the password again".
"""

import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.core.exceptions import AppException
from app.middleware.request_id import get_request_id

logger = logging.getLogger(__name__)

# Friendly messages for request bodies the routes reject before reaching a handler
_FIELD_MESSAGES = {
    "password": "Password is required",
    "videoKey": "Missing videoKey or displayName",
    "displayName": "Missing videoKey or displayName",
}


def _error(message: str, status_code: int, request: Request, **extra) -> JSONResponse:
    body = {"success": False, "error": message, **extra}
    resp = JSONResponse(status_code=status_code, content=body)
    resp.headers.setdefault("Cache-Control", "no-store")
    rid = get_request_id(request)
    if rid:
        resp.headers["X-Request-ID"] = rid
    return resp


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:  # type: ignore
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.__cause__ or exc.message)
    body = exc.to_body(include_details=not settings.is_production)
    body.pop("success")
    resp = _error(body.pop("error"), exc.status_code, request, **body)
    for hk, hv in (exc.headers or {}).items():
        resp.headers[hk] = hv
    return resp


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:  # type: ignore
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return _error(detail, exc.status_code, request)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:  # type: ignore
    message = "Invalid request"
    for err in exc.errors():
        loc = err.get("loc") or ()
        field = loc[-1] if loc else None
        if field in _FIELD_MESSAGES:
            message = _FIELD_MESSAGES[field]
            break
    return _error(message, status.HTTP_400_BAD_REQUEST, request)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # type: ignore
    # Hide internals; the traceback goes to the logs only.
    logger.exception("Unhandled error on %s", request.url.path)
    return _error("An error occurred", status.HTTP_500_INTERNAL_SERVER_ERROR, request)


__all__ = [
    "app_exception_handler",
    "http_exception_handler",
    "validation_exception_handler",
    "global_exception_handler",
]
