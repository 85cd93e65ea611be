# app/core/exceptions.py
from __future__ import annotations

"""
Family VHS — Application Exceptions
===================================
A small, consistent layer on top of FastAPI/Starlette's `HTTPException` that
maps domain failures onto the gallery's JSON error shape
(`{"success": false, "error": ...}`) rendered by `app.core.exception_handlers`.

Taxonomy
--------
- `ValidationError`   → 400 (bad/missing input)
- `Unauthorized`      → 401 (missing/invalid session or password)
- `UpstreamError`     → 500 (object store unavailable, listing or signing failed)

Authentication failures never reveal which check failed: a missing server
password and a wrong password produce the same `InvalidCredential`.

Usage
-----
    raise ValidationError("Password is required")
    raise CatalogUnavailable() from exc
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

__all__ = [
    "AppException",
    "ValidationError",
    "Unauthorized",
    "InvalidCredential",
    "UpstreamError",
    "CatalogUnavailable",
    "PlaybackUnavailable",
    "MetadataWriteFailed",
]


# ──────────────────────────────────────────────────────────────
# 📦 Core: AppException
# ──────────────────────────────────────────────────────────────
class AppException(HTTPException):
    """Base application-level exception.

    Attributes
    -----------
    status_code : int
        HTTP status code.
    message : str
        Human-readable error message (serialized as `error`).
    details : Any | None
        Optional machine-readable details; only rendered outside production.
    """

    default_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "An error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        status_code: Optional[int] = None,
        details: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        msg = message or self.default_message
        super().__init__(status_code=status_code or self.default_status, detail=msg, headers=headers)
        self.message: str = msg
        self.details: Optional[Any] = details

    def to_body(self, *, include_details: bool = False) -> Dict[str, Any]:
        """Return the canonical error body used by handlers."""
        body: Dict[str, Any] = {"success": False, "error": self.message}
        if include_details and self.details is not None:
            body["details"] = self.details
        return body


# ──────────────────────────────────────────────────────────────
# ✋ Input
# ──────────────────────────────────────────────────────────────
class ValidationError(AppException):
    """Bad or missing input (empty password, blank display name, bad key)."""

    default_status = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


# ──────────────────────────────────────────────────────────────
# 🔑 Auth
# ──────────────────────────────────────────────────────────────
class Unauthorized(AppException):
    """Missing, malformed, forged or expired session."""

    default_status = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class InvalidCredential(Unauthorized):
    """Password rejected (or no password configured on the server)."""

    default_message = "Invalid password"


# ──────────────────────────────────────────────────────────────
# ☁️ Object store
# ──────────────────────────────────────────────────────────────
class UpstreamError(AppException):
    """The object store could not satisfy a request."""

    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Storage request failed"


class CatalogUnavailable(UpstreamError):
    default_message = "Failed to fetch videos"


class PlaybackUnavailable(UpstreamError):
    default_message = "Failed to generate video URL"


class MetadataWriteFailed(UpstreamError):
    default_message = "Failed to rename video"
