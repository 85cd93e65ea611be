# app/security_headers.py
from __future__ import annotations

"""
# Family VHS — Security Headers & CORS

Security headers and CORS for the gallery API.

## What you get
- **Headers**: nosniff, frame denial, Referrer-Policy, a locked-down CSP for
  JSON responses, and HSTS when running in production.
- **CORS installer**: allow-list from `FRONTEND_ORIGINS` with credentials
  (the session rides in a cookie), localhost defaults in dev.
- **Cache helper**: `set_sensitive_cache()` marks responses carrying session
  cookies or presigned URLs as `no-store`.

## Quick start
    from app.security_headers import install_security, configure_cors

    install_security(app)
    configure_cors(app)

## Env knobs
- HSTS_MAX_AGE (31536000), applied only when ENV=production
- REFERRER_POLICY (default "no-referrer"; presigned URLs must not leak via Referer)
- SECURITY_SKIP_PATHS (CSV; default "/docs,/redoc,/openapi.json")
"""

import os
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from fastapi import Response
from starlette.middleware.cors import CORSMiddleware
from starlette.types import ASGIApp, Receive, Scope, Send

from app.core.config import settings


# ─────────────────────────────────────────────────────────────
# ⚙️ Configuration
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SecurityHeadersConfig:
    """Runtime configuration for security headers (env-driven)."""

    hsts_enabled: bool = field(default_factory=lambda: settings.is_production)
    hsts_max_age: int = int(os.getenv("HSTS_MAX_AGE", "31536000"))
    referrer_policy: str = os.getenv("REFERRER_POLICY", "no-referrer")
    content_security_policy: str = "default-src 'none'; frame-ancestors 'none'"
    skip_paths_csv: str = os.getenv("SECURITY_SKIP_PATHS", "/docs,/redoc,/openapi.json")


# ─────────────────────────────────────────────────────────────
# 🧩 Middleware
# ─────────────────────────────────────────────────────────────

class SecurityHeadersMiddleware:
    """Applies security headers idempotently; skips docs paths (they need scripts)."""

    def __init__(self, app: ASGIApp, cfg: Optional[SecurityHeadersConfig] = None) -> None:
        self.app = app
        self.cfg = cfg or SecurityHeadersConfig()
        self._skip_prefixes: Tuple[str, ...] = tuple(
            p.strip() for p in (self.cfg.skip_paths_csv or "").split(",") if p.strip()
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope.get("type") != "http":
            return await self.app(scope, receive, send)

        path = scope.get("path", "")
        if any(path.startswith(prefix) for prefix in self._skip_prefixes):
            return await self.app(scope, receive, send)

        async def send_wrapper(message):
            if message.get("type") == "http.response.start":
                raw_headers = list(message.get("headers", []))
                _apply_headers_to_raw(raw_headers, self.cfg)
                message["headers"] = raw_headers
            await send(message)

        await self.app(scope, receive, send_wrapper)


def _has_header(raw_headers: List[Tuple[bytes, bytes]], name: str) -> bool:
    lname = name.lower().encode("latin-1")
    return any(h[0].lower() == lname for h in raw_headers)


def _ensure(raw_headers: List[Tuple[bytes, bytes]], name: str, value: str) -> None:
    if not _has_header(raw_headers, name):
        raw_headers.append((name.lower().encode("latin-1"), value.encode("latin-1")))


def _apply_headers_to_raw(raw_headers: List[Tuple[bytes, bytes]], cfg: SecurityHeadersConfig) -> None:
    if cfg.hsts_enabled:
        _ensure(raw_headers, "Strict-Transport-Security", f"max-age={cfg.hsts_max_age}; includeSubDomains")
    _ensure(raw_headers, "X-Content-Type-Options", "nosniff")
    _ensure(raw_headers, "X-Frame-Options", "DENY")
    _ensure(raw_headers, "Referrer-Policy", cfg.referrer_policy)
    _ensure(raw_headers, "Content-Security-Policy", cfg.content_security_policy)


# ─────────────────────────────────────────────────────────────
# 🔓 Public helpers
# ─────────────────────────────────────────────────────────────

def set_sensitive_cache(response: Response) -> None:
    """Mark a response as `no-store` (cookies, presigned URLs)."""
    response.headers["Cache-Control"] = "no-store"
    response.headers["Pragma"] = "no-cache"
    response.headers["Expires"] = "0"


def configure_cors(
    app,
    *,
    allow_methods: Optional[Iterable[str]] = None,
    allow_headers: Optional[Iterable[str]] = None,
) -> None:
    """Install CORS with credentials for the configured frontend origins."""
    origins = settings.frontend_origins_list
    if not origins and not settings.is_production:
        origins = [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=list(allow_methods or ["GET", "POST", "DELETE", "OPTIONS"]),
        allow_headers=list(allow_headers or ["Content-Type", "X-Request-ID"]),
        expose_headers=["X-Request-ID", "Retry-After"],
        max_age=3600,
    )


def install_security(app) -> None:
    app.add_middleware(SecurityHeadersMiddleware)


__all__ = [
    "SecurityHeadersConfig",
    "SecurityHeadersMiddleware",
    "install_security",
    "configure_cors",
    "set_sensitive_cache",
]
