from __future__ import annotations

"""
Family VHS — HTTP Rate Limiting (SlowAPI)
=========================================

The only credential is one shared password, so `POST /auth` is the route
worth limiting: it slows down guessing from a single address.

Highlights
----------
- Per-client-IP keying on the socket peer. X-Forwarded-For and
  X-Real-IP are honored only when the peer is listed in
  `RATE_LIMIT_TRUSTED_PROXIES`. The client is the rightmost XFF hop that is
  not itself a trusted proxy.
- Exemptions: health/metrics paths, trusted IPs.
- Test/CI friendly:
    - `RATE_LIMIT_NAMESPACE`: prefixes keys so parallel runs don't collide.
    - `RATE_LIMIT_TEST_BYPASS`: disables limits when truthy.
- Backends: `RATELIMIT_STORAGE_URI` (e.g. redis://) or in-memory fallback.

Environment
-----------
RATE_LIMIT_ENABLED           default: "true"
RATELIMIT_STORAGE_URI        default: "" (falls back to "memory://")
RATE_LIMIT_SKIP_PATHS        default: "/healthz,/readyz,/metrics"
RATE_LIMIT_TRUSTED_IPS       default: "" (comma separated)
RATE_LIMIT_TRUSTED_PROXIES   default: "" (comma separated reverse-proxy peers)
RATE_LIMIT_NAMESPACE         default: ""
RATE_LIMIT_TEST_BYPASS       default: ""

Usage
-----
    from app.core.limiter import install_rate_limiter, rate_limit

    install_rate_limiter(app)

    @router.post("/auth")
    @rate_limit("10/minute")
    async def login(request: Request, response: Response): ...
"""

import os
from typing import Callable, List, Optional, Set

from dotenv import load_dotenv
from loguru import logger
from slowapi import Limiter
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address
from starlette.requests import Request

load_dotenv()

_TRUTHY = {"1", "true", "yes", "on"}

RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"
STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "").strip()

SKIP_PATHS: List[str] = [
    p.strip() for p in os.getenv("RATE_LIMIT_SKIP_PATHS", "/healthz,/readyz,/metrics").split(",") if p.strip()
]
TRUSTED_IPS: Set[str] = {ip.strip() for ip in os.getenv("RATE_LIMIT_TRUSTED_IPS", "").split(",") if ip.strip()}
TRUSTED_PROXIES: Set[str] = {ip.strip() for ip in os.getenv("RATE_LIMIT_TRUSTED_PROXIES", "").split(",") if ip.strip()}
NAMESPACE = os.getenv("RATE_LIMIT_NAMESPACE", "").strip()


# ──────────────────────────────────────────────────────────────
# 🧠 Keying & exemptions
# ──────────────────────────────────────────────────────────────
def _client_ip(request: Request) -> str:
    """Socket peer, unless the peer is a trusted proxy; then the forwarded client."""
    peer = get_remote_address(request) or "unknown"
    if peer not in TRUSTED_PROXIES:
        return peer
    hops = [h.strip() for h in (request.headers.get("x-forwarded-for") or "").split(",") if h.strip()]
    for hop in reversed(hops):
        if hop not in TRUSTED_PROXIES:
            return hop
    xri = request.headers.get("x-real-ip")
    if xri:
        return xri.strip()
    return peer


def client_rate_limit_key(request: Request) -> str:
    key = f"ip:{_client_ip(request)}"
    return f"{NAMESPACE}:{key}" if NAMESPACE else key


def should_exempt_request(request: Optional[Request]) -> bool:
    """
    Exempt a request when limits are off, the test bypass is set, the path is
    skipped, or the client IP is trusted. Env flags are re-read per call so
    tests can toggle them with monkeypatch.
    """
    if os.getenv("RATE_LIMIT_ENABLED", "true").strip().lower() != "true":
        return True
    if os.getenv("RATE_LIMIT_TEST_BYPASS", "").strip().lower() in _TRUTHY:
        return True
    if request is None:
        return False
    path = request.url.path
    if any(path == p or path.startswith(p.rstrip("/") + "/") for p in SKIP_PATHS):
        return True
    return _client_ip(request) in TRUSTED_IPS


# ──────────────────────────────────────────────────────────────
# 🧰 Limiter instance
# ──────────────────────────────────────────────────────────────
limiter = Limiter(
    key_func=client_rate_limit_key,
    default_limits=[],
    headers_enabled=True,
    storage_uri=STORAGE_URI or "memory://",
)


def _exempt_when(request: Optional[Request] = None) -> bool:
    return should_exempt_request(request)


def rate_limit(*limits: str) -> Callable:
    """Apply per-route limits with the exemptions above."""
    selected = list(limits)

    def _apply(fn: Callable) -> Callable:
        for limit_value in reversed(selected):
            fn = limiter.limit(limit_value, exempt_when=_exempt_when)(fn)
        return fn

    return _apply


def install_rate_limiter(app) -> None:
    """Attach SlowAPI middleware unless disabled by env."""
    if not RATE_LIMIT_ENABLED:
        logger.info("RateLimiter disabled by env; middleware not installed")
        return
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    logger.info("SlowAPI middleware installed | storage={}", STORAGE_URI or "memory://")


__all__ = ["limiter", "rate_limit", "install_rate_limiter", "should_exempt_request"]
