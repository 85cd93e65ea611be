"""
Password Gate — Family VHS
==========================

Endpoints
---------
POST /auth
    Shared-password sign-in. On success sets the session cookie and returns
    `{"success": true}`. Missing password → 400, wrong password (or no password
    configured on the server) → 401, anything else → 500.

DELETE /auth
    Sign-out. Clears the cookie; always `{"success": true}`.

Security
--------
- Responses are `no-store`.
- Per-IP rate limit on sign-in (`AUTH_RATE_LIMIT`).
- Errors are neutral: the client cannot tell "no server password" from
  "wrong password".
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response

from app.core.config import settings
from app.core.dependencies import get_authenticator
from app.core.exceptions import InvalidCredential, ValidationError
from app.core.limiter import rate_limit
from app.core.metrics import inc_login
from app.schemas.auth import LoginRequest
from app.schemas.video import SuccessResponse
from app.security_headers import set_sensitive_cache
from app.services.auth_service import SessionAuthenticator

router = APIRouter(tags=["Auth"])


@router.post("/auth", response_model=SuccessResponse, summary="Sign in with the shared password")
@rate_limit(settings.AUTH_RATE_LIMIT)
async def login(
    request: Request,
    response: Response,
    payload: Optional[LoginRequest] = None,
    auth: SessionAuthenticator = Depends(get_authenticator),
) -> SuccessResponse:
    set_sensitive_cache(response)
    try:
        session = auth.authenticate(payload.password if payload else None)
    except ValidationError:
        inc_login("missing")
        raise
    except InvalidCredential:
        inc_login("rejected")
        raise
    auth.set_cookie(response, session)
    inc_login("ok")
    return SuccessResponse()


@router.delete("/auth", response_model=SuccessResponse, summary="Sign out")
async def logout(
    response: Response,
    auth: SessionAuthenticator = Depends(get_authenticator),
) -> SuccessResponse:
    set_sensitive_cache(response)
    auth.revoke(response)
    return SuccessResponse()


__all__ = ["router", "login", "logout"]
