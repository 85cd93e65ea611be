from __future__ import annotations

"""
Family VHS — Session Authenticator
==================================

One shared password gates the whole gallery. A correct password mints a
session token carried in an HTTP-only cookie; every protected route checks
that cookie.

Token format
------------
    <nonce>.<expires_at>.<signature>

- `nonce`: `secrets.token_urlsafe(24)` (192 bits), so every login yields a
  fresh, unguessable token.
- `expires_at`: epoch seconds.
- `signature`: base64url HMAC-SHA256 over `<nonce>.<expires_at>` with the
  session signing key.

Signing key
-----------
`SESSION_SECRET` when configured; otherwise derived from `SITE_PASSWORD`, so
changing the password logs everyone out. With neither configured no token can
be issued or accepted.

Failure policy
--------------
- No configured password → every login fails (logged server-side, reported to
  the client exactly like a wrong password).
- Check failures (missing/malformed/forged/expired) all collapse to
  "unauthorized".
- Logout only clears the cookie; there is no server-side revocation list, so
  a copied token remains valid until it expires.
"""

import base64
import hashlib
import hmac
import logging
import secrets
import time
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Response

from app.core.exceptions import InvalidCredential, ValidationError

logger = logging.getLogger(__name__)

_DERIVED_KEY_LABEL = b"family-vhs/session-signing-key/v1"


@dataclass(frozen=True)
class Session:
    token: str
    expires_at: int


def _b64(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode().rstrip("=")


class SessionAuthenticator:
    """Password check plus signed session cookies."""

    def __init__(
        self,
        *,
        password: Optional[str],
        session_secret: Optional[str] = None,
        ttl_seconds: int = 7 * 24 * 60 * 60,
        cookie_name: str = "family-vhs-auth",
        secure_cookie: bool = False,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._password = password or None
        self.ttl_seconds = int(ttl_seconds)
        self.cookie_name = cookie_name
        self.secure_cookie = bool(secure_cookie)
        self._clock = clock

        if session_secret:
            self._key: Optional[bytes] = session_secret.encode("utf-8")
        elif self._password:
            self._key = hmac.new(self._password.encode("utf-8"), _DERIVED_KEY_LABEL, hashlib.sha256).digest()
        else:
            self._key = None

    @classmethod
    def from_settings(cls, settings) -> "SessionAuthenticator":
        secret = settings.SESSION_SECRET
        return cls(
            password=settings.site_password,
            session_secret=secret.get_secret_value() if secret is not None else None,
            ttl_seconds=settings.SESSION_TTL_SECONDS,
            cookie_name=settings.SESSION_COOKIE_NAME,
            secure_cookie=settings.is_production,
        )

    # ──────────────────────────────────────────────────────────
    # 🔑 Password
    # ──────────────────────────────────────────────────────────
    def authenticate(self, submitted: Optional[str]) -> Session:
        """Validate the submitted password and issue a session.

        Raises
        ------
        ValidationError
            No password submitted.
        InvalidCredential
            Wrong password, or the server has no password configured.
        """
        if not submitted:
            raise ValidationError("Password is required")
        if self._password is None or self._key is None:
            logger.error("SITE_PASSWORD is not set; rejecting login")
            raise InvalidCredential()
        if not hmac.compare_digest(submitted.encode("utf-8"), self._password.encode("utf-8")):
            raise InvalidCredential()
        return self.issue()

    # ──────────────────────────────────────────────────────────
    # 🎫 Tokens
    # ──────────────────────────────────────────────────────────
    def issue(self) -> Session:
        if self._key is None:
            raise InvalidCredential()
        nonce = secrets.token_urlsafe(24)
        expires_at = int(self._clock()) + self.ttl_seconds
        payload = f"{nonce}.{expires_at}"
        return Session(token=f"{payload}.{self._sign(payload)}", expires_at=expires_at)

    def check(self, token: Optional[str]) -> bool:
        """True only for a well-formed, correctly signed, unexpired token."""
        if not token or self._key is None or not token.isascii():
            return False
        parts = token.split(".")
        if len(parts) != 3:
            return False
        nonce, exp_raw, sig = parts
        if not nonce or not exp_raw.isdigit():
            return False
        expected = self._sign(f"{nonce}.{exp_raw}")
        if not hmac.compare_digest(sig.encode("ascii"), expected.encode("ascii")):
            return False
        return int(exp_raw) > int(self._clock())

    def _sign(self, payload: str) -> str:
        if self._key is None:
            raise InvalidCredential()
        return _b64(hmac.new(self._key, payload.encode("utf-8"), hashlib.sha256).digest())

    # ──────────────────────────────────────────────────────────
    # 🍪 Cookie
    # ──────────────────────────────────────────────────────────
    def set_cookie(self, response: Response, session: Session) -> None:
        response.set_cookie(
            self.cookie_name,
            session.token,
            max_age=self.ttl_seconds,
            httponly=True,
            secure=self.secure_cookie,
            samesite="strict",
            path="/",
        )

    def revoke(self, response: Response) -> None:
        """Clear the client-held cookie (logout)."""
        response.delete_cookie(
            self.cookie_name,
            path="/",
            httponly=True,
            secure=self.secure_cookie,
            samesite="strict",
        )


__all__ = ["Session", "SessionAuthenticator"]
