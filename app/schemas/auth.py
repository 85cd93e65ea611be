from __future__ import annotations

"""Request bodies for the password gate."""

from typing import Optional

from pydantic import BaseModel


class LoginRequest(BaseModel):
    """`POST /auth` body. A missing or empty password is a 400, not a 422."""

    password: Optional[str] = None


__all__ = ["LoginRequest"]
