# app/core/config.py
from __future__ import annotations

"""
# Family VHS — Centralized Configuration (Pydantic v2)

Single `settings` object with strongly-typed, environment-driven config.

## Goals
- Safe defaults for local/dev; the site password and bucket come from env.
- Missing `SITE_PASSWORD` never crashes imports; it makes every login fail.
- CSV → list helpers for CORS origins.

## Usage
    from app.core.config import settings
"""

import logging
from typing import List, Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

log = logging.getLogger(__name__)
load_dotenv()  # harmless in prod; convenient in dev


# ─────────────────────────────────────────────────────────────
# Small helpers
# ─────────────────────────────────────────────────────────────
def _split_csv(v: str | None) -> list[str]:
    """Split a comma-separated string into a trimmed list (empty-safe)."""
    if not v:
        return []
    return [s.strip() for s in str(v).split(",") if s and s.strip()]


# ─────────────────────────────────────────────────────────────
# Settings
# ─────────────────────────────────────────────────────────────
class Settings(BaseSettings):
    """
    Global application settings sourced from environment.

    Security:
        - `SITE_PASSWORD` is the single shared credential.
        - `SESSION_SECRET` signs session cookies; derived from the password
          when unset.

    Storage:
        - One private bucket holds videos, thumbnails, previews and the
          metadata document.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # don't crash on unknown keys
    )

    # ── App meta ──────────────────────────────────────────────
    PROJECT_NAME: str = "Family VHS"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api"
    ENV: Literal["development", "staging", "production"] = "development"
    ENABLE_DOCS: bool = True

    # ── Auth / session ────────────────────────────────────────
    SITE_PASSWORD: Optional[SecretStr] = None
    SESSION_SECRET: Optional[SecretStr] = None
    SESSION_COOKIE_NAME: str = "family-vhs-auth"
    SESSION_TTL_SECONDS: int = Field(7 * 24 * 60 * 60, ge=60, le=90 * 24 * 60 * 60)
    AUTH_RATE_LIMIT: str = "10/minute"

    # ── Storage (S3) ──────────────────────────────────────────
    AWS_ACCESS_KEY_ID: Optional[str] = None
    AWS_SECRET_ACCESS_KEY: Optional[SecretStr] = None
    AWS_REGION: str = "us-east-1"
    AWS_S3_ENDPOINT_URL: Optional[str] = None
    S3_BUCKET_NAME: Optional[str] = None
    SIGNED_URL_TTL_SECONDS: int = Field(4 * 60 * 60, ge=60, le=7 * 24 * 60 * 60)

    # ── Catalog enrichment ────────────────────────────────────
    CATALOG_MAX_CONCURRENCY: int = Field(16, ge=1, le=128)
    CATALOG_PROBE_TIMEOUT_SECONDS: float = Field(10.0, gt=0, le=120)

    # ── CORS ──────────────────────────────────────────────────
    FRONTEND_ORIGINS: Optional[str] = None  # CSV

    # ── Validators / normalizers ──────────────────────────────
    @field_validator("FRONTEND_ORIGINS", mode="before")
    @classmethod
    def _normalize_frontend_csv(cls, v):
        return None if v is None else ",".join(_split_csv(str(v)))

    @field_validator("API_PREFIX", mode="before")
    @classmethod
    def _normalize_prefix(cls, v) -> str:
        s = "/" + str(v or "").strip().strip("/")
        return "" if s == "/" else s

    # ── Derived / convenience properties ─────────────────────
    @property
    def is_production(self) -> bool:
        return self.ENV.lower() == "production"

    @property
    def frontend_origins_list(self) -> List[str]:
        return _split_csv(self.FRONTEND_ORIGINS)

    @property
    def site_password(self) -> Optional[str]:
        """Configured password, or None when unset or blank."""
        if self.SITE_PASSWORD is None:
            return None
        return self.SITE_PASSWORD.get_secret_value() or None


# Singleton instance
settings = Settings()
