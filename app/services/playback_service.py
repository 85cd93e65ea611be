from __future__ import annotations

"""
Family VHS — Playback URL Resolution
====================================

The gallery addresses a video by its storage key, base64-encoded into one
path segment (keys contain `/`). Resolution is a single presign call with the
same TTL as thumbnails/previews; existence is not checked separately.
"""

import asyncio
import base64
import binascii
import logging

from app.core.exceptions import PlaybackUnavailable, ValidationError
from app.core.metrics import inc_presign
from app.utils.aws import S3Client, S3StorageError

logger = logging.getLogger(__name__)


def decode_key(encoded: str) -> str:
    """Decode a base64 (standard or URL-safe, padding optional) storage key."""
    s = (encoded or "").strip()
    if not s:
        raise ValidationError("Missing video key")
    s = s.replace("-", "+").replace("_", "/")
    s += "=" * (-len(s) % 4)
    try:
        key = base64.b64decode(s, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise ValidationError("Invalid video key") from e
    if not key.strip():
        raise ValidationError("Invalid video key")
    return key


def encode_key(key: str) -> str:
    return base64.b64encode(key.encode("utf-8")).decode("ascii")


async def resolve_playback_url(s3: S3Client, key: str, *, ttl_seconds: int = 14400) -> str:
    try:
        url = await asyncio.to_thread(s3.presigned_get, key, expires_in=ttl_seconds)
    except S3StorageError as e:
        inc_presign("video", "error")
        raise PlaybackUnavailable(details=str(e)) from e
    inc_presign("video", "ok")
    return url


__all__ = ["decode_key", "encode_key", "resolve_playback_url"]
