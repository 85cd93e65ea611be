from __future__ import annotations

"""
Videos — Family VHS
===================

Route Index
-----------
- GET  /videos                → the enriched, sorted catalog
- GET  /videos/{b64key}       → presigned playback URL for one storage key
- POST /videos/rename         → set a video's display name

All routes require a valid session cookie (401 otherwise) and are
`no-store`: bodies carry presigned URLs that must not sit in shared caches.
Presigned URLs are never written to logs.
"""

from fastapi import APIRouter, Body, Depends, Response

from app.core.config import settings
from app.core.dependencies import get_catalog_builder, get_metadata_store, get_s3, require_session
from app.schemas.video import PlaybackUrlResponse, RenameRequest, SuccessResponse, VideoListResponse
from app.security_headers import set_sensitive_cache
from app.services.catalog_service import VideoCatalogBuilder
from app.services.metadata_store import MetadataStore
from app.services.playback_service import decode_key, resolve_playback_url
from app.utils.aws import S3Client

router = APIRouter(tags=["Videos"], dependencies=[Depends(require_session)])


@router.get("/videos", response_model=VideoListResponse, summary="List videos")
async def list_videos(
    response: Response,
    builder: VideoCatalogBuilder = Depends(get_catalog_builder),
) -> VideoListResponse:
    set_sensitive_cache(response)
    records = await builder.build()
    return VideoListResponse(videos=[r.to_public() for r in records])


@router.post("/videos/rename", response_model=SuccessResponse, summary="Rename a video")
async def rename_video(
    response: Response,
    payload: RenameRequest = Body(...),
    store: MetadataStore = Depends(get_metadata_store),
) -> SuccessResponse:
    set_sensitive_cache(response)
    await store.rename(payload.video_key, payload.display_name)
    return SuccessResponse()


@router.get("/videos/{encoded_key:path}", response_model=PlaybackUrlResponse, summary="Playback URL")
async def playback_url(
    encoded_key: str,
    response: Response,
    s3: S3Client = Depends(get_s3),
) -> PlaybackUrlResponse:
    """`encoded_key` is the storage key in base64 (standard or URL-safe)."""
    set_sensitive_cache(response)
    key = decode_key(encoded_key)
    url = await resolve_playback_url(s3, key, ttl_seconds=settings.SIGNED_URL_TTL_SECONDS)
    return PlaybackUrlResponse(url=url)


__all__ = ["router"]
