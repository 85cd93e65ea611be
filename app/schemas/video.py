from __future__ import annotations

"""
Family VHS • Video Schemas
==========================

Purpose
-------
- `VideoRecord`: one playable asset as returned by `GET /videos`.
- `MetadataEntry`: one value of the metadata document (`metadata/videos.json`).
- Request/response bodies for rename and playback.

Design
------
- Python attributes are snake_case; JSON uses the gallery client's camelCase
  field names through aliases (`displayName`, `lastModified`, ...).
- `MetadataEntry` is the read-side view used by the catalog. It accepts
  unknown fields and any JSON for `dateRange`; renames never rebuild the
  stored document from it.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr


# === Catalog ==============================================================

class VideoRecord(BaseModel):
    """One video in the catalog."""

    model_config = ConfigDict(populate_by_name=True)

    key: str
    name: str  # base name: key minus `videos/` and the last extension
    display_name: Optional[str] = Field(default=None, alias="displayName")
    size: int = 0
    last_modified: datetime = Field(alias="lastModified")
    thumbnail_url: Optional[str] = Field(default=None, alias="thumbnailUrl")
    preview_url: Optional[str] = Field(default=None, alias="previewUrl")

    def to_public(self) -> Dict[str, Any]:
        """JSON-ready dict in client field names, unset optionals omitted."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class VideoListResponse(BaseModel):
    videos: List[Dict[str, Any]]


class PlaybackUrlResponse(BaseModel):
    url: str


# === Metadata document ====================================================

class MetadataEntry(BaseModel):
    """Per-key overrides. Unknown fields are kept verbatim."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    display_name: Optional[str] = Field(default=None, alias="displayName")
    date_range: Any = Field(default=None, alias="dateRange")


# === Rename ===============================================================

class RenameRequest(BaseModel):
    video_key: StrictStr = Field(alias="videoKey")
    display_name: StrictStr = Field(alias="displayName")


class SuccessResponse(BaseModel):
    success: bool = True


__all__ = [
    "VideoRecord",
    "VideoListResponse",
    "PlaybackUrlResponse",
    "MetadataEntry",
    "RenameRequest",
    "SuccessResponse",
]
