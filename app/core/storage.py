from __future__ import annotations

"""
Family VHS • S3 Layout
======================

Documented S3 key layout (single private bucket):

    s3://{bucket}/
      videos/{name}.{mp4,mov,avi,mkv,webm}
      thumbnails/{name}.jpg
      previews/{name}.mp4
      metadata/videos.json

`{name}` is the video's base name: its key without the `videos/` prefix and
without the last extension. Thumbnails and previews are found by that name
only, so two videos with the same base name share them.

Security
--------
- All objects private; clients only ever see presigned GET URLs.
"""

import re
from typing import Tuple

# Prefix constants
S3_PREFIX_VIDEOS = "videos/"
S3_PREFIX_THUMBNAILS = "thumbnails/"
S3_PREFIX_PREVIEWS = "previews/"
S3_METADATA_KEY = "metadata/videos.json"

VIDEO_EXTENSIONS: Tuple[str, ...] = (".mp4", ".mov", ".avi", ".mkv", ".webm")

_LAST_EXT_RE = re.compile(r"\.[^/.]+$")


def is_resource_fork(key: str) -> bool:
    """macOS `._*` sidecar files copied up by file-sync tools."""
    return "/._" in key or key.startswith("._")


def is_video_key(key: str) -> bool:
    """True for keys with a recognized video extension that are not sidecars."""
    return key.lower().endswith(VIDEO_EXTENSIONS) and not is_resource_fork(key)


def base_name(key: str) -> str:
    """`videos/2019/Birthday.mp4` → `2019/Birthday`."""
    name = key[len(S3_PREFIX_VIDEOS):] if key.startswith(S3_PREFIX_VIDEOS) else key
    return _LAST_EXT_RE.sub("", name)


def thumbnail_key(name: str) -> str:
    return f"{S3_PREFIX_THUMBNAILS}{name}.jpg"


def preview_key(name: str) -> str:
    return f"{S3_PREFIX_PREVIEWS}{name}.mp4"
