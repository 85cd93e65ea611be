from __future__ import annotations

"""
Family VHS — Metadata Store
===========================

The whole store is one JSON object in the bucket (`metadata/videos.json`):

    {
      "videos/Birthday.mp4": {"displayName": "Sam turns 5", "dateRange": "1994"},
      ...
    }

Reads tolerate a missing document (empty map) and skip entries that do not
parse. Renames edit the stored JSON in place: only `displayName` of the
target key changes; every other key and field is written back exactly as it
was read, including entries the catalog cannot use.

Writes are a plain read-modify-write of the whole document with no version
check: two renames racing on overlapping requests can lose one update (last
writer wins). That is accepted for a single small trusted household and is
not papered over.
"""

import asyncio
import logging
from typing import Any, Dict

from pydantic import ValidationError as SchemaError

from app.core.exceptions import MetadataWriteFailed, ValidationError
from app.core.storage import S3_METADATA_KEY
from app.schemas.video import MetadataEntry
from app.utils.aws import S3Client, S3StorageError

logger = logging.getLogger(__name__)

MetadataDocument = Dict[str, MetadataEntry]


def _parse_document(raw: Any) -> MetadataDocument:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        logger.warning("Metadata document is not a JSON object; ignoring it")
        return {}
    doc: MetadataDocument = {}
    for key, value in raw.items():
        if not isinstance(value, dict):
            logger.warning("Skipping malformed metadata entry for %r", key)
            continue
        try:
            doc[str(key)] = MetadataEntry.model_validate(value)
        except SchemaError as e:
            logger.warning("Skipping unreadable metadata entry for %r: %s", key, e.error_count())
    return doc


class MetadataStore:
    def __init__(self, s3: S3Client, *, key: str = S3_METADATA_KEY) -> None:
        self.s3 = s3
        self.key = key

    async def load(self) -> MetadataDocument:
        """Read the document; raises `S3StorageError` on failures other than "absent"."""
        raw = await asyncio.to_thread(self.s3.get_json, self.key)
        return _parse_document(raw)

    async def rename(self, video_key: str, display_name: str) -> Dict[str, Any]:
        """Upsert `displayName` for one key, keeping everything else as stored.

        The key is not checked against the catalog; renaming a key that is not
        a video just stores an entry nobody will see. Returns the stored entry.
        """
        key = video_key or ""
        name = (display_name or "").strip()
        if not key.strip() or not name:
            raise ValidationError("Missing videoKey or displayName")

        try:
            raw = await asyncio.to_thread(self.s3.get_json, self.key)
            if raw is None:
                raw = {}
            elif not isinstance(raw, dict):
                # Never replace a document we cannot merge into
                raise S3StorageError("Metadata document is not a JSON object")

            current = raw.get(key)
            entry = dict(current) if isinstance(current, dict) else {}
            entry["displayName"] = name
            raw[key] = entry
            await asyncio.to_thread(self.s3.put_json, self.key, raw)
        except S3StorageError as e:
            raise MetadataWriteFailed(details=str(e)) from e

        logger.info("Renamed %s", key)
        return entry


__all__ = ["MetadataStore", "MetadataDocument"]
