from __future__ import annotations

"""
Family VHS — Video Catalog Builder
==================================

Builds the list the gallery renders:

1. List everything under `videos/` (paginated) and, concurrently, read the
   metadata document.
2. Keep recognized video extensions; drop macOS `._*` sidecars.
3. Derive each base name, attach `displayName` overrides by exact key.
4. Sort by base name with a locale-aware collation key.
5. Probe `thumbnails/{name}.jpg` and `previews/{name}.mp4` for every record
   and presign the ones that exist.

Failure model
-------------
- Primary listing fails → `CatalogUnavailable`; no partial list.
- Metadata document unreadable → logged, treated as empty.
- A sibling probe or presign that fails or exceeds its deadline only leaves
  that URL unset on that record.

Concurrency
-----------
boto3 is blocking, so every store call runs in a worker thread. Probes share
one `asyncio.Semaphore` (`CATALOG_MAX_CONCURRENCY`) and each is capped by
`asyncio.wait_for` (`CATALOG_PROBE_TIMEOUT_SECONDS`), so a large catalog
cannot flood the store and one hung probe cannot stall the response.

Two videos in different folders with the same base name resolve to the same
thumbnail/preview objects; both records get the same URLs.
"""

import asyncio
import logging
import time
import unicodedata
from typing import List, Optional, Tuple

from app.core.exceptions import CatalogUnavailable
from app.core.metrics import inc_catalog_build, inc_presign, observe_catalog_seconds
from app.core.storage import S3_PREFIX_VIDEOS, base_name, is_video_key, preview_key, thumbnail_key
from app.schemas.video import VideoRecord
from app.services.metadata_store import MetadataDocument, MetadataStore
from app.utils.aws import S3Client, S3StorageError, StoredObject

logger = logging.getLogger(__name__)


def collation_key(name: str) -> Tuple[str, str, str]:
    """Sort key approximating a locale collation.

    Primary: accents and case ignored. Secondary: accents. Tertiary: case,
    lowercase first. Distinct strings never compare equal, so sorting is
    deterministic.
    """
    decomposed = unicodedata.normalize("NFKD", name)
    primary = "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()
    return primary, decomposed.casefold(), name.swapcase()


class VideoCatalogBuilder:
    def __init__(
        self,
        s3: S3Client,
        metadata: MetadataStore,
        *,
        url_ttl_seconds: int = 14400,
        max_concurrency: int = 16,
        probe_timeout_seconds: float = 10.0,
    ) -> None:
        self.s3 = s3
        self.metadata = metadata
        self.url_ttl_seconds = int(url_ttl_seconds)
        self.max_concurrency = max(1, int(max_concurrency))
        self.probe_timeout_seconds = float(probe_timeout_seconds)

    @classmethod
    def from_settings(cls, s3: S3Client, settings) -> "VideoCatalogBuilder":
        return cls(
            s3,
            MetadataStore(s3),
            url_ttl_seconds=settings.SIGNED_URL_TTL_SECONDS,
            max_concurrency=settings.CATALOG_MAX_CONCURRENCY,
            probe_timeout_seconds=settings.CATALOG_PROBE_TIMEOUT_SECONDS,
        )

    async def build(self) -> List[VideoRecord]:
        started = time.perf_counter()
        try:
            objects, metadata = await asyncio.gather(
                asyncio.to_thread(self.s3.list_objects, S3_PREFIX_VIDEOS),
                self._load_metadata(),
            )
        except S3StorageError as e:
            inc_catalog_build("error")
            raise CatalogUnavailable(details=str(e)) from e

        records = sorted(
            (self._to_record(obj, metadata) for obj in objects if is_video_key(obj.key)),
            key=lambda r: collation_key(r.name),
        )

        sem = asyncio.Semaphore(self.max_concurrency)
        enriched = await asyncio.gather(*(self._enrich(sem, r) for r in records))

        inc_catalog_build("ok")
        observe_catalog_seconds(time.perf_counter() - started)
        logger.info("Catalog built: %d videos from %d objects", len(enriched), len(objects))
        return list(enriched)

    # ──────────────────────────────────────────────────────────
    # Steps
    # ──────────────────────────────────────────────────────────
    async def _load_metadata(self) -> MetadataDocument:
        try:
            return await self.metadata.load()
        except S3StorageError as e:
            logger.warning("Metadata document unreadable; continuing without overrides: %s", e)
            return {}

    @staticmethod
    def _to_record(obj: StoredObject, metadata: MetadataDocument) -> VideoRecord:
        entry = metadata.get(obj.key)
        return VideoRecord(
            key=obj.key,
            name=base_name(obj.key),
            display_name=entry.display_name if entry else None,
            size=obj.size,
            last_modified=obj.last_modified,
        )

    async def _enrich(self, sem: asyncio.Semaphore, record: VideoRecord) -> VideoRecord:
        thumb, preview = await asyncio.gather(
            self._sibling_url(sem, thumbnail_key(record.name), "thumbnail"),
            self._sibling_url(sem, preview_key(record.name), "preview"),
        )
        return record.model_copy(update={"thumbnail_url": thumb, "preview_url": preview})

    async def _sibling_url(self, sem: asyncio.Semaphore, key: str, keyspace: str) -> Optional[str]:
        async with sem:
            try:
                exists = await asyncio.wait_for(
                    asyncio.to_thread(self.s3.key_exists, key),
                    timeout=self.probe_timeout_seconds,
                )
            except asyncio.TimeoutError:
                logger.warning("%s probe timed out for %s", keyspace, key)
                return None
            except S3StorageError as e:
                logger.warning("%s probe failed for %s: %s", keyspace, key, e)
                return None
            if not exists:
                return None

            try:
                url = await asyncio.to_thread(self.s3.presigned_get, key, expires_in=self.url_ttl_seconds)
            except S3StorageError as e:
                inc_presign(keyspace, "error")
                logger.warning("%s presign failed for %s: %s", keyspace, key, e)
                return None
            inc_presign(keyspace, "ok")
            return url


__all__ = ["VideoCatalogBuilder", "collation_key"]
