# app/utils/aws.py
from __future__ import annotations

"""
🧊 Family VHS • S3 Utilities
============================

Thin, hardened S3 wrapper used by:
- Catalog listing (paginated prefix listing + sibling probes)
- Metadata document read/write (one small JSON object)
- Playback / thumbnail / preview delivery (presigned GET)

🎯 Goals
--------
- One explicitly constructed client per process, injected where needed
  (built in the app lifespan from `settings`; no module-level singleton)
- Explicit timeouts + bounded retries
- Key sanity checks (no leading slash, no control characters)
- Zero secret leakage in logs or repr

🔗 Contract
-----------
- Class: `S3Client`, `S3StorageError`
- Methods: `list_objects(prefix)`, `key_exists(key)`, `get_json(key)`,
           `put_json(key, doc)`, `presigned_get(key, expires_in=...)`,
           `ping()`

All methods are blocking (boto3); async callers run them via
`asyncio.to_thread`. S3 failures surface as `S3StorageError` except where a
method documents a "not found" return value.
"""

import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import ClientError
from botocore.config import Config as BotoConfig

logger = logging.getLogger(__name__)

# ─────────────────────────────────────────────────────────────────────────────
# 🧱 Exceptions & types
# ─────────────────────────────────────────────────────────────────────────────


class S3StorageError(RuntimeError):
    """Raised when a storage operation fails (network, auth, policy, etc.)."""


@dataclass(frozen=True)
class StoredObject:
    """One entry of a bucket listing."""

    key: str
    size: int
    last_modified: datetime


# ─────────────────────────────────────────────────────────────────────────────
# 🧰 Key validation
# ─────────────────────────────────────────────────────────────────────────────

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")
_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound"}


def _normalize_key(key: str) -> str:
    """
    Normalize and validate S3 object keys.

    Keys come from our own listing (or base64 from our own client), so this
    is deliberately permissive about punctuation and non-ASCII names; it only
    rejects what S3 or log lines would mangle.

    Raises
    ------
    S3StorageError
        If key is empty or contains control characters.
    """
    k = str(key or "").lstrip("/")
    if not k.strip():
        raise S3StorageError("Invalid storage key: empty")
    if _CONTROL_CHARS_RE.search(k):
        raise S3StorageError("Invalid storage key: contains control characters")
    return k


def _error_code(exc: Exception) -> Optional[str]:
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code")
    return None


# ─────────────────────────────────────────────────────────────────────────────
# 📦 S3 Client
# ─────────────────────────────────────────────────────────────────────────────


class S3Client:
    """
    High-level S3 wrapper over a single bucket.

    Parameters
    ----------
    bucket : str
        The bucket holding videos, sibling media and the metadata document.
    region_name : str | None
        Region for the client.
    endpoint_url : str | None
        Custom S3-compatible endpoint (e.g., MinIO/LocalStack).
    access_key_id, secret_access_key : str | None
        Explicit credentials; when absent boto3's standard chain is used
        (env, profile, instance role).
    client : Any | None
        Pre-built boto3 client (tests inject a stub here).
    """

    def __init__(
        self,
        bucket: Optional[str],
        *,
        region_name: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        client: Any = None,
    ) -> None:
        if not bucket:
            raise S3StorageError("S3_BUCKET_NAME not configured")
        self.bucket = bucket
        self.region = region_name

        if client is not None:
            self.client = client
        else:
            cfg = BotoConfig(
                signature_version="s3v4",
                retries={"max_attempts": 5, "mode": "standard"},
                connect_timeout=3,
                read_timeout=10,
            )
            client_kwargs: Dict[str, Any] = {"config": cfg}
            if region_name:
                client_kwargs["region_name"] = region_name
            if endpoint_url:
                client_kwargs["endpoint_url"] = endpoint_url
            if access_key_id and secret_access_key:
                client_kwargs["aws_access_key_id"] = access_key_id
                client_kwargs["aws_secret_access_key"] = secret_access_key
            try:
                self.client = boto3.client("s3", **client_kwargs)
            except Exception as e:  # pragma: no cover
                raise S3StorageError(f"Failed to create S3 client: {e}") from e

        self._repr = f"S3Client(bucket={self.bucket}, region={self.region}, endpoint={'yes' if endpoint_url else 'no'})"

    @classmethod
    def from_settings(cls, settings) -> "S3Client":
        """Build the process-wide client from application settings."""
        secret = settings.AWS_SECRET_ACCESS_KEY
        return cls(
            settings.S3_BUCKET_NAME,
            region_name=settings.AWS_REGION,
            endpoint_url=settings.AWS_S3_ENDPOINT_URL,
            access_key_id=settings.AWS_ACCESS_KEY_ID,
            secret_access_key=secret.get_secret_value() if secret is not None else None,
        )

    # ────────────────────────────────────────────────────────────────────────
    # 🔎 Listing
    # ────────────────────────────────────────────────────────────────────────

    def list_objects(self, prefix: str) -> List[StoredObject]:
        """
        List every object under `prefix`, following continuation tokens.

        Returns an empty list when the prefix holds nothing.

        Raises
        ------
        S3StorageError
            When any page request fails.
        """
        out: List[StoredObject] = []
        kwargs: Dict[str, Any] = {"Bucket": self.bucket, "Prefix": prefix}
        try:
            while True:
                resp = self.client.list_objects_v2(**kwargs)
                for item in resp.get("Contents") or []:
                    key = item.get("Key") or ""
                    if not key:
                        continue
                    out.append(
                        StoredObject(
                            key=key,
                            size=int(item.get("Size") or 0),
                            last_modified=item.get("LastModified") or datetime.now().astimezone(),
                        )
                    )
                if resp.get("IsTruncated") and resp.get("NextContinuationToken"):
                    kwargs["ContinuationToken"] = resp["NextContinuationToken"]
                else:
                    break
        except Exception as e:
            raise S3StorageError(f"Failed to list objects under {prefix!r}: {e}") from e
        return out

    def key_exists(self, key: str) -> bool:
        """
        Existence probe via a listing capped at one key.

        Listing order is lexicographic, so if `key` exists it is the first
        result for its own prefix; longer keys sharing the prefix do not count.
        """
        k = _normalize_key(key)
        try:
            resp = self.client.list_objects_v2(Bucket=self.bucket, Prefix=k, MaxKeys=1)
        except Exception as e:
            raise S3StorageError(f"Failed to probe object: {e}") from e
        contents = resp.get("Contents") or []
        return bool(contents) and contents[0].get("Key") == k

    # ────────────────────────────────────────────────────────────────────────
    # 📄 Small JSON documents
    # ────────────────────────────────────────────────────────────────────────

    def get_json(self, key: str) -> Optional[Any]:
        """
        Fetch and decode a JSON object.

        Returns
        -------
        Any | None
            Decoded document, or None when the object does not exist.

        Raises
        ------
        S3StorageError
            On any other failure, including undecodable content.
        """
        k = _normalize_key(key)
        try:
            resp = self.client.get_object(Bucket=self.bucket, Key=k)
            raw = resp["Body"].read()
        except Exception as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                return None
            raise S3StorageError(f"Failed to read object: {e}") from e
        if not raw:
            return None
        try:
            return json.loads(raw)
        except ValueError as e:
            raise S3StorageError(f"Object {k!r} is not valid JSON") from e

    def put_json(self, key: str, doc: Any) -> None:
        """Write `doc` as pretty-printed UTF-8 JSON (whole-object replace)."""
        k = _normalize_key(key)
        body = json.dumps(doc, indent=2, ensure_ascii=False).encode("utf-8")
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=k,
                Body=body,
                ContentType="application/json",
            )
        except Exception as e:
            raise S3StorageError(f"Failed to write object: {e}") from e

    # ────────────────────────────────────────────────────────────────────────
    # 🔐 Signed URL helpers
    # ────────────────────────────────────────────────────────────────────────

    def presigned_get(self, key: str, *, expires_in: int = 14400) -> str:
        """
        Generate a time-limited **presigned GET** URL.

        Signing is local (no network round trip), so a key that does not
        exist still yields a URL; the fetch itself will 404.
        """
        k = _normalize_key(key)
        try:
            return self.client.generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": self.bucket, "Key": k},
                ExpiresIn=int(expires_in),
            )
        except Exception as e:
            raise S3StorageError(f"Failed to create presigned GET: {e}") from e

    # ────────────────────────────────────────────────────────────────────────
    # 🩺 Readiness
    # ────────────────────────────────────────────────────────────────────────

    def ping(self) -> bool:
        """HEAD the bucket; False on any failure."""
        try:
            self.client.head_bucket(Bucket=self.bucket)
            return True
        except Exception as e:
            logger.debug("head_bucket failed: %s", e)
            return False

    def __repr__(self) -> str:  # pragma: no cover
        return self._repr


__all__ = ["S3Client", "S3StorageError", "StoredObject"]
