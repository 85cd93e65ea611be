# tests/conftest.py
"""
Global test bootstrap
- Rate limiting bypassed by default (set BEFORE the app is imported)
- In-memory stand-in for the boto3 S3 client (no network)
- App/client fixtures wired through `create_app` with injected fakes
"""

from __future__ import annotations

import io
import os
import random
import threading
import time
from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

import pytest

os.environ.setdefault("RATELIMIT_STORAGE_URI", "memory://")
os.environ.setdefault("RATE_LIMIT_TEST_BYPASS", "1")
os.environ.setdefault("RATE_LIMIT_NAMESPACE", f"pytest-{random.getrandbits(32)}")
os.environ.setdefault("LOG_TO_FILE", "0")

from botocore.exceptions import ClientError  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from app.main import create_app  # noqa: E402
from app.services.auth_service import SessionAuthenticator  # noqa: E402
from app.utils.aws import S3Client  # noqa: E402

BUCKET = "unit-test-bucket"
PASSWORD = "hunter2"


@pytest.fixture
def anyio_backend():
    return "asyncio"


# ─────────────────────────────────────────────────────────────
# Fakes
# ─────────────────────────────────────────────────────────────

class FakeBotoS3:
    """
    Minimal stand-in for a boto3 S3 client over one bucket.

    Supports the calls `S3Client` makes and records them for assertions.
    Failure knobs:
      - fail_list_prefixes: list_objects_v2 raises for matching prefixes
      - fail_presign_keys: generate_presigned_url raises for these keys
      - hang_prefixes: list_objects_v2 sleeps `hang_seconds` first
      - fail_get / fail_put: get_object / put_object raise
    """

    def __init__(self, *, page_size: int = 1000):
        self.objects: Dict[str, dict] = {}
        self.page_size = page_size
        self.fail_list_prefixes: Set[str] = set()
        self.fail_presign_keys: Set[str] = set()
        self.hang_prefixes: Set[str] = set()
        self.hang_seconds = 0.5
        self.fail_get = False
        self.fail_put = False
        self.list_calls: List[dict] = []
        self.get_calls: List[str] = []
        self.put_calls: List[dict] = []
        self.presign_calls: List[dict] = []
        self._lock = threading.Lock()
        self.in_flight = 0
        self.max_in_flight = 0
        self.list_delay = 0.0

    def add(self, key: str, *, size: int = 0, body: bytes = b"", last_modified: Optional[datetime] = None) -> None:
        self.objects[key] = {
            "Body": body,
            "Size": size or len(body),
            "LastModified": last_modified or datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
        }

    # ── boto3 surface ───────────────────────────────────────
    def list_objects_v2(self, *, Bucket, Prefix="", MaxKeys=1000, ContinuationToken=None):
        assert Bucket == BUCKET
        with self._lock:
            self.list_calls.append({"Prefix": Prefix, "MaxKeys": MaxKeys, "ContinuationToken": ContinuationToken})
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.list_delay:
                time.sleep(self.list_delay)
            if any(Prefix.startswith(p) for p in self.hang_prefixes):
                time.sleep(self.hang_seconds)
            if any(Prefix.startswith(p) for p in self.fail_list_prefixes):
                raise ClientError({"Error": {"Code": "InternalError", "Message": "boom"}}, "ListObjectsV2")

            keys = sorted(k for k in self.objects if k.startswith(Prefix))
            start = int(ContinuationToken or 0)
            limit = min(int(MaxKeys), self.page_size)
            page = keys[start:start + limit]
            resp: dict = {"KeyCount": len(page), "IsTruncated": start + limit < len(keys)}
            if page:
                resp["Contents"] = [
                    {"Key": k, "Size": self.objects[k]["Size"], "LastModified": self.objects[k]["LastModified"]}
                    for k in page
                ]
            if resp["IsTruncated"]:
                resp["NextContinuationToken"] = str(start + limit)
            return resp
        finally:
            with self._lock:
                self.in_flight -= 1

    def get_object(self, *, Bucket, Key):
        self.get_calls.append(Key)
        if self.fail_get:
            raise ClientError({"Error": {"Code": "AccessDenied", "Message": "nope"}}, "GetObject")
        if Key not in self.objects:
            raise ClientError({"Error": {"Code": "NoSuchKey", "Message": "missing"}}, "GetObject")
        return {"Body": io.BytesIO(self.objects[Key]["Body"])}

    def put_object(self, *, Bucket, Key, Body, ContentType):
        self.put_calls.append({"Key": Key, "Body": Body, "ContentType": ContentType})
        if self.fail_put:
            raise ClientError({"Error": {"Code": "InternalError", "Message": "boom"}}, "PutObject")
        self.add(Key, body=Body)

    def generate_presigned_url(self, *, ClientMethod, Params, ExpiresIn):
        self.presign_calls.append({"method": ClientMethod, "key": Params["Key"], "expires_in": ExpiresIn})
        if Params["Key"] in self.fail_presign_keys:
            raise RuntimeError("signing failed")
        return f"https://signed.example/{Params['Key']}?X-Amz-Expires={ExpiresIn}"

    def head_bucket(self, *, Bucket):
        return {}


# ─────────────────────────────────────────────────────────────
# Fixtures
# ─────────────────────────────────────────────────────────────

@pytest.fixture
def boto() -> FakeBotoS3:
    return FakeBotoS3()


@pytest.fixture
def s3(boto: FakeBotoS3) -> S3Client:
    return S3Client(BUCKET, client=boto)


@pytest.fixture
def authenticator() -> SessionAuthenticator:
    return SessionAuthenticator(password=PASSWORD, session_secret="test-session-secret")


@pytest.fixture
def client(s3: S3Client, authenticator: SessionAuthenticator) -> TestClient:
    app = create_app(s3=s3, authenticator=authenticator)
    return TestClient(app)


@pytest.fixture
def authed_client(client: TestClient) -> TestClient:
    r = client.post("/api/auth", json={"password": PASSWORD})
    assert r.status_code == 200, r.text
    return client
