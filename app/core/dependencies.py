# app/core/dependencies.py
from __future__ import annotations

"""
Request dependencies — Family VHS
=================================

The S3 client and the session authenticator are built once in
`app.main.create_app` and stored on `app.state`; routes receive them through
these dependencies instead of importing module-level singletons. Tests swap
either by passing fakes to `create_app` or via `app.dependency_overrides`.

`require_session` is the gate for every protected route. It only answers
"valid session or not"; it never says why a cookie was rejected.
"""

import logging

from fastapi import Depends, Request

from app.core.config import settings
from app.core.exceptions import Unauthorized, UpstreamError
from app.services.auth_service import SessionAuthenticator
from app.services.catalog_service import VideoCatalogBuilder
from app.services.metadata_store import MetadataStore
from app.utils.aws import S3Client

logger = logging.getLogger(__name__)

__all__ = [
    "get_authenticator",
    "get_s3",
    "get_metadata_store",
    "get_catalog_builder",
    "require_session",
]


def get_authenticator(request: Request) -> SessionAuthenticator:
    return request.app.state.authenticator


def get_s3(request: Request) -> S3Client:
    """Return the shared S3 client, or fail with 500 when storage is not configured."""
    s3 = getattr(request.app.state, "s3", None)
    if s3 is None:
        raise UpstreamError("Storage is not configured")
    return s3


def get_metadata_store(s3: S3Client = Depends(get_s3)) -> MetadataStore:
    return MetadataStore(s3)


def get_catalog_builder(s3: S3Client = Depends(get_s3)) -> VideoCatalogBuilder:
    return VideoCatalogBuilder.from_settings(s3, settings)


def require_session(
    request: Request,
    auth: SessionAuthenticator = Depends(get_authenticator),
) -> None:
    """Reject the request with 401 unless it carries a valid session cookie."""
    token = request.cookies.get(auth.cookie_name)
    if not auth.check(token):
        if token:
            logger.info("Rejected session cookie on %s", request.url.path)
        raise Unauthorized()
