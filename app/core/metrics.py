from __future__ import annotations

"""Prometheus counters for presigning, catalog builds and logins.

Exposed on `/metrics` by `app.main`.
"""

from prometheus_client import Counter, Histogram

presigns_total = Counter(
    "gallery_presigns_total",
    "Number of presigned GET URL generations",
    labelnames=("keyspace", "result"),
)
catalog_builds_total = Counter(
    "gallery_catalog_builds_total",
    "Number of catalog builds",
    labelnames=("result",),
)
catalog_build_seconds = Histogram(
    "gallery_catalog_build_seconds",
    "Wall time for a full catalog build including enrichment",
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0),
)
login_attempts_total = Counter(
    "gallery_login_attempts_total",
    "Password submissions",
    labelnames=("result",),
)


def inc_presign(keyspace: str, result: str) -> None:
    presigns_total.labels(keyspace=keyspace, result=result).inc()


def inc_catalog_build(result: str) -> None:
    catalog_builds_total.labels(result=result).inc()


def observe_catalog_seconds(seconds: float) -> None:
    catalog_build_seconds.observe(seconds)


def inc_login(result: str) -> None:
    login_attempts_total.labels(result=result).inc()


__all__ = [
    "inc_presign",
    "inc_catalog_build",
    "observe_catalog_seconds",
    "inc_login",
]
