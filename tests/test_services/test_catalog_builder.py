# tests/test_services/test_catalog_builder.py

import json

import pytest

from app.core.exceptions import CatalogUnavailable, UpstreamError
from app.services.catalog_service import VideoCatalogBuilder, collation_key
from app.services.metadata_store import MetadataStore


def _builder(s3, **kw) -> VideoCatalogBuilder:
    kw.setdefault("url_ttl_seconds", 14400)
    return VideoCatalogBuilder(s3, MetadataStore(s3), **kw)


@pytest.mark.anyio
async def test_birthday_thumbnail_present_preview_absent(s3, boto):
    boto.add("videos/Birthday.mp4", size=2 * 1024 * 1024)
    boto.add("thumbnails/Birthday.jpg")

    [rec] = await _builder(s3).build()

    assert rec.key == "videos/Birthday.mp4"
    assert rec.name == "Birthday"
    assert rec.size == 2 * 1024 * 1024
    assert rec.thumbnail_url == "https://signed.example/thumbnails/Birthday.jpg?X-Amz-Expires=14400"
    assert rec.preview_url is None
    public = rec.to_public()
    assert "previewUrl" not in public
    assert "displayName" not in public
    assert public["thumbnailUrl"] == rec.thumbnail_url


@pytest.mark.anyio
async def test_only_recognized_non_fork_videos_appear_once(s3, boto):
    keys = [
        "videos/a.mp4",
        "videos/B.MOV",
        "videos/c.avi",
        "videos/d.mkv",
        "videos/e.webm",
        "videos/notes.txt",
        "videos/cover.jpg",
        "videos/._a.mp4",
        "videos/1994/._xmas.mov",
        "videos/1994/xmas.mov",
    ]
    for k in keys:
        boto.add(k)

    records = await _builder(s3).build()

    got = [r.key for r in records]
    assert sorted(got) == sorted(
        ["videos/a.mp4", "videos/B.MOV", "videos/c.avi", "videos/d.mkv", "videos/e.webm", "videos/1994/xmas.mov"]
    )
    assert len(got) == len(set(got))


@pytest.mark.anyio
async def test_sorted_by_name_ignoring_case_and_accents(s3, boto):
    for name in ["cherry", "Éclair", "banana", "Apple", "apple"]:
        boto.add(f"videos/{name}.mp4")

    names = [r.name for r in await _builder(s3).build()]

    assert names == ["apple", "Apple", "banana", "cherry", "Éclair"]


def test_collation_key_orders_like_a_locale():
    assert sorted(["b", "A", "á", "a"], key=collation_key) == ["a", "A", "á", "b"]


@pytest.mark.anyio
async def test_build_is_stable_across_calls(s3, boto):
    for name in ["zeta", "Alpha", "mid", "Ärger"]:
        boto.add(f"videos/{name}.mp4")
    builder = _builder(s3)

    first = [r.key for r in await builder.build()]
    second = [r.key for r in await builder.build()]

    assert first == second


@pytest.mark.anyio
async def test_paginated_listing_is_complete(s3, boto):
    boto.page_size = 3
    for i in range(10):
        boto.add(f"videos/clip{i:02d}.mp4")

    records = await _builder(s3).build()

    assert [r.name for r in records] == [f"clip{i:02d}" for i in range(10)]


@pytest.mark.anyio
async def test_display_names_attached_by_exact_key(s3, boto):
    boto.add("videos/a.mp4")
    boto.add("videos/b.mp4")
    boto.add(
        "metadata/videos.json",
        body=json.dumps({"videos/a.mp4": {"displayName": "Grandma's 80th"}, "videos/zzz.mp4": {"displayName": "x"}}).encode(),
    )

    records = {r.key: r for r in await _builder(s3).build()}

    assert records["videos/a.mp4"].display_name == "Grandma's 80th"
    assert records["videos/b.mp4"].display_name is None
    assert "videos/zzz.mp4" not in records


@pytest.mark.anyio
async def test_rename_round_trip_shows_in_catalog(s3, boto):
    boto.add("videos/a.mp4")
    boto.add("videos/b.mp4")
    store = MetadataStore(s3)
    builder = VideoCatalogBuilder(s3, store)

    await store.rename("videos/a.mp4", "X")
    await store.rename("videos/b.mp4", "Other")
    await store.rename("videos/a.mp4", "Y")

    records = {r.key: r.display_name for r in await builder.build()}
    assert records == {"videos/a.mp4": "Y", "videos/b.mp4": "Other"}


@pytest.mark.anyio
async def test_absent_metadata_leaves_display_names_unset(s3, boto):
    boto.add("videos/a.mp4")
    boto.add("videos/b.mp4")

    records = await _builder(s3).build()

    assert [r.display_name for r in records] == [None, None]


@pytest.mark.anyio
async def test_unreadable_metadata_does_not_fail_the_build(s3, boto):
    boto.add("videos/a.mp4")
    boto.add("metadata/videos.json", body=b"{broken")

    [rec] = await _builder(s3).build()

    assert rec.display_name is None


@pytest.mark.anyio
async def test_odd_metadata_values_do_not_fail_the_build(s3, boto):
    boto.add("videos/a.mp4")
    boto.add("videos/b.mp4")
    boto.add(
        "metadata/videos.json",
        body=json.dumps(
            {
                "videos/a.mp4": {"displayName": "A", "dateRange": {"from": 1994, "to": 1995}},
                "videos/b.mp4": {"displayName": ["not", "a", "string"]},
            }
        ).encode(),
    )

    records = {r.key: r.display_name for r in await _builder(s3).build()}

    assert records == {"videos/a.mp4": "A", "videos/b.mp4": None}


@pytest.mark.anyio
async def test_listing_failure_is_a_single_upstream_error(s3, boto):
    boto.add("videos/a.mp4")
    boto.fail_list_prefixes.add("videos/")

    with pytest.raises(CatalogUnavailable) as ei:
        await _builder(s3).build()

    assert isinstance(ei.value, UpstreamError)
    assert ei.value.status_code == 500
    assert ei.value.message == "Failed to fetch videos"


@pytest.mark.anyio
async def test_probe_failure_only_drops_that_url(s3, boto):
    boto.add("videos/a.mp4")
    boto.add("thumbnails/a.jpg")
    boto.add("previews/a.mp4")
    boto.fail_list_prefixes.add("thumbnails/")

    [rec] = await _builder(s3).build()

    assert rec.thumbnail_url is None
    assert rec.preview_url == "https://signed.example/previews/a.mp4?X-Amz-Expires=14400"


@pytest.mark.anyio
async def test_presign_failure_only_drops_that_url(s3, boto):
    boto.add("videos/a.mp4")
    boto.add("thumbnails/a.jpg")
    boto.add("previews/a.mp4")
    boto.fail_presign_keys.add("previews/a.mp4")

    [rec] = await _builder(s3).build()

    assert rec.thumbnail_url is not None
    assert rec.preview_url is None


@pytest.mark.anyio
async def test_hung_probe_times_out(s3, boto):
    boto.add("videos/a.mp4")
    boto.add("thumbnails/a.jpg")
    boto.add("previews/a.mp4")
    boto.hang_prefixes.add("previews/")
    boto.hang_seconds = 0.5

    [rec] = await _builder(s3, probe_timeout_seconds=0.05).build()

    assert rec.thumbnail_url is not None
    assert rec.preview_url is None


@pytest.mark.anyio
async def test_probes_respect_concurrency_bound(s3, boto):
    for i in range(8):
        boto.add(f"videos/clip{i}.mp4")
        boto.add(f"thumbnails/clip{i}.jpg")
    boto.list_delay = 0.02

    records = await _builder(s3, max_concurrency=2).build()

    assert len(records) == 8
    assert all(r.thumbnail_url for r in records)
    # The primary listing may overlap with nothing else; probes never exceed the bound
    assert boto.max_in_flight <= 2


@pytest.mark.anyio
async def test_same_base_name_shares_sibling_urls(s3, boto):
    boto.add("videos/Clip.mp4")
    boto.add("videos/Clip.mov")
    boto.add("thumbnails/Clip.jpg")

    records = await _builder(s3).build()

    assert {r.key for r in records} == {"videos/Clip.mp4", "videos/Clip.mov"}
    assert {r.name for r in records} == {"Clip"}
    assert records[0].thumbnail_url == records[1].thumbnail_url is not None
