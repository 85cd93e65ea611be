# tests/test_api/test_video_routes.py

import base64
import json

import pytest

COOKIE = "family-vhs-auth"


def _b64(key: str, *, urlsafe: bool = False) -> str:
    enc = base64.urlsafe_b64encode if urlsafe else base64.b64encode
    return enc(key.encode("utf-8")).decode()


# ─────────────────────────────────────────────────────────────
# Session gate
# ─────────────────────────────────────────────────────────────

@pytest.mark.parametrize(
    "method,path,body",
    [
        ("GET", "/api/videos", None),
        ("GET", f"/api/videos/{_b64('videos/a.mp4')}", None),
        ("POST", "/api/videos/rename", {"videoKey": "videos/a.mp4", "displayName": "X"}),
    ],
)
def test_protected_routes_require_session(client, boto, method, path, body):
    r = client.request(method, path, json=body)

    assert r.status_code == 401
    assert r.json() == {"success": False, "error": "Unauthorized"}
    assert boto.list_calls == []
    assert boto.put_calls == []
    assert boto.presign_calls == []


@pytest.mark.parametrize("cookie", ["1", "true", "x.y.z", "abc.9999999999.forged"])
def test_forged_cookies_rejected(client, cookie):
    client.cookies.set(COOKIE, cookie)
    assert client.get("/api/videos").status_code == 401


@pytest.mark.parametrize("raw", ["abc.9999999999.\xe9", "\xe9t\xe9.9999999999.sig"])
def test_non_ascii_cookie_is_401_not_500(client, raw):
    r = client.get("/api/videos", headers={"cookie": f"{COOKIE}={raw}".encode("latin-1")})

    assert r.status_code == 401
    assert r.json() == {"success": False, "error": "Unauthorized"}


# ─────────────────────────────────────────────────────────────
# GET /videos
# ─────────────────────────────────────────────────────────────

def test_list_videos(authed_client, boto):
    boto.add("videos/Birthday.mp4", size=2048)
    boto.add("videos/._Birthday.mp4")
    boto.add("videos/notes.txt")
    boto.add("videos/apple.mov")
    boto.add("thumbnails/Birthday.jpg")
    boto.add("previews/apple.mp4")
    boto.add("metadata/videos.json", body=json.dumps({"videos/Birthday.mp4": {"displayName": "Sam turns 5"}}).encode())

    r = authed_client.get("/api/videos")

    assert r.status_code == 200
    assert r.headers["cache-control"].startswith("no-store")
    videos = r.json()["videos"]
    assert [v["key"] for v in videos] == ["videos/apple.mov", "videos/Birthday.mp4"]

    apple, bday = videos
    assert apple["name"] == "apple"
    assert "displayName" not in apple
    assert "thumbnailUrl" not in apple
    assert apple["previewUrl"].startswith("https://signed.example/previews/apple.mp4")

    assert bday["name"] == "Birthday"
    assert bday["displayName"] == "Sam turns 5"
    assert bday["size"] == 2048
    assert bday["lastModified"].startswith("2024-01-02T03:04:05")
    assert bday["thumbnailUrl"].startswith("https://signed.example/thumbnails/Birthday.jpg")
    assert "previewUrl" not in bday


def test_list_videos_empty_bucket(authed_client):
    r = authed_client.get("/api/videos")
    assert r.status_code == 200
    assert r.json() == {"videos": []}


def test_list_videos_storage_failure_is_500(authed_client, boto):
    boto.add("videos/a.mp4")
    boto.fail_list_prefixes.add("videos/")

    r = authed_client.get("/api/videos")

    assert r.status_code == 500
    assert r.json()["success"] is False
    assert r.json()["error"] == "Failed to fetch videos"
    assert r.headers["cache-control"].startswith("no-store")


# ─────────────────────────────────────────────────────────────
# GET /videos/{b64key}
# ─────────────────────────────────────────────────────────────

@pytest.mark.parametrize("urlsafe", [False, True])
def test_playback_url(authed_client, boto, urlsafe):
    key = "videos/1994/Grandma's 80th?.mov"

    r = authed_client.get(f"/api/videos/{_b64(key, urlsafe=urlsafe)}")

    assert r.status_code == 200
    assert r.headers["cache-control"].startswith("no-store")
    assert r.json() == {"url": f"https://signed.example/{key}?X-Amz-Expires=14400"}
    assert boto.presign_calls[-1]["key"] == key


def test_playback_bad_key_is_400(authed_client, boto):
    r = authed_client.get("/api/videos/@@not-base64@@")

    assert r.status_code == 400
    assert r.json()["error"] == "Invalid video key"
    assert boto.presign_calls == []


def test_playback_presign_failure_is_500(authed_client, boto):
    boto.fail_presign_keys.add("videos/a.mp4")

    r = authed_client.get(f"/api/videos/{_b64('videos/a.mp4')}")

    assert r.status_code == 500
    assert r.json()["error"] == "Failed to generate video URL"


# ─────────────────────────────────────────────────────────────
# POST /videos/rename
# ─────────────────────────────────────────────────────────────

def test_rename_then_list(authed_client, boto):
    boto.add("videos/a.mp4")

    r = authed_client.post("/api/videos/rename", json={"videoKey": "videos/a.mp4", "displayName": "  Xmas 1994 "})
    assert r.status_code == 200
    assert r.json() == {"success": True}
    assert r.headers["cache-control"].startswith("no-store")

    videos = authed_client.get("/api/videos").json()["videos"]
    assert videos[0]["displayName"] == "Xmas 1994"


@pytest.mark.parametrize(
    "body",
    [
        {},
        {"videoKey": "videos/a.mp4"},
        {"displayName": "X"},
        {"videoKey": "videos/a.mp4", "displayName": ""},
        {"videoKey": "videos/a.mp4", "displayName": "   "},
        {"videoKey": "", "displayName": "X"},
        {"videoKey": 12, "displayName": "X"},
    ],
)
def test_rename_rejects_missing_fields(authed_client, boto, body):
    r = authed_client.post("/api/videos/rename", json=body)

    assert r.status_code == 400
    assert r.json() == {"success": False, "error": "Missing videoKey or displayName"}
    assert boto.put_calls == []


def test_rename_storage_failure_is_500(authed_client, boto):
    boto.fail_put = True

    r = authed_client.post("/api/videos/rename", json={"videoKey": "videos/a.mp4", "displayName": "X"})

    assert r.status_code == 500
    assert r.json()["error"] == "Failed to rename video"
