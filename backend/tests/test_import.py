from datetime import datetime, timedelta

import pytest
from sqlalchemy.exc import IntegrityError

from tests.conftest import playlist_item
from vidcat.db.models import ActivityLog, Video, WatchedChannel
from vidcat.db.storage import Storage
from vidcat.services.import_service import (
    PlaylistImporter, extract_channel_ref, extract_playlist_id
)

PLAYLIST_ID = "PLabcdef123456"
CHANNEL_ID = "UC" + "a" * 22
UPLOADS_ID = "UU" + "a" * 22


@pytest.fixture()
def playlist(fake_youtube):
    fake_youtube.playlists[PLAYLIST_ID] = [
        playlist_item("aaaaaaaaaaa", "First"),
        playlist_item("bbbbbbbbbbb", "Second", description="two"),
        playlist_item("ccccccccccc", "Third", thumbnail=False),
        playlist_item("ddddddddddd", "Deleted video"),
        {"snippet": {"title": "No id"}},
    ]
    fake_youtube.durations = {"aaaaaaaaaaa": 61, "bbbbbbbbbbb": 3600}
    return PLAYLIST_ID


@pytest.mark.parametrize("value, expected", [
    (f"https://www.youtube.com/playlist?list={PLAYLIST_ID}", PLAYLIST_ID),
    (f"https://www.youtube.com/watch?v=aaaaaaaaaaa&list={PLAYLIST_ID}&index=2", PLAYLIST_ID),
    (f"youtube.com/playlist?list={PLAYLIST_ID}", PLAYLIST_ID),
    (PLAYLIST_ID, PLAYLIST_ID),
    ("https://www.youtube.com/watch?v=aaaaaaaaaaa", None),
    ("https://example.com/not/a/playlist", None),
    ("", None),
])
def test_extract_playlist_id(value, expected):
    assert extract_playlist_id(value) == expected


@pytest.mark.parametrize("value, expected", [
    (CHANNEL_ID, ("id", CHANNEL_ID)),
    (f"https://www.youtube.com/channel/{CHANNEL_ID}", ("id", CHANNEL_ID)),
    (f"https://www.youtube.com/channel/{CHANNEL_ID}/videos", ("id", CHANNEL_ID)),
    ("https://www.youtube.com/@pycon", ("handle", "pycon")),
    ("@pycon", ("handle", "pycon")),
    ("https://www.youtube.com/watch?v=aaaaaaaaaaa", None),
])
def test_extract_channel_ref(value, expected):
    assert extract_channel_ref(value) == expected


def test_import_counts_created_and_failed(client, db, admin_headers, playlist):
    response = client.post(
        "/api/v1/import/youtube",
        json={"playlistUrl": f"https://www.youtube.com/playlist?list={playlist}"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json() == {
        "playlistId": PLAYLIST_ID,
        "total": 5,
        "succeeded": 3,
        "created": 3,
        "updated": 0,
        "failed": 2,
    }

    videos = {v.youtube_id: v for v in db.query(Video).all()}
    assert set(videos) == {"aaaaaaaaaaa", "bbbbbbbbbbb", "ccccccccccc"}
    assert videos["aaaaaaaaaaa"].duration == 61
    assert videos["bbbbbbbbbbb"].description == "two"
    assert videos["ccccccccccc"].duration is None
    assert videos["ccccccccccc"].thumbnail is None
    assert videos["aaaaaaaaaaa"].thumbnail.endswith("hqdefault.jpg")


def test_reimport_is_idempotent(client, db, admin_headers, fake_youtube, playlist):
    url = f"https://www.youtube.com/playlist?list={playlist}"
    client.post("/api/v1/import/youtube", json={"playlistUrl": url}, headers=admin_headers)

    fake_youtube.playlists[PLAYLIST_ID][0] = playlist_item("aaaaaaaaaaa", "First (remastered)")
    response = client.post("/api/v1/import/youtube", json={"playlistUrl": url}, headers=admin_headers)

    assert response.status_code == 200
    body = response.json()
    assert body["created"] == 0
    assert body["updated"] == 3
    assert body["failed"] == 2
    assert db.query(Video).count() == 3
    assert db.query(Video).filter(Video.youtube_id == "aaaaaaaaaaa").one().title == "First (remastered)"


def test_reimport_keeps_views_and_category(client, db, storage, admin_headers, category, playlist):
    url = f"https://www.youtube.com/playlist?list={playlist}"
    client.post(
        "/api/v1/import/youtube",
        json={"playlistUrl": url, "categoryId": category.id},
        headers=admin_headers,
    )
    video = storage.get_video_by_youtube_id("aaaaaaaaaaa")
    storage.increment_video_views(video.id)

    client.post("/api/v1/import/youtube", json={"playlistUrl": url}, headers=admin_headers)

    db.expire_all()
    video = storage.get_video_by_youtube_id("aaaaaaaaaaa")
    assert video.views == 1
    assert video.category_id == category.id


def test_import_with_unknown_category(client, admin_headers, playlist):
    response = client.post(
        "/api/v1/import/youtube",
        json={"playlistUrl": playlist, "categoryId": 999},
        headers=admin_headers,
    )
    assert response.status_code == 400


def test_invalid_playlist_url(client, admin_headers):
    response = client.post(
        "/api/v1/import/youtube",
        json={"playlistUrl": "https://www.youtube.com/watch?v=aaaaaaaaaaa"},
        headers=admin_headers,
    )

    assert response.status_code == 400
    assert response.json() == {"error": "Invalid YouTube playlist URL"}


def test_unknown_playlist(client, admin_headers):
    response = client.post(
        "/api/v1/import/youtube",
        json={"playlistUrl": "PLdoesnotexist"},
        headers=admin_headers,
    )
    assert response.status_code == 404


def test_import_requires_admin(client, user_headers, playlist):
    response = client.post("/api/v1/import/youtube", json={"playlistUrl": playlist}, headers=user_headers)
    assert response.status_code == 403


def test_import_is_logged(client, db, admin_headers, playlist):
    client.post("/api/v1/import/youtube", json={"playlistUrl": playlist}, headers=admin_headers)

    entry = db.query(ActivityLog).filter(ActivityLog.action == "IMPORT").one()
    assert entry.entity_type == "playlist"
    assert "3 succeeded, 2 failed" in entry.details


def test_failing_item_is_skipped_and_batch_continues(db, fake_youtube, playlist, monkeypatch):
    storage = Storage(db)
    upsert = storage.upsert_video

    def flaky_upsert(values):
        if values["youtube_id"] == "bbbbbbbbbbb":
            raise IntegrityError("INSERT INTO videos", {}, Exception("boom"))
        return upsert(values)

    monkeypatch.setattr(storage, "upsert_video", flaky_upsert)

    summary = PlaylistImporter(storage, fake_youtube).import_playlist(PLAYLIST_ID)

    assert summary.created == 2
    assert summary.failed == 3
    assert summary.succeeded == 2
    assert {v.youtube_id for v in db.query(Video).all()} == {"aaaaaaaaaaa", "ccccccccccc"}


def test_max_items_limits_import(db, fake_youtube, playlist):
    summary = PlaylistImporter(Storage(db), fake_youtube).import_playlist(PLAYLIST_ID, max_items=2)

    assert summary.total == 2
    assert summary.created == 2


# Watched channels

def _register_channel(fake_youtube):
    fake_youtube.channels[CHANNEL_ID] = {
        "youtube_channel_id": CHANNEL_ID,
        "name": "PyCon",
        "uploads_playlist_id": UPLOADS_ID,
    }
    fake_youtube.handles["pycon"] = fake_youtube.channels[CHANNEL_ID]
    fake_youtube.playlists[UPLOADS_ID] = [
        playlist_item("eeeeeeeeeee", "Keynote"),
        playlist_item("fffffffffff", "Lightning talks"),
    ]


def test_watch_channel_by_url_then_change_frequency(client, db, admin_headers, fake_youtube):
    _register_channel(fake_youtube)

    created = client.post(
        "/api/v1/import/channels",
        json={"channelUrl": f"https://www.youtube.com/channel/{CHANNEL_ID}"},
        headers=admin_headers,
    )
    assert created.status_code == 201
    assert created.json()["frequency"] == "daily"

    updated = client.post(
        "/api/v1/import/channels",
        json={"channelUrl": CHANNEL_ID, "frequency": "weekly"},
        headers=admin_headers,
    )
    assert updated.json()["id"] == created.json()["id"]
    assert updated.json()["frequency"] == "weekly"
    assert db.query(WatchedChannel).count() == 1


def test_watch_channel_by_handle(client, admin_headers, fake_youtube):
    _register_channel(fake_youtube)

    response = client.post(
        "/api/v1/import/channels", json={"channelUrl": "https://www.youtube.com/@pycon"}, headers=admin_headers
    )

    assert response.status_code == 201
    assert response.json()["channelId"] == CHANNEL_ID


def test_watch_unknown_handle(client, admin_headers, fake_youtube):
    response = client.post("/api/v1/import/channels", json={"channelUrl": "@nobody"}, headers=admin_headers)
    assert response.status_code == 404


def test_watch_invalid_frequency(client, admin_headers):
    response = client.post(
        "/api/v1/import/channels",
        json={"channelUrl": CHANNEL_ID, "frequency": "hourly"},
        headers=admin_headers,
    )
    assert response.status_code == 400


def test_check_channel_imports_uploads(client, db, storage, admin_headers, fake_youtube):
    _register_channel(fake_youtube)
    watched, _ = storage.upsert_watched_channel(CHANNEL_ID, "daily")
    watched_id = watched.id

    response = client.post(f"/api/v1/import/channels/{watched_id}/check", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["created"] == 2
    db.expire_all()
    assert storage.get_watched_channel(watched_id).last_check is not None


def test_list_and_delete_watched_channels(client, storage, admin_headers):
    watched, _ = storage.upsert_watched_channel(CHANNEL_ID, "weekly")
    watched_id = watched.id

    listed = client.get("/api/v1/import/channels", headers=admin_headers).json()
    assert [w["channelId"] for w in listed] == [CHANNEL_ID]

    assert client.delete(f"/api/v1/import/channels/{watched_id}", headers=admin_headers).status_code == 204
    assert client.get("/api/v1/import/channels", headers=admin_headers).json() == []


def test_due_channels(storage):
    now = datetime.utcnow()
    never, _ = storage.upsert_watched_channel("UC" + "n" * 22, "daily")
    fresh, _ = storage.upsert_watched_channel("UC" + "f" * 22, "daily")
    stale, _ = storage.upsert_watched_channel("UC" + "s" * 22, "daily")
    weekly, _ = storage.upsert_watched_channel("UC" + "w" * 22, "weekly")
    storage.mark_channel_checked(fresh.id, now - timedelta(hours=2))
    storage.mark_channel_checked(stale.id, now - timedelta(days=2))
    storage.mark_channel_checked(weekly.id, now - timedelta(days=3))

    due = {channel.channel_id for channel in storage.get_due_channels(now)}

    assert due == {"UC" + "n" * 22, "UC" + "s" * 22}
