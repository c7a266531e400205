import os

# Settings are read at import time, so the test environment goes first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["RATE_LIMIT_BACKEND"] = "memory"
os.environ["COMMENT_COOLDOWN_SECONDS"] = "30"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ.pop("ADMIN_USERNAME", None)
os.environ.pop("ADMIN_PASSWORD", None)

import httplib2
import pytest
from fastapi.testclient import TestClient
from googleapiclient.errors import HttpError
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import vidcat.db.models  # noqa: F401
from vidcat.core.rate_limit import MemoryRateLimiter, get_rate_limiter
from vidcat.core.security import create_access_token, get_password_hash
from vidcat.db.session import Base, get_db
from vidcat.db.storage import Storage
from vidcat.main import app
from vidcat.services.youtube_service import get_youtube_service

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@event.listens_for(engine, "connect")
def _foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakeYouTube:
    """In-memory stand-in for YouTubeService"""

    def __init__(self):
        self.playlists = {}
        self.durations = {}
        self.channels = {}
        self.handles = {}

    def get_playlist_items(self, playlist_id, max_items=None):
        if playlist_id not in self.playlists:
            raise HttpError(httplib2.Response({"status": 404}), b'{"error": {"message": "not found"}}')
        items = list(self.playlists[playlist_id])
        return items[:max_items] if max_items is not None else items

    def get_video_details(self, video_ids):
        return [
            {"youtube_id": vid, "title": vid, "description": "", "thumbnail": None,
             "duration": self.durations[vid]}
            for vid in video_ids if vid in self.durations
        ]

    def get_channel_info(self, channel_id):
        return self.channels.get(channel_id)

    def get_channel_by_handle(self, handle):
        return self.handles.get(handle.lstrip("@"))


def playlist_item(video_id, title, description="", thumbnail=True):
    snippet = {
        "title": title,
        "description": description,
        "resourceId": {"kind": "youtube#video", "videoId": video_id},
    }
    if thumbnail:
        snippet["thumbnails"] = {
            "high": {"url": f"https://i.ytimg.com/vi/{video_id}/hqdefault.jpg"},
        }
    return {"snippet": snippet, "contentDetails": {"videoId": video_id}}


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def storage(db):
    return Storage(db)


@pytest.fixture()
def fake_youtube():
    return FakeYouTube()


@pytest.fixture()
def client(db, fake_youtube):
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_rate_limiter] = lambda: MemoryRateLimiter(0)
    app.dependency_overrides[get_youtube_service] = lambda: fake_youtube

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def _make_user(storage, username, is_admin=False):
    return storage.create_user(
        username=username,
        hashed_password=get_password_hash("password123"),
        is_admin=is_admin,
    )


def auth_headers(user):
    token = create_access_token(data={"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin_user(storage):
    return _make_user(storage, "admin", is_admin=True)


@pytest.fixture()
def user(storage):
    return _make_user(storage, "alice")


@pytest.fixture()
def other_user(storage):
    return _make_user(storage, "bob")


@pytest.fixture()
def admin_headers(admin_user):
    return auth_headers(admin_user)


@pytest.fixture()
def user_headers(user):
    return auth_headers(user)


@pytest.fixture()
def other_headers(other_user):
    return auth_headers(other_user)


@pytest.fixture()
def category(storage):
    return storage.create_category({"name": "Programming", "slug": "programming"})


@pytest.fixture()
def subcategory(storage, category):
    return storage.create_subcategory({"name": "Python", "slug": "python", "category_id": category.id})


@pytest.fixture()
def video(storage, category):
    return storage.create_video({
        "youtube_id": "dQw4w9WgXcQ",
        "title": "Intro to Python",
        "category_id": category.id,
    })
