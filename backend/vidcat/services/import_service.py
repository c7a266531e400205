"""
YouTube import.

A playlist import validates each playlist item on its own and upserts it on
the YouTube video id, so re-importing the same playlist updates rows instead
of duplicating them. Items that fail validation or persistence are counted
and skipped; the batch itself is never rolled back.
"""
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qs, urlparse

import structlog
from googleapiclient.errors import HttpError
from sqlalchemy.exc import SQLAlchemyError

from vidcat.core.config import settings
from vidcat.db.models.watched_channel import WatchedChannel
from vidcat.db.storage import Storage
from vidcat.services.youtube_service import YouTubeService, best_thumbnail

logger = structlog.get_logger()

PLAYLIST_ID_RE = re.compile(r"^[A-Za-z0-9_-]{2,64}$")
VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]{11}$")
CHANNEL_ID_RE = re.compile(r"^UC[A-Za-z0-9_-]{22}$")
HANDLE_RE = re.compile(r"@([A-Za-z0-9._-]{3,100})")

# Titles YouTube substitutes for entries that can no longer be played
UNAVAILABLE_TITLES = {"Deleted video", "Private video"}


class InvalidPlaylistItem(ValueError):
    pass


class ChannelNotFound(LookupError):
    pass


@dataclass
class ImportSummary:
    playlist_id: str
    total: int = 0
    created: int = 0
    updated: int = 0
    failed: int = 0

    @property
    def succeeded(self) -> int:
        return self.created + self.updated

    def as_dict(self) -> Dict[str, Any]:
        return {
            "playlist_id": self.playlist_id,
            "total": self.total,
            "succeeded": self.succeeded,
            "created": self.created,
            "updated": self.updated,
            "failed": self.failed,
        }


def extract_playlist_id(value: str) -> Optional[str]:
    """Playlist id from a playlist/watch URL, or a bare playlist id"""
    value = (value or "").strip()
    if not value:
        return None

    query = urlparse(value).query
    if not query and "?" in value:
        query = value.split("?", 1)[1]

    ids = parse_qs(query).get("list")
    if ids:
        candidate = ids[0]
    elif "/" not in value and "=" not in value:
        candidate = value
    else:
        return None

    return candidate if PLAYLIST_ID_RE.match(candidate) else None


def extract_channel_ref(value: str) -> Optional[Tuple[str, str]]:
    """Return ("id", channel_id) or ("handle", handle) for a channel URL"""
    value = (value or "").strip()
    if CHANNEL_ID_RE.match(value):
        return "id", value

    path = urlparse(value).path if "://" in value else value
    parts = [part for part in path.split("/") if part]
    if "channel" in parts:
        index = parts.index("channel")
        if index + 1 < len(parts) and CHANNEL_ID_RE.match(parts[index + 1]):
            return "id", parts[index + 1]

    match = HANDLE_RE.search(value)
    if match:
        return "handle", match.group(1)
    return None


def parse_playlist_item(item: Dict[str, Any]) -> Dict[str, Any]:
    snippet = item.get("snippet") or {}
    video_id = (
        (snippet.get("resourceId") or {}).get("videoId")
        or (item.get("contentDetails") or {}).get("videoId")
    )
    title = (snippet.get("title") or "").strip()

    if not video_id or not VIDEO_ID_RE.match(video_id):
        raise InvalidPlaylistItem("missing or malformed video id")
    if not title or title in UNAVAILABLE_TITLES:
        raise InvalidPlaylistItem("missing title or unavailable video")

    return {
        "youtube_id": video_id,
        "title": title[:500],
        "description": snippet.get("description") or None,
        "thumbnail": best_thumbnail(snippet.get("thumbnails") or {}),
    }


class PlaylistImporter:

    def __init__(self, storage: Storage, youtube: YouTubeService):
        self.storage = storage
        self.youtube = youtube

    def _durations(self, video_ids: List[str]) -> Dict[str, int]:
        if not video_ids:
            return {}
        try:
            details = self.youtube.get_video_details(video_ids)
        except HttpError as e:
            # Durations are optional; the rows are still imported without them
            logger.warning("Could not fetch video durations", error=str(e), count=len(video_ids))
            return {}
        return {d["youtube_id"]: d["duration"] for d in details if d.get("duration")}

    def import_playlist(
        self,
        playlist_id: str,
        category_id: Optional[int] = None,
        subcategory_id: Optional[int] = None,
        max_items: Optional[int] = None,
    ) -> ImportSummary:
        items = self.youtube.get_playlist_items(playlist_id, max_items=max_items)
        summary = ImportSummary(playlist_id=playlist_id, total=len(items))

        parsed = []
        for position, item in enumerate(items):
            try:
                parsed.append(parse_playlist_item(item))
            except InvalidPlaylistItem as e:
                summary.failed += 1
                logger.info("Skipping playlist item", playlist_id=playlist_id, position=position, reason=str(e))

        durations = self._durations([video["youtube_id"] for video in parsed])

        for video in parsed:
            if video["youtube_id"] in durations:
                video["duration"] = durations[video["youtube_id"]]
            if category_id is not None:
                video["category_id"] = category_id
            if subcategory_id is not None:
                video["subcategory_id"] = subcategory_id

            try:
                _, created = self.storage.upsert_video(video)
            except SQLAlchemyError as e:
                self.storage.db.rollback()
                summary.failed += 1
                logger.warning("Failed to import video", youtube_id=video["youtube_id"], error=str(e))
                continue

            if created:
                summary.created += 1
            else:
                summary.updated += 1

        logger.info("Playlist import complete", **summary.as_dict())
        return summary

    def resolve_channel_id(self, channel_url: str) -> str:
        ref = extract_channel_ref(channel_url)
        if ref is None:
            raise ValueError("Unrecognised channel URL")

        kind, value = ref
        if kind == "id":
            return value

        info = self.youtube.get_channel_by_handle(value)
        if not info:
            raise ChannelNotFound(value)
        return info["youtube_channel_id"]

    def import_channel(self, watched: WatchedChannel) -> ImportSummary:
        """Import the latest uploads of a watched channel and stamp last_check"""
        info = self.youtube.get_channel_info(watched.channel_id)
        if not info:
            raise ChannelNotFound(watched.channel_id)

        summary = self.import_playlist(
            info["uploads_playlist_id"],
            max_items=settings.watched_channel_max_videos,
        )
        self.storage.mark_channel_checked(watched.id)
        return summary
