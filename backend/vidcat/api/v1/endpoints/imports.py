from typing import List

import structlog
from fastapi import APIRouter, Depends, Request, Response, status
from googleapiclient.errors import HttpError

from vidcat.api.deps import EntityId
from vidcat.core.errors import APIError
from vidcat.core.security import get_admin_user
from vidcat.db.models.user import User
from vidcat.db.storage import Storage, get_storage
from vidcat.schemas import (
    PlaylistImportRequest, ImportResult, WatchedChannelCreate, WatchedChannelResponse
)
from vidcat.services.activity import log_activity
from vidcat.services.import_service import (
    ChannelNotFound, PlaylistImporter, extract_playlist_id
)
from vidcat.services.youtube_service import YouTubeService, get_youtube_service

router = APIRouter()
logger = structlog.get_logger()


def get_importer(
    storage: Storage = Depends(get_storage),
    youtube: YouTubeService = Depends(get_youtube_service)
) -> PlaylistImporter:
    return PlaylistImporter(storage, youtube)


def _youtube_error(e: HttpError, not_found: str) -> APIError:
    code = getattr(e.resp, "status", None)
    if code == 404:
        return APIError(status.HTTP_404_NOT_FOUND, not_found)
    logger.error("YouTube request failed", status=code, error=str(e))
    return APIError(status.HTTP_502_BAD_GATEWAY, "YouTube API request failed")


@router.post("/youtube", response_model=ImportResult)
async def import_playlist(
    data: PlaylistImportRequest,
    request: Request,
    importer: PlaylistImporter = Depends(get_importer),
    admin: User = Depends(get_admin_user)
):
    """Import every video of a YouTube playlist (admin only).

    Videos are upserted on their YouTube id, so importing the same playlist
    again refreshes existing rows. Items that cannot be imported are counted
    in ``failed`` and do not stop the batch.
    """
    playlist_id = extract_playlist_id(data.playlist_url)
    if not playlist_id:
        raise APIError(status.HTTP_400_BAD_REQUEST, "Invalid YouTube playlist URL")

    storage = importer.storage
    if data.category_id is not None and not storage.get_category(data.category_id):
        raise APIError(status.HTTP_400_BAD_REQUEST, "Category does not exist")
    if data.subcategory_id is not None:
        subcategory = storage.get_subcategory(data.subcategory_id)
        if not subcategory:
            raise APIError(status.HTTP_400_BAD_REQUEST, "Subcategory does not exist")
        if data.category_id is not None and subcategory.category_id != data.category_id:
            raise APIError(status.HTTP_400_BAD_REQUEST, "Subcategory does not belong to the given category")

    try:
        summary = importer.import_playlist(
            playlist_id,
            category_id=data.category_id,
            subcategory_id=data.subcategory_id,
        )
    except HttpError as e:
        raise _youtube_error(e, "Playlist not found")

    log_activity(
        storage, "IMPORT", "playlist", None, user_id=admin.id,
        details=(
            f"Imported playlist {playlist_id}: {summary.succeeded} succeeded, "
            f"{summary.failed} failed"
        ),
        request=request,
    )
    return summary.as_dict()


@router.get("/channels", response_model=List[WatchedChannelResponse])
async def list_watched_channels(
    storage: Storage = Depends(get_storage),
    _admin: User = Depends(get_admin_user)
):
    return storage.get_watched_channels()


@router.post("/channels", response_model=WatchedChannelResponse, status_code=status.HTTP_201_CREATED)
async def watch_channel(
    data: WatchedChannelCreate,
    request: Request,
    importer: PlaylistImporter = Depends(get_importer),
    admin: User = Depends(get_admin_user)
):
    """Register a channel for periodic import, or change its frequency"""
    try:
        channel_id = importer.resolve_channel_id(data.channel_url)
    except ValueError:
        raise APIError(status.HTTP_400_BAD_REQUEST, "Invalid YouTube channel URL")
    except ChannelNotFound:
        raise APIError(status.HTTP_404_NOT_FOUND, "Channel not found")
    except HttpError as e:
        raise _youtube_error(e, "Channel not found")

    storage = importer.storage
    watched, created = storage.upsert_watched_channel(channel_id, data.frequency.value)

    log_activity(
        storage, "CREATE" if created else "UPDATE", "watched_channel", watched.id,
        user_id=admin.id, details=f"{channel_id} ({watched.frequency})", request=request,
    )
    return watched


@router.post("/channels/{watched_id}/check", response_model=ImportResult)
async def check_watched_channel(
    watched_id: EntityId,
    request: Request,
    importer: PlaylistImporter = Depends(get_importer),
    admin: User = Depends(get_admin_user)
):
    """Import a watched channel's latest uploads now"""
    storage = importer.storage
    watched = storage.get_watched_channel(watched_id)
    if not watched:
        raise APIError(status.HTTP_404_NOT_FOUND, "Watched channel not found")

    try:
        summary = importer.import_channel(watched)
    except ChannelNotFound:
        raise APIError(status.HTTP_404_NOT_FOUND, "Channel not found")
    except HttpError as e:
        raise _youtube_error(e, "Channel not found")

    log_activity(
        storage, "IMPORT", "watched_channel", watched_id, user_id=admin.id,
        details=f"{summary.succeeded} succeeded, {summary.failed} failed", request=request,
    )
    return summary.as_dict()


@router.delete("/channels/{watched_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unwatch_channel(
    watched_id: EntityId,
    request: Request,
    storage: Storage = Depends(get_storage),
    admin: User = Depends(get_admin_user)
):
    if not storage.delete_watched_channel(watched_id):
        raise APIError(status.HTTP_404_NOT_FOUND, "Watched channel not found")

    log_activity(storage, "DELETE", "watched_channel", watched_id, user_id=admin.id, request=request)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
