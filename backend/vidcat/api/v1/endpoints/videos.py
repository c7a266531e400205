from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.exc import IntegrityError

from vidcat.api.deps import EntityId, Pagination, get_pagination
from vidcat.core.errors import APIError, classify_integrity_error, UNIQUE_VIOLATION
from vidcat.core.security import get_admin_user
from vidcat.db.models.user import User
from vidcat.db.models.video import Video
from vidcat.db.storage import Storage, get_storage
from vidcat.schemas import (
    VideoCreate, VideoUpdate, VideoResponse, VideoDetailResponse, VideoPage, MAX_ID
)
from vidcat.services.activity import log_activity

router = APIRouter()
logger = structlog.get_logger()


def _check_references(
    storage: Storage,
    category_id: Optional[int],
    subcategory_id: Optional[int],
    tag_ids: Optional[List[int]] = None,
) -> None:
    """Reject payloads pointing at taxonomy rows that do not exist"""
    if category_id is not None and not storage.get_category(category_id):
        raise APIError(status.HTTP_400_BAD_REQUEST, "Category does not exist")

    if subcategory_id is not None:
        subcategory = storage.get_subcategory(subcategory_id)
        if not subcategory:
            raise APIError(status.HTTP_400_BAD_REQUEST, "Subcategory does not exist")
        if category_id is not None and subcategory.category_id != category_id:
            raise APIError(
                status.HTTP_400_BAD_REQUEST,
                "Subcategory does not belong to the given category",
            )

    if tag_ids:
        found = {tag.id for tag in storage.get_tags_by_ids(tag_ids)}
        missing = sorted(set(tag_ids) - found)
        if missing:
            raise APIError(status.HTTP_400_BAD_REQUEST, "Unknown tags", details={"tagIds": missing})


def _detail(storage: Storage, video: Video) -> VideoDetailResponse:
    detail = VideoDetailResponse.model_validate(video)
    detail.average_rating = storage.get_average_rating(video.id)
    detail.rating_count = storage.count_ratings(video.id)
    return detail


@router.get("", response_model=VideoPage)
async def list_videos(
    pagination: Pagination = Depends(get_pagination),
    category_id: Optional[int] = Query(None, alias="categoryId", gt=0, le=MAX_ID),
    subcategory_id: Optional[int] = Query(None, alias="subcategoryId", gt=0, le=MAX_ID),
    tag_id: Optional[int] = Query(None, alias="tagId", gt=0, le=MAX_ID),
    q: Optional[str] = Query(None, max_length=200),
    storage: Storage = Depends(get_storage)
):
    """Get paginated videos, newest first"""
    videos, total = storage.get_videos(
        offset=pagination.offset,
        limit=pagination.limit,
        category_id=category_id,
        subcategory_id=subcategory_id,
        tag_id=tag_id,
        search=q.strip() if q else None,
    )
    return VideoPage(
        data=[VideoResponse.model_validate(v) for v in videos],
        page=pagination.page,
        limit=pagination.limit,
        total=total,
    )


@router.get("/{video_id}", response_model=VideoDetailResponse)
async def get_video(video_id: EntityId, storage: Storage = Depends(get_storage)):
    """Get a video with its tags and rating summary"""
    video = storage.get_video(video_id)
    if not video:
        raise APIError(status.HTTP_404_NOT_FOUND, "Video not found")
    return _detail(storage, video)


@router.post("", response_model=VideoDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_video(
    data: VideoCreate,
    request: Request,
    storage: Storage = Depends(get_storage),
    admin: User = Depends(get_admin_user)
):
    """Create a video (admin only)"""
    _check_references(storage, data.category_id, data.subcategory_id, data.tag_ids)

    if storage.get_video_by_youtube_id(data.youtube_id):
        raise APIError(status.HTTP_409_CONFLICT, "A video with this YouTube ID already exists")

    values = data.model_dump(exclude={"tag_ids"})
    try:
        video = storage.create_video(values, tag_ids=data.tag_ids)
    except IntegrityError as e:
        if classify_integrity_error(e) == UNIQUE_VIOLATION:
            raise APIError(status.HTTP_409_CONFLICT, "A video with this YouTube ID already exists")
        raise

    logger.info("Video created", video_id=video.id, youtube_id=video.youtube_id)
    log_activity(
        storage, "CREATE", "video", video.id, user_id=admin.id,
        details=f"Created video: {video.title}", request=request,
    )
    return _detail(storage, video)


@router.api_route("/{video_id}", methods=["PUT", "PATCH"], response_model=VideoDetailResponse)
async def update_video(
    video_id: EntityId,
    data: VideoUpdate,
    request: Request,
    storage: Storage = Depends(get_storage),
    admin: User = Depends(get_admin_user)
):
    """Partially update a video (admin only); tagIds replaces the tag set"""
    video = storage.get_video(video_id)
    if not video:
        raise APIError(status.HTTP_404_NOT_FOUND, "Video not found")

    changes: Dict[str, Any] = data.model_dump(exclude_unset=True)
    tag_ids = changes.pop("tag_ids", None)
    for field in ("title", "youtube_id"):
        if changes.get(field) is None:
            changes.pop(field, None)

    category_id = changes.get("category_id", video.category_id)
    subcategory_id = changes.get("subcategory_id", video.subcategory_id)
    _check_references(storage, category_id, subcategory_id, tag_ids)

    youtube_id = changes.get("youtube_id")
    if youtube_id and youtube_id != video.youtube_id and storage.get_video_by_youtube_id(youtube_id):
        raise APIError(status.HTTP_409_CONFLICT, "A video with this YouTube ID already exists")

    try:
        video = storage.update_video(video_id, changes, tag_ids=tag_ids)
    except IntegrityError as e:
        if classify_integrity_error(e) == UNIQUE_VIOLATION:
            raise APIError(status.HTTP_409_CONFLICT, "A video with this YouTube ID already exists")
        raise

    if not video:
        raise APIError(status.HTTP_404_NOT_FOUND, "Video not found")

    fields = sorted(changes) + (["tag_ids"] if tag_ids is not None else [])
    log_activity(
        storage, "UPDATE", "video", video.id, user_id=admin.id,
        details=f"Updated fields: {', '.join(fields) or 'none'}", request=request,
    )
    return _detail(storage, video)


@router.post("/{video_id}/views", response_model=VideoResponse)
async def record_view(video_id: EntityId, storage: Storage = Depends(get_storage)):
    """Increment the view counter of a video"""
    video = storage.increment_video_views(video_id)
    if not video:
        raise APIError(status.HTTP_404_NOT_FOUND, "Video not found")
    return video


@router.delete("/{video_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_video(
    video_id: EntityId,
    request: Request,
    storage: Storage = Depends(get_storage),
    admin: User = Depends(get_admin_user)
):
    """Delete a video with its tag links, comments and ratings (admin only)"""
    video = storage.get_video(video_id)
    if not video:
        raise APIError(status.HTTP_404_NOT_FOUND, "Video not found")

    title = video.title
    if not storage.delete_video(video_id):
        raise APIError(status.HTTP_409_CONFLICT, "Video could not be deleted")

    log_activity(
        storage, "DELETE", "video", video_id, user_id=admin.id,
        details=f"Deleted video: {title}", request=request,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
