import math
from datetime import datetime
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Query, Request, Response, status

from vidcat.api.deps import EntityId
from vidcat.core.config import settings
from vidcat.core.errors import APIError
from vidcat.core.security import get_current_user_required, ensure_owner_or_admin
from vidcat.db.models.user import User
from vidcat.db.storage import Storage, get_storage
from vidcat.schemas import CommentCreate, CommentUpdate, CommentResponse, MAX_ID
from vidcat.services.activity import log_activity

router = APIRouter()
logger = structlog.get_logger()


def cooldown_remaining(storage: Storage, user_id: int, now: Optional[datetime] = None) -> float:
    """Seconds the user still has to wait before commenting again.

    Read from the user's latest comment row, so every API process sees the
    same window.
    """
    latest = storage.get_latest_comment_by_user(user_id)
    if latest is None or latest.created_at is None:
        return 0.0
    elapsed = ((now or datetime.utcnow()) - latest.created_at).total_seconds()
    return max(settings.comment_cooldown_seconds - elapsed, 0.0)


@router.get("", response_model=List[CommentResponse])
async def list_comments(
    video_id: int = Query(..., alias="videoId", gt=0, le=MAX_ID),
    storage: Storage = Depends(get_storage)
):
    """Get the comments of a video, oldest first"""
    return storage.get_comments_by_video(video_id)


@router.post("", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment(
    data: CommentCreate,
    request: Request,
    storage: Storage = Depends(get_storage),
    user: User = Depends(get_current_user_required)
):
    if not storage.get_video(data.video_id):
        raise APIError(status.HTTP_404_NOT_FOUND, "Video not found")

    wait = cooldown_remaining(storage, user.id)
    if wait > 0:
        logger.info("Comment cooldown active", user_id=user.id, wait=wait)
        raise APIError(
            status.HTTP_429_TOO_MANY_REQUESTS,
            "Please wait before commenting again",
            details={"waitTime": math.ceil(wait)},
        )

    comment = storage.create_comment(data.video_id, user.id, data.content)

    log_activity(
        storage, "CREATE", "comment", comment.id, user_id=user.id,
        details=f"Commented on video {data.video_id}", request=request,
    )
    return comment


@router.api_route("/{comment_id}", methods=["PUT", "PATCH"], response_model=CommentResponse)
async def update_comment(
    comment_id: EntityId,
    data: CommentUpdate,
    request: Request,
    storage: Storage = Depends(get_storage),
    user: User = Depends(get_current_user_required)
):
    """Edit a comment (author or admin)"""
    comment = storage.get_comment(comment_id)
    if not comment:
        raise APIError(status.HTTP_404_NOT_FOUND, "Comment not found")

    ensure_owner_or_admin(user, comment.user_id)

    comment = storage.update_comment(comment_id, data.content)
    if not comment:
        raise APIError(status.HTTP_404_NOT_FOUND, "Comment not found")

    log_activity(storage, "UPDATE", "comment", comment.id, user_id=user.id, request=request)
    return comment


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    comment_id: EntityId,
    request: Request,
    storage: Storage = Depends(get_storage),
    user: User = Depends(get_current_user_required)
):
    """Delete a comment (author or admin)"""
    comment = storage.get_comment(comment_id)
    if not comment:
        raise APIError(status.HTTP_404_NOT_FOUND, "Comment not found")

    ensure_owner_or_admin(user, comment.user_id)

    if not storage.delete_comment(comment_id):
        raise APIError(status.HTTP_404_NOT_FOUND, "Comment not found")

    log_activity(storage, "DELETE", "comment", comment_id, user_id=user.id, request=request)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
