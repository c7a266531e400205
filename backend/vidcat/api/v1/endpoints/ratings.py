from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, Request, status

from vidcat.core.errors import APIError
from vidcat.core.rate_limit import RateLimiter, enforce_user_rate_limit, get_rate_limiter
from vidcat.core.security import get_current_user, get_current_user_required
from vidcat.db.models.user import User
from vidcat.db.storage import Storage, get_storage
from vidcat.schemas import (
    RatingCreate, RatingResponse, RatingSummary, RatingSubmitResponse, MAX_ID
)
from vidcat.services.activity import log_activity

router = APIRouter()
logger = structlog.get_logger()


@router.get("", response_model=RatingSummary)
async def get_rating_summary(
    video_id: int = Query(..., alias="videoId", gt=0, le=MAX_ID),
    storage: Storage = Depends(get_storage),
    user: Optional[User] = Depends(get_current_user)
):
    """Average rating of a video, plus the caller's own score when signed in"""
    if not storage.get_video(video_id):
        raise APIError(status.HTTP_404_NOT_FOUND, "Video not found")

    own = storage.get_rating(video_id, user.id) if user else None
    return RatingSummary(
        user_rating=own.score if own else None,
        average_rating=storage.get_average_rating(video_id),
        rating_count=storage.count_ratings(video_id),
    )


@router.post("", response_model=RatingSubmitResponse, status_code=status.HTTP_201_CREATED)
async def submit_rating(
    data: RatingCreate,
    request: Request,
    storage: Storage = Depends(get_storage),
    user: User = Depends(get_current_user_required),
    limiter: RateLimiter = Depends(get_rate_limiter)
):
    """Rate a video; a second submission replaces the caller's previous score"""
    if not storage.get_video(data.video_id):
        raise APIError(status.HTTP_404_NOT_FOUND, "Video not found")

    enforce_user_rate_limit(limiter, user)

    rating = storage.upsert_rating(data.video_id, user.id, data.score)

    log_activity(
        storage, "RATE", "video", data.video_id, user_id=user.id,
        details=f"Rated {data.score}", request=request,
    )
    return RatingSubmitResponse(
        rating=RatingResponse.model_validate(rating),
        average_rating=storage.get_average_rating(data.video_id),
        rating_count=storage.count_ratings(data.video_id),
    )
