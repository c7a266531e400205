from typing import Optional

from fastapi import APIRouter, Depends, Query

from vidcat.api.deps import Pagination, get_pagination
from vidcat.core.security import get_admin_user
from vidcat.db.storage import Storage, get_storage
from vidcat.schemas import StatsResponse, ActivityLogPage, ActivityLogResponse

router = APIRouter()


@router.get("/stats", response_model=StatsResponse)
async def get_stats(
    storage: Storage = Depends(get_storage),
    _admin = Depends(get_admin_user)
):
    """Get platform statistics (admin only)"""
    return StatsResponse(
        total_users=storage.count_users(),
        total_categories=storage.count_categories(),
        total_subcategories=storage.count_subcategories(),
        total_tags=storage.count_tags(),
        total_videos=storage.count_videos(),
        total_comments=storage.count_comments(),
        total_ratings=storage.count_ratings(),
    )


@router.get("/activity-logs", response_model=ActivityLogPage)
async def get_activity_logs(
    pagination: Pagination = Depends(get_pagination),
    entity_type: Optional[str] = Query(None, alias="entityType", max_length=50),
    storage: Storage = Depends(get_storage),
    _admin = Depends(get_admin_user)
):
    """Audit trail, newest first (admin only)"""
    logs, total = storage.get_activity_logs(
        offset=pagination.offset,
        limit=pagination.limit,
        entity_type=entity_type,
    )
    return ActivityLogPage(
        data=[ActivityLogResponse.model_validate(log) for log in logs],
        page=pagination.page,
        limit=pagination.limit,
        total=total,
    )
