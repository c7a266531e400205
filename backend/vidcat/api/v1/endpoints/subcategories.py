from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.exc import IntegrityError

from vidcat.api.deps import EntityId
from vidcat.core.errors import APIError, classify_integrity_error, UNIQUE_VIOLATION
from vidcat.core.security import get_admin_user
from vidcat.db.models.user import User
from vidcat.db.storage import Storage, get_storage
from vidcat.schemas import SubcategoryCreate, SubcategoryUpdate, SubcategoryResponse, MAX_ID
from vidcat.services.activity import log_activity

router = APIRouter()
logger = structlog.get_logger()


@router.get("", response_model=List[SubcategoryResponse])
async def list_subcategories(
    category_id: Optional[int] = Query(None, alias="categoryId", gt=0, le=MAX_ID),
    storage: Storage = Depends(get_storage)
):
    """Get subcategories, optionally only those of one category"""
    if category_id is not None:
        return storage.get_subcategories_by_category(category_id)
    return storage.get_subcategories()


@router.get("/{subcategory_id}", response_model=SubcategoryResponse)
async def get_subcategory(subcategory_id: EntityId, storage: Storage = Depends(get_storage)):
    subcategory = storage.get_subcategory(subcategory_id)
    if not subcategory:
        raise APIError(status.HTTP_404_NOT_FOUND, "Subcategory not found")
    return subcategory


@router.post("", response_model=SubcategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_subcategory(
    data: SubcategoryCreate,
    request: Request,
    storage: Storage = Depends(get_storage),
    admin: User = Depends(get_admin_user)
):
    if not storage.get_category(data.category_id):
        raise APIError(status.HTTP_400_BAD_REQUEST, "Category does not exist")

    try:
        subcategory = storage.create_subcategory(data.model_dump())
    except IntegrityError as e:
        if classify_integrity_error(e) == UNIQUE_VIOLATION:
            raise APIError(status.HTTP_409_CONFLICT, "A subcategory with this slug already exists")
        raise

    log_activity(
        storage, "CREATE", "subcategory", subcategory.id, user_id=admin.id,
        details=f"Created subcategory: {subcategory.name}", request=request,
    )
    return subcategory


@router.api_route("/{subcategory_id}", methods=["PUT", "PATCH"], response_model=SubcategoryResponse)
async def update_subcategory(
    subcategory_id: EntityId,
    data: SubcategoryUpdate,
    request: Request,
    storage: Storage = Depends(get_storage),
    admin: User = Depends(get_admin_user)
):
    if not storage.get_subcategory(subcategory_id):
        raise APIError(status.HTTP_404_NOT_FOUND, "Subcategory not found")

    changes = data.model_dump(exclude_unset=True)
    for field in ("name", "slug"):
        if changes.get(field) is None:
            changes.pop(field, None)
    if "category_id" in changes:
        if changes["category_id"] is None:
            raise APIError(status.HTTP_400_BAD_REQUEST, "A subcategory must belong to a category")
        if not storage.get_category(changes["category_id"]):
            raise APIError(status.HTTP_400_BAD_REQUEST, "Category does not exist")

    try:
        subcategory = storage.update_subcategory(subcategory_id, changes)
    except IntegrityError as e:
        if classify_integrity_error(e) == UNIQUE_VIOLATION:
            raise APIError(status.HTTP_409_CONFLICT, "A subcategory with this slug already exists")
        raise

    if not subcategory:
        raise APIError(status.HTTP_404_NOT_FOUND, "Subcategory not found")

    log_activity(
        storage, "UPDATE", "subcategory", subcategory.id, user_id=admin.id,
        details=f"Updated fields: {', '.join(sorted(changes)) or 'none'}", request=request,
    )
    return subcategory


@router.delete("/{subcategory_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_subcategory(
    subcategory_id: EntityId,
    request: Request,
    storage: Storage = Depends(get_storage),
    admin: User = Depends(get_admin_user)
):
    subcategory = storage.get_subcategory(subcategory_id)
    if not subcategory:
        raise APIError(status.HTTP_404_NOT_FOUND, "Subcategory not found")

    name = subcategory.name
    if not storage.delete_subcategory(subcategory_id):
        logger.info("Subcategory delete blocked", subcategory_id=subcategory_id)
        raise APIError(status.HTTP_409_CONFLICT, "Cannot delete subcategory with associated videos")

    log_activity(
        storage, "DELETE", "subcategory", subcategory_id, user_id=admin.id,
        details=f"Deleted subcategory: {name}", request=request,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
