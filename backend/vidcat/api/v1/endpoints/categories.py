from typing import List

import structlog
from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.exc import IntegrityError

from vidcat.api.deps import EntityId
from vidcat.core.errors import APIError, classify_integrity_error, UNIQUE_VIOLATION
from vidcat.core.security import get_admin_user
from vidcat.db.models.user import User
from vidcat.db.storage import Storage, get_storage
from vidcat.schemas import CategoryCreate, CategoryUpdate, CategoryResponse
from vidcat.services.activity import log_activity

router = APIRouter()
logger = structlog.get_logger()


def _is_descendant(storage: Storage, category_id: int, ancestor_id: int) -> bool:
    seen = set()
    current = storage.get_category(category_id)
    while current is not None and current.parent_id is not None and current.id not in seen:
        if current.parent_id == ancestor_id:
            return True
        seen.add(current.id)
        current = storage.get_category(current.parent_id)
    return False


@router.get("", response_model=List[CategoryResponse])
async def list_categories(storage: Storage = Depends(get_storage)):
    """Get all categories"""
    return storage.get_categories()


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(category_id: EntityId, storage: Storage = Depends(get_storage)):
    category = storage.get_category(category_id)
    if not category:
        raise APIError(status.HTTP_404_NOT_FOUND, "Category not found")
    return category


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    data: CategoryCreate,
    request: Request,
    storage: Storage = Depends(get_storage),
    admin: User = Depends(get_admin_user)
):
    """Create a category (admin only)"""
    if data.parent_id is not None and not storage.get_category(data.parent_id):
        raise APIError(status.HTTP_400_BAD_REQUEST, "Parent category does not exist")

    try:
        category = storage.create_category(data.model_dump())
    except IntegrityError as e:
        if classify_integrity_error(e) == UNIQUE_VIOLATION:
            raise APIError(status.HTTP_409_CONFLICT, "A category with this slug already exists")
        raise

    log_activity(
        storage, "CREATE", "category", category.id, user_id=admin.id,
        details=f"Created category: {category.name}", request=request,
    )
    return category


@router.api_route("/{category_id}", methods=["PUT", "PATCH"], response_model=CategoryResponse)
async def update_category(
    category_id: EntityId,
    data: CategoryUpdate,
    request: Request,
    storage: Storage = Depends(get_storage),
    admin: User = Depends(get_admin_user)
):
    """Update a category (admin only)"""
    if not storage.get_category(category_id):
        raise APIError(status.HTTP_404_NOT_FOUND, "Category not found")

    changes = data.model_dump(exclude_unset=True)
    for field in ("name", "slug"):
        if changes.get(field) is None:
            changes.pop(field, None)
    parent_id = changes.get("parent_id")
    if parent_id is not None:
        if parent_id == category_id:
            raise APIError(status.HTTP_400_BAD_REQUEST, "A category cannot be its own parent")
        if not storage.get_category(parent_id):
            raise APIError(status.HTTP_400_BAD_REQUEST, "Parent category does not exist")
        if _is_descendant(storage, parent_id, category_id):
            raise APIError(status.HTTP_400_BAD_REQUEST, "A category cannot be moved under its own descendant")

    try:
        category = storage.update_category(category_id, changes)
    except IntegrityError as e:
        if classify_integrity_error(e) == UNIQUE_VIOLATION:
            raise APIError(status.HTTP_409_CONFLICT, "A category with this slug already exists")
        raise

    if not category:
        # Removed between the existence check and the update
        raise APIError(status.HTTP_404_NOT_FOUND, "Category not found")

    log_activity(
        storage, "UPDATE", "category", category.id, user_id=admin.id,
        details=f"Updated fields: {', '.join(sorted(changes)) or 'none'}", request=request,
    )
    return category


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(
    category_id: EntityId,
    request: Request,
    storage: Storage = Depends(get_storage),
    admin: User = Depends(get_admin_user)
):
    """Delete a category that no videos, subcategories or child categories use"""
    category = storage.get_category(category_id)
    if not category:
        raise APIError(status.HTTP_404_NOT_FOUND, "Category not found")

    name = category.name
    if not storage.delete_category(category_id):
        logger.info("Category delete blocked", category_id=category_id)
        raise APIError(
            status.HTTP_409_CONFLICT,
            "Cannot delete category with associated videos or subcategories",
        )

    log_activity(
        storage, "DELETE", "category", category_id, user_id=admin.id,
        details=f"Deleted category: {name}", request=request,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
