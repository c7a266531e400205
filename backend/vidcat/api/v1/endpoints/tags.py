from typing import List

import structlog
from fastapi import APIRouter, Depends, Request, Response, status
from slugify import slugify
from sqlalchemy.exc import IntegrityError

from vidcat.api.deps import EntityId
from vidcat.core.errors import APIError, classify_integrity_error, UNIQUE_VIOLATION
from vidcat.core.security import get_admin_user
from vidcat.db.models.user import User
from vidcat.db.storage import Storage, get_storage
from vidcat.schemas import TagCreate, TagUpdate, TagResponse
from vidcat.services.activity import log_activity

router = APIRouter()
logger = structlog.get_logger()


@router.get("", response_model=List[TagResponse])
async def list_tags(storage: Storage = Depends(get_storage)):
    return storage.get_tags()


@router.get("/{tag_id}", response_model=TagResponse)
async def get_tag(tag_id: EntityId, storage: Storage = Depends(get_storage)):
    tag = storage.get_tag(tag_id)
    if not tag:
        raise APIError(status.HTTP_404_NOT_FOUND, "Tag not found")
    return tag


@router.post("", response_model=TagResponse, status_code=status.HTTP_201_CREATED)
async def create_tag(
    data: TagCreate,
    request: Request,
    storage: Storage = Depends(get_storage),
    admin: User = Depends(get_admin_user)
):
    """Create a tag; the slug is derived from the name when omitted"""
    values = data.model_dump()
    values["slug"] = values.get("slug") or slugify(data.name)
    if not values["slug"]:
        raise APIError(status.HTTP_400_BAD_REQUEST, "Cannot derive a slug from this name")

    try:
        tag = storage.create_tag(values)
    except IntegrityError as e:
        if classify_integrity_error(e) == UNIQUE_VIOLATION:
            raise APIError(status.HTTP_409_CONFLICT, "A tag with this name or slug already exists")
        raise

    log_activity(
        storage, "CREATE", "tag", tag.id, user_id=admin.id,
        details=f"Created tag: {tag.name}", request=request,
    )
    return tag


@router.api_route("/{tag_id}", methods=["PUT", "PATCH"], response_model=TagResponse)
async def update_tag(
    tag_id: EntityId,
    data: TagUpdate,
    request: Request,
    storage: Storage = Depends(get_storage),
    admin: User = Depends(get_admin_user)
):
    if not storage.get_tag(tag_id):
        raise APIError(status.HTTP_404_NOT_FOUND, "Tag not found")

    changes = data.model_dump(exclude_unset=True)
    for field in ("name", "slug"):
        if changes.get(field) is None:
            changes.pop(field, None)

    try:
        tag = storage.update_tag(tag_id, changes)
    except IntegrityError as e:
        if classify_integrity_error(e) == UNIQUE_VIOLATION:
            raise APIError(status.HTTP_409_CONFLICT, "A tag with this name or slug already exists")
        raise

    if not tag:
        raise APIError(status.HTTP_404_NOT_FOUND, "Tag not found")

    log_activity(
        storage, "UPDATE", "tag", tag.id, user_id=admin.id,
        details=f"Updated fields: {', '.join(sorted(changes)) or 'none'}", request=request,
    )
    return tag


@router.delete("/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tag(
    tag_id: EntityId,
    request: Request,
    storage: Storage = Depends(get_storage),
    admin: User = Depends(get_admin_user)
):
    tag = storage.get_tag(tag_id)
    if not tag:
        raise APIError(status.HTTP_404_NOT_FOUND, "Tag not found")

    name = tag.name
    if not storage.delete_tag(tag_id):
        raise APIError(status.HTTP_409_CONFLICT, "Cannot delete a tag that is attached to videos")

    log_activity(
        storage, "DELETE", "tag", tag_id, user_id=admin.id,
        details=f"Deleted tag: {name}", request=request,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
