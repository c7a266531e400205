from typing import List

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.exc import IntegrityError

from vidcat.api.deps import EntityId
from vidcat.core.errors import APIError, classify_integrity_error, UNIQUE_VIOLATION
from vidcat.core.security import (
    get_admin_user, get_current_user_required, ensure_owner_or_admin, get_password_hash
)
from vidcat.db.models.user import User
from vidcat.db.storage import Storage, get_storage
from vidcat.schemas import UserCreate, UserUpdate, UserResponse
from vidcat.services.activity import log_activity

router = APIRouter()
logger = structlog.get_logger()


@router.get("", response_model=List[UserResponse])
async def list_users(
    storage: Storage = Depends(get_storage),
    _admin: User = Depends(get_admin_user)
):
    """List all users (admin only)"""
    return storage.get_users()


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreate,
    request: Request,
    storage: Storage = Depends(get_storage),
    admin: User = Depends(get_admin_user)
):
    """Create a user account (admin only)"""
    if storage.get_user_by_username(data.username):
        raise APIError(status.HTTP_409_CONFLICT, "Username already exists")

    try:
        user = storage.create_user(
            username=data.username,
            hashed_password=get_password_hash(data.password),
            is_admin=data.is_admin,
        )
    except IntegrityError as e:
        if classify_integrity_error(e) == UNIQUE_VIOLATION:
            raise APIError(status.HTTP_409_CONFLICT, "Username already exists")
        raise

    log_activity(
        storage, "CREATE", "user", user.id, user_id=admin.id,
        details=f"Created user: {user.username}", request=request,
    )
    return user


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: EntityId,
    storage: Storage = Depends(get_storage),
    current: User = Depends(get_current_user_required)
):
    """Get a user (admin, or the user themselves)"""
    ensure_owner_or_admin(current, user_id)
    user = storage.get_user(user_id)
    if not user:
        raise APIError(status.HTTP_404_NOT_FOUND, "User not found")
    return user


@router.api_route("/{user_id}", methods=["PUT", "PATCH"], response_model=UserResponse)
async def update_user(
    user_id: EntityId,
    data: UserUpdate,
    request: Request,
    storage: Storage = Depends(get_storage),
    current: User = Depends(get_current_user_required)
):
    """Update a user; only admins may change isAdmin"""
    ensure_owner_or_admin(current, user_id)
    if not storage.get_user(user_id):
        raise APIError(status.HTTP_404_NOT_FOUND, "User not found")

    changes = data.model_dump(exclude_unset=True)
    for field in ("username", "password", "is_admin"):
        if changes.get(field) is None:
            changes.pop(field, None)

    if "is_admin" in changes and not current.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only administrators can change admin status",
        )

    if "password" in changes:
        changes["hashed_password"] = get_password_hash(changes.pop("password"))

    try:
        user = storage.update_user(user_id, changes)
    except IntegrityError as e:
        if classify_integrity_error(e) == UNIQUE_VIOLATION:
            raise APIError(status.HTTP_409_CONFLICT, "Username already exists")
        raise

    if not user:
        raise APIError(status.HTTP_404_NOT_FOUND, "User not found")

    fields = sorted("password" if key == "hashed_password" else key for key in changes)
    log_activity(
        storage, "UPDATE", "user", user.id, user_id=current.id,
        details=f"Updated fields: {', '.join(fields) or 'none'}", request=request,
    )
    return user


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: EntityId,
    request: Request,
    storage: Storage = Depends(get_storage),
    admin: User = Depends(get_admin_user)
):
    """Delete a user with their comments and ratings (admin only)"""
    if user_id == admin.id:
        raise APIError(status.HTTP_400_BAD_REQUEST, "You cannot delete your own account")

    user = storage.get_user(user_id)
    if not user:
        raise APIError(status.HTTP_404_NOT_FOUND, "User not found")

    username = user.username
    if not storage.delete_user(user_id):
        raise APIError(status.HTTP_404_NOT_FOUND, "User not found")

    logger.info("User deleted", user_id=user_id, by=admin.id)
    log_activity(
        storage, "DELETE", "user", user_id, user_id=admin.id,
        details=f"Deleted user: {username}", request=request,
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
