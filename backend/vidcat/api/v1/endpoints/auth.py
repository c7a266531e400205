from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.exc import IntegrityError

from vidcat.core.errors import APIError, classify_integrity_error, UNIQUE_VIOLATION
from vidcat.core.security import (
    verify_password, get_password_hash,
    create_access_token, get_current_user, get_current_user_required
)
from vidcat.db.models.user import User
from vidcat.db.storage import Storage, get_storage
from vidcat.schemas import (
    RegisterRequest, UserLogin, TokenResponse, UserResponse, MessageResponse
)
from vidcat.services.activity import log_activity

router = APIRouter()
logger = structlog.get_logger()


def _token_response(user: User) -> TokenResponse:
    access_token = create_access_token(data={"sub": str(user.id)})
    return TokenResponse(
        access_token=access_token,
        user=UserResponse.model_validate(user),
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: RegisterRequest,
    request: Request,
    storage: Storage = Depends(get_storage)
):
    """Register a new user"""
    if storage.get_user_by_username(data.username):
        raise APIError(status.HTTP_409_CONFLICT, "Username already exists")

    try:
        user = storage.create_user(
            username=data.username,
            hashed_password=get_password_hash(data.password),
        )
    except IntegrityError as e:
        # Lost a race against a concurrent registration; the insert was rolled back
        if classify_integrity_error(e) == UNIQUE_VIOLATION:
            raise APIError(status.HTTP_409_CONFLICT, "Username already exists")
        raise

    logger.info("User registered", user_id=user.id)
    log_activity(storage, "REGISTER", "user", user.id, user_id=user.id, request=request)

    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    request: Request,
    storage: Storage = Depends(get_storage)
):
    """Login with username and password"""
    user = storage.get_user_by_username(credentials.username)

    if not user or not verify_password(credentials.password, user.hashed_password):
        logger.info("Failed login", username=credentials.username)
        raise APIError(status.HTTP_401_UNAUTHORIZED, "Invalid username or password")

    user = storage.touch_last_login(user)
    log_activity(storage, "LOGIN", "user", user.id, user_id=user.id, request=request)

    return _token_response(user)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    user: Optional[User] = Depends(get_current_user),
    storage: Storage = Depends(get_storage)
):
    """Logout (client should discard token)"""
    if user:
        log_activity(storage, "LOGOUT", "user", user.id, user_id=user.id, request=request)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user_required)):
    return user
