from datetime import datetime, timedelta
from typing import Optional

import jwt
import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from vidcat.core.config import settings
from vidcat.db.models.user import User
from vidcat.db.session import get_db

logger = structlog.get_logger()

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password:
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Unrecognised hash format, e.g. a legacy plaintext value
        return False


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.utcnow() + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> Optional[int]:
    """Return the user id carried by a valid token, None otherwise"""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except jwt.PyJWTError as e:
        logger.debug("Rejected access token", error=str(e))
        return None

    try:
        return int(payload.get("sub"))
    except (TypeError, ValueError):
        return None


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Resolve the caller from the bearer token, None for anonymous callers"""
    if credentials is None:
        return None

    user_id = decode_access_token(credentials.credentials)
    if user_id is None:
        return None

    return db.query(User).filter(User.id == user_id).first()


def get_current_user_required(
    user: Optional[User] = Depends(get_current_user),
) -> User:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def get_admin_user(
    user: User = Depends(get_current_user_required),
) -> User:
    if not user.is_admin:
        logger.warning("Admin access denied", user_id=user.id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin privileges required",
        )
    return user


def ensure_owner_or_admin(user: User, owner_id: int) -> None:
    if user.is_admin or user.id == owner_id:
        return
    logger.warning("Ownership check failed", user_id=user.id, owner_id=owner_id)
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You do not have permission to modify this resource",
    )


def ensure_admin_user(db: Session, username: str, password: str) -> User:
    """Create the bootstrap admin account, or promote an existing one"""
    user = db.query(User).filter(User.username == username).first()
    if user is None:
        user = User(
            username=username,
            hashed_password=get_password_hash(password),
            is_admin=True,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info("Created bootstrap admin account", username=username)
    elif not user.is_admin:
        user.is_admin = True
        db.commit()
        logger.info("Promoted existing account to admin", username=username)
    return user
