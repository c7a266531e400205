from typing import Optional

import structlog
from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError

from vidcat.db.storage import Storage

logger = structlog.get_logger()


def client_ip(request: Optional[Request]) -> Optional[str]:
    if request is None:
        return None
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def log_activity(
    storage: Storage,
    action: str,
    entity_type: str,
    entity_id: Optional[int] = None,
    user_id: Optional[int] = None,
    details: Optional[str] = None,
    request: Optional[Request] = None,
) -> bool:
    """Append an audit entry.

    Runs after the primary mutation has been committed, so a failure here is
    rolled back and logged without affecting the caller's response.
    """
    try:
        storage.create_activity_log(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            details=details,
            ip_address=client_ip(request),
        )
        return True
    except SQLAlchemyError as e:
        storage.db.rollback()
        logger.error(
            "Error creating activity log",
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            error=str(e),
        )
        return False
