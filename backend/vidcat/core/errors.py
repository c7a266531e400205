"""
Error responses.

Every failure leaves the API as ``{"error": message, "details": ...}``.
Database constraint violations are recognised by the driver's error code
(PostgreSQL SQLSTATE, or the extended SQLite error name) rather than by
matching on message text alone.
"""
from typing import Any, Optional

import structlog
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger()

UNIQUE_VIOLATION = "unique"
FOREIGN_KEY_VIOLATION = "foreign_key"

_PG_CODES = {
    "23505": UNIQUE_VIOLATION,
    "23503": FOREIGN_KEY_VIOLATION,
}

_SQLITE_CODES = {
    "SQLITE_CONSTRAINT_UNIQUE": UNIQUE_VIOLATION,
    "SQLITE_CONSTRAINT_PRIMARYKEY": UNIQUE_VIOLATION,
    "SQLITE_CONSTRAINT_FOREIGNKEY": FOREIGN_KEY_VIOLATION,
}


class APIError(HTTPException):
    """HTTPException with a structured ``details`` payload"""

    def __init__(self, status_code: int, message: str, details: Optional[Any] = None):
        super().__init__(status_code=status_code, detail=message)
        self.details = details


def classify_integrity_error(exc: IntegrityError) -> Optional[str]:
    orig = getattr(exc, "orig", None)

    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if pgcode in _PG_CODES:
        return _PG_CODES[pgcode]

    sqlite_name = getattr(orig, "sqlite_errorname", None)
    if sqlite_name in _SQLITE_CODES:
        return _SQLITE_CODES[sqlite_name]

    # Older sqlite3 modules do not expose the extended error name
    message = str(orig).lower()
    if "unique constraint failed" in message:
        return UNIQUE_VIOLATION
    if "foreign key constraint failed" in message:
        return FOREIGN_KEY_VIOLATION
    return None


def error_body(message: str, details: Optional[Any] = None) -> dict:
    body = {"error": message}
    if details is not None:
        body["details"] = jsonable_encoder(details)
    return body


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail), getattr(exc, "details", None)),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    logger.debug("Request validation failed", path=request.url.path, errors=details)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("Invalid request data", details),
    )


async def integrity_error_handler(request: Request, exc: IntegrityError):
    kind = classify_integrity_error(exc)
    if kind == UNIQUE_VIOLATION:
        logger.warning("Unique constraint violation", path=request.url.path)
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=error_body("Resource already exists"),
        )
    if kind == FOREIGN_KEY_VIOLATION:
        logger.warning("Foreign key violation", path=request.url.path)
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=error_body("Operation conflicts with related resources"),
        )
    logger.error("Unhandled integrity error", path=request.url.path, error=str(exc.orig))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal server error"),
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error", path=request.url.path, method=request.method)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal server error"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
