from contextlib import asynccontextmanager

import redis
import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from vidcat.api.v1.router import api_router
from vidcat.core.config import settings
from vidcat.core.errors import register_exception_handlers
from vidcat.core.logging import configure_logging
from vidcat.core.security import ensure_admin_user
from vidcat.db.session import engine, Base, SessionLocal

configure_logging(settings)
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    # Startup
    logger.info("Starting Vidcat API", debug=settings.debug)

    if settings.auto_create_tables:
        # Dev convenience; deployments run: alembic upgrade head
        import vidcat.db.models  # noqa: F401
        Base.metadata.create_all(bind=engine)
        logger.info("Database tables ensured")

    if settings.admin_username and settings.admin_password:
        db = SessionLocal()
        try:
            ensure_admin_user(db, settings.admin_username, settings.admin_password)
        finally:
            db.close()

    yield

    # Shutdown
    logger.info("Shutting down Vidcat API")


app = FastAPI(
    title=settings.app_name,
    description="Video catalog with taxonomy, comments, ratings and YouTube import",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include API router
app.include_router(api_router, prefix=settings.api_v1_prefix)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "name": settings.app_name,
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    health = {
        "status": "healthy",
        "database": "unknown",
        "redis": "unknown",
    }

    # Check database
    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        health["database"] = "connected"
    except SQLAlchemyError as e:
        logger.warning("Database health check failed", error=str(e))
        health["database"] = "error"
        health["status"] = "degraded"
    finally:
        db.close()

    # Check Redis
    try:
        redis.from_url(settings.redis_url, socket_connect_timeout=1).ping()
        health["redis"] = "connected"
    except redis.RedisError as e:
        logger.warning("Redis health check failed", error=str(e))
        health["redis"] = "error"
        health["status"] = "degraded"

    return health


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "vidcat.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )
