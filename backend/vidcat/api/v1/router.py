from fastapi import APIRouter
from vidcat.api.v1.endpoints import (
    auth, users, videos, categories, subcategories,
    tags, comments, ratings, imports, admin
)

api_router = APIRouter()

# Public endpoints (writes require a bearer token)
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(videos.router, prefix="/videos", tags=["videos"])
api_router.include_router(categories.router, prefix="/categories", tags=["categories"])
api_router.include_router(subcategories.router, prefix="/subcategories", tags=["subcategories"])
api_router.include_router(tags.router, prefix="/tags", tags=["tags"])
api_router.include_router(comments.router, prefix="/comments", tags=["comments"])
api_router.include_router(ratings.router, prefix="/ratings", tags=["ratings"])

# Protected endpoints
api_router.include_router(users.router, prefix="/users", tags=["users"])

# Admin endpoints
api_router.include_router(imports.router, prefix="/import", tags=["import"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
