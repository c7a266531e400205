from typing import Annotated, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from vidcat.db.models.watched_channel import CheckFrequency


SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"
YOUTUBE_ID_PATTERN = r"^[A-Za-z0-9_-]{11}$"
MAX_ID = 2**31 - 1

EntityRef = Annotated[int, Field(gt=0, le=MAX_ID)]


class APIModel(BaseModel):
    """camelCase on the wire, snake_case in Python"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(APIModel):
    message: str


# User Schemas
class RegisterRequest(APIModel):
    username: str = Field(..., min_length=3, max_length=100)
    password: str = Field(..., min_length=6, max_length=128)


class UserCreate(RegisterRequest):
    is_admin: bool = False


class UserLogin(APIModel):
    username: str
    password: str


class UserUpdate(APIModel):
    username: Optional[str] = Field(default=None, min_length=3, max_length=100)
    password: Optional[str] = Field(default=None, min_length=6, max_length=128)
    is_admin: Optional[bool] = None


class UserResponse(APIModel):
    id: int
    username: str
    is_admin: bool
    created_at: Optional[datetime] = None
    last_login: Optional[datetime] = None


class TokenResponse(APIModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


# Category Schemas
class CategoryCreate(APIModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: str = Field(..., max_length=100, pattern=SLUG_PATTERN)
    description: Optional[str] = None
    parent_id: Optional[EntityRef] = None


class CategoryUpdate(APIModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    slug: Optional[str] = Field(default=None, max_length=100, pattern=SLUG_PATTERN)
    description: Optional[str] = None
    parent_id: Optional[EntityRef] = None


class CategoryResponse(APIModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    parent_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Subcategory Schemas
class SubcategoryCreate(APIModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: str = Field(..., max_length=100, pattern=SLUG_PATTERN)
    description: Optional[str] = None
    category_id: EntityRef


class SubcategoryUpdate(APIModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    slug: Optional[str] = Field(default=None, max_length=100, pattern=SLUG_PATTERN)
    description: Optional[str] = None
    category_id: Optional[EntityRef] = None


class SubcategoryResponse(APIModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    category_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Tag Schemas
class TagCreate(APIModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: Optional[str] = Field(default=None, max_length=100, pattern=SLUG_PATTERN)


class TagUpdate(APIModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    slug: Optional[str] = Field(default=None, max_length=100, pattern=SLUG_PATTERN)


class TagResponse(APIModel):
    id: int
    name: str
    slug: str
    created_at: Optional[datetime] = None


# Video Schemas
class VideoCreate(APIModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=5000)
    youtube_id: str = Field(..., pattern=YOUTUBE_ID_PATTERN)
    thumbnail: Optional[str] = Field(default=None, max_length=500)
    duration: Optional[int] = Field(default=None, gt=0, le=MAX_ID)
    category_id: Optional[EntityRef] = None
    subcategory_id: Optional[EntityRef] = None
    tag_ids: List[EntityRef] = []


class VideoUpdate(APIModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=5000)
    youtube_id: Optional[str] = Field(default=None, pattern=YOUTUBE_ID_PATTERN)
    thumbnail: Optional[str] = Field(default=None, max_length=500)
    duration: Optional[int] = Field(default=None, gt=0, le=MAX_ID)
    category_id: Optional[EntityRef] = None
    subcategory_id: Optional[EntityRef] = None
    tag_ids: Optional[List[EntityRef]] = None


class VideoResponse(APIModel):
    id: int
    title: str
    description: Optional[str] = None
    youtube_id: str
    thumbnail: Optional[str] = None
    duration: Optional[int] = None
    views: int = 0
    category_id: Optional[int] = None
    subcategory_id: Optional[int] = None
    tags: List[TagResponse] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class VideoDetailResponse(VideoResponse):
    average_rating: Optional[float] = None
    rating_count: int = 0


class VideoPage(APIModel):
    data: List[VideoResponse]
    page: int
    limit: int
    total: int


# Comment Schemas
class CommentCreate(APIModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    video_id: EntityRef
    content: str = Field(..., min_length=1, max_length=1000)


class CommentUpdate(APIModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    content: str = Field(..., min_length=1, max_length=1000)


class CommentResponse(APIModel):
    id: int
    video_id: int
    user_id: int
    username: Optional[str] = None
    content: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Rating Schemas
class RatingCreate(APIModel):
    video_id: EntityRef
    score: int = Field(..., ge=1, le=5)


class RatingResponse(APIModel):
    id: int
    video_id: int
    user_id: int
    score: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class RatingSummary(APIModel):
    user_rating: Optional[int] = None
    average_rating: Optional[float] = None
    rating_count: int = 0


class RatingSubmitResponse(APIModel):
    rating: RatingResponse
    average_rating: Optional[float] = None
    rating_count: int = 0


# Activity Log Schemas
class ActivityLogResponse(APIModel):
    id: int
    user_id: Optional[int] = None
    action: str
    entity_type: str
    entity_id: Optional[int] = None
    details: Optional[str] = None
    ip_address: Optional[str] = None
    timestamp: Optional[datetime] = None


class ActivityLogPage(APIModel):
    data: List[ActivityLogResponse]
    page: int
    limit: int
    total: int


# Import Schemas
class PlaylistImportRequest(APIModel):
    playlist_url: str = Field(..., min_length=1)
    category_id: Optional[EntityRef] = None
    subcategory_id: Optional[EntityRef] = None


class ImportResult(APIModel):
    playlist_id: str
    total: int = 0
    succeeded: int = 0
    created: int = 0
    updated: int = 0
    failed: int = 0


class WatchedChannelCreate(APIModel):
    channel_url: str = Field(..., min_length=1)
    frequency: CheckFrequency = CheckFrequency.DAILY


class WatchedChannelResponse(APIModel):
    id: int
    channel_id: str
    frequency: CheckFrequency
    last_check: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Stats Schemas
class StatsResponse(APIModel):
    total_users: int
    total_categories: int
    total_subcategories: int
    total_tags: int
    total_videos: int
    total_comments: int
    total_ratings: int
