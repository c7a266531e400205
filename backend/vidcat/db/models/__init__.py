from vidcat.db.models.user import User
from vidcat.db.models.category import Category, Subcategory
from vidcat.db.models.tag import Tag, VideoTag
from vidcat.db.models.video import Video
from vidcat.db.models.engagement import Comment, Rating
from vidcat.db.models.activity_log import ActivityLog
from vidcat.db.models.watched_channel import WatchedChannel, CheckFrequency

__all__ = [
    "User",
    "Category",
    "Subcategory",
    "Tag",
    "VideoTag",
    "Video",
    "Comment",
    "Rating",
    "ActivityLog",
    "WatchedChannel",
    "CheckFrequency",
]
