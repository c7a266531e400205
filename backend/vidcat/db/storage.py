"""
Data-access layer.

``Storage`` wraps a SQLAlchemy session and exposes one method per entity
operation. Reads return ``None`` for missing rows. Deletes that would leave
dependent rows behind return ``False`` instead of raising, so routes can
answer with a 4xx. Upserts are issued as a single
``INSERT ... ON CONFLICT DO UPDATE`` so the unique constraint, not the
application, decides between insert and update.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

import structlog
from fastapi import Depends
from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from vidcat.db.models import (
    ActivityLog,
    Category,
    Comment,
    Rating,
    Subcategory,
    Tag,
    User,
    Video,
    VideoTag,
    WatchedChannel,
)
from vidcat.db.session import get_db

logger = structlog.get_logger()


class Storage:

    def __init__(self, db: Session):
        self.db = db

    # ---- helpers ----

    def _commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise

    def _insert(self, model):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(model)
        if dialect == "sqlite":
            return sqlite.insert(model)
        raise NotImplementedError(f"Upsert not supported on {dialect}")

    def _upsert(
        self,
        model,
        values: Dict[str, Any],
        conflict_columns: List[str],
        update_columns: Iterable[str],
    ) -> None:
        stmt = self._insert(model).values(**values)
        set_ = {col: stmt.excluded[col] for col in update_columns}
        if "updated_at" in model.__table__.columns:
            set_["updated_at"] = datetime.utcnow()
        stmt = stmt.on_conflict_do_update(index_elements=conflict_columns, set_=set_)
        self.db.execute(stmt)
        self._commit()

    def _update(self, row, data: Dict[str, Any]):
        for key, value in data.items():
            setattr(row, key, value)
        self._commit()
        self.db.refresh(row)
        return row

    def _exists(self, query) -> bool:
        return self.db.query(query.exists()).scalar()

    # ---- users ----

    def get_users(self) -> List[User]:
        return self.db.query(User).order_by(User.id).all()

    def get_user(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_user_by_username(self, username: str) -> Optional[User]:
        return self.db.query(User).filter(User.username == username).first()

    def create_user(self, username: str, hashed_password: str, is_admin: bool = False) -> User:
        user = User(username=username, hashed_password=hashed_password, is_admin=is_admin)
        self.db.add(user)
        self._commit()
        self.db.refresh(user)
        return user

    def update_user(self, user_id: int, data: Dict[str, Any]) -> Optional[User]:
        user = self.get_user(user_id)
        if not user:
            return None
        return self._update(user, data)

    def touch_last_login(self, user: User) -> User:
        return self._update(user, {"last_login": datetime.utcnow()})

    def delete_user(self, user_id: int) -> bool:
        """Delete a user with their comments and ratings; audit rows keep a NULL actor"""
        user = self.get_user(user_id)
        if not user:
            return False
        self.db.delete(user)
        self._commit()
        return True

    # ---- categories ----

    def get_categories(self) -> List[Category]:
        return self.db.query(Category).order_by(Category.name).all()

    def get_category(self, category_id: int) -> Optional[Category]:
        return self.db.query(Category).filter(Category.id == category_id).first()

    def get_category_by_slug(self, slug: str) -> Optional[Category]:
        return self.db.query(Category).filter(Category.slug == slug).first()

    def create_category(self, data: Dict[str, Any]) -> Category:
        category = Category(**data)
        self.db.add(category)
        self._commit()
        self.db.refresh(category)
        return category

    def update_category(self, category_id: int, data: Dict[str, Any]) -> Optional[Category]:
        category = self.get_category(category_id)
        if not category:
            return None
        return self._update(category, data)

    def category_has_dependents(self, category_id: int) -> bool:
        return (
            self._exists(self.db.query(Video).filter(Video.category_id == category_id))
            or self._exists(self.db.query(Subcategory).filter(Subcategory.category_id == category_id))
            or self._exists(self.db.query(Category).filter(Category.parent_id == category_id))
        )

    def delete_category(self, category_id: int) -> bool:
        category = self.get_category(category_id)
        if not category or self.category_has_dependents(category_id):
            return False
        return self._delete(category, entity="category")

    # ---- subcategories ----

    def get_subcategories(self) -> List[Subcategory]:
        return self.db.query(Subcategory).order_by(Subcategory.name).all()

    def get_subcategories_by_category(self, category_id: int) -> List[Subcategory]:
        return self.db.query(Subcategory).filter(
            Subcategory.category_id == category_id
        ).order_by(Subcategory.name).all()

    def get_subcategory(self, subcategory_id: int) -> Optional[Subcategory]:
        return self.db.query(Subcategory).filter(Subcategory.id == subcategory_id).first()

    def create_subcategory(self, data: Dict[str, Any]) -> Subcategory:
        subcategory = Subcategory(**data)
        self.db.add(subcategory)
        self._commit()
        self.db.refresh(subcategory)
        return subcategory

    def update_subcategory(self, subcategory_id: int, data: Dict[str, Any]) -> Optional[Subcategory]:
        subcategory = self.get_subcategory(subcategory_id)
        if not subcategory:
            return None
        return self._update(subcategory, data)

    def subcategory_has_dependents(self, subcategory_id: int) -> bool:
        return self._exists(self.db.query(Video).filter(Video.subcategory_id == subcategory_id))

    def delete_subcategory(self, subcategory_id: int) -> bool:
        subcategory = self.get_subcategory(subcategory_id)
        if not subcategory or self.subcategory_has_dependents(subcategory_id):
            return False
        return self._delete(subcategory, entity="subcategory")

    # ---- tags ----

    def get_tags(self) -> List[Tag]:
        return self.db.query(Tag).order_by(Tag.name).all()

    def get_tag(self, tag_id: int) -> Optional[Tag]:
        return self.db.query(Tag).filter(Tag.id == tag_id).first()

    def get_tags_by_ids(self, tag_ids: Iterable[int]) -> List[Tag]:
        ids = set(tag_ids)
        if not ids:
            return []
        return self.db.query(Tag).filter(Tag.id.in_(ids)).all()

    def create_tag(self, data: Dict[str, Any]) -> Tag:
        tag = Tag(**data)
        self.db.add(tag)
        self._commit()
        self.db.refresh(tag)
        return tag

    def update_tag(self, tag_id: int, data: Dict[str, Any]) -> Optional[Tag]:
        tag = self.get_tag(tag_id)
        if not tag:
            return None
        return self._update(tag, data)

    def delete_tag(self, tag_id: int) -> bool:
        tag = self.get_tag(tag_id)
        if not tag or self._exists(self.db.query(VideoTag).filter(VideoTag.tag_id == tag_id)):
            return False
        return self._delete(tag, entity="tag")

    # ---- videos ----

    def get_videos(
        self,
        offset: int = 0,
        limit: int = 10,
        category_id: Optional[int] = None,
        subcategory_id: Optional[int] = None,
        tag_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[Video], int]:
        query = self.db.query(Video)

        if category_id is not None:
            query = query.filter(Video.category_id == category_id)

        if subcategory_id is not None:
            query = query.filter(Video.subcategory_id == subcategory_id)

        if tag_id is not None:
            query = query.join(VideoTag, VideoTag.video_id == Video.id).filter(VideoTag.tag_id == tag_id)

        if search:
            pattern = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            query = query.filter(Video.title.ilike(f"%{pattern}%", escape="\\"))

        total = query.count()
        videos = query.order_by(
            Video.created_at.desc(), Video.id.desc()
        ).offset(offset).limit(limit).all()

        return videos, total

    def get_video(self, video_id: int) -> Optional[Video]:
        return self.db.query(Video).filter(Video.id == video_id).first()

    def get_video_by_youtube_id(self, youtube_id: str) -> Optional[Video]:
        return self.db.query(Video).filter(Video.youtube_id == youtube_id).first()

    def create_video(self, data: Dict[str, Any], tag_ids: Iterable[int] = ()) -> Video:
        video = Video(**data)
        video.tag_links = [VideoTag(tag_id=tag_id) for tag_id in set(tag_ids)]
        self.db.add(video)
        self._commit()
        self.db.refresh(video)
        return video

    def update_video(
        self,
        video_id: int,
        data: Dict[str, Any],
        tag_ids: Optional[Iterable[int]] = None,
    ) -> Optional[Video]:
        video = self.get_video(video_id)
        if not video:
            return None
        if tag_ids is not None:
            self._replace_tag_links(video, tag_ids)
        return self._update(video, data)

    def set_video_tags(self, video_id: int, tag_ids: Iterable[int]) -> Optional[Video]:
        return self.update_video(video_id, {}, tag_ids=tag_ids)

    def _replace_tag_links(self, video: Video, tag_ids: Iterable[int]) -> None:
        wanted = set(tag_ids)
        video.tag_links = [link for link in video.tag_links if link.tag_id in wanted]
        current = {link.tag_id for link in video.tag_links}
        for tag_id in wanted - current:
            video.tag_links.append(VideoTag(tag_id=tag_id))
        self.db.flush()

    def increment_video_views(self, video_id: int) -> Optional[Video]:
        updated = self.db.query(Video).filter(Video.id == video_id).update(
            {Video.views: Video.views + 1}, synchronize_session=False
        )
        self._commit()
        if not updated:
            return None
        return self.get_video(video_id)

    def delete_video(self, video_id: int) -> bool:
        """Delete a video together with its tag links, comments and ratings"""
        video = self.get_video(video_id)
        if not video:
            return False
        return self._delete(video, entity="video")

    def upsert_video(self, data: Dict[str, Any]) -> Tuple[Video, bool]:
        """Insert or update a video keyed by its YouTube id"""
        created = self.get_video_by_youtube_id(data["youtube_id"]) is None
        update_columns = [key for key in data if key != "youtube_id"]
        self._upsert(Video, data, ["youtube_id"], update_columns)
        return self.get_video_by_youtube_id(data["youtube_id"]), created

    # ---- comments ----

    def get_comments_by_video(self, video_id: int) -> List[Comment]:
        return self.db.query(Comment).filter(
            Comment.video_id == video_id
        ).order_by(Comment.created_at.asc(), Comment.id.asc()).all()

    def get_comment(self, comment_id: int) -> Optional[Comment]:
        return self.db.query(Comment).filter(Comment.id == comment_id).first()

    def get_latest_comment_by_user(self, user_id: int) -> Optional[Comment]:
        return self.db.query(Comment).filter(
            Comment.user_id == user_id
        ).order_by(Comment.created_at.desc(), Comment.id.desc()).first()

    def create_comment(self, video_id: int, user_id: int, content: str) -> Comment:
        comment = Comment(video_id=video_id, user_id=user_id, content=content)
        self.db.add(comment)
        self._commit()
        self.db.refresh(comment)
        return comment

    def update_comment(self, comment_id: int, content: str) -> Optional[Comment]:
        comment = self.get_comment(comment_id)
        if not comment:
            return None
        return self._update(comment, {"content": content})

    def delete_comment(self, comment_id: int) -> bool:
        comment = self.get_comment(comment_id)
        if not comment:
            return False
        return self._delete(comment, entity="comment")

    # ---- ratings ----

    def get_rating(self, video_id: int, user_id: int) -> Optional[Rating]:
        return self.db.query(Rating).filter(
            Rating.video_id == video_id,
            Rating.user_id == user_id,
        ).first()

    def upsert_rating(self, video_id: int, user_id: int, score: int) -> Rating:
        self._upsert(
            Rating,
            {"video_id": video_id, "user_id": user_id, "score": score},
            ["video_id", "user_id"],
            ["score"],
        )
        return self.get_rating(video_id, user_id)

    def get_average_rating(self, video_id: int) -> Optional[float]:
        average = self.db.query(func.avg(Rating.score)).filter(
            Rating.video_id == video_id
        ).scalar()
        if average is None:
            return None
        return round(float(average), 2)

    def count_ratings(self, video_id: Optional[int] = None) -> int:
        query = self.db.query(func.count(Rating.id))
        if video_id is not None:
            query = query.filter(Rating.video_id == video_id)
        return query.scalar() or 0

    # ---- activity logs ----

    def create_activity_log(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[int] = None,
        user_id: Optional[int] = None,
        details: Optional[str] = None,
        ip_address: Optional[str] = None,
    ) -> ActivityLog:
        entry = ActivityLog(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            details=details,
            ip_address=ip_address,
        )
        self.db.add(entry)
        self._commit()
        return entry

    def get_activity_logs(
        self,
        offset: int = 0,
        limit: int = 50,
        entity_type: Optional[str] = None,
    ) -> Tuple[List[ActivityLog], int]:
        query = self.db.query(ActivityLog)
        if entity_type:
            query = query.filter(ActivityLog.entity_type == entity_type)
        total = query.count()
        logs = query.order_by(
            ActivityLog.timestamp.desc(), ActivityLog.id.desc()
        ).offset(offset).limit(limit).all()
        return logs, total

    # ---- watched channels ----

    def get_watched_channels(self) -> List[WatchedChannel]:
        return self.db.query(WatchedChannel).order_by(WatchedChannel.created_at.desc()).all()

    def get_watched_channel(self, watched_id: int) -> Optional[WatchedChannel]:
        return self.db.query(WatchedChannel).filter(WatchedChannel.id == watched_id).first()

    def get_watched_channel_by_channel_id(self, channel_id: str) -> Optional[WatchedChannel]:
        return self.db.query(WatchedChannel).filter(WatchedChannel.channel_id == channel_id).first()

    def upsert_watched_channel(self, channel_id: str, frequency: str) -> Tuple[WatchedChannel, bool]:
        created = self.get_watched_channel_by_channel_id(channel_id) is None
        self._upsert(
            WatchedChannel,
            {"channel_id": channel_id, "frequency": frequency},
            ["channel_id"],
            ["frequency"],
        )
        return self.get_watched_channel_by_channel_id(channel_id), created

    def mark_channel_checked(self, watched_id: int, checked_at: Optional[datetime] = None) -> Optional[WatchedChannel]:
        channel = self.get_watched_channel(watched_id)
        if not channel:
            return None
        return self._update(channel, {"last_check": checked_at or datetime.utcnow()})

    def get_due_channels(self, now: Optional[datetime] = None) -> List[WatchedChannel]:
        now = now or datetime.utcnow()
        return [channel for channel in self.get_watched_channels() if channel.is_due(now)]

    def delete_watched_channel(self, watched_id: int) -> bool:
        channel = self.get_watched_channel(watched_id)
        if not channel:
            return False
        return self._delete(channel, entity="watched_channel")

    # ---- counters ----

    def count_users(self) -> int:
        return self.db.query(func.count(User.id)).scalar() or 0

    def count_categories(self) -> int:
        return self.db.query(func.count(Category.id)).scalar() or 0

    def count_subcategories(self) -> int:
        return self.db.query(func.count(Subcategory.id)).scalar() or 0

    def count_tags(self) -> int:
        return self.db.query(func.count(Tag.id)).scalar() or 0

    def count_videos(self) -> int:
        return self.db.query(func.count(Video.id)).scalar() or 0

    def count_comments(self) -> int:
        return self.db.query(func.count(Comment.id)).scalar() or 0

    # ---- deletes ----

    def _delete(self, row, entity: str) -> bool:
        """Delete a row; a foreign-key violation leaves it in place and returns False"""
        self.db.delete(row)
        try:
            self._commit()
        except IntegrityError as e:
            logger.warning("Delete blocked by dependent rows", entity=entity, error=str(e.orig))
            return False
        return True


def get_storage(db: Session = Depends(get_db)) -> Storage:
    return Storage(db)
