from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from vidcat.db.session import Base


class Tag(Base):
    __tablename__ = "tags"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), unique=True, nullable=False)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    
    created_at = Column(DateTime, default=datetime.utcnow)
    
    # Relationships
    videos = relationship("VideoTag", back_populates="tag")
    
    def __repr__(self):
        return f"<Tag {self.name}>"


class VideoTag(Base):
    __tablename__ = "video_tags"
    
    video_id = Column(Integer, ForeignKey("videos.id"), primary_key=True)
    tag_id = Column(Integer, ForeignKey("tags.id"), primary_key=True)
    
    # Relationships
    video = relationship("Video", back_populates="tag_links")
    tag = relationship("Tag", back_populates="videos")
