from datetime import datetime
from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from vidcat.db.session import Base


class Video(Base):
    __tablename__ = "videos"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    youtube_id = Column(String(20), unique=True, nullable=False, index=True)
    title = Column(String(500), nullable=False)
    description = Column(Text)
    thumbnail = Column(String(500))
    duration = Column(Integer)  # seconds
    views = Column(Integer, nullable=False, default=0)
    
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    subcategory_id = Column(Integer, ForeignKey("subcategories.id"), nullable=True, index=True)
    
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    # Relationships
    category = relationship("Category", back_populates="videos")
    subcategory = relationship("Subcategory", back_populates="videos")
    tag_links = relationship("VideoTag", back_populates="video", cascade="all, delete-orphan")
    comments = relationship("Comment", back_populates="video", cascade="all, delete-orphan")
    ratings = relationship("Rating", back_populates="video", cascade="all, delete-orphan")
    
    @property
    def tags(self):
        return [link.tag for link in self.tag_links]
    
    def __repr__(self):
        return f"<Video {self.youtube_id}: {self.title[:50] if self.title else 'Untitled'}>"
