import enum
from datetime import datetime, timedelta
from sqlalchemy import Column, Integer, String, DateTime
from vidcat.db.session import Base


class CheckFrequency(str, enum.Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    
    @property
    def interval(self) -> timedelta:
        return timedelta(days=1) if self is CheckFrequency.DAILY else timedelta(days=7)


class WatchedChannel(Base):
    __tablename__ = "watched_channels"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    channel_id = Column(String(50), unique=True, nullable=False, index=True)
    frequency = Column(String(10), nullable=False, default=CheckFrequency.DAILY.value)
    last_check = Column(DateTime)
    
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    
    def is_due(self, now: datetime) -> bool:
        if self.last_check is None:
            return True
        return now - self.last_check >= CheckFrequency(self.frequency).interval
    
    def __repr__(self):
        return f"<WatchedChannel {self.channel_id} ({self.frequency})>"
