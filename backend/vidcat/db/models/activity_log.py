from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from vidcat.db.session import Base


class ActivityLog(Base):
    """Append-only audit trail of create/update/delete actions"""
    __tablename__ = "activity_logs"
    
    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    action = Column(String(20), nullable=False)  # CREATE, UPDATE, DELETE, IMPORT
    entity_type = Column(String(50), nullable=False, index=True)
    entity_id = Column(Integer)
    details = Column(Text)
    ip_address = Column(String(45))
    
    timestamp = Column(DateTime, default=datetime.utcnow, index=True)
    
    # Relationships
    user = relationship("User", back_populates="activity_logs")
