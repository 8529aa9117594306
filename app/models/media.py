"""
Media model (guest photos and videos)
"""

from sqlalchemy import Column, String, DateTime, ForeignKey

from app.core.db import Base
from app.models.event import new_id, utcnow

class Media(Base):
    __tablename__ = "media"

    id = Column(String(36), primary_key=True, default=new_id)
    event_id = Column(String(36), ForeignKey("events.id"), nullable=False, index=True)
    file_type = Column(String(10), nullable=False)  # photo, video
    file_url = Column(String(1024), nullable=False)
    uploaded_by = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
