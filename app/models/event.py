"""
Event model
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Boolean, DateTime

from app.core.db import Base

def new_id() -> str:
    return str(uuid.uuid4())

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

class Event(Base):
    __tablename__ = "events"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(128), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    event_type = Column(String(50), nullable=False, default="other")
    custom_type = Column(String(100), nullable=True)
    cover_image = Column(String(1024), nullable=True)
    slug = Column(String(300), unique=True, nullable=False, index=True)
    event_date = Column(DateTime(timezone=True), nullable=True)
    is_uploads_enabled = Column(Boolean, default=True, nullable=False)
    is_messages_enabled = Column(Boolean, default=True, nullable=False)
    is_locked = Column(Boolean, default=False, nullable=False)
    is_live_feed_enabled = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    # media and messages are removed explicitly, see EventService.delete_event
