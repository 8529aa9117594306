"""
Guestbook message model
"""

from sqlalchemy import Column, String, Text, DateTime, ForeignKey

from app.core.db import Base
from app.models.event import new_id, utcnow

class Message(Base):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=new_id)
    event_id = Column(String(36), ForeignKey("events.id"), nullable=False, index=True)
    message = Column(Text, nullable=False)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
