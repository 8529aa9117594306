"""
Event-related Pydantic schemas
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

class EventType(str, Enum):
    WEDDING = "wedding"
    BIRTHDAY = "birthday"
    ANNIVERSARY = "anniversary"
    GRADUATION = "graduation"
    BABY_SHOWER = "baby-shower"
    CORPORATE = "corporate"
    REUNION = "reunion"
    OTHER = "other"

EVENT_TYPE_LABELS = {
    EventType.WEDDING: "Wedding",
    EventType.BIRTHDAY: "Birthday",
    EventType.ANNIVERSARY: "Anniversary",
    EventType.GRADUATION: "Graduation",
    EventType.BABY_SHOWER: "Baby Shower",
    EventType.CORPORATE: "Corporate Event",
    EventType.REUNION: "Reunion",
    EventType.OTHER: "Other",
}

class MemoryEvent(BaseModel):
    """An event as the rest of the application sees it"""
    id: str
    host_id: str
    name: str
    type: EventType = EventType.OTHER
    custom_type: Optional[str] = None
    cover_image: Optional[str] = None
    share_code: str
    event_date: Optional[datetime] = None
    is_uploads_enabled: bool = True
    is_messages_enabled: bool = True
    is_locked: bool = False
    is_live_feed_enabled: bool = False
    created_at: Optional[datetime] = None

    @property
    def type_label(self) -> str:
        if self.type == EventType.OTHER and self.custom_type:
            return self.custom_type
        return EVENT_TYPE_LABELS[self.type]

class EventCreate(BaseModel):
    """Schema for creating an event"""
    name: str
    type: EventType = EventType.OTHER
    custom_type: Optional[str] = None
    cover_image: Optional[str] = None
    event_date: Optional[datetime] = None

class EventUpdate(BaseModel):
    """Partial update from the edit-details wizard or the settings panel"""
    name: Optional[str] = None
    type: Optional[EventType] = None
    custom_type: Optional[str] = None
    cover_image: Optional[str] = None
    event_date: Optional[datetime] = None
    is_uploads_enabled: Optional[bool] = None
    is_messages_enabled: Optional[bool] = None
    is_locked: Optional[bool] = None
    is_live_feed_enabled: Optional[bool] = None

class DeleteEventRequest(BaseModel):
    """Typed confirmation for the irreversible delete"""
    confirm_name: str = Field(default="")

class GuestEventView(BaseModel):
    """What the guest page needs to render the event and its controls"""
    event_id: str
    name: str
    type_label: str
    cover_image: Optional[str] = None
    share_code: str
    event_date: Optional[datetime] = None
    seconds_until_start: int = 0
    uploads_state: str
    messages_state: str
    is_locked: bool
    is_live_feed_enabled: bool
