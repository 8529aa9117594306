"""
Pydantic schemas package
"""

from .common import *
from .event import *
from .upload import *
from .gift import *

__all__ = [
    "StandardResponse",
    "ErrorResponse",
    "EventType",
    "EVENT_TYPE_LABELS",
    "MemoryEvent",
    "EventCreate",
    "EventUpdate",
    "DeleteEventRequest",
    "GuestEventView",
    "PhotoUpload",
    "VideoUpload",
    "MessageUpload",
    "Upload",
    "MessageCreate",
    "UploadPage",
    "Gift",
]
