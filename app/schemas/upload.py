"""
Guest upload schemas: a closed tagged union of photo, video and message
"""

from datetime import datetime
from typing import Annotated, Literal, Union
from pydantic import BaseModel, Field

class PhotoUpload(BaseModel):
    kind: Literal["photo"] = "photo"
    id: str
    event_id: str
    file_url: str
    guest_name: str
    created_at: datetime

class VideoUpload(BaseModel):
    kind: Literal["video"] = "video"
    id: str
    event_id: str
    file_url: str
    guest_name: str
    created_at: datetime

class MessageUpload(BaseModel):
    kind: Literal["message"] = "message"
    id: str
    event_id: str
    text: str
    guest_name: str
    created_at: datetime

Upload = Annotated[Union[PhotoUpload, VideoUpload, MessageUpload], Field(discriminator="kind")]

MEDIA_KINDS = ("photo", "video")

class MessageCreate(BaseModel):
    """Guest message submission"""
    guest_name: str = ""
    message: str = ""

class UploadPage(BaseModel):
    uploads: list[Upload]
    page: int
    per_page: int
    has_more: bool
    photo_count: int = 0
    video_count: int = 0
    message_count: int = 0
