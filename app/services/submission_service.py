"""
Guest submission gate and guest-side submission flow
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Iterable, List, Optional, Union

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import (
    CapabilityDisabledError,
    LockedError,
    GateRejection,
    NotFoundError,
    NotStartedError,
    PersistenceError,
    ValidationError,
)
from app.schemas.event import GuestEventView, MemoryEvent
from app.schemas.upload import MessageUpload, PhotoUpload, VideoUpload
from app.services.mappers import (
    event_from_row,
    media_from_row,
    media_to_row,
    message_from_row,
    message_to_row,
)
from app.services.realtime import RealtimeHub, realtime_hub
from app.services.repositories import EventRepo, MediaRepo, MessageRepo
from app.services.storage_service import build_object_path, get_storage

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Capability(str, Enum):
    UPLOADS = "uploads"
    MESSAGES = "messages"


class GateState(str, Enum):
    NOT_STARTED = "not_started"
    LOCKED = "locked"
    UPLOADS_OPEN = "uploads_open"
    UPLOADS_CLOSED = "uploads_closed"
    MESSAGES_OPEN = "messages_open"
    MESSAGES_CLOSED = "messages_closed"


OPEN_STATES = (GateState.UPLOADS_OPEN, GateState.MESSAGES_OPEN)


def has_started(event: MemoryEvent, now: Optional[datetime] = None) -> bool:
    if event.event_date is None:
        return True
    return event.event_date <= (now or utc_now())


def seconds_until_start(event: MemoryEvent, now: Optional[datetime] = None) -> int:
    """Countdown shown on the guest page; 0 once the event has started"""
    if has_started(event, now):
        return 0
    return int((event.event_date - (now or utc_now())).total_seconds())


def evaluate_gate(event: MemoryEvent, capability: Capability, now: Optional[datetime] = None) -> GateState:
    """Not started wins over locked; locked wins over the capability flag."""
    if not has_started(event, now):
        return GateState.NOT_STARTED
    if event.is_locked:
        return GateState.LOCKED
    if capability == Capability.UPLOADS:
        return GateState.UPLOADS_OPEN if event.is_uploads_enabled else GateState.UPLOADS_CLOSED
    return GateState.MESSAGES_OPEN if event.is_messages_enabled else GateState.MESSAGES_CLOSED


def enforce_gate(event: MemoryEvent, capability: Capability, now: Optional[datetime] = None) -> None:
    state = evaluate_gate(event, capability, now)
    if state == GateState.NOT_STARTED:
        raise NotStartedError("This event hasn't started yet. Check back when the countdown ends.", event=event)
    if state == GateState.LOCKED:
        raise LockedError("This event is locked and no longer accepting submissions.", event=event)
    if state not in OPEN_STATES:
        label = "Uploads" if capability == Capability.UPLOADS else "Messages"
        raise CapabilityDisabledError(
            f"{label} are currently disabled for this event.",
            capability=capability.value,
            event=event,
        )


def build_guest_view(event: MemoryEvent, now: Optional[datetime] = None) -> GuestEventView:
    return GuestEventView(
        event_id=event.id,
        name=event.name,
        type_label=event.type_label,
        cover_image=event.cover_image,
        share_code=event.share_code,
        event_date=event.event_date,
        seconds_until_start=seconds_until_start(event, now),
        uploads_state=evaluate_gate(event, Capability.UPLOADS, now).value,
        messages_state=evaluate_gate(event, Capability.MESSAGES, now).value,
        is_locked=event.is_locked,
        is_live_feed_enabled=event.is_live_feed_enabled,
    )


@dataclass
class SelectedFile:
    filename: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def file_type(self) -> Optional[str]:
        content_type = self.content_type or ""
        if content_type.startswith("image/"):
            return "photo"
        if content_type.startswith("video/"):
            return "video"
        return None


class GuestSession:
    """One guest's view of an event page between load and submit.

    ``event`` is whatever was read when the page loaded. Submissions never
    trust it: the row is re-read first, and a rejection replaces the cached
    copy so the page stops offering what is no longer allowed.
    """

    def __init__(
        self,
        db: Session,
        event: MemoryEvent,
        storage=None,
        hub: Optional[RealtimeHub] = None,
        clock: Optional[Clock] = None,
    ):
        self.db = db
        self.event = event
        self._storage = storage
        self.hub = hub or realtime_hub
        self.clock = clock or utc_now
        self.selected_files: List[SelectedFile] = []
        self.message_draft = ""
        self.is_submitting = False

    @property
    def storage(self):
        if self._storage is None:
            self._storage = get_storage()
        return self._storage

    @classmethod
    def load(cls, db: Session, share_code: str, **kwargs) -> "GuestSession":
        row = EventRepo.get_by_slug(db, share_code)
        if not row:
            raise NotFoundError("Event not found")
        return cls(db, event_from_row(row), **kwargs)

    def view(self) -> GuestEventView:
        return build_guest_view(self.event, self.clock())

    def add_files(self, files: Iterable[SelectedFile], kind: Optional[str] = None) -> List[SelectedFile]:
        """Queue more files. Files that are not photos/videos (or not ``kind``) are skipped."""
        for f in files:
            if f.file_type is None or (kind and f.file_type != kind):
                logger.info(f"Skipping {f.filename}: unsupported type {f.content_type}")
                continue
            if len(f.content) > settings.MAX_UPLOAD_SIZE:
                raise ValidationError(f"{f.filename} is too large")
            self.selected_files.append(f)
        return self.selected_files

    def remove_file(self, index: int) -> List[SelectedFile]:
        if 0 <= index < len(self.selected_files):
            del self.selected_files[index]
        return self.selected_files

    def _refresh(self, capability: Capability) -> MemoryEvent:
        row = EventRepo.get_by_id(self.db, self.event.id)
        if row is None:
            raise NotFoundError("Event not found")
        fresh = event_from_row(row)
        try:
            enforce_gate(fresh, capability, self.clock())
        except GateRejection as e:
            logger.warning(f"Guest {capability.value} submission rejected for event {fresh.id}: {e.error_code}")
            self.event = fresh
            raise
        self.event = fresh
        return fresh

    def _begin(self, guest_name: str) -> str:
        guest_name = (guest_name or "").strip()
        if not guest_name:
            raise ValidationError("Please enter your name")
        if self.is_submitting:
            raise ValidationError("A submission is already in progress")
        return guest_name

    async def submit_media(self, guest_name: str) -> List[Union[PhotoUpload, VideoUpload]]:
        """Upload the queued files one after another.

        Each file is stored and its row inserted before the next one starts.
        The first failure stops the run: earlier files stay saved, later ones
        are never attempted.
        """
        guest_name = self._begin(guest_name)
        if not self.selected_files:
            raise ValidationError("Select at least one photo or video")

        self.is_submitting = True
        try:
            event = self._refresh(Capability.UPLOADS)
            saved = []
            for f in list(self.selected_files):
                path = build_object_path(event.id, f.filename)
                try:
                    self.storage.upload(path, f.content, f.content_type)
                    row = MediaRepo.insert(
                        self.db,
                        media_to_row(event.id, f.file_type, self.storage.public_url(path), guest_name),
                    )
                except PersistenceError as e:
                    logger.error(
                        f"Upload of {f.filename} for event {event.id} failed after {len(saved)} "
                        f"of {len(self.selected_files)} files: {e}"
                    )
                    raise PersistenceError("Could not upload files. Please try again.") from e
                saved.append(media_from_row(row))
                await self.hub.publish("media", event.id, row)

            self.selected_files = []
            logger.info(f"{len(saved)} file(s) uploaded to event {event.id} by {guest_name}")
            return saved
        finally:
            self.is_submitting = False

    async def submit_message(self, guest_name: str, text: Optional[str] = None) -> MessageUpload:
        guest_name = self._begin(guest_name)
        if text is not None:
            self.message_draft = text
        body = self.message_draft.strip()
        if not body:
            raise ValidationError("Message cannot be empty")

        self.is_submitting = True
        try:
            event = self._refresh(Capability.MESSAGES)
            row = MessageRepo.insert(self.db, message_to_row(event.id, body, guest_name))
            await self.hub.publish("messages", event.id, row)
            self.message_draft = ""
            return message_from_row(row)
        finally:
            self.is_submitting = False
