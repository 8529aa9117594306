"""
Event lifecycle service: creation, settings, ownership-guarded deletion
"""

from __future__ import annotations

import logging
import re
import secrets
import string
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import AuthorizationError, NotFoundError, PersistenceError, ValidationError
from app.schemas.event import EventType, MemoryEvent
from app.schemas.gift import Gift
from app.schemas.upload import UploadPage
from app.services.mappers import (
    event_from_row,
    event_to_row,
    gift_from_row,
    media_from_row,
    message_from_row,
)
from app.services.realtime import RealtimeHub, realtime_hub
from app.services.repositories import EventRepo, GiftRepo, MediaRepo, MessageRepo
from app.services.storage_service import build_object_path, get_storage

logger = logging.getLogger(__name__)

SHARE_CODE_ALPHABET = string.ascii_lowercase + string.digits
SHARE_CODE_SUFFIX_LENGTH = 5
MAX_SHARE_CODE_ATTEMPTS = 10

TOGGLE_FLAGS = ("is_locked", "is_uploads_enabled", "is_messages_enabled", "is_live_feed_enabled")
DETAIL_FIELDS = ("name", "type", "custom_type", "cover_image", "event_date")


class DeletionStage(str, Enum):
    """How far a three-step event deletion got"""
    NOT_STARTED = "not_started"
    MESSAGES_DELETED = "messages_deleted"
    MEDIA_DELETED = "media_deleted"
    EVENT_DELETED = "event_deleted"


@dataclass
class DeletionResult:
    deleted: bool
    stage: DeletionStage


def slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "event"


def generate_share_code(name: str) -> str:
    suffix = "".join(secrets.choice(SHARE_CODE_ALPHABET) for _ in range(SHARE_CODE_SUFFIX_LENGTH))
    return f"{slugify(name)}-{suffix}"


class EventService:
    """Host-side operations on events and their uploads"""

    def __init__(self, db: Session, hub: Optional[RealtimeHub] = None, storage=None):
        self.db = db
        self.hub = hub or realtime_hub
        self._storage = storage

    @property
    def storage(self):
        if self._storage is None:
            self._storage = get_storage()
        return self._storage

    # -------- reads --------

    def list_events(self, host_id: str) -> List[MemoryEvent]:
        return [event_from_row(row) for row in EventRepo.list_for_host(self.db, host_id)]

    def get_event(self, event_id: str, host_id: str) -> MemoryEvent:
        row = EventRepo.get_by_id(self.db, event_id.strip())
        if not row or row.get("user_id") != host_id:
            raise NotFoundError("Event not found")
        return event_from_row(row)

    def get_by_share_code(self, share_code: str) -> MemoryEvent:
        row = EventRepo.get_by_slug(self.db, share_code)
        if not row:
            raise NotFoundError("Event not found")
        return event_from_row(row)

    # -------- create / update --------

    def create_event(
        self,
        host_id: str,
        name: str,
        type: EventType = EventType.OTHER,
        custom_type: Optional[str] = None,
        cover_image: Optional[str] = None,
        event_date: Optional[datetime] = None,
    ) -> MemoryEvent:
        """Create an event with a fresh share code and default guest settings"""
        if not name or not name.strip():
            raise ValidationError("Event name is required")
        name = name.strip()

        share_code = generate_share_code(name)
        attempts = 1
        while EventRepo.slug_exists(self.db, share_code):
            if attempts >= MAX_SHARE_CODE_ATTEMPTS:
                raise PersistenceError("Could not generate a unique share code")
            share_code = generate_share_code(name)
            attempts += 1

        row = event_to_row({
            "host_id": host_id,
            "name": name,
            "type": type,
            "custom_type": custom_type if type == EventType.OTHER else None,
            "cover_image": cover_image,
            "share_code": share_code,
            "event_date": event_date,
            "is_uploads_enabled": True,
            "is_messages_enabled": True,
            "is_locked": False,
            "is_live_feed_enabled": False,
        })
        event = event_from_row(EventRepo.insert(self.db, row))
        logger.info(f"Event {event.id} created by host {host_id} with share code {event.share_code}")
        return event

    async def update_event(self, event_id: str, host_id: str, **updates: Any) -> MemoryEvent:
        """Write the given fields, leaving every other column untouched"""
        fields = {k: v for k, v in updates.items() if v is not None}
        unknown = set(fields) - set(TOGGLE_FLAGS) - set(DETAIL_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown event fields: {', '.join(sorted(unknown))}")
        if "name" in fields:
            if not str(fields["name"]).strip():
                raise ValidationError("Event name is required")
            fields["name"] = fields["name"].strip()
        if not fields:
            return self.get_event(event_id, host_id)

        row = EventRepo.update(self.db, event_id.strip(), host_id, event_to_row(fields))
        if row is None:
            raise NotFoundError("Event not found")

        await self.hub.publish("events", row["id"], row)
        return event_from_row(row)

    async def set_flag(self, event_id: str, host_id: str, flag: str, value: bool) -> MemoryEvent:
        if flag not in TOGGLE_FLAGS:
            raise ValidationError(f"Unknown setting: {flag}")
        return await self.update_event(event_id, host_id, **{flag: bool(value)})

    async def _toggle(self, event_id: str, host_id: str, flag: str, value: Optional[bool]) -> MemoryEvent:
        if value is None:
            current = self.get_event(event_id, host_id)
            value = not getattr(current, flag)
        return await self.set_flag(event_id, host_id, flag, value)

    async def toggle_lock(self, event_id: str, host_id: str, value: Optional[bool] = None) -> MemoryEvent:
        return await self._toggle(event_id, host_id, "is_locked", value)

    async def toggle_uploads_enabled(self, event_id: str, host_id: str, value: Optional[bool] = None) -> MemoryEvent:
        return await self._toggle(event_id, host_id, "is_uploads_enabled", value)

    async def toggle_messages_enabled(self, event_id: str, host_id: str, value: Optional[bool] = None) -> MemoryEvent:
        return await self._toggle(event_id, host_id, "is_messages_enabled", value)

    async def toggle_live_feed_enabled(self, event_id: str, host_id: str, value: Optional[bool] = None) -> MemoryEvent:
        return await self._toggle(event_id, host_id, "is_live_feed_enabled", value)

    async def upload_cover(
        self, event_id: str, host_id: str, filename: str, content: bytes, content_type: Optional[str] = None
    ) -> MemoryEvent:
        """Store a new cover image and point the event at its public URL"""
        event = self.get_event(event_id, host_id)
        if not content_type or not content_type.startswith("image/"):
            raise ValidationError("Cover image must be an image file")
        if len(content) > settings.MAX_UPLOAD_SIZE:
            raise ValidationError("Cover image is too large")

        path = build_object_path(event.id, filename, prefix="cover-")
        self.storage.upload(path, content, content_type)
        return await self.update_event(event.id, host_id, cover_image=self.storage.public_url(path))

    # -------- delete --------

    async def delete_event(self, event_id: str, host_id: str) -> DeletionResult:
        """Delete messages, then media, then the event row owned by ``host_id``.

        The three deletes are not atomic. When a step fails the PersistenceError
        carries the stage reached so the caller can report where it stopped.
        """
        event_id = event_id.strip()
        stage = DeletionStage.NOT_STARTED

        row = EventRepo.get_by_id(self.db, event_id)
        if row is None:
            logger.warning(f"Delete requested for missing event {event_id}")
            return DeletionResult(deleted=False, stage=stage)
        if row.get("user_id") != host_id:
            logger.warning(f"Host {host_id} attempted to delete event {event_id} owned by {row.get('user_id')}")
            if settings.DELETE_OWNERSHIP_FAIL_FAST:
                raise AuthorizationError("You do not own this event")

        try:
            removed = MessageRepo.delete_for_event(self.db, event_id)
            stage = DeletionStage.MESSAGES_DELETED
            logger.info(f"Deleted {removed} messages for event {event_id}")

            removed = MediaRepo.delete_for_event(self.db, event_id)
            stage = DeletionStage.MEDIA_DELETED
            logger.info(f"Deleted {removed} media rows for event {event_id}")

            count = EventRepo.delete(self.db, event_id, host_id)
        except PersistenceError as e:
            e.stage = stage.value
            logger.error(f"Deletion of event {event_id} stopped at stage {stage.value}")
            raise

        if count < 1:
            logger.warning(f"Event {event_id} row was not deleted for host {host_id}")
            return DeletionResult(deleted=False, stage=stage)

        await self.hub.publish("events", event_id, {"id": event_id, "deleted": True})
        return DeletionResult(deleted=True, stage=DeletionStage.EVENT_DELETED)

    def verify_deleted(self, event_id: str) -> bool:
        """Re-read the event; True only when no row comes back.

        A failed read raises PersistenceError rather than reporting the row as present.
        """
        return EventRepo.get_by_id(self.db, event_id.strip()) is None

    # -------- uploads --------

    def list_uploads(self, event_id: str, host_id: str, page: int = 0, per_page: Optional[int] = None) -> UploadPage:
        """One page of media and messages, merged newest first"""
        event = self.get_event(event_id, host_id)
        per_page = per_page or settings.UPLOADS_PAGE_SIZE
        offset = page * per_page

        media = [media_from_row(r) for r in MediaRepo.list_for_event(self.db, event.id, per_page, offset)]
        messages = [message_from_row(r) for r in MessageRepo.list_for_event(self.db, event.id, per_page, offset)]
        unique = {(u.kind, u.id): u for u in media + messages}
        uploads = sorted(unique.values(), key=lambda u: u.created_at, reverse=True)

        return UploadPage(
            uploads=uploads,
            page=page,
            per_page=per_page,
            has_more=len(uploads) >= per_page,
            photo_count=sum(1 for u in uploads if u.kind == "photo"),
            video_count=sum(1 for u in uploads if u.kind == "video"),
            message_count=len(messages),
        )

    def delete_upload(self, event_id: str, host_id: str, upload_id: str) -> bool:
        """Remove one upload; tries messages first, then media"""
        event = self.get_event(event_id, host_id)
        if MessageRepo.delete_by_id(self.db, event.id, upload_id) > 0:
            return True
        return MediaRepo.delete_by_id(self.db, event.id, upload_id) > 0

    def list_gifts(self, event_id: str, host_id: str) -> Tuple[List[Gift], Dict[str, Decimal]]:
        """Recorded gifts and their totals per currency"""
        event = self.get_event(event_id, host_id)
        gifts = [gift_from_row(r) for r in GiftRepo.list_for_event(self.db, event.id)]
        totals: Dict[str, Decimal] = {}
        for gift in gifts:
            totals[gift.currency] = totals.get(gift.currency, Decimal("0")) + gift.amount
        return gifts, totals
