"""
Bounded, newest-first view of an event's uploads kept current by the change feed
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.schemas.upload import Upload
from app.services.mappers import media_from_row, message_from_row
from app.services.realtime import RealtimeHub, Subscription, realtime_hub
from app.services.repositories import MediaRepo, MessageRepo

logger = logging.getLogger(__name__)

FEED_TABLES = ("media", "messages")


class LiveFeed:
    """Latest media and messages for one event.

    The initial snapshot is merged and sorted once. Inserts that arrive later
    are assumed newer than anything held and are prepended without re-sorting.
    """

    def __init__(
        self,
        event_id: str,
        db: Session,
        hub: Optional[RealtimeHub] = None,
        fetch_limit: Optional[int] = None,
        display_cap: Optional[int] = None,
        on_change: Optional[Callable[[List[Upload], Upload], Any]] = None,
    ):
        self.event_id = event_id
        self.db = db
        self.hub = hub or realtime_hub
        self.fetch_limit = fetch_limit or settings.FEED_FETCH_LIMIT
        self.display_cap = display_cap or settings.FEED_DISPLAY_CAP
        self.on_change = on_change
        self.items: List[Upload] = []
        self._subscriptions: List[Subscription] = []

    @property
    def is_open(self) -> bool:
        return bool(self._subscriptions)

    def open(self) -> List[Upload]:
        """Load the snapshot and start listening for inserts"""
        if self.is_open:
            return self.items

        media = [media_from_row(r) for r in MediaRepo.list_for_event(self.db, self.event_id, self.fetch_limit)]
        messages = [message_from_row(r) for r in MessageRepo.list_for_event(self.db, self.event_id, self.fetch_limit)]
        merged = sorted(media + messages, key=lambda u: u.created_at, reverse=True)
        self.items = merged[: self.display_cap]

        for table in FEED_TABLES:
            self._subscriptions.append(self.hub.subscribe(table, self.event_id, self._on_insert))
        logger.info(f"Live feed opened for event {self.event_id} with {len(self.items)} items")
        return self.items

    async def _on_insert(self, table: str, record: Dict[str, Any]) -> None:
        upload = media_from_row(record) if table == "media" else message_from_row(record)
        self.items = [upload] + self.items[: self.display_cap - 1]
        if self.on_change is not None:
            result = self.on_change(self.items, upload)
            if inspect.isawaitable(result):
                await result

    def close(self) -> None:
        """Tear down both subscriptions. Safe to call more than once."""
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        if self._subscriptions:
            logger.info(f"Live feed closed for event {self.event_id}")
        self._subscriptions = []
