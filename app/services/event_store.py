"""
Single owned store of one host's events
"""

from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional

from app.core.errors import MemoryShareError, NotFoundError, ValidationError
from app.schemas.event import MemoryEvent
from app.services.event_service import TOGGLE_FLAGS, EventService

logger = logging.getLogger(__name__)

Listener = Callable[[List[MemoryEvent]], Any]


class EventStore:
    """Holds the host's event list and mutates it only through its actions.

    Every action returns the new canonical list and notifies subscribers.
    Setting toggles are optimistic: the flag flips locally first and is
    reverted if persisting it fails.
    """

    def __init__(self, service: EventService, host_id: str):
        self.service = service
        self.host_id = host_id
        self.events: List[MemoryEvent] = []
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _commit(self, events: List[MemoryEvent]) -> List[MemoryEvent]:
        self.events = list(events)
        for listener in list(self._listeners):
            listener(self.events)
        return self.events

    def _replace(self, event: MemoryEvent) -> List[MemoryEvent]:
        return self._commit([event if e.id == event.id else e for e in self.events])

    def find(self, event_id: str) -> Optional[MemoryEvent]:
        return next((e for e in self.events if e.id == event_id), None)

    def find_by_share_code(self, share_code: str) -> Optional[MemoryEvent]:
        return next((e for e in self.events if e.share_code == share_code), None)

    def load(self) -> List[MemoryEvent]:
        return self._commit(self.service.list_events(self.host_id))

    def create(self, **fields: Any) -> List[MemoryEvent]:
        event = self.service.create_event(self.host_id, **fields)
        return self._commit([event] + self.events)

    async def update(self, event_id: str, **updates: Any) -> List[MemoryEvent]:
        event = await self.service.update_event(event_id, self.host_id, **updates)
        return self._replace(event)

    async def toggle(self, event_id: str, flag: str, value: Optional[bool] = None) -> List[MemoryEvent]:
        current = self.find(event_id)
        if current is None:
            raise NotFoundError("Event not found")
        if flag not in TOGGLE_FLAGS:
            raise ValidationError(f"Unknown setting: {flag}")
        if value is None:
            value = not getattr(current, flag)

        previous = list(self.events)
        self._replace(current.model_copy(update={flag: bool(value)}))
        try:
            event = await self.service.set_flag(event_id, self.host_id, flag, bool(value))
        except MemoryShareError:
            logger.warning(f"Reverting {flag} on event {event_id} after failed save")
            self._commit(previous)
            raise
        return self._replace(event)

    async def delete(self, event_id: str) -> List[MemoryEvent]:
        result = await self.service.delete_event(event_id, self.host_id)
        if not result.deleted:
            return self.events
        return self._commit([e for e in self.events if e.id != event_id])
