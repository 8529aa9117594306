"""
Tests for the host's event store and its optimistic setting toggles
"""

import asyncio
import pytest

from app.core.errors import NotFoundError, PersistenceError, ValidationError
from app.services.event_service import EventService
from app.services.event_store import EventStore
from app.services.repositories import EventRepo

from conftest import HOST_ID


@pytest.fixture
def store(db_session, hub, storage):
    return EventStore(EventService(db_session, hub=hub, storage=storage), HOST_ID)


def test_create_and_load_notify_subscribers(store):
    snapshots = []
    store.subscribe(lambda events: snapshots.append([e.name for e in events]))

    store.create(name="First")
    store.create(name="Second")
    store.load()

    assert snapshots[0] == ["First"]
    assert snapshots[1] == ["Second", "First"]
    assert len(snapshots[2]) == 2


def test_unsubscribe_stops_notifications(store):
    snapshots = []
    unsubscribe = store.subscribe(snapshots.append)
    unsubscribe()
    unsubscribe()

    store.create(name="Quiet")

    assert snapshots == []


def test_toggle_persists_and_replaces_event(store):
    store.create(name="Party")
    event = store.events[0]

    events = asyncio.run(store.toggle(event.id, "is_locked"))

    assert events[0].is_locked is True
    assert store.service.get_event(event.id, HOST_ID).is_locked is True


def test_toggle_reverts_when_save_fails(store, monkeypatch):
    store.create(name="Party")
    event = store.events[0]
    seen = []
    store.subscribe(lambda events: seen.append(events[0].is_uploads_enabled))

    def broken(db, event_id, host_id, row):
        raise PersistenceError("Failed to update event")

    monkeypatch.setattr(EventRepo, "update", staticmethod(broken))

    with pytest.raises(PersistenceError):
        asyncio.run(store.toggle(event.id, "is_uploads_enabled"))

    # flipped optimistically, then restored
    assert seen == [False, True]
    assert store.find(event.id).is_uploads_enabled is True


def test_toggle_unknown_event_or_flag(store):
    store.create(name="Party")

    with pytest.raises(NotFoundError):
        asyncio.run(store.toggle("missing", "is_locked"))
    with pytest.raises(ValidationError):
        asyncio.run(store.toggle(store.events[0].id, "share_code"))


def test_update_and_delete(store):
    store.create(name="Party")
    event = store.events[0]

    asyncio.run(store.update(event.id, name="Bigger Party"))
    assert store.find_by_share_code(event.share_code).name == "Bigger Party"

    events = asyncio.run(store.delete(event.id))
    assert events == []
