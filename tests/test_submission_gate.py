"""
Tests for the guest submission gate and the guest submission flow
"""

import asyncio
import pytest
from datetime import timedelta

from app.core.errors import (
    CapabilityDisabledError,
    LockedError,
    NotFoundError,
    NotStartedError,
    PersistenceError,
    ValidationError,
)
from app.models import Event, Media, Message
from app.services.mappers import event_from_row
from app.services.repositories import EventRepo
from app.services.submission_service import (
    Capability,
    GateState,
    GuestSession,
    SelectedFile,
    evaluate_gate,
    seconds_until_start,
)

from conftest import FakeStorage, hours_from_now


def _photo(name="photo.jpg"):
    return SelectedFile(filename=name, content=b"\xff\xd8jpeg", content_type="image/jpeg")


def _video(name="clip.mp4"):
    return SelectedFile(filename=name, content=b"mp4", content_type="video/mp4")


def _domain_event(db_session, event):
    return event_from_row(EventRepo.get_by_id(db_session, event.id))


class MutableClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def test_open_event_allows_both_capabilities(db_session, make_event):
    event = _domain_event(db_session, make_event())

    assert evaluate_gate(event, Capability.UPLOADS) == GateState.UPLOADS_OPEN
    assert evaluate_gate(event, Capability.MESSAGES) == GateState.MESSAGES_OPEN


def test_locked_blocks_regardless_of_flags(db_session, make_event):
    event = _domain_event(db_session, make_event(is_locked=True))
    assert evaluate_gate(event, Capability.UPLOADS) == GateState.LOCKED
    assert evaluate_gate(event, Capability.MESSAGES) == GateState.LOCKED

    closed = _domain_event(db_session, make_event(is_locked=True, is_uploads_enabled=False, is_messages_enabled=False))
    assert evaluate_gate(closed, Capability.UPLOADS) == GateState.LOCKED


def test_not_started_wins_over_locked(db_session, make_event):
    event = _domain_event(db_session, make_event(is_locked=True, event_date=hours_from_now(3)))

    assert evaluate_gate(event, Capability.UPLOADS) == GateState.NOT_STARTED
    assert evaluate_gate(event, Capability.MESSAGES) == GateState.NOT_STARTED


def test_capability_flags_are_independent(db_session, make_event):
    event = _domain_event(db_session, make_event(is_uploads_enabled=False))

    assert evaluate_gate(event, Capability.UPLOADS) == GateState.UPLOADS_CLOSED
    assert evaluate_gate(event, Capability.MESSAGES) == GateState.MESSAGES_OPEN


def test_seconds_until_start(db_session, make_event):
    now = hours_from_now(0)
    event = _domain_event(db_session, make_event(event_date=now + timedelta(hours=2)))

    assert seconds_until_start(event, now) == 7200
    assert seconds_until_start(event, now + timedelta(hours=3)) == 0


def test_load_unknown_share_code(db_session):
    with pytest.raises(NotFoundError):
        GuestSession.load(db_session, "no-such-event")


def test_countdown_then_open(db_session, make_event, storage):
    """Submissions open once the clock passes the event date, no reload needed"""
    start = hours_from_now(1)
    event = make_event(event_date=start)
    clock = MutableClock(start - timedelta(minutes=30))
    session = GuestSession.load(db_session, event.slug, storage=storage, clock=clock)

    view = session.view()
    assert view.uploads_state == "not_started"
    assert view.messages_state == "not_started"
    assert view.seconds_until_start == 1800

    with pytest.raises(NotStartedError):
        asyncio.run(session.submit_message("Ada", "See you soon"))
    assert db_session.query(Message).count() == 0

    clock.now = start + timedelta(seconds=1)
    assert session.view().uploads_state == "uploads_open"

    message = asyncio.run(session.submit_message("Ada", "Congratulations!"))
    assert message.text == "Congratulations!"
    assert db_session.query(Message).count() == 1


def test_locked_event_rejects_message(db_session, make_event):
    event = make_event(is_locked=True)
    session = GuestSession.load(db_session, event.slug)

    with pytest.raises(LockedError) as exc_info:
        asyncio.run(session.submit_message("Ada", "Hello"))

    assert exc_info.value.error_code == "locked"
    assert db_session.query(Message).count() == 0


def test_host_disables_uploads_mid_session(db_session, make_event, storage):
    """The stale page still offers uploads; the submit re-reads and is refused"""
    event = make_event()
    session = GuestSession.load(db_session, event.slug, storage=storage)
    assert session.view().uploads_state == "uploads_open"
    session.add_files([_photo()])

    row = db_session.query(Event).filter(Event.id == event.id).first()
    row.is_uploads_enabled = False
    db_session.commit()

    with pytest.raises(CapabilityDisabledError) as exc_info:
        asyncio.run(session.submit_media("Ada"))

    assert exc_info.value.error_code == "uploads_disabled"
    assert exc_info.value.event.is_uploads_enabled is False
    assert session.event.is_uploads_enabled is False
    assert session.view().uploads_state == "uploads_closed"
    assert storage.calls == 0
    assert db_session.query(Media).count() == 0


def test_messages_disabled_uploads_still_work(db_session, make_event, storage):
    event = make_event(is_messages_enabled=False)
    session = GuestSession.load(db_session, event.slug, storage=storage)

    with pytest.raises(CapabilityDisabledError) as exc_info:
        asyncio.run(session.submit_message("Ada", "Hi"))
    assert exc_info.value.error_code == "messages_disabled"

    session.add_files([_photo()])
    saved = asyncio.run(session.submit_media("Ada"))
    assert len(saved) == 1


def test_submit_media_uploads_each_file_and_publishes(db_session, make_event, storage, hub):
    event = make_event()
    published = []
    hub.subscribe("media", event.id, lambda table, record: published.append(record))
    session = GuestSession.load(db_session, event.slug, storage=storage, hub=hub)
    session.add_files([_photo("a.jpg"), _video("b.mp4")])

    saved = asyncio.run(session.submit_media("  Ada  "))

    assert [u.kind for u in saved] == ["photo", "video"]
    assert all(u.guest_name == "Ada" for u in saved)
    assert storage.calls == 2
    assert all(path.startswith(f"events/{event.id}/") for path, _ in storage.uploaded)
    assert len(published) == 2
    assert session.selected_files == []
    assert session.is_submitting is False


def test_partial_upload_failure_keeps_earlier_files(db_session, make_event):
    """Second of three files fails: one row saved, the third never attempted"""
    storage = FakeStorage(fail_on=2)
    event = make_event()
    session = GuestSession.load(db_session, event.slug, storage=storage)
    session.add_files([_photo("1.jpg"), _photo("2.jpg"), _photo("3.jpg")])

    with pytest.raises(PersistenceError) as exc_info:
        asyncio.run(session.submit_media("Ada"))

    assert exc_info.value.message == "Could not upload files. Please try again."
    assert storage.calls == 2
    assert db_session.query(Media).count() == 1
    assert len(session.selected_files) == 3
    assert session.is_submitting is False


def test_name_is_checked_before_any_storage_call(db_session, make_event, storage):
    event = make_event()
    session = GuestSession.load(db_session, event.slug, storage=storage)
    session.add_files([_photo()])

    with pytest.raises(ValidationError):
        asyncio.run(session.submit_media("   "))
    assert storage.calls == 0


def test_submit_media_requires_files(db_session, make_event, storage):
    event = make_event()
    session = GuestSession.load(db_session, event.slug, storage=storage)

    with pytest.raises(ValidationError):
        asyncio.run(session.submit_media("Ada"))


def test_empty_message_rejected(db_session, make_event):
    event = make_event()
    session = GuestSession.load(db_session, event.slug)

    with pytest.raises(ValidationError):
        asyncio.run(session.submit_message("Ada", "   "))
    assert db_session.query(Message).count() == 0


def test_message_draft_cleared_after_submit(db_session, make_event, hub):
    event = make_event()
    published = []
    hub.subscribe("messages", event.id, lambda table, record: published.append(record))
    session = GuestSession.load(db_session, event.slug, hub=hub)
    session.message_draft = "  Wishing you both joy  "

    message = asyncio.run(session.submit_message("Tunde"))

    assert message.text == "Wishing you both joy"
    assert message.guest_name == "Tunde"
    assert session.message_draft == ""
    assert published[0]["message"] == "Wishing you both joy"


def test_add_files_accumulates_and_filters(db_session, make_event):
    event = make_event()
    session = GuestSession.load(db_session, event.slug)

    session.add_files([_photo("a.jpg")])
    session.add_files([
        _video("b.mp4"),
        SelectedFile(filename="notes.pdf", content=b"pdf", content_type="application/pdf"),
    ])
    assert [f.filename for f in session.selected_files] == ["a.jpg", "b.mp4"]

    session.add_files([_video("c.mp4")], kind="photo")
    assert len(session.selected_files) == 2

    session.remove_file(0)
    assert [f.filename for f in session.selected_files] == ["b.mp4"]
    session.remove_file(5)
    assert len(session.selected_files) == 1


def test_add_files_rejects_oversized(db_session, make_event, monkeypatch):
    from app.core.config import settings

    monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE", 4)
    event = make_event()
    session = GuestSession.load(db_session, event.slug)

    with pytest.raises(ValidationError):
        session.add_files([_photo()])
    assert session.selected_files == []


def test_submit_refused_while_another_is_in_flight(db_session, make_event, storage):
    event = make_event()
    session = GuestSession.load(db_session, event.slug, storage=storage)
    session.add_files([_photo()])
    session.is_submitting = True

    with pytest.raises(ValidationError):
        asyncio.run(session.submit_media("Ada"))
    with pytest.raises(ValidationError):
        asyncio.run(session.submit_message("Ada", "Hello"))

    assert storage.calls == 0
    assert db_session.query(Media).count() == 0
    assert db_session.query(Message).count() == 0
    assert len(session.selected_files) == 1


def test_message_during_upload_is_refused(db_session, make_event, storage, hub):
    """A second submit started while files are still being saved is rejected"""
    event = make_event()
    session = GuestSession.load(db_session, event.slug, storage=storage, hub=hub)
    session.add_files([_photo("a.jpg"), _photo("b.jpg")])
    refused = []

    async def submit_again(table, record):
        try:
            await session.submit_message("Ada", "Sent mid-upload")
        except ValidationError as e:
            refused.append(e.message)

    hub.subscribe("media", event.id, submit_again)

    saved = asyncio.run(session.submit_media("Ada"))

    assert len(saved) == 2
    assert refused == ["A submission is already in progress"] * 2
    assert db_session.query(Message).count() == 0
    assert session.is_submitting is False
