"""
Shared fixtures: SQLite-backed sessions, fake object storage, sample events
"""

import os
import pytest
from datetime import datetime, timedelta, timezone
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.db import Base
from app.core.errors import PersistenceError
from app.models import Event
from app.services.realtime import RealtimeHub
from app.utils.security import rate_limiter

# Test database setup
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_event_memories.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

HOST_ID = "host-alice"
OTHER_HOST_ID = "host-bob"


class FakeStorage:
    """Records uploads; ``fail_on`` makes the n-th upload call (1-based) fail"""

    def __init__(self, fail_on=None):
        self.fail_on = fail_on
        self.calls = 0
        self.uploaded = []

    def upload(self, path, content, content_type=None):
        self.calls += 1
        if self.fail_on == self.calls:
            raise PersistenceError("Failed to store file")
        self.uploaded.append((path, content_type))

    def public_url(self, path):
        return f"https://cdn.test/event-media/{path}"


@pytest.fixture
def db_session():
    """Create test database session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="session", autouse=True)
def remove_test_database():
    yield
    if os.path.exists("./test_event_memories.db"):
        os.remove("./test_event_memories.db")


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    rate_limiter.clear()
    yield
    rate_limiter.clear()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture
def hub():
    return RealtimeHub()


@pytest.fixture
def make_event(db_session):
    """Insert an event row directly, bypassing the service"""

    def _make_event(**overrides):
        fields = {
            "user_id": HOST_ID,
            "title": "Ada & Tunde's Wedding",
            "event_type": "wedding",
            "slug": f"wedding-{len(db_session.query(Event).all()) + 1:05d}",
            "event_date": None,
            "is_uploads_enabled": True,
            "is_messages_enabled": True,
            "is_locked": False,
            "is_live_feed_enabled": False,
        }
        fields.update(overrides)
        event = Event(**fields)
        db_session.add(event)
        db_session.commit()
        db_session.refresh(event)
        return event

    return _make_event


def hours_from_now(hours):
    return datetime.now(timezone.utc) + timedelta(hours=hours)
