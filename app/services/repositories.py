"""
Repository layer abstracting storage (SQLAlchemy vs Firebase Firestore).

Repositories speak in wire rows: plain dicts keyed by the column names of the
``events``, ``media``, ``messages`` and ``gifts`` tables. Turning those into
domain objects is the job of ``app.services.mappers``.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Type

from firebase_admin import firestore
from google.api_core.exceptions import GoogleAPIError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import PersistenceError
from app.models import Event, Gift, Media, Message
from app.services.firebase_client import get_firestore_client

logger = logging.getLogger(__name__)

# Firestore rejects a write batch with more than 500 operations
FIRESTORE_BATCH_LIMIT = 500


def use_firestore() -> bool:
    return settings.USE_FIREBASE is True


def _row(obj) -> Dict[str, Any]:
    return {column.name: getattr(obj, column.name) for column in obj.__table__.columns}


@contextmanager
def _persistence(action: str, db: Optional[Session] = None) -> Iterator[None]:
    """Log and convert backend failures into PersistenceError at the call site."""
    try:
        yield
    except (SQLAlchemyError, GoogleAPIError) as e:
        if db is not None and not use_firestore():
            db.rollback()
        logger.error(f"Backend call failed while trying to {action}: {e}")
        raise PersistenceError(f"Failed to {action}") from e


# -------- SQL helpers --------

def _insert_sql(db: Session, model: Type, row: Dict[str, Any]) -> Dict[str, Any]:
    obj = model(**row)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return _row(obj)


def _list_for_event_sql(db: Session, model: Type, event_id: str, limit: int, offset: int = 0) -> List[Dict[str, Any]]:
    rows = (
        db.query(model)
        .filter(model.event_id == event_id)
        .order_by(model.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return [_row(r) for r in rows]


# -------- Firestore helpers --------

def _serialize_fs(row: Dict[str, Any]) -> Dict[str, Any]:
    return {k: (v.isoformat() if isinstance(v, datetime) else v) for k, v in row.items()}


def _insert_fs(collection: str, row: Dict[str, Any]) -> Dict[str, Any]:
    fs = get_firestore_client()
    doc_id = str(uuid.uuid4())
    data = _serialize_fs(row)
    data["id"] = doc_id
    data.setdefault("created_at", datetime.now(timezone.utc).isoformat())
    fs.collection(collection).document(doc_id).set(data)
    return data


def _list_for_event_fs(collection: str, event_id: str, limit: int, offset: int = 0) -> List[Dict[str, Any]]:
    fs = get_firestore_client()
    docs = (
        fs.collection(collection)
        .where("event_id", "==", event_id)
        .order_by("created_at", direction=firestore.Query.DESCENDING)
        .offset(offset)
        .limit(limit)
        .get()
    )
    results: List[Dict[str, Any]] = []
    for d in docs:
        item = d.to_dict()
        item["id"] = d.id
        results.append(item)
    return results


def _delete_where_fs(collection: str, field: str, value: Any) -> int:
    fs = get_firestore_client()
    docs = list(fs.collection(collection).where(field, "==", value).get())
    for start in range(0, len(docs), FIRESTORE_BATCH_LIMIT):
        batch = fs.batch()
        for d in docs[start:start + FIRESTORE_BATCH_LIMIT]:
            batch.delete(d.reference)
        batch.commit()
    return len(docs)


def _delete_by_id_fs(collection: str, event_id: str, doc_id: str) -> int:
    fs = get_firestore_client()
    ref = fs.collection(collection).document(doc_id)
    doc = ref.get()
    if not doc.exists or doc.to_dict().get("event_id") != event_id:
        return 0
    ref.delete()
    return 1


# -------- Event repository --------

class EventRepo:
    @staticmethod
    def get_by_id(db: Session, event_id: str) -> Optional[Dict[str, Any]]:
        with _persistence("read event", db):
            if use_firestore():
                doc = get_firestore_client().collection("events").document(event_id).get()
                if not doc.exists:
                    return None
                data = doc.to_dict()
                data["id"] = doc.id
                return data
            event = db.query(Event).filter(Event.id == event_id).first()
            return _row(event) if event else None

    @staticmethod
    def get_by_slug(db: Session, slug: str) -> Optional[Dict[str, Any]]:
        with _persistence("read event", db):
            if use_firestore():
                docs = get_firestore_client().collection("events").where("slug", "==", slug).limit(1).get()
                if not docs:
                    return None
                data = docs[0].to_dict()
                data["id"] = docs[0].id
                return data
            event = db.query(Event).filter(Event.slug == slug).first()
            return _row(event) if event else None

    @staticmethod
    def slug_exists(db: Session, slug: str) -> bool:
        return EventRepo.get_by_slug(db, slug) is not None

    @staticmethod
    def list_for_host(db: Session, host_id: str) -> List[Dict[str, Any]]:
        with _persistence("list events", db):
            if use_firestore():
                docs = (
                    get_firestore_client().collection("events")
                    .where("user_id", "==", host_id)
                    .order_by("created_at", direction=firestore.Query.DESCENDING)
                    .get()
                )
                results = []
                for d in docs:
                    item = d.to_dict()
                    item["id"] = d.id
                    results.append(item)
                return results
            events = db.query(Event).filter(Event.user_id == host_id).order_by(Event.created_at.desc()).all()
            return [_row(e) for e in events]

    @staticmethod
    def insert(db: Session, row: Dict[str, Any]) -> Dict[str, Any]:
        with _persistence("create event", db):
            if use_firestore():
                return _insert_fs("events", row)
            return _insert_sql(db, Event, row)

    @staticmethod
    def update(db: Session, event_id: str, host_id: str, row: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Update an event owned by ``host_id``. Returns None when nothing matched."""
        with _persistence("update event", db):
            if use_firestore():
                ref = get_firestore_client().collection("events").document(event_id)
                doc = ref.get()
                if not doc.exists or doc.to_dict().get("user_id") != host_id:
                    return None
                ref.set(_serialize_fs(row), merge=True)
                data = ref.get().to_dict()
                data["id"] = event_id
                return data
            event = db.query(Event).filter(Event.id == event_id, Event.user_id == host_id).first()
            if not event:
                return None
            for column, value in row.items():
                setattr(event, column, value)
            db.commit()
            db.refresh(event)
            return _row(event)

    @staticmethod
    def delete(db: Session, event_id: str, host_id: str) -> int:
        """Delete an event row scoped by id and owner. Returns affected row count."""
        with _persistence("delete event", db):
            if use_firestore():
                ref = get_firestore_client().collection("events").document(event_id)
                doc = ref.get()
                if not doc.exists or doc.to_dict().get("user_id") != host_id:
                    return 0
                ref.delete()
                return 1
            count = (
                db.query(Event)
                .filter(Event.id == event_id, Event.user_id == host_id)
                .delete(synchronize_session=False)
            )
            db.commit()
            return count


# -------- Media repository --------

class MediaRepo:
    @staticmethod
    def insert(db: Session, row: Dict[str, Any]) -> Dict[str, Any]:
        with _persistence("save media", db):
            if use_firestore():
                return _insert_fs("media", row)
            return _insert_sql(db, Media, row)

    @staticmethod
    def list_for_event(db: Session, event_id: str, limit: int, offset: int = 0) -> List[Dict[str, Any]]:
        with _persistence("list media", db):
            if use_firestore():
                return _list_for_event_fs("media", event_id, limit, offset)
            return _list_for_event_sql(db, Media, event_id, limit, offset)

    @staticmethod
    def delete_for_event(db: Session, event_id: str) -> int:
        with _persistence("delete event media", db):
            if use_firestore():
                return _delete_where_fs("media", "event_id", event_id)
            count = db.query(Media).filter(Media.event_id == event_id).delete(synchronize_session=False)
            db.commit()
            return count

    @staticmethod
    def delete_by_id(db: Session, event_id: str, media_id: str) -> int:
        with _persistence("delete media", db):
            if use_firestore():
                return _delete_by_id_fs("media", event_id, media_id)
            count = db.query(Media).filter(Media.id == media_id, Media.event_id == event_id).delete(synchronize_session=False)
            db.commit()
            return count


# -------- Message repository --------

class MessageRepo:
    @staticmethod
    def insert(db: Session, row: Dict[str, Any]) -> Dict[str, Any]:
        with _persistence("save message", db):
            if use_firestore():
                return _insert_fs("messages", row)
            return _insert_sql(db, Message, row)

    @staticmethod
    def list_for_event(db: Session, event_id: str, limit: int, offset: int = 0) -> List[Dict[str, Any]]:
        with _persistence("list messages", db):
            if use_firestore():
                return _list_for_event_fs("messages", event_id, limit, offset)
            return _list_for_event_sql(db, Message, event_id, limit, offset)

    @staticmethod
    def delete_for_event(db: Session, event_id: str) -> int:
        with _persistence("delete event messages", db):
            if use_firestore():
                return _delete_where_fs("messages", "event_id", event_id)
            count = db.query(Message).filter(Message.event_id == event_id).delete(synchronize_session=False)
            db.commit()
            return count

    @staticmethod
    def delete_by_id(db: Session, event_id: str, message_id: str) -> int:
        with _persistence("delete message", db):
            if use_firestore():
                return _delete_by_id_fs("messages", event_id, message_id)
            count = db.query(Message).filter(Message.id == message_id, Message.event_id == event_id).delete(synchronize_session=False)
            db.commit()
            return count


# -------- Gift repository --------

class GiftRepo:
    @staticmethod
    def insert(db: Session, row: Dict[str, Any]) -> Dict[str, Any]:
        with _persistence("record gift", db):
            if use_firestore():
                data = dict(row)
                data["amount"] = float(data["amount"])
                return _insert_fs("gifts", data)
            return _insert_sql(db, Gift, row)

    @staticmethod
    def list_for_event(db: Session, event_id: str, limit: int = 500) -> List[Dict[str, Any]]:
        with _persistence("list gifts", db):
            if use_firestore():
                return _list_for_event_fs("gifts", event_id, limit)
            return _list_for_event_sql(db, Gift, event_id, limit)
