"""
Translation between storage rows (snake_case wire columns) and domain objects.

Every path that reads or writes an entity goes through the functions here, so
the column names live in exactly one place.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional, Union

from app.schemas.event import EventType, MemoryEvent
from app.schemas.gift import Gift
from app.schemas.upload import MessageUpload, PhotoUpload, VideoUpload

EVENT_COLUMNS = {
    "id": "id",
    "host_id": "user_id",
    "name": "title",
    "type": "event_type",
    "custom_type": "custom_type",
    "cover_image": "cover_image",
    "share_code": "slug",
    "event_date": "event_date",
    "is_uploads_enabled": "is_uploads_enabled",
    "is_messages_enabled": "is_messages_enabled",
    "is_locked": "is_locked",
    "is_live_feed_enabled": "is_live_feed_enabled",
    "created_at": "created_at",
}


def to_utc(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Normalise a stored timestamp to an aware UTC datetime.

    SQLite hands back naive datetimes and Firestore rows carry ISO strings;
    both are taken to be UTC.
    """
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def event_from_row(row: Dict[str, Any]) -> MemoryEvent:
    event_type = row.get("event_type") or EventType.OTHER.value
    try:
        event_type = EventType(event_type)
    except ValueError:
        event_type = EventType.OTHER

    return MemoryEvent(
        id=str(row["id"]),
        host_id=str(row["user_id"]),
        name=row.get("title") or "",
        type=event_type,
        custom_type=row.get("custom_type"),
        cover_image=row.get("cover_image"),
        share_code=row["slug"],
        event_date=to_utc(row.get("event_date")),
        is_uploads_enabled=bool(row.get("is_uploads_enabled", True)),
        is_messages_enabled=bool(row.get("is_messages_enabled", True)),
        is_locked=bool(row.get("is_locked", False)),
        is_live_feed_enabled=bool(row.get("is_live_feed_enabled", False)),
        created_at=to_utc(row.get("created_at")),
    )


def event_to_row(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Map domain field names to event columns, keeping only known fields."""
    row: Dict[str, Any] = {}
    for field, value in fields.items():
        column = EVENT_COLUMNS.get(field)
        if column is None:
            raise KeyError(f"Unknown event field: {field}")
        if isinstance(value, EventType):
            value = value.value
        elif isinstance(value, datetime):
            value = to_utc(value)
        row[column] = value
    return row


def media_from_row(row: Dict[str, Any]) -> Union[PhotoUpload, VideoUpload]:
    cls = VideoUpload if row.get("file_type") == "video" else PhotoUpload
    return cls(
        id=str(row["id"]),
        event_id=str(row["event_id"]),
        file_url=row["file_url"],
        guest_name=row.get("uploaded_by") or "Anonymous Guest",
        created_at=to_utc(row.get("created_at")),
    )


def media_to_row(event_id: str, file_type: str, file_url: str, guest_name: str) -> Dict[str, Any]:
    return {
        "event_id": event_id,
        "file_type": file_type,
        "file_url": file_url,
        "uploaded_by": guest_name,
    }


def message_from_row(row: Dict[str, Any]) -> MessageUpload:
    return MessageUpload(
        id=str(row["id"]),
        event_id=str(row["event_id"]),
        text=row.get("message") or "",
        guest_name=row.get("name") or "Anonymous Guest",
        created_at=to_utc(row.get("created_at")),
    )


def message_to_row(event_id: str, text: str, guest_name: str) -> Dict[str, Any]:
    return {"event_id": event_id, "message": text, "name": guest_name}


def gift_from_row(row: Dict[str, Any]) -> Gift:
    return Gift(
        id=str(row["id"]),
        event_id=str(row["event_id"]),
        sender_id=row.get("sender_id"),
        guest_name=row.get("guest_name"),
        amount=Decimal(str(row["amount"])),
        currency=row["currency"],
        message=row.get("message"),
        payment_ref=row["payment_ref"],
        status=row.get("status") or "successful",
        created_at=to_utc(row.get("created_at")),
    )


def gift_from_payment(payment: Dict[str, Any]) -> Dict[str, Any]:
    """Build a gifts row from a verified Flutterwave transaction payload."""
    meta = payment.get("meta") or {}
    customer = payment.get("customer") or {}
    consumer_id = meta.get("consumer_id")
    return {
        "event_id": meta.get("eventId"),
        "sender_id": consumer_id if consumer_id and consumer_id != "guest_user" else None,
        "guest_name": customer.get("name"),
        "amount": payment.get("amount"),
        "currency": payment.get("currency"),
        "message": meta.get("message"),
        "payment_ref": payment.get("tx_ref"),
        "status": "successful",
    }
