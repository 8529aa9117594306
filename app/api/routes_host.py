"""
Host console API routes - requires authentication
"""

import logging
from typing import Optional
from fastapi import APIRouter, Body, Depends, File, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.schemas.event import EventCreate, EventUpdate, DeleteEventRequest
from app.services.deletion_workflow import DeletionWorkflow
from app.services.event_service import EventService
from app.services.event_store import EventStore
from app.services.export_service import ExportService
from app.services.qr_service import QRService
from app.services.storage_service import get_storage
from app.utils.security import get_current_host
from app.utils.responses import success_response

logger = logging.getLogger(__name__)

router = APIRouter()

def get_event_service(db: Session = Depends(get_db), storage=Depends(get_storage)) -> EventService:
    return EventService(db, storage=storage)

@router.get("/events")
async def list_events(
    service: EventService = Depends(get_event_service),
    host_id: str = Depends(get_current_host)
):
    """List the host's events, newest first"""
    events = service.list_events(host_id)
    return success_response(
        message="Events retrieved successfully",
        data=[e.model_dump() for e in events]
    )

@router.post("/events", status_code=201)
async def create_event(
    event_data: EventCreate,
    service: EventService = Depends(get_event_service),
    host_id: str = Depends(get_current_host)
):
    """Create a new event"""
    event = service.create_event(
        host_id=host_id,
        name=event_data.name,
        type=event_data.type,
        custom_type=event_data.custom_type,
        cover_image=event_data.cover_image,
        event_date=event_data.event_date,
    )
    return success_response(
        message="Event created successfully!",
        data={**event.model_dump(), "share_url": QRService.get_share_url(event.share_code)},
        status_code=201
    )

@router.get("/events/{event_id}")
async def get_event(
    event_id: str,
    service: EventService = Depends(get_event_service),
    host_id: str = Depends(get_current_host)
):
    """Get one of the host's events"""
    event = service.get_event(event_id, host_id)
    return success_response(
        message="Event retrieved",
        data={**event.model_dump(), "share_url": QRService.get_share_url(event.share_code)}
    )

@router.patch("/events/{event_id}")
async def update_event(
    event_id: str,
    updates: EventUpdate,
    service: EventService = Depends(get_event_service),
    host_id: str = Depends(get_current_host)
):
    """Edit event details or settings"""
    event = await service.update_event(event_id, host_id, **updates.model_dump(exclude_none=True))
    return success_response(message="Event updated", data=event.model_dump())

@router.post("/events/{event_id}/settings/{flag}")
async def toggle_setting(
    event_id: str,
    flag: str,
    value: Optional[bool] = Body(None, embed=True),
    service: EventService = Depends(get_event_service),
    host_id: str = Depends(get_current_host)
):
    """Flip one of is_locked / is_uploads_enabled / is_messages_enabled / is_live_feed_enabled"""
    store = EventStore(service, host_id)
    store.load()
    await store.toggle(event_id, flag, value)
    event = store.find(event_id)
    return success_response(message="Setting updated", data=event.model_dump())

@router.post("/events/{event_id}/cover")
async def upload_cover(
    event_id: str,
    file: UploadFile = File(...),
    service: EventService = Depends(get_event_service),
    host_id: str = Depends(get_current_host)
):
    """Replace the event cover image"""
    content = await file.read()
    event = await service.upload_cover(
        event_id, host_id, file.filename or "cover.jpg", content, file.content_type
    )
    return success_response(message="Cover updated!", data=event.model_dump())

@router.post("/events/{event_id}/delete")
async def delete_event(
    event_id: str,
    confirmation: DeleteEventRequest,
    service: EventService = Depends(get_event_service),
    host_id: str = Depends(get_current_host)
):
    """Delete an event after typed confirmation, then verify it is gone"""
    event = service.get_event(event_id, host_id)
    workflow = DeletionWorkflow(service, event, host_id)
    result = await workflow.run(confirmation.confirm_name)

    if workflow.failure is not None:
        workflow.failure.details = result
        raise workflow.failure

    return success_response(
        message="Event permanently deleted and verified.",
        data=result
    )

@router.get("/events/{event_id}/deleted")
async def verify_event_deleted(
    event_id: str,
    service: EventService = Depends(get_event_service),
    host_id: str = Depends(get_current_host)
):
    """Re-check whether an event row still exists"""
    return success_response(
        message="Deletion check complete",
        data={"event_id": event_id, "deleted": service.verify_deleted(event_id)}
    )

@router.get("/events/{event_id}/uploads")
async def list_uploads(
    event_id: str,
    page: int = Query(0, ge=0),
    per_page: Optional[int] = Query(None, ge=1, le=100),
    service: EventService = Depends(get_event_service),
    host_id: str = Depends(get_current_host)
):
    """Page through an event's photos, videos and messages"""
    uploads = service.list_uploads(event_id, host_id, page=page, per_page=per_page)
    return success_response(message="Uploads retrieved successfully", data=uploads.model_dump())

@router.delete("/events/{event_id}/uploads/{upload_id}")
async def delete_upload(
    event_id: str,
    upload_id: str,
    service: EventService = Depends(get_event_service),
    host_id: str = Depends(get_current_host)
):
    """Delete one photo, video or message"""
    deleted = service.delete_upload(event_id, host_id, upload_id)
    if not deleted:
        return success_response(message="Nothing to delete", data={"deleted": False})
    return success_response(message="Content deleted", data={"deleted": True, "upload_id": upload_id})

@router.get("/events/{event_id}/gifts")
async def list_gifts(
    event_id: str,
    service: EventService = Depends(get_event_service),
    host_id: str = Depends(get_current_host)
):
    """Recorded gifts for an event with per-currency totals"""
    gifts, totals = service.list_gifts(event_id, host_id)
    return success_response(
        message="Gifts retrieved successfully",
        data={"gifts": [g.model_dump() for g in gifts], "totals": totals}
    )

@router.get("/events/{event_id}/share")
async def share_event(
    event_id: str,
    service: EventService = Depends(get_event_service),
    host_id: str = Depends(get_current_host)
):
    """Link and QR code location to hand to guests"""
    event = service.get_event(event_id, host_id)
    return success_response(
        message="Share this link with your guests.",
        data={
            "share_code": event.share_code,
            "share_url": QRService.get_share_url(event.share_code),
            "qr_url": f"/events/{event.share_code}/qr.png",
            "card_url": f"/host/events/{event.id}/share/card.png",
        }
    )

@router.get("/events/{event_id}/share/card.png")
async def share_card(
    event_id: str,
    service: EventService = Depends(get_event_service),
    host_id: str = Depends(get_current_host)
):
    """Printable QR card with the event name"""
    event = service.get_event(event_id, host_id)
    card = QRService.generate_share_card(event.share_code, event.name, event.type_label)
    return Response(
        content=card,
        media_type="image/png",
        headers={"Content-Disposition": f"attachment; filename=card_{event.share_code}.png"}
    )

@router.get("/events/{event_id}/export/guestbook.xlsx")
async def export_guestbook(
    event_id: str,
    db: Session = Depends(get_db),
    service: EventService = Depends(get_event_service),
    host_id: str = Depends(get_current_host)
):
    """Download messages and the media list as Excel"""
    event = service.get_event(event_id, host_id)
    content = ExportService.export_guestbook(event, db)
    return Response(
        content=content,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f"attachment; filename={ExportService.export_filename(event)}"}
    )
