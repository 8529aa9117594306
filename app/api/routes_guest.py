"""
Guest-facing API routes - addressed by share code, no signup
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.core.errors import AuthorizationError
from app.schemas.upload import MessageCreate
from app.services.live_feed import LiveFeed
from app.services.storage_service import get_storage
from app.services.submission_service import GuestSession, SelectedFile
from app.utils.security import rate_limit_check, get_client_ip
from app.utils.responses import success_response, rate_limit_error

router = APIRouter()

def _check_rate(request: Request) -> None:
    client_ip = get_client_ip(request)
    if not rate_limit_check(client_ip):
        rate_limit_error()

@router.get("/events/{share_code}")
async def get_guest_event(
    share_code: str,
    db: Session = Depends(get_db)
):
    """Event summary and which submission controls are available"""
    session = GuestSession.load(db, share_code)
    return success_response(message="Event found", data=session.view().model_dump())

@router.post("/events/{share_code}/media", status_code=201)
async def submit_media(
    share_code: str,
    request: Request,
    guest_name: str = Form(""),
    kind: Optional[str] = Form(None),
    files: List[UploadFile] = File(...),
    db: Session = Depends(get_db),
    storage=Depends(get_storage)
):
    """Upload one or more photos/videos"""
    _check_rate(request)

    session = GuestSession.load(db, share_code, storage=storage)
    selected = []
    for upload in files:
        selected.append(SelectedFile(
            filename=upload.filename or "upload",
            content=await upload.read(),
            content_type=upload.content_type,
        ))
    session.add_files(selected, kind=kind)

    saved = await session.submit_media(guest_name)
    return success_response(
        message=f"{len(saved)} file(s) uploaded successfully.",
        data=[u.model_dump() for u in saved],
        status_code=201
    )

@router.post("/events/{share_code}/messages", status_code=201)
async def submit_message(
    share_code: str,
    request: Request,
    payload: MessageCreate,
    db: Session = Depends(get_db)
):
    """Leave a message in the guestbook"""
    _check_rate(request)

    session = GuestSession.load(db, share_code)
    message = await session.submit_message(payload.guest_name, payload.message)
    return success_response(
        message="Your message has been added.",
        data=message.model_dump(),
        status_code=201
    )

@router.get("/events/{share_code}/feed")
async def get_feed_snapshot(
    share_code: str,
    db: Session = Depends(get_db)
):
    """Latest uploads for events with the live feed switched on"""
    session = GuestSession.load(db, share_code)
    if not session.event.is_live_feed_enabled:
        raise AuthorizationError("The live feed is not enabled for this event")

    feed = LiveFeed(session.event.id, db)
    try:
        items = feed.open()
    finally:
        feed.close()
    return success_response(message="Feed retrieved", data=[u.model_dump() for u in items])
