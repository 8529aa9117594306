"""
Public routes - no authentication required
"""

import os
from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse, Response
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.core.errors import NotFoundError
from app.services.event_service import EventService
from app.services.qr_service import QRService
from app.services.submission_service import build_guest_view

TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))), "templates")

templates = Jinja2Templates(directory=TEMPLATES_DIR)

router = APIRouter()

@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok"}

@router.get("/events/{share_code}/qr.png")
async def get_qr_code(
    share_code: str,
    db: Session = Depends(get_db)
):
    """Get QR code image pointing at the event's guest page"""
    event = EventService(db).get_by_share_code(share_code)

    qr_bytes = QRService.generate_event_qr(event.share_code)

    return Response(
        content=qr_bytes,
        media_type="image/png",
        headers={"Content-Disposition": f"inline; filename=qr_{event.share_code}.png"}
    )

@router.get("/e/{share_code}", response_class=HTMLResponse)
async def guest_page(
    request: Request,
    share_code: str,
    db: Session = Depends(get_db)
):
    """Guest page: countdown, locked notice, or the submission forms"""
    try:
        event = EventService(db).get_by_share_code(share_code)
    except NotFoundError:
        return templates.TemplateResponse(
            request, "guest_event.html", {"event": None, "view": None}, status_code=404
        )

    return templates.TemplateResponse(
        request, "guest_event.html", {"event": event, "view": build_guest_view(event)}
    )
