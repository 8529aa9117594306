"""
Guestbook export to Excel
"""

import io
from typing import List
import pandas as pd
from sqlalchemy.orm import Session

from app.schemas.event import MemoryEvent
from app.services.mappers import media_from_row, message_from_row
from app.services.repositories import MediaRepo, MessageRepo

EXPORT_ROW_LIMIT = 10000
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M"

class ExportService:
    """Service for exporting an event's guest contributions"""

    MESSAGE_COLUMNS = ['Guest', 'Message', 'Sent At (UTC)']
    MEDIA_COLUMNS = ['Guest', 'Type', 'File URL', 'Uploaded At (UTC)']

    @staticmethod
    def export_guestbook(event: MemoryEvent, db: Session) -> bytes:
        """Export messages and the media list to a two-sheet workbook"""
        messages = [message_from_row(r) for r in MessageRepo.list_for_event(db, event.id, EXPORT_ROW_LIMIT)]
        media = [media_from_row(r) for r in MediaRepo.list_for_event(db, event.id, EXPORT_ROW_LIMIT)]

        message_data: List[dict] = [
            {
                'Guest': m.guest_name,
                'Message': m.text,
                'Sent At (UTC)': m.created_at.strftime(TIMESTAMP_FORMAT),
            }
            for m in reversed(messages)
        ]
        media_data: List[dict] = [
            {
                'Guest': m.guest_name,
                'Type': m.kind.capitalize(),
                'File URL': m.file_url,
                'Uploaded At (UTC)': m.created_at.strftime(TIMESTAMP_FORMAT),
            }
            for m in reversed(media)
        ]

        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
            pd.DataFrame(message_data, columns=ExportService.MESSAGE_COLUMNS).to_excel(
                writer, index=False, sheet_name='Messages'
            )
            pd.DataFrame(media_data, columns=ExportService.MEDIA_COLUMNS).to_excel(
                writer, index=False, sheet_name='Media'
            )

        return buffer.getvalue()

    @staticmethod
    def export_filename(event: MemoryEvent) -> str:
        return f"guestbook_{event.share_code}.xlsx"
