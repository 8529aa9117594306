"""
WebSocket manager and live feed endpoint
"""

import json
import logging
from typing import Dict, List
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Depends
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.core.errors import PersistenceError
from app.services.live_feed import LiveFeed
from app.services.mappers import event_from_row
from app.services.realtime import realtime_hub
from app.services.repositories import EventRepo

logger = logging.getLogger(__name__)

class WebSocketManager:
    """Tracks open live feed connections per event"""

    def __init__(self):
        # share_code -> list of websockets
        self.active_connections: Dict[str, List[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, share_code: str):
        """Accept WebSocket connection and add to event room"""
        await websocket.accept()

        if share_code not in self.active_connections:
            self.active_connections[share_code] = []

        self.active_connections[share_code].append(websocket)
        logger.info(f"WebSocket connected to event {share_code}. Total connections: {len(self.active_connections[share_code])}")

    def disconnect(self, websocket: WebSocket, share_code: str):
        """Remove WebSocket connection from event room"""
        if share_code in self.active_connections:
            try:
                self.active_connections[share_code].remove(websocket)
                logger.info(f"WebSocket disconnected from event {share_code}. Remaining connections: {len(self.active_connections[share_code])}")

                # Clean up empty rooms
                if not self.active_connections[share_code]:
                    del self.active_connections[share_code]
            except ValueError:
                # WebSocket was not in the list
                pass

    async def send_personal_message(self, message: dict, websocket: WebSocket):
        """Send message to specific WebSocket"""
        try:
            await websocket.send_text(json.dumps(message))
        except Exception as e:
            logger.error(f"Error sending personal message: {e}")

    def get_connection_count(self, share_code: str) -> int:
        """Get number of active connections for an event"""
        return len(self.active_connections.get(share_code, []))

    def get_all_connection_counts(self) -> Dict[str, int]:
        """Get connection counts for all events"""
        return {
            share_code: len(connections)
            for share_code, connections in self.active_connections.items()
        }

# Global WebSocket manager instance
websocket_manager = WebSocketManager()

# Router for WebSocket endpoints
router = APIRouter()

@router.websocket("/events/{share_code}/feed")
async def live_feed_endpoint(
    websocket: WebSocket,
    share_code: str,
    db: Session = Depends(get_db)
):
    """Stream the event's latest uploads, then every new one as it lands"""

    try:
        row = EventRepo.get_by_slug(db, share_code)
    except PersistenceError:
        await websocket.close(code=1011, reason="Event lookup failed")
        return
    if not row:
        await websocket.close(code=4004, reason="Event not found")
        return
    event = event_from_row(row)
    if not event.is_live_feed_enabled:
        await websocket.close(code=4003, reason="Live feed disabled")
        return

    await websocket_manager.connect(websocket, share_code)

    async def forward_insert(items, upload):
        await websocket_manager.send_personal_message({
            "type": "INSERT",
            "table": "messages" if upload.kind == "message" else "media",
            "record": upload.model_dump(mode="json"),
        }, websocket)

    feed = LiveFeed(event.id, db, on_change=forward_insert)

    async def on_event_change(table, record):
        # Host switched the feed off or removed the event: stop streaming
        if record.get("deleted") or not record.get("is_live_feed_enabled", True):
            feed.close()
            await websocket_manager.send_personal_message({"type": "closed", "reason": "Live feed disabled"}, websocket)
            await websocket.close(code=4003)

    event_subscription = realtime_hub.subscribe("events", event.id, on_event_change)

    try:
        items = feed.open()
        await websocket_manager.send_personal_message({
            "type": "snapshot",
            "event_id": event.id,
            "items": [u.model_dump(mode="json") for u in items],
            "connection_count": websocket_manager.get_connection_count(share_code)
        }, websocket)

        while feed.is_open:
            try:
                data = await websocket.receive_text()

                try:
                    client_message = json.loads(data)

                    if client_message.get("type") == "ping":
                        pong_message = {
                            "type": "pong",
                            "timestamp": client_message.get("timestamp")
                        }
                        await websocket_manager.send_personal_message(pong_message, websocket)

                except json.JSONDecodeError:
                    logger.warning(f"Invalid JSON received from WebSocket: {data}")

            except WebSocketDisconnect:
                break
            except Exception as e:
                logger.error(f"Error in WebSocket loop: {e}")
                break

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
    finally:
        feed.close()
        event_subscription.unsubscribe()
        websocket_manager.disconnect(websocket, share_code)

@router.get("/stats")
async def websocket_stats():
    """Get WebSocket connection statistics (for debugging)"""
    return {
        "total_events_with_connections": len(websocket_manager.active_connections),
        "connection_counts": websocket_manager.get_all_connection_counts(),
        "total_connections": sum(websocket_manager.get_all_connection_counts().values())
    }
