"""
In-process change feed: insert/update notifications keyed by table and event id
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Dict, List, Tuple

logger = logging.getLogger(__name__)

Callback = Callable[[str, Dict[str, Any]], Any]


class Subscription:
    """Handle returned by RealtimeHub.subscribe"""

    def __init__(self, hub: "RealtimeHub", table: str, event_id: str, callback: Callback):
        self.hub = hub
        self.table = table
        self.event_id = event_id
        self.callback = callback
        self.active = True

    def unsubscribe(self) -> None:
        if self.active:
            self.hub._remove(self)
            self.active = False


class RealtimeHub:
    """Fans out row changes to subscribers of ``(table, event_id)``"""

    def __init__(self):
        self.channels: Dict[Tuple[str, str], List[Subscription]] = {}

    def subscribe(self, table: str, event_id: str, callback: Callback) -> Subscription:
        subscription = Subscription(self, table, event_id, callback)
        self.channels.setdefault((table, event_id), []).append(subscription)
        logger.debug(f"Subscribed to {table} changes for event {event_id}")
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        key = (subscription.table, subscription.event_id)
        subscribers = self.channels.get(key, [])
        if subscription in subscribers:
            subscribers.remove(subscription)
        if not subscribers:
            self.channels.pop(key, None)

    async def publish(self, table: str, event_id: str, record: Dict[str, Any]) -> None:
        """Deliver a changed row to every subscriber of its channel.

        A failing subscriber is logged and skipped so it cannot block the others.
        """
        for subscription in list(self.channels.get((table, event_id), [])):
            try:
                result = subscription.callback(table, record)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Realtime subscriber for {table}/{event_id} failed: {e}")

    def subscriber_count(self, table: str, event_id: str) -> int:
        return len(self.channels.get((table, event_id), []))


# Global hub instance
realtime_hub = RealtimeHub()
