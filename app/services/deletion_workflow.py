"""
Typed-confirmation delete with separately reported delete and verify steps
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from app.core.config import settings
from app.core.errors import MemoryShareError, PersistenceError, ValidationError, VerificationMismatchError
from app.schemas.event import MemoryEvent
from app.services.event_service import DeletionStage, EventService

logger = logging.getLogger(__name__)


class StepStatus(str, Enum):
    PENDING = "pending"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class DeletionWorkflow:
    """Runs an event deletion and then confirms the row is really gone.

    "Delete returned success" and "the row is no longer readable" are tracked
    as two steps so that a delete which does not stick is reported on its own.
    """

    def __init__(
        self,
        service: EventService,
        event: MemoryEvent,
        host_id: str,
        delay: Optional[float] = None,
        attempts: Optional[int] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.service = service
        self.event = event
        self.host_id = host_id
        self.delay = settings.DELETE_VERIFY_DELAY_SECONDS if delay is None else delay
        self.attempts = max(1, attempts or settings.DELETE_VERIFY_ATTEMPTS)
        self.sleep = sleep
        self.steps: Dict[str, StepStatus] = {"delete": StepStatus.PENDING, "verify": StepStatus.PENDING}
        self.stage = DeletionStage.NOT_STARTED
        self.failure: Optional[MemoryShareError] = None
        self.running = False

    def can_confirm(self, typed_name: str) -> bool:
        """Exact, case-sensitive match against the event name"""
        return typed_name == self.event.name

    @property
    def completed(self) -> bool:
        return self.steps["verify"] == StepStatus.SUCCESS

    def snapshot(self) -> Dict[str, Any]:
        return {
            "event_id": self.event.id,
            "steps": {name: status.value for name, status in self.steps.items()},
            "stage": self.stage.value,
            "error_code": self.failure.error_code if self.failure else None,
        }

    async def run(self, typed_name: str) -> Dict[str, Any]:
        if not self.can_confirm(typed_name):
            raise ValidationError("Type the event name exactly to confirm deletion")
        if self.running or self.completed:
            raise ValidationError("Deletion is already in progress or finished")

        self.running = True
        self.failure = None
        try:
            await self._delete()
            if self.steps["delete"] == StepStatus.SUCCESS:
                await self._verify()
        finally:
            self.running = False
        return self.snapshot()

    async def _delete(self) -> None:
        self.steps["delete"] = StepStatus.LOADING
        try:
            result = await self.service.delete_event(self.event.id, self.host_id)
        except MemoryShareError as e:
            stage = getattr(e, "stage", None)
            if stage:
                self.stage = DeletionStage(stage)
            self.steps["delete"] = StepStatus.ERROR
            self.failure = e
            return

        self.stage = result.stage
        if not result.deleted:
            self.steps["delete"] = StepStatus.ERROR
            self.failure = MemoryShareError("Event could not be deleted")
            return
        self.steps["delete"] = StepStatus.SUCCESS

    async def _verify(self) -> None:
        self.steps["verify"] = StepStatus.LOADING
        delay = self.delay
        for attempt in range(1, self.attempts + 1):
            await self.sleep(delay)
            try:
                gone = self.service.verify_deleted(self.event.id)
            except PersistenceError as e:
                self.steps["verify"] = StepStatus.ERROR
                self.failure = e
                logger.error(f"Could not re-read event {self.event.id} to verify deletion: {e.message}")
                return
            if gone:
                self.steps["verify"] = StepStatus.SUCCESS
                logger.info(f"Event {self.event.id} deletion verified after {attempt} check(s)")
                return
            delay *= 2

        self.steps["verify"] = StepStatus.ERROR
        self.failure = VerificationMismatchError("Event was deleted but still exists in the database")
        logger.error(f"Event {self.event.id} still readable after {self.attempts} verification checks")
