"""
Domain errors raised by services and rendered by the API layer
"""

from typing import Any, Optional


class MemoryShareError(Exception):
    """Base class for every error the API turns into an error envelope"""

    error_code = "error"
    status_code = 400

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(MemoryShareError):
    """A required field is missing or malformed. Raised before any backend call."""

    error_code = "validation_error"
    status_code = 422


class AuthorizationError(MemoryShareError):
    error_code = "forbidden"
    status_code = 403


class NotFoundError(MemoryShareError):
    error_code = "not_found"
    status_code = 404


class GateRejection(MemoryShareError):
    """A guest write was refused by the submission gate.

    ``event`` is the freshly re-read event, so callers can correct whatever
    state they cached since the page was loaded.
    """

    status_code = 403

    def __init__(self, message: str, event: Any = None):
        super().__init__(message)
        self.event = event


class NotStartedError(GateRejection):
    error_code = "not_started"


class LockedError(GateRejection):
    error_code = "locked"


class CapabilityDisabledError(GateRejection):
    error_code = "capability_disabled"

    def __init__(self, message: str, capability: str, event: Any = None):
        super().__init__(message, event=event)
        self.capability = capability
        self.error_code = f"{capability}_disabled"


class PersistenceError(MemoryShareError):
    """A backend read or write failed. Never retried automatically."""

    error_code = "persistence_error"
    status_code = 500

    def __init__(self, message: str, details: Any = None, stage: Optional[str] = None):
        super().__init__(message, details)
        self.stage = stage


class VerificationMismatchError(MemoryShareError):
    """The delete call reported success but the row is still readable."""

    error_code = "deleted_but_still_present"
    status_code = 409


class PaymentVerificationError(MemoryShareError):
    error_code = "payment_verification_failed"
    status_code = 400
