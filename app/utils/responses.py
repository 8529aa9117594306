"""
Standardized response utilities
"""

from typing import Any, Optional
from fastapi import HTTPException, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from app.core.errors import MemoryShareError, GateRejection
from app.schemas.common import StandardResponse, ErrorResponse

def success_response(
    message: str,
    data: Any = None,
    status_code: int = 200
) -> JSONResponse:
    """Create standardized success response"""
    response = StandardResponse(
        success=True,
        message=message,
        data=data
    )
    return JSONResponse(
        content=jsonable_encoder(response),
        status_code=status_code
    )

def error_response(
    message: str,
    error_code: Optional[str] = None,
    details: Any = None,
    status_code: int = 400
) -> JSONResponse:
    """Create standardized error response"""
    response = ErrorResponse(
        message=message,
        error_code=error_code,
        details=details
    )
    return JSONResponse(
        content=jsonable_encoder(response),
        status_code=status_code
    )

def domain_error_response(exc: MemoryShareError) -> JSONResponse:
    """Render a domain error; gate rejections carry the re-read event flags"""
    details = exc.details
    if isinstance(exc, GateRejection) and exc.event is not None:
        details = {
            "is_locked": exc.event.is_locked,
            "is_uploads_enabled": exc.event.is_uploads_enabled,
            "is_messages_enabled": exc.event.is_messages_enabled,
            "event_date": exc.event.event_date,
        }
    return error_response(
        message=exc.message,
        error_code=exc.error_code,
        details=details,
        status_code=exc.status_code
    )

def rate_limit_error():
    """Create rate limit error"""
    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail="Rate limit exceeded. Please try again later."
    )
