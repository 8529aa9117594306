"""
Security utilities and host authentication
"""

import logging
import time
from collections import defaultdict
from typing import Optional

from fastapi import HTTPException, Depends, Header, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from firebase_admin.exceptions import FirebaseError

from app.core.config import settings
from app.services.firebase_client import verify_id_token

logger = logging.getLogger(__name__)

# Simple in-memory rate limiter
rate_limiter = defaultdict(list)

security = HTTPBearer()

def get_current_host(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    x_host_id: Optional[str] = Header(None),
) -> str:
    """Resolve the authenticated host id.

    With Firebase enabled the bearer token is a Firebase ID token and the host
    is its uid. Locally the bearer must be ADMIN_TOKEN and the host is taken
    from the X-Host-Id header.
    """
    if settings.USE_FIREBASE:
        try:
            claims = verify_id_token(credentials.credentials)
        except (ValueError, FirebaseError) as e:
            logger.warning(f"Rejected host token: {e}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or expired session"
            )
        return claims["uid"]

    if credentials.credentials != settings.ADMIN_TOKEN:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin token"
        )
    if not x_host_id or not x_host_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Host-Id header is required"
        )
    return x_host_id.strip()

def rate_limit_check(client_ip: str, limit: int = None) -> bool:
    """Simple rate limiting by IP address"""
    if limit is None:
        limit = settings.RATE_LIMIT_PER_MINUTE

    current_time = time.time()
    minute_ago = current_time - 60

    # Clean old requests
    rate_limiter[client_ip] = [
        req_time for req_time in rate_limiter[client_ip]
        if req_time > minute_ago
    ]

    # Check limit
    if len(rate_limiter[client_ip]) >= limit:
        return False

    # Add current request
    rate_limiter[client_ip].append(current_time)
    return True

def get_client_ip(request) -> str:
    """Extract client IP from request"""
    # Check for forwarded IP first (for reverse proxy setups)
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    # Check for real IP header
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    # Fall back to direct client IP
    return request.client.host
