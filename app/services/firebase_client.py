"""
Firebase app, Firestore, Storage and Auth access
"""

from __future__ import annotations

import base64
import json
import os
from functools import lru_cache
from typing import Any, Dict, Optional

import firebase_admin
from firebase_admin import auth, credentials, firestore, storage

from app.core.config import settings


def _service_account_info() -> Optional[Dict[str, Any]]:
    """Service account JSON from the first configured source: inline, base64, then file"""
    if settings.FIREBASE_CREDENTIALS_JSON:
        return json.loads(settings.FIREBASE_CREDENTIALS_JSON)
    if settings.FIREBASE_CREDENTIALS_B64:
        return json.loads(base64.b64decode(settings.FIREBASE_CREDENTIALS_B64).decode("utf-8"))
    path = settings.FIREBASE_CREDENTIALS_FILE
    if path and os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    return None


def _ensure_app() -> None:
    if firebase_admin._apps:
        return

    info = _service_account_info()
    if not info:
        raise RuntimeError(
            "Firebase credentials not provided. Set FIREBASE_CREDENTIALS_FILE, "
            "FIREBASE_CREDENTIALS_JSON, or FIREBASE_CREDENTIALS_B64"
        )

    # Storage uploads need the bucket name up front
    options = {"storageBucket": settings.FIREBASE_STORAGE_BUCKET} if settings.FIREBASE_STORAGE_BUCKET else None
    firebase_admin.initialize_app(credentials.Certificate(info), options)


@lru_cache(maxsize=1)
def get_firestore_client():
    """Cached Firestore client, or None when running on SQL"""
    if not settings.USE_FIREBASE:
        return None
    _ensure_app()
    return firestore.client()


@lru_cache(maxsize=1)
def get_storage_bucket():
    """Bucket holding guest media and cover images"""
    if not settings.USE_FIREBASE:
        return None
    _ensure_app()
    return storage.bucket()


def verify_id_token(token: str) -> Dict[str, Any]:
    """Decoded claims of a host's Firebase ID token; ``uid`` is the host id"""
    _ensure_app()
    return auth.verify_id_token(token)
