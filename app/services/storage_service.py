"""
Object storage for guest media and cover images
"""

from __future__ import annotations

import logging
import os
import uuid
from typing import Optional

from google.api_core.exceptions import GoogleAPIError

from app.core.config import settings
from app.core.errors import PersistenceError
from app.services.firebase_client import get_storage_bucket

logger = logging.getLogger(__name__)


def build_object_path(event_id: str, filename: str, prefix: str = "") -> str:
    """Namespace an object under its event: ``events/{event_id}/{prefix}{uuid}.{ext}``"""
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else "bin"
    return f"events/{event_id}/{prefix}{uuid.uuid4()}.{ext}"


class LocalStorage:
    """Stores objects on disk under UPLOAD_DIR and serves them from /media"""

    def __init__(self, root: Optional[str] = None, bucket: Optional[str] = None):
        self.root = root or settings.UPLOAD_DIR
        self.bucket = bucket or settings.STORAGE_BUCKET

    def _full_path(self, path: str) -> str:
        return os.path.join(self.root, self.bucket, *path.split("/"))

    def upload(self, path: str, content: bytes, content_type: Optional[str] = None) -> None:
        full_path = self._full_path(path)
        try:
            os.makedirs(os.path.dirname(full_path), exist_ok=True)
            with open(full_path, "wb") as f:
                f.write(content)
        except OSError as e:
            logger.error(f"Failed to store object {path}: {e}")
            raise PersistenceError("Failed to store file") from e

    def public_url(self, path: str) -> str:
        return f"{settings.BASE_URL}/media/{self.bucket}/{path}"


class FirebaseStorage:
    """Stores objects in the Firebase Storage bucket and exposes them publicly"""

    def __init__(self, bucket=None):
        self.bucket = bucket or get_storage_bucket()

    def upload(self, path: str, content: bytes, content_type: Optional[str] = None) -> None:
        try:
            blob = self.bucket.blob(path)
            blob.upload_from_string(content, content_type=content_type)
            blob.make_public()
        except GoogleAPIError as e:
            logger.error(f"Failed to upload {path} to Firebase Storage: {e}")
            raise PersistenceError("Failed to store file") from e

    def public_url(self, path: str) -> str:
        return self.bucket.blob(path).public_url


def get_storage():
    if settings.USE_FIREBASE:
        return FirebaseStorage()
    return LocalStorage()
