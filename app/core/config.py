"""
Configuration settings for the application
"""

import os
from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application settings"""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./event_memories.db")
    USE_FIREBASE: bool = os.getenv("USE_FIREBASE", "false").lower() in ("1", "true", "yes")
    FIREBASE_CREDENTIALS_JSON: str | None = os.getenv("FIREBASE_CREDENTIALS_JSON")
    FIREBASE_CREDENTIALS_FILE: str | None = os.getenv("FIREBASE_CREDENTIALS_FILE")
    FIREBASE_CREDENTIALS_B64: str | None = os.getenv("FIREBASE_CREDENTIALS_B64")
    FIREBASE_STORAGE_BUCKET: str | None = os.getenv("FIREBASE_STORAGE_BUCKET")

    # Security
    ADMIN_TOKEN: str = os.getenv("ADMIN_TOKEN", "admin_token_123")

    # Application
    BASE_URL: str = os.getenv("BASE_URL", "http://localhost:8000")

    # CORS
    ALLOW_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:8000",
    ]

    # Object storage
    UPLOAD_DIR: str = os.getenv("UPLOAD_DIR", "uploads")
    STORAGE_BUCKET: str = "event-media"
    MAX_UPLOAD_SIZE: int = 50 * 1024 * 1024  # 50MB, videos included

    # Rate limiting
    RATE_LIMIT_PER_MINUTE: int = 30

    # Live feed
    FEED_FETCH_LIMIT: int = 10
    FEED_DISPLAY_CAP: int = 15
    UPLOADS_PAGE_SIZE: int = 12

    # Event deletion
    DELETE_VERIFY_DELAY_SECONDS: float = 1.0
    DELETE_VERIFY_ATTEMPTS: int = 3
    DELETE_OWNERSHIP_FAIL_FAST: bool = True

    # Payments (Flutterwave)
    FLW_SECRET_KEY: str = os.getenv("FLW_SECRET_KEY", "")
    FLW_BASE_URL: str = "https://api.flutterwave.com/v3"

    class Config:
        env_file = ".env"

settings = Settings()
