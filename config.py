"""Configuration settings for the Baptism Gallery API"""
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database
    DATABASE_URL: str = "postgresql://user:pass@db:5432/baptism_gallery"

    # AI gateway (OpenAI-compatible chat completions)
    AI_GATEWAY_URL: str = "https://ai.gateway.lovable.dev/v1/chat/completions"
    AI_GATEWAY_API_KEY: str = ""
    AI_MODEL: str = "google/gemini-2.5-flash"
    AI_TIMEOUT_SECONDS: Optional[float] = None  # None = wait forever

    # MinIO
    MINIO_ENDPOINT: str = "minio:9000"
    MINIO_PUBLIC_URL: str = "http://localhost:9000"
    MINIO_ACCESS_KEY: str = "admin"
    MINIO_SECRET_KEY: str = "supersecret"
    MINIO_SECURE: bool = False
    PHOTO_BUCKET: str = "baptism-photos"
    VIDEO_BUCKET: str = "baptism-videos"

    # Auth
    JWT_SECRET_KEY: str = "change-me-in-production"
    ADMIN_USERNAME: str = ""
    ADMIN_PASSWORD: str = ""

    # Uploads
    UPLOAD_CONCURRENCY: int = 3
    MAX_PHOTO_BYTES: int = 50 * 1024 * 1024
    MAX_VIDEO_BYTES: int = 500 * 1024 * 1024

    # Search
    SEARCH_RESULT_LIMIT: int = 6

    # Metadata failure policy per media kind
    PHOTO_METADATA_FALLBACK: bool = False
    VIDEO_METADATA_FALLBACK: bool = True

    # Refuse to start when required values are missing
    FAIL_FAST_CONFIG: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = True


REQUIRED_SETTINGS = ("AI_GATEWAY_API_KEY", "DATABASE_URL")


def missing_settings(config: Settings) -> list[str]:
    """Return the names of required settings that are empty."""
    return [name for name in REQUIRED_SETTINGS if not getattr(config, name)]


settings = Settings()
