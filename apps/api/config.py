"""
Application configuration using Pydantic Settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./streamstore.db"

    # Redis
    REDIS_URL: str = "redis://localhost:6379"

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_PREFIX: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # Security
    JWT_SECRET: str = "change_me_in_production"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_HOURS: int = 24 * 30
    AUTH_COOKIE_NAME: str = "token"
    AUTH_COOKIE_SECURE: bool = False
    AUTO_CREATE_DB_SCHEMA: bool = True

    # Blob storage
    UPLOAD_DIR: str = "/tmp/streamstore_uploads"
    PUBLIC_MEDIA_BASE_URL: str = "/media"
    MAX_VIDEO_UPLOAD_BYTES: int = 500 * 1024 * 1024
    MAX_THUMBNAIL_UPLOAD_BYTES: int = 10 * 1024 * 1024

    # Rate limiting
    RATE_LIMIT_PER_WINDOW: int = 1000
    RATE_LIMIT_WINDOW_SECONDS: int = 900
    TRUST_PROXY_HEADERS: bool = False

    # Discovery / engagement
    SEARCH_RESULT_LIMIT: int = 50
    TEXT_MATCH_SCAN_LIMIT: int = 1000
    RELATED_RESULT_LIMIT: int = 10
    TRENDING_RESULT_LIMIT: int = 20
    WATCH_HISTORY_LIMIT: int = 100
    MAX_LIKES_DELTA: int = 10000

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True)


settings = Settings()


def validate_security_settings() -> None:
    """Fail fast when insecure default secrets are still configured."""
    insecure_values = {
        "",
        "change_me_in_production",
        "your-secret-key",
        "your_jwt_secret_change_in_production",
    }
    jwt_secret = (settings.JWT_SECRET or "").strip()

    if jwt_secret in insecure_values or len(jwt_secret) < 24:
        raise ValueError("JWT_SECRET is insecure. Configure a strong non-default secret (>=24 chars).")
