"""Configuration management for GuestCap."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    ENV: str = "local"
    SERVICE_NAME: str = "guestcap-api"
    SERVICE_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # GCP Configuration
    GCP_PROJECT_ID: str = ""

    # Storage Configuration
    STORAGE_BACKEND: str = "local"  # "gcs" or "local"
    GCS_BUCKET_NAME: str = ""
    LOCAL_STORAGE_PATH: str = "data/event-photos"
    PUBLIC_BASE_URL: str = "http://localhost:8000"
    URL_SIGNING_SECRET: str = "change-me"
    SIGNED_URL_EXPIRATION_MINUTES: int = 15

    # Event quota
    DEFAULT_STORAGE_LIMIT_MB: int = 10240  # 10GB

    # Rate limiting
    REDIS_URL: str = ""  # empty = in-process limiter
    RATE_LIMIT_PREFIX: str = "@guestcap"
    UPLOAD_RATE_LIMIT: int = 300  # files per window per guest
    UPLOAD_RATE_WINDOW_SECONDS: int = 3600
    DOWNLOAD_RATE_LIMIT: int = 5  # ZIP downloads per window per event
    DOWNLOAD_RATE_WINDOW_SECONDS: int = 3600
    API_RATE_LIMIT: int = 100
    API_RATE_WINDOW_SECONDS: int = 60

    # Uploader client
    API_BASE_URL: str = "http://localhost:8000/api/v1"
    UPLOAD_MAX_RETRIES: int = 3  # additional attempts after the first
    UPLOAD_RETRY_DELAY_BASE_SECONDS: float = 1.0
    UPLOAD_CHUNK_SIZE_BYTES: int = 256 * 1024
    REQUEST_TIMEOUT: int = 300  # seconds


# Singleton settings instance
settings = Settings()
