"""
Runtime configuration helpers for the Clipstream service layer.

Loads backend credentials and realtime tuning from the process environment,
falling back to the .env file located in the project root.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root
BASE_DIR = Path(__file__).resolve().parents[1]

# Absolute path to .env
ENV_PATH = BASE_DIR / ".env"

# Load .env defaults without overriding environment variables provided by the platform
load_dotenv(dotenv_path=ENV_PATH, override=False)


class Settings(BaseSettings):
    app_name: str = Field(default="Clipstream", alias="APP_NAME")
    api_version: str = Field(default="0.1.0", alias="API_VERSION")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    cors_origins: str | None = Field(default=None, alias="CORS_ORIGINS")

    # Hosted backend
    backend_mode: Literal["memory", "rest"] = Field(default="memory", alias="BACKEND_MODE")
    backend_url: str = Field(default="http://localhost:54321", alias="BACKEND_URL")
    backend_api_key: str | None = Field(default=None, alias="BACKEND_API_KEY")
    backend_timeout: float = Field(default=10.0, alias="BACKEND_TIMEOUT")

    # Table / bucket names
    follows_table: str = Field(default="follows", alias="FOLLOWS_TABLE")
    media_bucket: str = Field(default="chat-media", alias="MEDIA_BUCKET")
    video_bucket: str = Field(default="videos", alias="VIDEO_BUCKET")
    profile_bucket: str = Field(default="profile-pictures", alias="PROFILE_BUCKET")
    max_upload_bytes: int = Field(default=100 * 1024 * 1024, alias="MAX_UPLOAD_BYTES")

    # Feed
    feed_page_size: int = Field(default=50, alias="FEED_PAGE_SIZE")

    # Realtime tuning
    typing_expiry_seconds: float = Field(default=3.0, alias="TYPING_EXPIRY_SECONDS")
    heartbeat_interval_seconds: float = Field(default=30.0, alias="HEARTBEAT_INTERVAL_SECONDS")
    chat_poll_interval_seconds: float = Field(default=3.0, alias="CHAT_POLL_INTERVAL_SECONDS")

    # Background fetch retries (transient failures only)
    fetch_retries: int = Field(default=2, alias="FETCH_RETRIES")
    fetch_backoff_seconds: float = Field(default=0.5, alias="FETCH_BACKOFF_SECONDS")

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
