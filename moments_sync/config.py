"""Sync engine configuration settings."""

from functools import lru_cache
from typing import Literal
from uuid import UUID

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "Moments Sync"
    environment: Literal["development", "staging", "production"] = "development"

    # Remote backend (PostgREST + Storage)
    supabase_url: str = "http://localhost:54321"
    supabase_anon_key: str = ""

    # Session used by command line runs
    user_id: UUID | None = None
    access_token: str = ""

    # Local persistence
    local_database_url: str = "sqlite:///moments.db"
    sync_state_database_url: str = "sqlite:///sync_state.db"

    # Storage buckets
    event_covers_bucket: str = "event-covers"
    event_profiles_bucket: str = "event-profiles"
    event_photos_bucket: str = "event-photos"
    avatars_bucket: str = "avatars"
    wishlist_images_bucket: str = "wishlist-images"

    # Public invitation links
    share_base_url: str = "https://moments.app/invitation"

    # Network timeouts (seconds)
    connect_timeout: float = 10.0
    read_timeout: float = 30.0
    write_timeout: float = 30.0
    pool_timeout: float = 60.0

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "json"

    @field_validator("supabase_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the backend URL so paths can be appended."""
        return v.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
