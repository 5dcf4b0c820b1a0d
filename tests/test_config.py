"""Tests for settings loading."""

from uuid import UUID

from moments_sync.config import Settings, get_settings


def test_backend_url_trailing_slash_is_stripped() -> None:
    settings = Settings(_env_file=None, supabase_url="https://project.test///")
    assert settings.supabase_url == "https://project.test"


def test_environment_overrides(monkeypatch) -> None:
    monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
    monkeypatch.setenv("USER_ID", "11111111-1111-4111-8111-111111111111")
    monkeypatch.setenv("EVENT_PHOTOS_BUCKET", "album")
    monkeypatch.setenv("READ_TIMEOUT", "5")

    settings = Settings(_env_file=None)

    assert settings.supabase_anon_key == "anon"
    assert settings.user_id == UUID("11111111-1111-4111-8111-111111111111")
    assert settings.event_photos_bucket == "album"
    assert settings.read_timeout == 5.0


def test_defaults() -> None:
    settings = Settings(_env_file=None)

    assert settings.event_covers_bucket == "event-covers"
    assert settings.log_format == "json"
    assert settings.user_id is None


def test_get_settings_is_cached() -> None:
    get_settings.cache_clear()
    try:
        assert get_settings() is get_settings()
    finally:
        get_settings.cache_clear()
