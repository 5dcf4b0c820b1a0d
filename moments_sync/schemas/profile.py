"""User profile wire schemas and conversions."""

import logging
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from moments_sync.models import UserProfile
from moments_sync.schemas.common import (
    format_date,
    parse_date,
    parse_or_default,
    parse_timestamp,
    parse_updated_at,
)
from moments_sync.utils import utcnow

logger = logging.getLogger(__name__)

THEME_PREFERENCES = ("light", "dark", "auto")
DEFAULT_THEME = "auto"


class RemoteUserProfile(BaseModel):
    """Row of the remote user_profiles table."""

    model_config = ConfigDict(extra="ignore")

    id: UUID
    first_name: str | None = None
    last_name: str | None = None
    birth_date: str | None = None
    phone_number: str | None = None
    profile_photo_url: str | None = None
    address_street: str | None = None
    address_city: str | None = None
    address_postal_code: str | None = None
    address_country: str | None = None
    notification_enabled: bool | None = None
    theme_preference: str | None = None
    onboarding_completed: bool | None = None
    onboarding_step: int | None = None
    created_at: str | None = None
    updated_at: str | None = None


class UserProfileUpsert(BaseModel):
    """Upsert-by-id payload."""

    id: UUID
    first_name: str | None = None
    last_name: str | None = None
    birth_date: str | None = None
    phone_number: str | None = None
    profile_photo_url: str | None = None
    address_street: str | None = None
    address_city: str | None = None
    address_postal_code: str | None = None
    address_country: str | None = None
    notification_enabled: bool = True
    theme_preference: str = DEFAULT_THEME
    onboarding_completed: bool = False
    onboarding_step: int = Field(0, ge=0)


def _theme(value: str | None) -> str:
    if value in THEME_PREFERENCES:
        return value
    if value is not None:
        logger.warning(f"Unknown remote theme preference {value!r}, using {DEFAULT_THEME}")
    return DEFAULT_THEME


def profile_upsert_payload(profile: UserProfile) -> dict:
    payload = UserProfileUpsert(
        id=profile.id,
        first_name=profile.first_name or None,
        last_name=profile.last_name or None,
        birth_date=format_date(profile.birth_date) if profile.birth_date else None,
        phone_number=profile.phone_number,
        profile_photo_url=profile.profile_photo_url,
        address_street=profile.address_street,
        address_city=profile.address_city,
        address_postal_code=profile.address_postal_code,
        address_country=profile.address_country,
        notification_enabled=profile.notification_enabled,
        theme_preference=_theme(profile.theme_preference),
        onboarding_completed=profile.onboarding_completed,
        onboarding_step=profile.onboarding_step,
    )
    return payload.model_dump(mode="json", exclude_none=True)


def profile_from_remote(remote: RemoteUserProfile) -> UserProfile:
    profile = UserProfile(
        id=remote.id,
        created_at=parse_or_default(
            parse_timestamp, remote.created_at, "user_profiles.created_at", utcnow()
        ),
    )
    apply_remote_profile(profile, remote)
    return profile


def apply_remote_profile(profile: UserProfile, remote: RemoteUserProfile) -> None:
    """Overwrite the local profile with the remote copy; the photo bytes stay local."""
    profile.first_name = remote.first_name or ""
    profile.last_name = remote.last_name or ""
    profile.birth_date = parse_or_default(
        parse_date, remote.birth_date, "user_profiles.birth_date"
    )
    profile.phone_number = remote.phone_number
    profile.profile_photo_url = remote.profile_photo_url
    profile.address_street = remote.address_street
    profile.address_city = remote.address_city
    profile.address_postal_code = remote.address_postal_code
    profile.address_country = remote.address_country
    profile.notification_enabled = (
        remote.notification_enabled if remote.notification_enabled is not None else True
    )
    profile.theme_preference = _theme(remote.theme_preference)
    profile.onboarding_completed = bool(remote.onboarding_completed)
    profile.onboarding_step = remote.onboarding_step or 0
    profile.updated_at = parse_updated_at(remote.updated_at) or utcnow()
