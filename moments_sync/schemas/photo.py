"""Event photo wire schemas and conversions."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from moments_sync.models import EventPhoto
from moments_sync.schemas.common import parse_or_default, parse_timestamp
from moments_sync.utils import utcnow


class RemoteEventPhoto(BaseModel):
    """Row of the remote event_photos table."""

    model_config = ConfigDict(extra="ignore")

    id: UUID
    event_id: UUID
    image_url: str
    caption: str | None = None
    uploaded_by: str | None = None
    display_order: int | None = 0
    uploaded_at: str | None = None
    created_at: str | None = None


class EventPhotoCreate(BaseModel):
    """Insert payload; a photo row always points at an uploaded blob."""

    id: UUID
    event_id: UUID
    image_url: str = Field(..., min_length=1)
    caption: str | None = None
    uploaded_by: str | None = None
    display_order: int = 0


def event_photo_create_payload(photo: EventPhoto) -> dict:
    if not photo.image_url:
        raise ValueError(f"Photo {photo.id} has no uploaded image URL")
    payload = EventPhotoCreate(
        id=photo.id,
        event_id=photo.event_id or photo.event.id,
        image_url=photo.image_url,
        caption=photo.caption,
        uploaded_by=photo.uploaded_by,
        display_order=photo.display_order or 0,
    )
    return payload.model_dump(mode="json", exclude_none=True)


def event_photo_from_remote(remote: RemoteEventPhoto) -> EventPhoto:
    return EventPhoto(
        id=remote.id,
        event_id=remote.event_id,
        image_url=remote.image_url,
        caption=remote.caption,
        uploaded_by=remote.uploaded_by,
        display_order=remote.display_order or 0,
        uploaded_at=parse_or_default(
            parse_timestamp,
            remote.uploaded_at or remote.created_at,
            "event_photos.uploaded_at",
            utcnow(),
        ),
    )
