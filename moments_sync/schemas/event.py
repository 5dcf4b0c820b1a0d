"""Event wire schemas and conversions."""

import logging
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from moments_sync.errors import TranslationError
from moments_sync.models import Event, EventType
from moments_sync.schemas.common import (
    EnumTable,
    format_date,
    format_time,
    parse_date,
    parse_or_default,
    parse_time,
    parse_timestamp,
    parse_updated_at,
)
from moments_sync.utils import utcnow

logger = logging.getLogger(__name__)

EVENT_TYPES = EnumTable(
    "event type",
    {
        EventType.BIRTHDAY: "birthday",
        EventType.WEDDING: "wedding",
        EventType.BABY_SHOWER: "baby_shower",
        EventType.BACHELOR_PARTY: "bachelor_party",
        EventType.HOUSEWARMING: "housewarming",
        EventType.GRADUATION: "graduation",
        EventType.CHRISTMAS: "christmas",
        EventType.NEW_YEAR: "new_year",
        EventType.OTHER: "other",
    },
    default=EventType.OTHER,
)


class RemoteEvent(BaseModel):
    """Row of the remote events table."""

    model_config = ConfigDict(extra="ignore")

    id: UUID
    owner_id: UUID | None = None
    type: str | None = None
    title: str
    description: str | None = None
    date: str
    time: str | None = None
    location: str | None = None
    location_address: str | None = None
    cover_photo_url: str | None = None
    profile_photo_url: str | None = None
    max_guests: int | None = None
    rsvp_deadline: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class EventCreate(BaseModel):
    """Insert payload; server computes the timestamps."""

    id: UUID
    owner_id: UUID | None = None
    type: str
    title: str = Field(..., min_length=1)
    description: str | None = None
    date: str
    time: str | None = None
    location: str | None = None
    location_address: str | None = None
    cover_photo_url: str | None = None
    profile_photo_url: str | None = None
    max_guests: int | None = Field(None, ge=0)
    rsvp_deadline: str | None = None


class EventUpdate(BaseModel):
    """Update payload; only the fields being changed are set."""

    type: str | None = None
    title: str | None = Field(None, min_length=1)
    description: str | None = None
    date: str | None = None
    time: str | None = None
    location: str | None = None
    location_address: str | None = None
    cover_photo_url: str | None = None
    profile_photo_url: str | None = None
    max_guests: int | None = Field(None, ge=0)
    rsvp_deadline: str | None = None


def _event_fields(event: Event) -> dict:
    return {
        "type": EVENT_TYPES.to_remote(event.event_type),
        "title": event.title,
        "description": event.description,
        "date": format_date(event.date),
        "time": format_time(event.time) if event.time is not None else None,
        "location": event.location_name,
        "location_address": event.location_address,
        "cover_photo_url": event.cover_image_url,
        "profile_photo_url": event.profile_image_url,
        "max_guests": event.capacity,
        "rsvp_deadline": (
            format_date(event.rsvp_deadline) if event.rsvp_deadline is not None else None
        ),
    }


def event_create_payload(event: Event, owner_id: UUID | None) -> dict:
    """Build the insert body, omitting absent optional fields."""
    payload = EventCreate(id=event.id, owner_id=owner_id, **_event_fields(event))
    return payload.model_dump(mode="json", exclude_none=True)


def event_snapshot(event: Event) -> dict:
    """Every mutable remote field of the event, cleared ones as None."""
    return EventUpdate(**_event_fields(event)).model_dump(mode="json")


def event_update_payload(event: Event, previous: dict | None = None) -> dict:
    """Build a sparse update body.

    With the snapshot from the last push, only fields that changed since
    are sent, and a field cleared locally goes out as an explicit null.
    Without one, every field that is set locally is sent.
    """
    current = event_snapshot(event)
    if previous is None:
        fields = {k: v for k, v in current.items() if v is not None}
    else:
        fields = {k: v for k, v in current.items() if previous.get(k) != v}
    return EventUpdate(**fields).model_dump(mode="json", exclude_unset=True)


def event_from_remote(remote: RemoteEvent) -> Event | None:
    """Materialize a remote event locally, or None when its date is unreadable."""
    try:
        event_date = parse_date(remote.date, "events.date")
    except TranslationError as e:
        logger.warning(f"Skipping remote event {remote.id}: {e}")
        return None

    event = Event(id=remote.id, date=event_date)
    _apply(event, remote)
    event.created_at = parse_or_default(
        parse_timestamp, remote.created_at, "events.created_at", utcnow()
    )
    return event


def apply_remote_event(event: Event, remote: RemoteEvent) -> None:
    """Overwrite local fields with the remote copy (remote wins)."""
    try:
        event.date = parse_date(remote.date, "events.date")
    except TranslationError as e:
        logger.warning(f"Keeping local date for event {event.id}: {e}")
    _apply(event, remote)


def _apply(event: Event, remote: RemoteEvent) -> None:
    event.owner_id = remote.owner_id
    event.event_type = EVENT_TYPES.from_remote(remote.type)
    event.title = remote.title
    event.description = remote.description
    event.time = parse_or_default(parse_time, remote.time, "events.time")
    event.location_name = remote.location
    event.location_address = remote.location_address
    event.cover_image_url = remote.cover_photo_url
    event.profile_image_url = remote.profile_photo_url
    event.capacity = remote.max_guests
    event.rsvp_deadline = parse_or_default(
        parse_date, remote.rsvp_deadline, "events.rsvp_deadline"
    )
    event.updated_at = parse_updated_at(remote.updated_at) or utcnow()

