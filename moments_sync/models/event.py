"""Event SQLAlchemy model."""

import datetime as dt
import enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    Date,
    DateTime,
    Enum,
    Integer,
    LargeBinary,
    String,
    Text,
    Time,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from moments_sync.database import Base
from moments_sync.utils import utcnow

if TYPE_CHECKING:
    from moments_sync.models.invitation import Invitation
    from moments_sync.models.photo import EventPhoto
    from moments_sync.models.wishlist import WishlistItem


class EventType(str, enum.Enum):
    """Kind of event the user organizes."""

    BIRTHDAY = "My birthday"
    WEDDING = "My wedding"
    BABY_SHOWER = "Baby shower"
    BACHELOR_PARTY = "Bachelor party"
    HOUSEWARMING = "Housewarming"
    GRADUATION = "Graduation"
    CHRISTMAS = "Christmas"
    NEW_YEAR = "New Year"
    OTHER = "Other"


class Event(Base):
    """Event organized by the user."""

    __tablename__ = "events"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    owner_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    event_type: Mapped[EventType] = mapped_column(
        Enum(EventType), nullable=False, default=EventType.OTHER
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    time: Mapped[dt.time | None] = mapped_column(Time, nullable=True)
    location_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    location_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    cover_image: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True)
    cover_image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    profile_image: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True)
    profile_image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    capacity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rsvp_deadline: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    # Relationships
    invitations: Mapped[list["Invitation"]] = relationship(
        "Invitation", back_populates="event", cascade="all, delete-orphan"
    )
    photos: Mapped[list["EventPhoto"]] = relationship(
        "EventPhoto",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="EventPhoto.display_order",
    )
    wishlist_items: Mapped[list["WishlistItem"]] = relationship(
        "WishlistItem", back_populates="event", cascade="all, delete-orphan"
    )

    def touch(self) -> None:
        self.updated_at = utcnow()

    def __repr__(self) -> str:
        return f"<Event {self.title}>"
