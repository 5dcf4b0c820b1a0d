"""Wishlist item SQLAlchemy model."""

import enum
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import (
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    LargeBinary,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from moments_sync.database import Base
from moments_sync.utils import utcnow

if TYPE_CHECKING:
    from moments_sync.models.event import Event

MIN_PRIORITY = 1
MAX_PRIORITY = 3


class GiftCategory(str, enum.Enum):
    """Gift category."""

    FASHION = "Fashion"
    TECH = "Tech"
    HOME = "Home"
    BEAUTY = "Beauty"
    SPORT = "Sport"
    LEISURE = "Leisure"
    BOOK = "Book"
    EXPERIENCE = "Experience"
    MONEY = "Money"
    OTHER = "Other"


class GiftStatus(str, enum.Enum):
    """Gift lifecycle status."""

    WANTED = "Wanted"
    RESERVED = "Reserved"
    PURCHASED = "Purchased"
    RECEIVED = "Received"


class WishlistItem(Base):
    """Gift in a wishlist.

    An item belongs either to the user's personal wishlist, to one of the
    user's events, or to a contact's wishlist. Only the personal wishlist
    is synchronized remotely.
    """

    __tablename__ = "wishlist_items"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    owner_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    event_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=True
    )
    contact_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    url: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Local-only attachment, never synced
    image: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True)
    category: Mapped[GiftCategory] = mapped_column(
        Enum(GiftCategory), nullable=False, default=GiftCategory.OTHER
    )
    status: Mapped[GiftStatus] = mapped_column(
        Enum(GiftStatus), nullable=False, default=GiftStatus.WANTED
    )
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=2)
    reserved_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    # Relationships
    event: Mapped["Event"] = relationship("Event", back_populates="wishlist_items")

    @validates("price")
    def validate_price(self, key: str, value: Decimal | None) -> Decimal | None:
        if value is not None and value < 0:
            raise ValueError("price must be non-negative")
        return value

    @property
    def is_personal(self) -> bool:
        """Check if item is in the user's own wishlist (no event, no contact)."""
        return self.event_id is None and self.contact_id is None

    def touch(self) -> None:
        self.updated_at = utcnow()

    def __repr__(self) -> str:
        return f"<WishlistItem {self.title}>"
