"""Event photo SQLAlchemy model."""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import DateTime, ForeignKey, Integer, LargeBinary, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from moments_sync.database import Base
from moments_sync.utils import utcnow

if TYPE_CHECKING:
    from moments_sync.models.event import Event


class EventPhoto(Base):
    """Photo added to an event album."""

    __tablename__ = "event_photos"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    event_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    image_data: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    caption: Mapped[str | None] = mapped_column(Text, nullable=True)
    uploaded_by: Mapped[str | None] = mapped_column(String(200), nullable=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    # Relationships
    event: Mapped["Event"] = relationship("Event", back_populates="photos")

    @property
    def file_name(self) -> str:
        """Flat storage key; the key is recovered from the URL's last segment."""
        return f"{self.id}.jpg"

    def __repr__(self) -> str:
        return f"<EventPhoto {self.id} #{self.display_order}>"
