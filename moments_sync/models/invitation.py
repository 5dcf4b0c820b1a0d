"""Invitation SQLAlchemy model."""

import enum
from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from moments_sync.database import Base
from moments_sync.errors import InvalidTransitionError
from moments_sync.utils import utcnow

if TYPE_CHECKING:
    from moments_sync.models.event import Event


class InvitationStatus(str, enum.Enum):
    """Guest response state."""

    PENDING = "Pending"
    ACCEPTED = "Accepted"
    DECLINED = "Declined"
    WAITING_APPROVAL = "Waiting for approval"


ALLOWED_TRANSITIONS: dict[InvitationStatus, frozenset[InvitationStatus]] = {
    InvitationStatus.PENDING: frozenset(
        {
            InvitationStatus.ACCEPTED,
            InvitationStatus.DECLINED,
            InvitationStatus.WAITING_APPROVAL,
        }
    ),
    InvitationStatus.WAITING_APPROVAL: frozenset(
        {InvitationStatus.ACCEPTED, InvitationStatus.DECLINED}
    ),
    InvitationStatus.ACCEPTED: frozenset(),
    InvitationStatus.DECLINED: frozenset(),
}


class Invitation(Base):
    """Invitation sent to a guest for one of the user's events."""

    __tablename__ = "invitations"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    event_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("events.id", ondelete="CASCADE"), nullable=False
    )
    guest_name: Mapped[str] = mapped_column(String(200), nullable=False)
    guest_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    guest_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    status: Mapped[InvitationStatus] = mapped_column(
        Enum(InvitationStatus), nullable=False, default=InvitationStatus.PENDING
    )
    sent_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    responded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    guest_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    plus_ones: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Local contact back-reference, no remote foreign key
    contact_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    share_token: Mapped[str | None] = mapped_column(String(128), nullable=True)
    share_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    inviter_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    invitee_user_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    # Relationships
    event: Mapped["Event"] = relationship("Event", back_populates="invitations")

    @validates("plus_ones")
    def validate_plus_ones(self, key: str, value: int) -> int:
        if value is not None and value < 0:
            raise ValueError("plus_ones must be non-negative")
        return value

    @property
    def has_responded(self) -> bool:
        return self.status in (InvitationStatus.ACCEPTED, InvitationStatus.DECLINED)

    @property
    def total_guests(self) -> int:
        return 1 + self.plus_ones

    def can_transition_to(self, target: InvitationStatus) -> bool:
        current = self.status or InvitationStatus.PENDING
        return target in ALLOWED_TRANSITIONS[current]

    def _transition(
        self,
        target: InvitationStatus,
        message: str | None = None,
        responded: bool = True,
    ) -> None:
        current = self.status or InvitationStatus.PENDING
        if not self.can_transition_to(target):
            raise InvalidTransitionError(current.value, target.value)
        now = utcnow()
        self.status = target
        if responded:
            self.responded_at = now
            self.guest_message = message
        self.updated_at = now

    def accept(self, message: str | None = None) -> None:
        self._transition(InvitationStatus.ACCEPTED, message)

    def decline(self, message: str | None = None) -> None:
        self._transition(InvitationStatus.DECLINED, message)

    def request_to_join(self, message: str | None = None) -> None:
        self._transition(InvitationStatus.WAITING_APPROVAL, message)

    def approve(self) -> None:
        """Organizer approves a join request."""
        if self.status != InvitationStatus.WAITING_APPROVAL:
            raise InvalidTransitionError(self.status.value, InvitationStatus.ACCEPTED.value)
        self._transition(InvitationStatus.ACCEPTED, responded=False)

    def reject(self) -> None:
        """Organizer rejects a join request."""
        if self.status != InvitationStatus.WAITING_APPROVAL:
            raise InvalidTransitionError(self.status.value, InvitationStatus.DECLINED.value)
        self._transition(InvitationStatus.DECLINED, responded=False)

    def __repr__(self) -> str:
        return f"<Invitation {self.guest_name} ({self.status.value})>"
