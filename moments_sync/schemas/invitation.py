"""Invitation wire schemas and conversions."""

from collections.abc import Iterable
from datetime import date
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from moments_sync.models import Invitation, InvitationStatus
from moments_sync.schemas.common import (
    EnumTable,
    build_share_url,
    format_timestamp,
    parse_or_default,
    parse_timestamp,
    parse_updated_at,
)
from moments_sync.utils import utcnow

INVITATION_STATUSES = EnumTable(
    "invitation status",
    {
        InvitationStatus.PENDING: "pending",
        InvitationStatus.ACCEPTED: "accepted",
        InvitationStatus.DECLINED: "declined",
        InvitationStatus.WAITING_APPROVAL: "waiting_approval",
    },
    default=InvitationStatus.PENDING,
)


class RemoteInvitation(BaseModel):
    """Row of the remote invitations table."""

    model_config = ConfigDict(extra="ignore")

    id: UUID
    event_id: UUID
    inviter_id: UUID | None = None
    invitee_user_id: UUID | None = None
    guest_name: str
    guest_email: str | None = None
    guest_phone_number: str | None = None
    status: str | None = None
    plus_ones: int | None = 0
    sent_at: str | None = None
    responded_at: str | None = None
    guest_message: str | None = None
    share_token: str | None = None
    share_url: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class InvitationCreate(BaseModel):
    """Insert payload; the share token is generated server side."""

    id: UUID
    event_id: UUID
    inviter_id: UUID | None = None
    guest_name: str = Field(..., min_length=1)
    guest_email: str | None = None
    guest_phone_number: str | None = None
    status: str
    plus_ones: int = Field(0, ge=0)
    sent_at: str | None = None
    responded_at: str | None = None
    guest_message: str | None = None


class InvitationUpdate(BaseModel):
    """Sparse update payload for a guest response."""

    status: str | None = None
    plus_ones: int | None = Field(None, ge=0)
    responded_at: str | None = None
    guest_message: str | None = None


def invitation_create_payload(invitation: Invitation, inviter_id: UUID | None) -> dict:
    payload = InvitationCreate(
        id=invitation.id,
        event_id=invitation.event_id or invitation.event.id,
        inviter_id=inviter_id,
        guest_name=invitation.guest_name,
        guest_email=invitation.guest_email,
        guest_phone_number=invitation.guest_phone,
        status=INVITATION_STATUSES.to_remote(invitation.status),
        plus_ones=invitation.plus_ones or 0,
        sent_at=format_timestamp(invitation.sent_at) if invitation.sent_at else None,
        responded_at=(
            format_timestamp(invitation.responded_at) if invitation.responded_at else None
        ),
        guest_message=invitation.guest_message,
    )
    return payload.model_dump(mode="json", exclude_none=True)


def invitation_update_payload(invitation: Invitation) -> dict:
    fields = {
        "status": INVITATION_STATUSES.to_remote(invitation.status),
        "plus_ones": invitation.plus_ones,
        "responded_at": (
            format_timestamp(invitation.responded_at) if invitation.responded_at else None
        ),
        "guest_message": invitation.guest_message,
    }
    fields = {k: v for k, v in fields.items() if v is not None}
    return InvitationUpdate(**fields).model_dump(mode="json", exclude_unset=True)


def invitation_from_remote(remote: RemoteInvitation, share_base_url: str) -> Invitation:
    invitation = Invitation(
        id=remote.id,
        event_id=remote.event_id,
        guest_name=remote.guest_name,
        guest_email=remote.guest_email,
        guest_phone=remote.guest_phone_number,
        status=INVITATION_STATUSES.from_remote(remote.status),
        plus_ones=max(remote.plus_ones or 0, 0),
        sent_at=parse_or_default(
            parse_timestamp, remote.sent_at, "invitations.sent_at", utcnow()
        ),
        responded_at=parse_or_default(
            parse_timestamp, remote.responded_at, "invitations.responded_at"
        ),
        guest_message=remote.guest_message,
        created_at=parse_or_default(
            parse_timestamp, remote.created_at, "invitations.created_at", utcnow()
        ),
        updated_at=parse_updated_at(remote.updated_at) or utcnow(),
    )
    merge_server_fields(invitation, remote, share_base_url)
    return invitation


def merge_server_fields(
    invitation: Invitation, remote: RemoteInvitation, share_base_url: str
) -> None:
    """Copy server-generated fields (share token and link, ids) onto the local record."""
    if remote.share_token:
        invitation.share_token = remote.share_token
        invitation.share_url = remote.share_url or build_share_url(
            share_base_url, remote.share_token
        )
    if remote.inviter_id is not None:
        invitation.inviter_id = remote.inviter_id
    if remote.invitee_user_id is not None:
        invitation.invitee_user_id = remote.invitee_user_id


class InvitationStats(BaseModel):
    """Response counts for one event, as returned by get_event_invitation_stats."""

    model_config = ConfigDict(extra="ignore")

    total_invitations: int = 0
    accepted_count: int = 0
    pending_count: int = 0
    declined_count: int = 0
    waiting_approval_count: int = 0
    # Accepted guests plus the companions they bring
    total_guests: int = 0


def invitation_stats(invitations: Iterable[Invitation]) -> InvitationStats:
    """Compute the same counts from local invitations."""
    counts = {status: 0 for status in InvitationStatus}
    total = guests = 0
    for invitation in invitations:
        status = invitation.status or InvitationStatus.PENDING
        counts[status] += 1
        total += 1
        if status == InvitationStatus.ACCEPTED:
            guests += 1 + (invitation.plus_ones or 0)
    return InvitationStats(
        total_invitations=total,
        accepted_count=counts[InvitationStatus.ACCEPTED],
        pending_count=counts[InvitationStatus.PENDING],
        declined_count=counts[InvitationStatus.DECLINED],
        waiting_approval_count=counts[InvitationStatus.WAITING_APPROVAL],
        total_guests=guests,
    )


def share_message(invitation: Invitation, event_title: str, event_date: date) -> str:
    """Text a host sends to a guest, with the reply link once the invitation is pushed."""
    when = f"{event_date.day} {event_date:%B %Y}"
    lines = [
        f"Hi {invitation.guest_name}!",
        "",
        f'You are invited to "{event_title}" on {when}.',
        "",
    ]
    if invitation.share_url:
        lines += ["Reply here:", invitation.share_url, "", "See you soon!"]
    else:
        lines.append("Join me on the Moments app to confirm you are coming!")
    return "\n".join(lines)
