"""SQLAlchemy models for the local entity store."""

from moments_sync.models.event import Event, EventType
from moments_sync.models.invitation import ALLOWED_TRANSITIONS, Invitation, InvitationStatus
from moments_sync.models.photo import EventPhoto
from moments_sync.models.profile import UserProfile
from moments_sync.models.wishlist import (
    MAX_PRIORITY,
    MIN_PRIORITY,
    GiftCategory,
    GiftStatus,
    WishlistItem,
)

__all__ = [
    "Event",
    "EventType",
    "Invitation",
    "InvitationStatus",
    "ALLOWED_TRANSITIONS",
    "EventPhoto",
    "UserProfile",
    "WishlistItem",
    "GiftCategory",
    "GiftStatus",
    "MIN_PRIORITY",
    "MAX_PRIORITY",
]
