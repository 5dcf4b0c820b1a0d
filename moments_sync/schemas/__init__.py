"""Remote wire schemas and local/remote conversions."""

from moments_sync.schemas.common import (
    EnumTable,
    build_share_url,
    format_date,
    format_time,
    format_timestamp,
    from_minor_units,
    parse_date,
    parse_time,
    parse_timestamp,
    parse_updated_at,
    to_minor_units,
)
from moments_sync.schemas.event import (
    EVENT_TYPES,
    EventCreate,
    EventUpdate,
    RemoteEvent,
    apply_remote_event,
    event_create_payload,
    event_from_remote,
    event_snapshot,
    event_update_payload,
)
from moments_sync.schemas.invitation import (
    INVITATION_STATUSES,
    InvitationCreate,
    InvitationStats,
    InvitationUpdate,
    RemoteInvitation,
    invitation_create_payload,
    invitation_from_remote,
    invitation_stats,
    invitation_update_payload,
    merge_server_fields,
    share_message,
)
from moments_sync.schemas.photo import (
    EventPhotoCreate,
    RemoteEventPhoto,
    event_photo_create_payload,
    event_photo_from_remote,
)
from moments_sync.schemas.profile import (
    RemoteUserProfile,
    UserProfileUpsert,
    apply_remote_profile,
    profile_from_remote,
    profile_upsert_payload,
)
from moments_sync.schemas.wishlist import (
    GIFT_CATEGORIES,
    GIFT_STATUSES,
    RemoteWishlistItem,
    WishlistItemCreate,
    WishlistItemUpdate,
    apply_remote_wishlist_item,
    wishlist_item_create_payload,
    wishlist_item_from_remote,
    wishlist_item_update_payload,
)

__all__ = [
    # Common
    "EnumTable",
    "build_share_url",
    "format_date",
    "format_time",
    "format_timestamp",
    "from_minor_units",
    "parse_date",
    "parse_time",
    "parse_timestamp",
    "parse_updated_at",
    "to_minor_units",
    # Event
    "EVENT_TYPES",
    "EventCreate",
    "EventUpdate",
    "RemoteEvent",
    "apply_remote_event",
    "event_create_payload",
    "event_from_remote",
    "event_snapshot",
    "event_update_payload",
    # Invitation
    "INVITATION_STATUSES",
    "InvitationCreate",
    "InvitationStats",
    "InvitationUpdate",
    "RemoteInvitation",
    "invitation_create_payload",
    "invitation_from_remote",
    "invitation_stats",
    "invitation_update_payload",
    "merge_server_fields",
    "share_message",
    # Photo
    "EventPhotoCreate",
    "RemoteEventPhoto",
    "event_photo_create_payload",
    "event_photo_from_remote",
    # Profile
    "RemoteUserProfile",
    "UserProfileUpsert",
    "apply_remote_profile",
    "profile_from_remote",
    "profile_upsert_payload",
    # Wishlist
    "GIFT_CATEGORIES",
    "GIFT_STATUSES",
    "RemoteWishlistItem",
    "WishlistItemCreate",
    "WishlistItemUpdate",
    "apply_remote_wishlist_item",
    "wishlist_item_create_payload",
    "wishlist_item_from_remote",
    "wishlist_item_update_payload",
]
