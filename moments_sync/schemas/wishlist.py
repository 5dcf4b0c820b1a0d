"""Wishlist item wire schemas and conversions."""

import logging
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from moments_sync.models import (
    MAX_PRIORITY,
    MIN_PRIORITY,
    GiftCategory,
    GiftStatus,
    WishlistItem,
)
from moments_sync.schemas.common import (
    EnumTable,
    from_minor_units,
    parse_or_default,
    parse_timestamp,
    parse_updated_at,
    to_minor_units,
)
from moments_sync.utils import utcnow

logger = logging.getLogger(__name__)

DEFAULT_PRIORITY = 2

GIFT_CATEGORIES = EnumTable(
    "gift category",
    {
        GiftCategory.FASHION: "fashion",
        GiftCategory.TECH: "tech",
        GiftCategory.HOME: "home",
        GiftCategory.BEAUTY: "beauty",
        GiftCategory.SPORT: "sport",
        GiftCategory.LEISURE: "leisure",
        GiftCategory.BOOK: "book",
        GiftCategory.EXPERIENCE: "experience",
        GiftCategory.MONEY: "money",
        GiftCategory.OTHER: "other",
    },
    default=GiftCategory.OTHER,
)

GIFT_STATUSES = EnumTable(
    "gift status",
    {
        GiftStatus.WANTED: "wanted",
        GiftStatus.RESERVED: "reserved",
        GiftStatus.PURCHASED: "purchased",
        GiftStatus.RECEIVED: "received",
    },
    default=GiftStatus.WANTED,
)


class RemoteWishlistItem(BaseModel):
    """Row of the remote wishlist_items table."""

    model_config = ConfigDict(extra="ignore")

    id: UUID
    user_id: UUID
    title: str
    description: str | None = None
    price_in_cents: int | None = None
    url: str | None = None
    category: str | None = None
    status: str | None = None
    # Share-intake writes 1-5, so no range check on the way in
    priority: int | None = None
    reserved_by: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class WishlistItemCreate(BaseModel):
    """Insert payload."""

    id: UUID
    user_id: UUID
    title: str = Field(..., min_length=1)
    description: str | None = None
    price_in_cents: int | None = Field(None, ge=0)
    url: str | None = None
    category: str
    status: str
    priority: int = Field(DEFAULT_PRIORITY, ge=MIN_PRIORITY, le=MAX_PRIORITY)
    reserved_by: str | None = None


class WishlistItemUpdate(BaseModel):
    """Sparse update payload.

    reserved_by is sent explicitly as null when an item is unreserved.
    """

    title: str | None = Field(None, min_length=1)
    description: str | None = None
    price_in_cents: int | None = Field(None, ge=0)
    url: str | None = None
    category: str | None = None
    status: str | None = None
    priority: int | None = Field(None, ge=MIN_PRIORITY, le=MAX_PRIORITY)
    reserved_by: str | None = None


def _item_fields(item: WishlistItem) -> dict:
    return {
        "title": item.title,
        "description": item.description,
        "price_in_cents": to_minor_units(item.price) if item.price is not None else None,
        "url": item.url,
        "category": GIFT_CATEGORIES.to_remote(item.category),
        "status": GIFT_STATUSES.to_remote(item.status),
        "priority": item.priority,
        "reserved_by": item.reserved_by,
    }


def wishlist_item_create_payload(item: WishlistItem, user_id: UUID) -> dict:
    """Build the insert body; raises pydantic.ValidationError for priority outside 1-3."""
    payload = WishlistItemCreate(id=item.id, user_id=user_id, **_item_fields(item))
    return payload.model_dump(mode="json", exclude_none=True)


def wishlist_item_update_payload(item: WishlistItem) -> dict:
    fields = {k: v for k, v in _item_fields(item).items() if v is not None}
    # Unreserving must clear the remote reserver
    if item.status == GiftStatus.WANTED:
        fields["reserved_by"] = None
    return WishlistItemUpdate(**fields).model_dump(mode="json", exclude_unset=True)


def wishlist_item_from_remote(remote: RemoteWishlistItem) -> WishlistItem:
    item = WishlistItem(
        id=remote.id,
        created_at=parse_or_default(
            parse_timestamp, remote.created_at, "wishlist_items.created_at", utcnow()
        ),
    )
    apply_remote_wishlist_item(item, remote)
    return item


def apply_remote_wishlist_item(item: WishlistItem, remote: RemoteWishlistItem) -> None:
    priority = DEFAULT_PRIORITY if remote.priority is None else remote.priority
    if not MIN_PRIORITY <= priority <= MAX_PRIORITY:
        logger.warning(
            f"Wishlist item {remote.id} has priority {priority} "
            f"outside {MIN_PRIORITY}-{MAX_PRIORITY}, keeping it as is"
        )
    item.owner_id = remote.user_id
    item.title = remote.title
    item.description = remote.description
    item.price = (
        from_minor_units(remote.price_in_cents) if remote.price_in_cents is not None else None
    )
    item.url = remote.url
    item.category = GIFT_CATEGORIES.from_remote(remote.category)
    item.status = GIFT_STATUSES.from_remote(remote.status)
    item.priority = priority
    item.reserved_by = remote.reserved_by
    item.updated_at = parse_updated_at(remote.updated_at) or utcnow()
