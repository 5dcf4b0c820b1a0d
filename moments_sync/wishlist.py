"""Personal wishlist synchronization.

Runs outside the event cascade: only items with no event and no contact
are mirrored to the remote wishlist_items table.
"""

import logging

from moments_sync.errors import (
    RemoteConflictError,
    RemoteError,
    RemoteNotFoundError,
    UnauthenticatedError,
    WishlistSyncError,
)
from moments_sync.models import GiftStatus, WishlistItem
from moments_sync.remote import RemoteClient
from moments_sync.repository import LocalStore
from moments_sync.schemas import (
    apply_remote_wishlist_item,
    wishlist_item_create_payload,
    wishlist_item_from_remote,
    wishlist_item_update_payload,
)

logger = logging.getLogger(__name__)


class WishlistSync:
    """Local-first writes to the personal wishlist, mirrored remotely."""

    def __init__(self, remote: RemoteClient, store: LocalStore):
        self.remote = remote
        self.store = store

    def _user_id(self, operation: str):
        if not self.remote.auth.is_authenticated:
            raise UnauthenticatedError(operation)
        return self.remote.auth.user_id

    @staticmethod
    def _ensure_personal(item: WishlistItem) -> None:
        if not item.is_personal:
            raise ValueError(
                f"Wishlist item {item.id} belongs to an event or a contact and is not synced"
            )

    def _payload_or_rollback(self, build, *args) -> dict:
        """Build a payload, undoing the pending local write when it does not validate."""
        try:
            return build(*args)
        except ValueError:
            self.store.rollback()
            raise

    async def load(self) -> list[WishlistItem]:
        """Merge the remote personal wishlist into the local store (remote wins)."""
        user_id = self._user_id("load wishlist")
        try:
            remote_items = await self.remote.fetch_wishlist_items(user_id)
        except RemoteError as e:
            logger.error(f"Failed to load wishlist: {e}")
            raise WishlistSyncError(f"Failed to load wishlist: {e}") from e

        created = updated = 0
        for remote in remote_items:
            local = self.store.get(WishlistItem, remote.id)
            if local is None:
                self.store.upsert(wishlist_item_from_remote(remote))
                created += 1
            else:
                apply_remote_wishlist_item(local, remote)
                updated += 1
        self.store.commit()
        logger.info(f"Wishlist loaded: {created} added, {updated} updated")
        return self.store.personal_wishlist()

    async def add(self, item: WishlistItem) -> WishlistItem:
        self._ensure_personal(item)
        user_id = self._user_id("add wishlist item")
        item.owner_id = user_id
        item = self.store.upsert(item)
        self.store.flush()
        payload = self._payload_or_rollback(wishlist_item_create_payload, item, user_id)
        self.store.commit()

        try:
            await self.remote.create_wishlist_item(payload)
        except RemoteConflictError:
            logger.info(f"Wishlist item {item.id} already exists remotely")
        except RemoteError as e:
            raise WishlistSyncError(f"Failed to add wishlist item {item.id}: {e}") from e
        return item

    async def update(self, item: WishlistItem) -> WishlistItem:
        self._ensure_personal(item)
        self._user_id("update wishlist item")
        item.touch()
        item = self.store.upsert(item)
        payload = self._payload_or_rollback(wishlist_item_update_payload, item)
        self.store.commit()

        try:
            await self.remote.update_wishlist_item(item.id, payload)
        except RemoteNotFoundError:
            logger.warning(f"Wishlist item {item.id} not found remotely, update skipped")
        except RemoteError as e:
            raise WishlistSyncError(f"Failed to update wishlist item {item.id}: {e}") from e
        return item

    async def delete(self, item: WishlistItem) -> None:
        self._ensure_personal(item)
        self._user_id("delete wishlist item")
        item_id = item.id
        self.store.delete(item)
        self.store.commit()

        try:
            await self.remote.delete_wishlist_item(item_id)
        except RemoteNotFoundError:
            logger.info(f"Wishlist item {item_id} already gone remotely")
        except RemoteError as e:
            raise WishlistSyncError(f"Failed to delete wishlist item {item_id}: {e}") from e

    async def reserve(self, item: WishlistItem, by: str) -> WishlistItem:
        item.status = GiftStatus.RESERVED
        item.reserved_by = by
        return await self.update(item)

    async def unreserve(self, item: WishlistItem) -> WishlistItem:
        item.status = GiftStatus.WANTED
        item.reserved_by = None
        return await self.update(item)

    async def mark_purchased(self, item: WishlistItem) -> WishlistItem:
        item.status = GiftStatus.PURCHASED
        return await self.update(item)

    async def mark_received(self, item: WishlistItem) -> WishlistItem:
        item.status = GiftStatus.RECEIVED
        return await self.update(item)
