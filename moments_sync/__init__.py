"""Local/remote synchronization engine for the Moments app."""

from moments_sync.auth import AuthProvider, StaticAuth
from moments_sync.remote import RemoteClient
from moments_sync.repository import LocalStore
from moments_sync.state import SyncStateStore
from moments_sync.sync import SyncEngine, SyncReport, SyncStatus
from moments_sync.wishlist import WishlistSync

__version__ = "0.1.0"

__all__ = [
    "AuthProvider",
    "StaticAuth",
    "RemoteClient",
    "LocalStore",
    "SyncStateStore",
    "SyncEngine",
    "SyncReport",
    "SyncStatus",
    "WishlistSync",
]
