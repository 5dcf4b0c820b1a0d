"""Async client for the remote table and blob storage backend."""

import logging
from typing import Any, TypeVar
from urllib.parse import urlparse
from uuid import UUID

import httpx
from pydantic import BaseModel, ValidationError

from moments_sync.auth import AuthProvider
from moments_sync.config import Settings, get_settings
from moments_sync.errors import (
    ErrorCode,
    RemoteConflictError,
    RemoteError,
    RemoteNotFoundError,
    TransportError,
    UnauthenticatedError,
)
from moments_sync.schemas import (
    InvitationStats,
    RemoteEvent,
    RemoteEventPhoto,
    RemoteInvitation,
    RemoteUserProfile,
    RemoteWishlistItem,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

EVENTS = "events"
INVITATIONS = "invitations"
WISHLIST_ITEMS = "wishlist_items"
EVENT_PHOTOS = "event_photos"
USER_PROFILES = "user_profiles"
INVITATION_STATS_RPC = "get_event_invitation_stats"

RETURN_REPRESENTATION = "return=representation"
MERGE_DUPLICATES = "resolution=merge-duplicates,return=representation"


def storage_key_from_url(url: str) -> str:
    """Recover a blob's storage key from its public URL (last path segment).

    Only works while objects are stored flat at the bucket root.
    """
    key = urlparse(url).path.rstrip("/").rsplit("/", 1)[-1]
    if not key:
        raise RemoteError(f"Cannot derive storage key from {url!r}", 400, ErrorCode.INVALID_URL)
    return key


class RemoteClient:
    """Typed CRUD and blob operations, gated on an authenticated session."""

    def __init__(
        self,
        auth: AuthProvider,
        base_url: str | None = None,
        api_key: str | None = None,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = settings or get_settings()
        self.auth = auth
        self.base_url = (base_url or settings.supabase_url).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.supabase_anon_key
        self.timeout = httpx.Timeout(
            connect=settings.connect_timeout,
            read=settings.read_timeout,
            write=settings.write_timeout,
            pool=settings.pool_timeout,
        )
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def rest_url(self) -> str:
        return f"{self.base_url}/rest/v1"

    @property
    def storage_url(self) -> str:
        return f"{self.base_url}/storage/v1"

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the underlying HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "RemoteClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    def _headers(self, prefer: str | None = None, extra: dict[str, str] | None = None) -> dict:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.auth.access_token}",
        }
        if prefer:
            headers["Prefer"] = prefer
        if extra:
            headers.update(extra)
        return headers

    async def _request(
        self,
        method: str,
        url: str,
        operation: str,
        json: Any = None,
        params: dict | None = None,
        content: bytes | None = None,
        prefer: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Make an authenticated request and decode the JSON body."""
        if not self.auth.is_authenticated:
            raise UnauthenticatedError(operation)

        client = self._get_client()
        try:
            response = await client.request(
                method,
                url,
                json=json,
                params=params,
                content=content,
                headers=self._headers(prefer, headers),
            )
        except httpx.RequestError as e:
            logger.error(f"Remote request error during {operation}: {e}")
            raise TransportError(f"{operation} failed: {e}") from e

        if response.status_code >= 400:
            if response.status_code == 404:
                raise RemoteNotFoundError(operation)
            if response.status_code == 409:
                raise RemoteConflictError(operation)
            detail = response.text[:200] or response.reason_phrase
            logger.warning(f"Remote {operation} returned {response.status_code}: {detail}")
            raise RemoteError(detail, response.status_code, ErrorCode.UNKNOWN)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RemoteError(
                f"Malformed response for {operation}",
                response.status_code,
                ErrorCode.MALFORMED_RESPONSE,
            ) from e

    @staticmethod
    def _parse_rows(model: type[M], data: Any, operation: str) -> list[M]:
        """Validate every row of a write response; any bad row is an error."""
        if data is None:
            return []
        if not isinstance(data, list):
            raise RemoteError(
                f"Expected a list of rows for {operation}", 502, ErrorCode.MALFORMED_RESPONSE
            )
        try:
            return [model.model_validate(row) for row in data]
        except ValidationError as e:
            raise RemoteError(
                f"Unexpected row shape for {operation}: {e.error_count()} errors",
                502,
                ErrorCode.MALFORMED_RESPONSE,
            ) from e

    @staticmethod
    def _split_rows(model: type[M], data: Any, operation: str) -> tuple[list[M], list[Any]]:
        """Validate rows one at a time, setting aside the ones that do not fit."""
        if data is None:
            return [], []
        if not isinstance(data, list):
            raise RemoteError(
                f"Expected a list of rows for {operation}", 502, ErrorCode.MALFORMED_RESPONSE
            )
        rows: list[M] = []
        rejected: list[Any] = []
        for row in data:
            try:
                rows.append(model.model_validate(row))
            except ValidationError as e:
                row_id = row.get("id") if isinstance(row, dict) else None
                logger.warning(
                    f"Skipping malformed row {row_id} from {operation}: "
                    f"{e.error_count()} errors"
                )
                rejected.append(row)
        return rows, rejected

    def _table_url(self, table: str) -> str:
        return f"{self.rest_url}/{table}"

    # Generic table operations

    async def select(
        self,
        table: str,
        model: type[M],
        eq: dict[str, Any] | None = None,
        order: str | None = None,
        rejected: list[Any] | None = None,
    ) -> list[M]:
        """Select rows with equality filters and ascending order, unpaginated.

        Rows that do not validate are skipped with a warning and appended
        to ``rejected`` when given.
        """
        params: dict[str, str] = {"select": "*"}
        for column, value in (eq or {}).items():
            params[column] = f"eq.{value}"
        if order:
            params["order"] = f"{order}.asc"
        operation = f"select {table}"
        data = await self._request("GET", self._table_url(table), operation, params=params)
        rows, invalid = self._split_rows(model, data, operation)
        if rejected is not None:
            rejected.extend(invalid)
        return rows

    async def insert(self, table: str, payload: dict, model: type[M]) -> M:
        """Insert a row and return the server-materialized record."""
        operation = f"insert {table}"
        data = await self._request(
            "POST", self._table_url(table), operation, json=payload, prefer=RETURN_REPRESENTATION
        )
        rows = self._parse_rows(model, data, operation)
        if not rows:
            raise RemoteError(
                f"Empty representation for {operation}", 502, ErrorCode.MALFORMED_RESPONSE
            )
        return rows[0]

    async def update(self, table: str, record_id: UUID, payload: dict, model: type[M]) -> M:
        """Update a row by id; an empty result means the row does not exist."""
        operation = f"update {table}/{record_id}"
        data = await self._request(
            "PATCH",
            self._table_url(table),
            operation,
            json=payload,
            params={"id": f"eq.{record_id}"},
            prefer=RETURN_REPRESENTATION,
        )
        rows = self._parse_rows(model, data, operation)
        if not rows:
            raise RemoteNotFoundError(f"{table}/{record_id}")
        return rows[0]

    async def delete(self, table: str, record_id: UUID) -> None:
        operation = f"delete {table}/{record_id}"
        data = await self._request(
            "DELETE",
            self._table_url(table),
            operation,
            params={"id": f"eq.{record_id}"},
            prefer=RETURN_REPRESENTATION,
        )
        if not data:
            raise RemoteNotFoundError(f"{table}/{record_id}")

    async def upsert(self, table: str, payload: dict, model: type[M]) -> M:
        """Insert or merge a row by primary key."""
        operation = f"upsert {table}"
        data = await self._request(
            "POST", self._table_url(table), operation, json=payload, prefer=MERGE_DUPLICATES
        )
        rows = self._parse_rows(model, data, operation)
        if not rows:
            raise RemoteError(
                f"Empty representation for {operation}", 502, ErrorCode.MALFORMED_RESPONSE
            )
        return rows[0]

    # Events

    async def fetch_events(self, rejected: list[Any] | None = None) -> list[RemoteEvent]:
        """Events owned by the authenticated user, oldest first."""
        return await self.select(
            EVENTS,
            RemoteEvent,
            eq={"owner_id": self.auth.user_id},
            order="created_at",
            rejected=rejected,
        )

    async def create_event(self, payload: dict) -> RemoteEvent:
        return await self.insert(EVENTS, payload, RemoteEvent)

    async def update_event(self, event_id: UUID, payload: dict) -> RemoteEvent:
        return await self.update(EVENTS, event_id, payload, RemoteEvent)

    async def delete_event(self, event_id: UUID) -> None:
        await self.delete(EVENTS, event_id)

    # Invitations

    async def fetch_invitations(self, event_id: UUID) -> list[RemoteInvitation]:
        return await self.select(
            INVITATIONS, RemoteInvitation, eq={"event_id": event_id}, order="created_at"
        )

    async def create_invitation(self, payload: dict) -> RemoteInvitation:
        return await self.insert(INVITATIONS, payload, RemoteInvitation)

    async def update_invitation(self, invitation_id: UUID, payload: dict) -> RemoteInvitation:
        return await self.update(INVITATIONS, invitation_id, payload, RemoteInvitation)

    async def delete_invitation(self, invitation_id: UUID) -> None:
        await self.delete(INVITATIONS, invitation_id)

    async def fetch_invitation_by_token(self, share_token: str) -> RemoteInvitation:
        """Resolve a public share link; the token is unique per invitation."""
        rows = await self.select(INVITATIONS, RemoteInvitation, eq={"share_token": share_token})
        if not rows:
            raise RemoteNotFoundError("invitation for share token")
        return rows[0]

    async def fetch_invitation_stats(self, event_id: UUID) -> InvitationStats:
        """Response counts computed server side by get_event_invitation_stats."""
        operation = f"invitation stats for {event_id}"
        data = await self._request(
            "POST",
            f"{self.rest_url}/rpc/{INVITATION_STATS_RPC}",
            operation,
            json={"event_uuid": str(event_id)},
        )
        if isinstance(data, dict):
            data = [data]
        rows = self._parse_rows(InvitationStats, data, operation)
        if not rows:
            raise RemoteError(
                f"Empty response for {operation}", 502, ErrorCode.MALFORMED_RESPONSE
            )
        return rows[0]

    # Event photos

    async def fetch_event_photos(self, event_id: UUID) -> list[RemoteEventPhoto]:
        return await self.select(
            EVENT_PHOTOS, RemoteEventPhoto, eq={"event_id": event_id}, order="display_order"
        )

    async def create_event_photo(self, payload: dict) -> RemoteEventPhoto:
        return await self.insert(EVENT_PHOTOS, payload, RemoteEventPhoto)

    async def delete_event_photo(self, photo_id: UUID) -> None:
        await self.delete(EVENT_PHOTOS, photo_id)

    # Wishlist items

    async def fetch_wishlist_items(self, user_id: UUID | None = None) -> list[RemoteWishlistItem]:
        return await self.select(
            WISHLIST_ITEMS,
            RemoteWishlistItem,
            eq={"user_id": user_id or self.auth.user_id},
            order="created_at",
        )

    async def create_wishlist_item(self, payload: dict) -> RemoteWishlistItem:
        return await self.insert(WISHLIST_ITEMS, payload, RemoteWishlistItem)

    async def update_wishlist_item(self, item_id: UUID, payload: dict) -> RemoteWishlistItem:
        return await self.update(WISHLIST_ITEMS, item_id, payload, RemoteWishlistItem)

    async def delete_wishlist_item(self, item_id: UUID) -> None:
        await self.delete(WISHLIST_ITEMS, item_id)

    # User profile

    async def fetch_profile(self, user_id: UUID | None = None) -> RemoteUserProfile | None:
        rows = await self.select(
            USER_PROFILES, RemoteUserProfile, eq={"id": user_id or self.auth.user_id}
        )
        return rows[0] if rows else None

    async def upsert_profile(self, payload: dict) -> RemoteUserProfile:
        return await self.upsert(USER_PROFILES, payload, RemoteUserProfile)

    # Blob storage

    def public_url(self, bucket: str, file_name: str) -> str:
        return f"{self.storage_url}/object/public/{bucket}/{file_name}"

    async def upload_blob(
        self,
        bucket: str,
        file_name: str,
        data: bytes,
        content_type: str = "image/jpeg",
    ) -> str:
        """Upload (or overwrite) a blob and return its public URL."""
        await self._request(
            "POST",
            f"{self.storage_url}/object/{bucket}/{file_name}",
            f"upload {bucket}/{file_name}",
            content=data,
            headers={"Content-Type": content_type, "x-upsert": "true"},
        )
        logger.info(f"Uploaded {len(data)} bytes to {bucket}/{file_name}")
        return self.public_url(bucket, file_name)

    async def delete_blob(self, url: str, bucket: str) -> None:
        key = storage_key_from_url(url)
        await self._request(
            "DELETE",
            f"{self.storage_url}/object/{bucket}",
            f"delete blob {bucket}/{key}",
            json={"prefixes": [key]},
        )
