"""Tests for the remote access client."""

from uuid import uuid4

import httpx
import pytest

from moments_sync.auth import StaticAuth
from moments_sync.errors import (
    ErrorCode,
    RemoteConflictError,
    RemoteError,
    RemoteNotFoundError,
    TransportError,
    UnauthenticatedError,
)
from moments_sync.remote import RemoteClient, storage_key_from_url
from moments_sync.schemas import RemoteEvent

from tests.conftest import BASE_URL, USER_ID


def _event_payload(**overrides) -> dict:
    payload = {
        "id": str(uuid4()),
        "owner_id": str(USER_ID),
        "type": "birthday",
        "title": "Birthday",
        "date": "2025-06-14",
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_requests_carry_api_key_and_bearer_token(remote, backend) -> None:
    await remote.fetch_events()

    request = backend.requests[0]
    assert request.headers["apikey"] == "test-anon-key"
    assert request.headers["Authorization"] == "Bearer test-access-token"
    assert str(request.url).startswith(f"{BASE_URL}/rest/v1/events")
    assert request.url.params["owner_id"] == f"eq.{USER_ID}"
    assert request.url.params["order"] == "created_at.asc"


@pytest.mark.asyncio
async def test_insert_returns_server_materialized_record(remote, backend) -> None:
    payload = _event_payload()
    created = await remote.create_event(payload)

    assert isinstance(created, RemoteEvent)
    assert str(created.id) == payload["id"]
    assert created.created_at is not None
    assert backend.requests[0].headers["Prefer"] == "return=representation"


@pytest.mark.asyncio
async def test_select_filters_and_orders(remote, backend) -> None:
    event_id = uuid4()
    for order in (2, 1):
        backend.seed(
            "event_photos",
            event_id=str(event_id),
            image_url=f"https://x/{order}.jpg",
            display_order=order,
        )
    backend.seed("event_photos", event_id=str(uuid4()), image_url="https://x/other.jpg")

    photos = await remote.fetch_event_photos(event_id)

    assert [photo.display_order for photo in photos] == [1, 2]


@pytest.mark.asyncio
async def test_duplicate_insert_raises_conflict(remote) -> None:
    payload = _event_payload()
    await remote.create_event(payload)

    with pytest.raises(RemoteConflictError) as exc_info:
        await remote.create_event(payload)
    assert exc_info.value.status_code == 409


@pytest.mark.asyncio
async def test_update_of_missing_row_raises_not_found(remote) -> None:
    with pytest.raises(RemoteNotFoundError):
        await remote.update_event(uuid4(), {"title": "Renamed"})


@pytest.mark.asyncio
async def test_delete_of_missing_row_raises_not_found(remote) -> None:
    with pytest.raises(RemoteNotFoundError):
        await remote.delete_event(uuid4())


@pytest.mark.asyncio
async def test_update_sends_patch_by_id(remote, backend) -> None:
    row = backend.seed("events", **_event_payload())
    updated = await remote.update_event(row["id"], {"title": "Renamed"})

    assert updated.title == "Renamed"
    request = backend.requests[-1]
    assert request.method == "PATCH"
    assert request.url.params["id"] == f"eq.{row['id']}"


@pytest.mark.asyncio
async def test_upsert_merges_duplicates(remote, backend) -> None:
    await remote.upsert_profile({"id": str(USER_ID), "first_name": "Ana"})
    profile = await remote.upsert_profile({"id": str(USER_ID), "first_name": "Anna"})

    assert profile.first_name == "Anna"
    assert len(backend.tables["user_profiles"]) == 1
    assert "resolution=merge-duplicates" in backend.requests[-1].headers["Prefer"]


@pytest.mark.asyncio
async def test_server_error_maps_to_remote_error(remote, backend) -> None:
    backend.fail_when(lambda request: True, status=503)

    with pytest.raises(RemoteError) as exc_info:
        await remote.fetch_events()
    assert exc_info.value.status_code == 503
    assert exc_info.value.code == ErrorCode.UNKNOWN


@pytest.mark.asyncio
async def test_network_failure_maps_to_transport_error(auth, test_settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with RemoteClient(
        auth, settings=test_settings, transport=httpx.MockTransport(handler)
    ) as client:
        with pytest.raises(TransportError) as exc_info:
            await client.fetch_events()
    assert exc_info.value.code == ErrorCode.CONNECTION_ERROR


@pytest.mark.asyncio
async def test_malformed_body_maps_to_malformed_response(auth, test_settings) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>gateway</html>")

    async with RemoteClient(
        auth, settings=test_settings, transport=httpx.MockTransport(handler)
    ) as client:
        with pytest.raises(RemoteError) as exc_info:
            await client.fetch_events()
    assert exc_info.value.code == ErrorCode.MALFORMED_RESPONSE


@pytest.mark.asyncio
async def test_unauthenticated_short_circuits(backend, test_settings) -> None:
    client = RemoteClient(StaticAuth(), settings=test_settings, transport=backend.transport())

    with pytest.raises(UnauthenticatedError):
        await client.fetch_events()
    with pytest.raises(UnauthenticatedError):
        await client.upload_blob("avatars", "me.jpg", b"data")

    assert backend.calls == []
    await client.close()


class TestBlobs:
    @pytest.mark.asyncio
    async def test_upload_returns_public_url(self, remote, backend) -> None:
        url = await remote.upload_blob("event-photos", "photo.jpg", b"jpeg-bytes")

        assert url == f"{BASE_URL}/storage/v1/object/public/event-photos/photo.jpg"
        assert backend.blobs["event-photos/photo.jpg"] == b"jpeg-bytes"
        request = backend.requests[0]
        assert request.headers["x-upsert"] == "true"
        assert request.headers["Content-Type"] == "image/jpeg"

    @pytest.mark.asyncio
    async def test_reupload_overwrites(self, remote, backend) -> None:
        await remote.upload_blob("avatars", "me.jpg", b"v1")
        await remote.upload_blob("avatars", "me.jpg", b"v2")

        assert backend.blobs == {"avatars/me.jpg": b"v2"}

    @pytest.mark.asyncio
    async def test_delete_derives_key_from_url(self, remote, backend) -> None:
        url = await remote.upload_blob("event-covers", "cover.jpg", b"data")

        await remote.delete_blob(url, "event-covers")

        assert backend.blobs == {}

    def test_storage_key_is_last_path_segment(self) -> None:
        url = f"{BASE_URL}/storage/v1/object/public/event-photos/abc.jpg?download=1"
        assert storage_key_from_url(url) == "abc.jpg"

    def test_storage_key_requires_a_path(self) -> None:
        with pytest.raises(RemoteError) as exc_info:
            storage_key_from_url("https://cdn.test/")
        assert exc_info.value.code == ErrorCode.INVALID_URL


class TestRowValidation:
    @pytest.mark.asyncio
    async def test_malformed_rows_are_set_aside(self, remote, backend, caplog) -> None:
        bad = backend.seed("events", owner_id=str(USER_ID), type="other", date="2025-07-01")
        backend.seed("events", owner_id=str(USER_ID), type=None, title="Ok", date="2025-07-02")
        rejected: list = []

        events = await remote.fetch_events(rejected=rejected)

        assert [event.title for event in events] == ["Ok"]
        assert events[0].type is None
        assert [row["id"] for row in rejected] == [bad["id"]]
        assert f"Skipping malformed row {bad['id']}" in caplog.text

    @pytest.mark.asyncio
    async def test_malformed_write_response_is_an_error(self, auth, test_settings) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(201, json=[{"id": "not-a-uuid"}])

        client = RemoteClient(auth, settings=test_settings, transport=httpx.MockTransport(handler))
        try:
            with pytest.raises(RemoteError) as exc_info:
                await client.create_event(_event_payload())
        finally:
            await client.close()

        assert exc_info.value.code == ErrorCode.MALFORMED_RESPONSE


class TestInvitationLookups:
    @pytest.mark.asyncio
    async def test_fetch_invitation_by_token(self, remote, backend) -> None:
        row = backend.seed(
            "invitations", event_id=str(uuid4()), guest_name="Sam", share_token="tok-1"
        )
        backend.seed("invitations", event_id=str(uuid4()), guest_name="Kim", share_token="tok-2")

        invitation = await remote.fetch_invitation_by_token("tok-1")

        assert str(invitation.id) == row["id"]
        assert backend.requests[0].url.params["share_token"] == "eq.tok-1"

    @pytest.mark.asyncio
    async def test_unknown_token_raises_not_found(self, remote) -> None:
        with pytest.raises(RemoteNotFoundError):
            await remote.fetch_invitation_by_token("nope")

    @pytest.mark.asyncio
    async def test_fetch_invitation_stats(self, remote, backend) -> None:
        event_id = uuid4()
        responses = [("accepted", 1), ("accepted", 0), ("declined", 2), ("pending", 0)]
        for status, plus_ones in responses:
            backend.seed(
                "invitations",
                event_id=str(event_id),
                guest_name="Guest",
                status=status,
                plus_ones=plus_ones,
            )
        backend.seed("invitations", event_id=str(uuid4()), guest_name="Other", status="accepted")

        stats = await remote.fetch_invitation_stats(event_id)

        assert stats.total_invitations == 4
        assert stats.accepted_count == 2
        assert stats.declined_count == 1
        assert stats.pending_count == 1
        assert stats.total_guests == 3
        request = backend.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/rest/v1/rpc/get_event_invitation_stats"
