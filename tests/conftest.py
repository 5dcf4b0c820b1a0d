"""Pytest fixtures for testing."""

import json
from collections import defaultdict
from collections.abc import Callable, Generator
from datetime import date, datetime, timezone
from typing import Any
from uuid import UUID, uuid4

import httpx
import pytest
import pytest_asyncio

from moments_sync.auth import StaticAuth
from moments_sync.config import Settings
from moments_sync.database import create_session_factory, create_sqlite_engine, init_local_db
from moments_sync.models import Event, EventType
from moments_sync.remote import RemoteClient
from moments_sync.repository import LocalStore
from moments_sync.state import SyncStateStore
from moments_sync.sync import SyncEngine

USER_ID = UUID("11111111-1111-4111-8111-111111111111")
BASE_URL = "https://backend.test"

# Server-side column defaults, so rows always validate as remote models
TABLE_DEFAULTS: dict[str, dict[str, Any]] = {
    "events": {},
    "invitations": {"status": "pending", "plus_ones": 0},
    "wishlist_items": {"category": "other", "status": "wanted", "priority": 2},
    "event_photos": {"display_order": 0},
    "user_profiles": {},
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class FakeBackend:
    """In-memory table and storage backend served through httpx.MockTransport."""

    def __init__(self):
        self.tables: dict[str, dict[str, dict]] = defaultdict(dict)
        self.blobs: dict[str, bytes] = {}
        self.calls: list[tuple[str, str]] = []
        self.requests: list[httpx.Request] = []
        self._failures: list[tuple[Callable[[httpx.Request], bool], int]] = []
        self.gate = None

    def reset_calls(self) -> None:
        self.calls.clear()
        self.requests.clear()

    def fail_when(self, predicate: Callable[[httpx.Request], bool], status: int = 500) -> None:
        """Answer matching requests with an error status."""
        self._failures.append((predicate, status))

    def clear_failures(self) -> None:
        self._failures.clear()

    def count(self, method: str, path_suffix: str) -> int:
        return sum(1 for m, p in self.calls if m == method and p.endswith(path_suffix))

    @property
    def writes(self) -> int:
        return sum(1 for m, _ in self.calls if m in ("POST", "PATCH", "DELETE"))

    def seed(self, table: str, **row: Any) -> dict:
        """Insert a row directly, as if written by another device."""
        row = {**TABLE_DEFAULTS[table], "created_at": _now(), "updated_at": _now(), **row}
        row["id"] = str(row.get("id") or uuid4())
        self.tables[table][row["id"]] = row
        return row

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append((request.method, request.url.path))
        self.requests.append(request)
        if self.gate is not None:
            await self.gate.wait()
        for predicate, status in self._failures:
            if predicate(request):
                return httpx.Response(status, json={"message": "injected failure"})

        path = request.url.path
        if path.startswith("/rest/v1/rpc/"):
            return self._rpc(request, path.removeprefix("/rest/v1/rpc/"))
        if path.startswith("/rest/v1/"):
            return self._rest(request, path.removeprefix("/rest/v1/"))
        if path.startswith("/storage/v1/object/"):
            return self._storage(request, path.removeprefix("/storage/v1/object/"))
        return httpx.Response(404, json={"message": "no route"})

    def _matching(self, table: str, request: httpx.Request) -> list[dict]:
        filters = {
            key: value[3:]
            for key, value in request.url.params.multi_items()
            if key not in ("select", "order") and value.startswith("eq.")
        }
        return [
            row
            for row in self.tables[table].values()
            if all(str(row.get(key)) == value for key, value in filters.items())
        ]

    def _rest(self, request: httpx.Request, table: str) -> httpx.Response:
        if request.method == "GET":
            rows = self._matching(table, request)
            order = request.url.params.get("order")
            if order:
                column = order.split(".")[0]
                rows.sort(key=lambda row: (row.get(column) is None, row.get(column) or 0))
            return httpx.Response(200, json=rows)

        if request.method == "POST":
            body = json.loads(request.content)
            existing = self.tables[table].get(body["id"])
            if existing is not None:
                if "merge-duplicates" not in request.headers.get("Prefer", ""):
                    return httpx.Response(409, json={"code": "23505", "message": "duplicate key"})
                existing.update(body, updated_at=_now())
                return httpx.Response(200, json=[existing])
            row = {**TABLE_DEFAULTS[table], **body, "created_at": _now(), "updated_at": _now()}
            if table == "invitations":
                row.setdefault("share_token", uuid4().hex)
            self.tables[table][row["id"]] = row
            return httpx.Response(201, json=[row])

        if request.method == "PATCH":
            body = json.loads(request.content)
            rows = self._matching(table, request)
            for row in rows:
                row.update(body, updated_at=_now())
            return httpx.Response(200, json=rows)

        if request.method == "DELETE":
            rows = self._matching(table, request)
            for row in rows:
                del self.tables[table][row["id"]]
            return httpx.Response(200, json=rows)

        return httpx.Response(405)

    def _rpc(self, request: httpx.Request, function: str) -> httpx.Response:
        if function != "get_event_invitation_stats":
            return httpx.Response(404, json={"message": f"unknown function {function}"})
        event_id = json.loads(request.content)["event_uuid"]
        rows = [row for row in self.tables["invitations"].values() if row["event_id"] == event_id]
        statuses = [row.get("status") for row in rows]
        accepted = [row for row in rows if row.get("status") == "accepted"]
        return httpx.Response(
            200,
            json={
                "total_invitations": len(rows),
                "accepted_count": statuses.count("accepted"),
                "pending_count": statuses.count("pending"),
                "declined_count": statuses.count("declined"),
                "waiting_approval_count": statuses.count("waiting_approval"),
                "total_guests": sum(1 + (row.get("plus_ones") or 0) for row in accepted),
            },
        )

    def _storage(self, request: httpx.Request, key: str) -> httpx.Response:
        if request.method == "POST":
            self.blobs[key] = request.content
            return httpx.Response(200, json={"Key": key})
        if request.method == "DELETE":
            bucket = key.rstrip("/")
            removed = []
            for name in json.loads(request.content)["prefixes"]:
                if self.blobs.pop(f"{bucket}/{name}", None) is not None:
                    removed.append({"name": name})
            return httpx.Response(200, json=removed)
        return httpx.Response(405)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def auth() -> StaticAuth:
    return StaticAuth(user_id=USER_ID, access_token="test-access-token")


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        _env_file=None,
        supabase_url=f"{BASE_URL}/",
        supabase_anon_key="test-anon-key",
        share_base_url="https://moments.test/invitation",
    )


@pytest_asyncio.fixture
async def remote(backend, auth, test_settings):
    client = RemoteClient(auth, settings=test_settings, transport=backend.transport())
    yield client
    await client.close()


@pytest.fixture
def store() -> Generator[LocalStore, None, None]:
    engine = create_sqlite_engine("sqlite://")
    init_local_db(engine)
    local = LocalStore(create_session_factory(engine)())
    yield local
    local.close()
    engine.dispose()


@pytest.fixture
def state() -> Generator[SyncStateStore, None, None]:
    sync_state = SyncStateStore.from_url("sqlite://")
    yield sync_state
    sync_state.close()


@pytest.fixture
def sync_engine(remote, store, state, test_settings) -> SyncEngine:
    return SyncEngine(remote, store, state, test_settings)


@pytest.fixture
def make_event(store) -> Callable[..., Event]:
    """Create and commit a local event."""

    def _make(**overrides: Any) -> Event:
        fields = {
            "title": "Birthday party",
            "event_type": EventType.BIRTHDAY,
            "date": date(2025, 6, 14),
            "owner_id": USER_ID,
        }
        fields.update(overrides)
        event = store.upsert(Event(id=uuid4(), **fields))
        store.commit()
        return event

    return _make
