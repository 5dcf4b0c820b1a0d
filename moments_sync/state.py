"""Durable sync bookkeeping, kept apart from the entity store."""

import json
import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column

from moments_sync.database import create_session_factory, create_sqlite_engine
from moments_sync.utils import as_utc, payload_hash, utcnow

logger = logging.getLogger(__name__)

LAST_SYNC_TIME_KEY = "last_sync_time"


class StateBase(DeclarativeBase):
    """Declarative base for the sync state namespace."""


class SyncMetadata(StateBase):
    """Per-entity sync record."""

    __tablename__ = "sync_metadata"

    entity_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    exists_remotely: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    last_pushed_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    # Last payload this device sent or pulled, used to diff the next update
    last_pushed_payload: Mapped[str | None] = mapped_column(Text, nullable=True)
    remote_updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


class SyncSetting(StateBase):
    """Global key/value sync settings (last sync time)."""

    __tablename__ = "sync_settings"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    value: Mapped[str | None] = mapped_column(Text, nullable=True)


class SyncStateStore:
    """Sync metadata store.

    Writes are buffered in the session until commit(). A crash between the
    entity store commit and this commit can lose existence flags; the next
    push then retries the create, which the orchestrator treats as success
    when the backend answers with a conflict.
    """

    def __init__(self, session: Session):
        self.session = session

    @classmethod
    def from_url(cls, url: str) -> "SyncStateStore":
        engine = create_sqlite_engine(url)
        StateBase.metadata.create_all(engine)
        return cls(create_session_factory(engine)())

    def _record(self, entity_id: UUID | str) -> SyncMetadata | None:
        return self.session.get(SyncMetadata, str(entity_id))

    def _record_for_write(self, entity_id: UUID | str) -> SyncMetadata:
        record = self._record(entity_id)
        if record is None:
            record = SyncMetadata(entity_id=str(entity_id), exists_remotely=False)
            self.session.add(record)
        return record

    def exists(self, entity_id: UUID | str) -> bool:
        """Check if a create already succeeded remotely for this entity."""
        record = self._record(entity_id)
        return bool(record and record.exists_remotely)

    def set_exists(self, entity_id: UUID | str, exists: bool) -> None:
        record = self._record_for_write(entity_id)
        record.exists_remotely = exists
        record.updated_at = utcnow()

    def last_pushed_hash(self, entity_id: UUID | str) -> str | None:
        record = self._record(entity_id)
        return record.last_pushed_hash if record else None

    def last_pushed_payload(self, entity_id: UUID | str) -> dict | None:
        record = self._record(entity_id)
        if record is None or not record.last_pushed_payload:
            return None
        return json.loads(record.last_pushed_payload)

    def remote_updated_at(self, entity_id: UUID | str) -> datetime | None:
        """Remote modification instant as last seen by this device."""
        record = self._record(entity_id)
        return as_utc(record.remote_updated_at) if record else None

    def record_push(
        self,
        entity_id: UUID | str,
        payload: dict,
        remote_updated_at: datetime | None = None,
    ) -> None:
        """Remember that the remote copy now holds ``payload``.

        Called after a successful create or update, and after a pull that
        made the local copy equal to the remote one.
        """
        record = self._record_for_write(entity_id)
        record.exists_remotely = True
        record.last_pushed_hash = payload_hash(payload)
        record.last_pushed_payload = json.dumps(payload, sort_keys=True, default=str)
        if remote_updated_at is not None:
            record.remote_updated_at = remote_updated_at
        record.updated_at = utcnow()

    def forget(self, entity_id: UUID | str) -> None:
        """Drop all bookkeeping for an entity (after a deletion)."""
        record = self._record(entity_id)
        if record is not None:
            self.session.delete(record)

    def last_sync_time(self) -> datetime | None:
        setting = self.session.get(SyncSetting, LAST_SYNC_TIME_KEY)
        if setting is None or not setting.value:
            return None
        try:
            return as_utc(datetime.fromisoformat(setting.value))
        except ValueError:
            logger.warning(f"Ignoring unreadable last sync time: {setting.value!r}")
            return None

    def set_last_sync_time(self, value: datetime) -> None:
        """Record the last successful full sync; persisted on commit()."""
        setting = self.session.get(SyncSetting, LAST_SYNC_TIME_KEY)
        if setting is None:
            setting = SyncSetting(key=LAST_SYNC_TIME_KEY)
            self.session.add(setting)
        setting.value = as_utc(value).isoformat()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    def close(self) -> None:
        self.session.close()
