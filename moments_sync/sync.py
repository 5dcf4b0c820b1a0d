"""Bidirectional sync between the local store and the remote backend."""

import enum
import logging
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any
from uuid import UUID

from moments_sync.config import Settings, get_settings
from moments_sync.errors import RemoteConflictError, RemoteNotFoundError, SyncFailedError
from moments_sync.logging_config import sync_run_id_var
from moments_sync.models import Event, EventPhoto, Invitation
from moments_sync.remote import RemoteClient
from moments_sync.repository import LocalStore
from moments_sync.schemas import (
    RemoteEvent,
    apply_remote_event,
    apply_remote_profile,
    event_create_payload,
    event_from_remote,
    event_photo_create_payload,
    event_photo_from_remote,
    event_snapshot,
    event_update_payload,
    invitation_create_payload,
    invitation_from_remote,
    invitation_update_payload,
    merge_server_fields,
    parse_updated_at,
    profile_from_remote,
    profile_upsert_payload,
)
from moments_sync.state import SyncStateStore
from moments_sync.timing import TimingStats, measure_time
from moments_sync.utils import as_utc, new_uuid, payload_hash, utcnow

logger = logging.getLogger(__name__)


class SyncStatus(str, enum.Enum):
    IDLE = "idle"
    PULLING = "pulling"
    PUSHING = "pushing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class SyncReport:
    """Outcome of one sync run."""

    mode: str
    run_id: str = field(default_factory=lambda: str(new_uuid())[:8])
    started_at: datetime = field(default_factory=utcnow)
    finished_at: datetime | None = None
    events_pulled: int = 0
    events_refreshed: int = 0
    events_removed: int = 0
    events_skipped: int = 0
    events_created: int = 0
    events_updated: int = 0
    events_unchanged: int = 0
    invitations_created: int = 0
    invitations_pulled: int = 0
    invitations_removed: int = 0
    photos_created: int = 0
    photos_pulled: int = 0
    photos_removed: int = 0
    photos_skipped: int = 0
    profile_pulled: bool = False
    profile_pushed: bool = False
    failures: dict[str, str] = field(default_factory=dict)
    error: str | None = None

    @property
    def ok(self) -> bool:
        return not self.failures and self.error is None

    def counts(self) -> dict[str, int]:
        """Integer counters of the run, by name."""
        values = {f.name: getattr(self, f.name) for f in fields(self)}
        counts = {
            name: value
            for name, value in values.items()
            if isinstance(value, int) and not isinstance(value, bool)
        }
        counts["failures"] = len(self.failures)
        return counts


class SyncEngine:
    """Reconciles local events and their dependents with the remote backend.

    Pull is "remote wins": new remote events are materialized, remote
    copies that changed since this device last saw them overwrite local
    ones, and events deleted remotely are deleted locally. Push is "create
    if absent": an event is created once, then updated with the fields that
    changed since the last push. Dependents are fanned out per event in a
    fixed order (invitations, wishlist, photos). A failure on one event
    never stops the others.

    Network calls are sequential, one per record.
    """

    def __init__(
        self,
        remote: RemoteClient,
        store: LocalStore,
        state: SyncStateStore,
        settings: Settings | None = None,
    ):
        self.remote = remote
        self.store = store
        self.state = state
        self.settings = settings or get_settings()
        self.status = SyncStatus.IDLE
        self.error_message: str | None = None
        self.last_report: SyncReport | None = None
        self._in_flight = False

    @property
    def is_syncing(self) -> bool:
        return self._in_flight

    @property
    def last_sync_time(self) -> datetime | None:
        return self.state.last_sync_time()

    def _can_start(self, mode: str) -> bool:
        if self._in_flight:
            logger.info(f"Sync already in progress, skipping {mode} sync")
            return False
        if not self.remote.auth.is_authenticated:
            logger.info(f"Not authenticated, skipping {mode} sync")
            return False
        return True

    def _fail(self, report: SyncReport, error: Exception) -> None:
        self.status = SyncStatus.ERROR
        self.error_message = str(error)
        report.error = str(error)
        report.finished_at = utcnow()
        self.store.rollback()
        self.state.rollback()

    async def full_sync(self) -> SyncReport | None:
        """Pull then push. Raises SyncFailedError when the run aborts."""
        if not self._can_start("full"):
            return None
        self._in_flight = True

        report = SyncReport(mode="full")
        token = sync_run_id_var.set(report.run_id)
        stats = TimingStats()
        self.last_report = report
        self.error_message = None
        try:
            logger.info("Starting full sync")
            self.status = SyncStatus.PULLING
            async with measure_time(stats, "pull"):
                await self._pull(report)

            self.status = SyncStatus.PUSHING
            async with measure_time(stats, "push"):
                await self._push(report)

            report.finished_at = utcnow()
            self.state.set_last_sync_time(report.finished_at)
            self.state.commit()
            self.status = SyncStatus.COMPLETED
            logger.info(
                f"Full sync completed: {report.events_created} created, "
                f"{report.events_updated} updated, {report.events_pulled} pulled, "
                f"{len(report.failures)} failed"
            )
            return report
        except Exception as e:
            logger.exception(f"Full sync failed: {e}")
            self._fail(report, e)
            raise SyncFailedError(f"Full sync failed: {e}") from e
        finally:
            stats.log_summary("full sync", report.counts())
            sync_run_id_var.reset(token)
            self._in_flight = False

    async def quick_sync(self) -> SyncReport | None:
        """Push only. Errors are logged and reported, never raised."""
        if not self._can_start("quick"):
            return None
        self._in_flight = True

        report = SyncReport(mode="quick")
        token = sync_run_id_var.set(report.run_id)
        stats = TimingStats()
        self.last_report = report
        self.error_message = None
        try:
            self.status = SyncStatus.PUSHING
            async with measure_time(stats, "push"):
                await self._push(report)
            report.finished_at = utcnow()
            self.status = SyncStatus.COMPLETED
            logger.info(f"Quick sync completed with {len(report.failures)} failures")
        except Exception as e:
            logger.exception(f"Quick sync failed: {e}")
            self._fail(report, e)
        finally:
            stats.log_summary("quick sync", report.counts())
            sync_run_id_var.reset(token)
            self._in_flight = False
        return report

    # Pull

    async def _pull(self, report: SyncReport) -> None:
        rejected: list[Any] = []
        remote_events = await self.remote.fetch_events(rejected=rejected)
        local_events = {event.id: event for event in self.store.events()}
        logger.info(f"Pulled {len(remote_events)} remote events, {len(local_events)} local")

        # Unreadable rows still exist remotely, so their local copies stay
        remote_ids = {row_id for row_id in map(_row_id, rejected) if row_id is not None}
        report.events_skipped += len(rejected)

        for remote in remote_events:
            remote_ids.add(remote.id)
            local = local_events.get(remote.id)
            if local is None:
                event = event_from_remote(remote)
                if event is None:
                    report.events_skipped += 1
                    continue
                self.store.upsert(event)
                self._mark_pulled(event, remote)
                report.events_pulled += 1
            elif self._remote_changed(local.id, remote.updated_at, local.updated_at):
                apply_remote_event(local, remote)
                self._mark_pulled(local, remote)
                report.events_refreshed += 1
            elif not self.state.exists(local.id):
                self.state.set_exists(local.id, True)

        for event_id, event in local_events.items():
            if event_id not in remote_ids and self.state.exists(event_id):
                logger.info(f"Event {event_id} was deleted remotely, removing local copy")
                self._forget_event(event)
                self.store.delete(event)
                report.events_removed += 1

        await self._pull_profile(report)

        self.store.commit()
        self.state.commit()

    def _remote_changed(
        self, entity_id: UUID, remote_updated_at: str | None, local_updated_at: datetime
    ) -> bool:
        """Check whether the remote copy moved since this device last saw it.

        Local edits made since then are not a reason to skip: the remote
        copy wins when both sides changed.
        """
        remote_updated = parse_updated_at(remote_updated_at)
        if remote_updated is None:
            return False
        seen = self.state.remote_updated_at(entity_id)
        if seen is None:
            seen = as_utc(local_updated_at)
        return remote_updated > seen

    def _mark_pulled(self, event: Event, remote: RemoteEvent) -> None:
        """Record that the local copy matches the remote one."""
        self.state.record_push(
            event.id, event_snapshot(event), parse_updated_at(remote.updated_at)
        )

    def _forget_event(self, event: Event) -> None:
        self.state.forget(event.id)
        for dependent in [*event.invitations, *event.photos]:
            self.state.forget(dependent.id)

    async def _pull_profile(self, report: SyncReport) -> None:
        user_id = self.remote.auth.user_id
        remote = await self.remote.fetch_profile(user_id)
        if remote is None:
            return

        profile = self.store.profile(user_id)
        if profile is None:
            profile = profile_from_remote(remote)
            self.store.upsert(profile)
        elif self._remote_changed(profile.id, remote.updated_at, profile.updated_at):
            apply_remote_profile(profile, remote)
        else:
            return
        self.state.record_push(
            profile.id, profile_upsert_payload(profile), parse_updated_at(remote.updated_at)
        )
        report.profile_pulled = True

    # Push

    async def _push(self, report: SyncReport) -> None:
        events = self.store.events()
        logger.info(f"Pushing {len(events)} local events")

        for event in events:
            try:
                await self._push_event(event, report)
            except Exception as e:
                logger.exception(f"Failed to sync event {event.id}: {e}")
                report.failures[str(event.id)] = str(e)

        await self._push_profile(report)

        self.store.commit()
        self.state.commit()

    async def _push_event(self, event: Event, report: SyncReport) -> None:
        await self._upload_event_images(event)

        snapshot = event_snapshot(event)
        if self.state.exists(event.id):
            if payload_hash(snapshot) == self.state.last_pushed_hash(event.id):
                report.events_unchanged += 1
            else:
                await self._update_event(event, snapshot)
                report.events_updated += 1
        else:
            await self._create_event(event, snapshot)
            report.events_created += 1

        await self._push_invitations(event, report)
        self._push_wishlist(event)
        await self._push_photos(event, report)

    async def _create_event(self, event: Event, snapshot: dict) -> None:
        remote_updated = None
        try:
            created = await self.remote.create_event(
                event_create_payload(event, self.remote.auth.user_id)
            )
            if created.id != event.id:
                logger.warning(f"Remote event id {created.id} differs from local {event.id}")
            remote_updated = parse_updated_at(created.updated_at)
        except RemoteConflictError:
            logger.info(f"Event {event.id} already exists remotely")
        self.state.record_push(event.id, snapshot, remote_updated)

    async def _update_event(self, event: Event, snapshot: dict) -> None:
        payload = event_update_payload(event, self.state.last_pushed_payload(event.id))
        remote_updated = None
        try:
            updated = await self.remote.update_event(event.id, payload)
            remote_updated = parse_updated_at(updated.updated_at)
        except RemoteNotFoundError:
            logger.warning(f"Event {event.id} not found remotely, update skipped")
        self.state.record_push(event.id, snapshot, remote_updated)

    async def _upload_event_images(self, event: Event) -> None:
        if event.cover_image and not event.cover_image_url:
            event.cover_image_url = await self.remote.upload_blob(
                self.settings.event_covers_bucket, f"{event.id}.jpg", event.cover_image
            )
        if event.profile_image and not event.profile_image_url:
            event.profile_image_url = await self.remote.upload_blob(
                self.settings.event_profiles_bucket, f"{event.id}.jpg", event.profile_image
            )

    async def _push_invitations(self, event: Event, report: SyncReport) -> None:
        remote_invitations = await self.remote.fetch_invitations(event.id)
        remote_by_id = {remote.id: remote for remote in remote_invitations}
        share_base_url = self.settings.share_base_url

        for invitation in list(event.invitations):
            remote = remote_by_id.get(invitation.id)
            if remote is None:
                try:
                    remote = await self.remote.create_invitation(
                        invitation_create_payload(invitation, self.remote.auth.user_id)
                    )
                    report.invitations_created += 1
                except RemoteConflictError:
                    logger.info(f"Invitation {invitation.id} already exists remotely")
                    remote = None
            self.state.set_exists(invitation.id, True)
            if remote is not None:
                merge_server_fields(invitation, remote, share_base_url)

        local_ids = {invitation.id for invitation in event.invitations}
        for remote in remote_invitations:
            if remote.id in local_ids:
                continue
            if self.state.exists(remote.id):
                # Pushed earlier and deleted here since
                await self._delete_remote_invitation(remote.id)
                self.state.forget(remote.id)
                report.invitations_removed += 1
            else:
                event.invitations.append(invitation_from_remote(remote, share_base_url))
                self.state.set_exists(remote.id, True)
                report.invitations_pulled += 1

    def _push_wishlist(self, event: Event) -> None:
        # Personal items go through WishlistSync; event-scoped items stay local
        if event.wishlist_items:
            logger.debug(
                f"Event {event.id}: {len(event.wishlist_items)} wishlist items kept local"
            )

    async def _push_photos(self, event: Event, report: SyncReport) -> None:
        remote_photos = await self.remote.fetch_event_photos(event.id)
        remote_ids = {remote.id for remote in remote_photos}

        for photo in sorted(event.photos, key=lambda p: p.display_order):
            if photo.id in remote_ids:
                self.state.set_exists(photo.id, True)
                continue
            if not photo.image_url:
                if not photo.image_data:
                    logger.warning(f"Photo {photo.id} has no image, skipping")
                    report.photos_skipped += 1
                    continue
                photo.image_url = await self.remote.upload_blob(
                    self.settings.event_photos_bucket, photo.file_name, photo.image_data
                )
            try:
                await self.remote.create_event_photo(event_photo_create_payload(photo))
                report.photos_created += 1
            except RemoteConflictError:
                logger.info(f"Photo {photo.id} already exists remotely")
            self.state.set_exists(photo.id, True)

        local_ids = {photo.id for photo in event.photos}
        for remote in remote_photos:
            if remote.id in local_ids:
                continue
            if self.state.exists(remote.id):
                await self._delete_remote_photo(remote.id, remote.image_url)
                self.state.forget(remote.id)
                report.photos_removed += 1
            else:
                event.photos.append(event_photo_from_remote(remote))
                self.state.set_exists(remote.id, True)
                report.photos_pulled += 1

    async def _push_profile(self, report: SyncReport) -> None:
        user_id = self.remote.auth.user_id
        profile = self.store.profile(user_id) if user_id else None
        if profile is None:
            return

        try:
            if profile.profile_photo_data and not profile.profile_photo_url:
                profile.profile_photo_url = await self.remote.upload_blob(
                    self.settings.avatars_bucket, f"{profile.id}.jpg", profile.profile_photo_data
                )
            payload = profile_upsert_payload(profile)
            if payload_hash(payload) == self.state.last_pushed_hash(profile.id):
                return
            remote = await self.remote.upsert_profile(payload)
            self.state.record_push(profile.id, payload, parse_updated_at(remote.updated_at))
            report.profile_pushed = True
        except Exception as e:
            logger.exception(f"Failed to sync profile {profile.id}: {e}")
            report.failures[f"profile:{profile.id}"] = str(e)

    # Remote deletions

    async def _delete_remote_invitation(self, invitation_id: UUID) -> None:
        try:
            await self.remote.delete_invitation(invitation_id)
        except RemoteNotFoundError:
            logger.info(f"Invitation {invitation_id} already gone remotely")

    async def _delete_remote_photo(self, photo_id: UUID, image_url: str | None) -> None:
        try:
            await self.remote.delete_event_photo(photo_id)
        except RemoteNotFoundError:
            logger.info(f"Photo {photo_id} already gone remotely")

        bucket = self.settings.event_photos_bucket
        # Only blobs this app uploaded live under the photos bucket
        if image_url and image_url.startswith(self.remote.public_url(bucket, "")):
            try:
                await self.remote.delete_blob(image_url, bucket)
            except RemoteNotFoundError:
                logger.info(f"Blob for photo {photo_id} already gone")

    # Single-record operations

    async def delete_event(self, event_id: UUID) -> None:
        """Delete an event remotely (if it was pushed) and locally with its dependents."""
        if self.state.exists(event_id):
            try:
                await self.remote.delete_event(event_id)
            except RemoteNotFoundError:
                logger.info(f"Event {event_id} already gone remotely")

        event = self.store.get(Event, event_id)
        if event is not None:
            self._forget_event(event)
            self.store.delete(event)
        self.state.forget(event_id)
        self.store.commit()
        self.state.commit()
        logger.info(f"Deleted event {event_id}")

    async def delete_invitation(self, invitation: Invitation) -> None:
        """Delete an invitation remotely (if it was pushed), then locally."""
        if self.state.exists(invitation.id):
            await self._delete_remote_invitation(invitation.id)

        event = invitation.event
        if event is not None and invitation in event.invitations:
            # Orphan removal deletes the row and keeps the loaded collection current
            event.invitations.remove(invitation)
        else:
            self.store.delete(invitation)
        self.state.forget(invitation.id)
        self.store.commit()
        self.state.commit()
        logger.info(f"Deleted invitation {invitation.id}")

    async def delete_photo(self, photo: EventPhoto) -> None:
        """Delete a photo row and its uploaded blob remotely, then locally."""
        if self.state.exists(photo.id):
            await self._delete_remote_photo(photo.id, photo.image_url)

        event = photo.event
        if event is not None and photo in event.photos:
            event.photos.remove(photo)
        else:
            self.store.delete(photo)
        self.state.forget(photo.id)
        self.store.commit()
        self.state.commit()
        logger.info(f"Deleted photo {photo.id}")

    async def push_invitation_response(self, invitation: Invitation) -> None:
        """Save a status change locally, then send it for an already pushed invitation."""
        invitation = self.store.upsert(invitation)
        self.store.commit()
        try:
            await self.remote.update_invitation(
                invitation.id, invitation_update_payload(invitation)
            )
        except RemoteNotFoundError:
            logger.warning(f"Invitation {invitation.id} not found remotely, update skipped")


def _row_id(row: Any) -> UUID | None:
    if not isinstance(row, dict):
        return None
    try:
        return UUID(str(row.get("id")))
    except ValueError:
        return None
