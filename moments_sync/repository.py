"""Typed repository over the local entity store."""

from typing import TypeVar
from uuid import UUID

from sqlalchemy import inspect, select
from sqlalchemy.orm import Session

from moments_sync.database import Base
from moments_sync.models import Event, UserProfile, WishlistItem

ModelT = TypeVar("ModelT", bound=Base)


class LocalStore:
    """Repository for local entities.

    The orchestrator only talks to this class, never to the query API of
    the storage engine. All reads and writes are synchronous.
    """

    def __init__(self, session: Session):
        self.session = session

    def list_all(self, model: type[ModelT]) -> list[ModelT]:
        """List every record of a model, oldest first."""
        query = select(model)
        created_at = getattr(model, "created_at", None)
        if created_at is not None:
            query = query.order_by(created_at, model.id)
        result = self.session.execute(query)
        return list(result.scalars().all())

    def get(self, model: type[ModelT], entity_id: UUID) -> ModelT | None:
        return self.session.get(model, entity_id)

    def _attach(self, entity: ModelT) -> ModelT:
        if inspect(entity).detached:
            return self.session.merge(entity)
        return entity

    def upsert(self, entity: ModelT) -> ModelT:
        """Insert or update an entity; persisted on commit()."""
        entity = self._attach(entity)
        self.session.add(entity)
        return entity

    def delete(self, entity: Base) -> None:
        self.session.delete(self._attach(entity))

    def flush(self) -> None:
        """Apply column defaults and ids without committing."""
        self.session.flush()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    def close(self) -> None:
        self.session.close()

    # Typed helpers

    def events(self) -> list[Event]:
        return self.list_all(Event)

    def profile(self, user_id: UUID) -> UserProfile | None:
        return self.get(UserProfile, user_id)

    def personal_wishlist(self) -> list[WishlistItem]:
        """Personal wishlist, highest priority first, then most recent."""
        result = self.session.execute(
            select(WishlistItem)
            .where(WishlistItem.event_id.is_(None), WishlistItem.contact_id.is_(None))
            .order_by(WishlistItem.priority.desc(), WishlistItem.created_at.desc())
        )
        return list(result.scalars().all())
