"""Tests for local entity rules and the local store."""

from datetime import timedelta
from decimal import Decimal
from uuid import uuid4

import pytest

from moments_sync.errors import InvalidTransitionError
from moments_sync.models import (
    EventPhoto,
    Invitation,
    InvitationStatus,
    UserProfile,
    WishlistItem,
)
from moments_sync.utils import utcnow


def _invitation(status: InvitationStatus = InvitationStatus.PENDING) -> Invitation:
    return Invitation(id=uuid4(), event_id=uuid4(), guest_name="Alex", status=status, plus_ones=0)


class TestInvitationTransitions:
    @pytest.mark.parametrize(
        "action,expected",
        [
            ("accept", InvitationStatus.ACCEPTED),
            ("decline", InvitationStatus.DECLINED),
            ("request_to_join", InvitationStatus.WAITING_APPROVAL),
        ],
    )
    def test_pending_guest_can_respond(self, action, expected) -> None:
        invitation = _invitation()

        getattr(invitation, action)("See you there")

        assert invitation.status == expected
        assert invitation.responded_at is not None
        assert invitation.guest_message == "See you there"

    @pytest.mark.parametrize("status", [InvitationStatus.ACCEPTED, InvitationStatus.DECLINED])
    def test_final_answers_cannot_change(self, status) -> None:
        invitation = _invitation(status)

        with pytest.raises(InvalidTransitionError):
            invitation.accept()
        with pytest.raises(InvalidTransitionError):
            invitation.request_to_join()

    def test_organizer_approves_join_request(self) -> None:
        invitation = _invitation()
        invitation.request_to_join("Can I bring my partner?")
        responded_at = invitation.responded_at

        invitation.approve()

        assert invitation.status == InvitationStatus.ACCEPTED
        assert invitation.responded_at == responded_at
        assert invitation.guest_message == "Can I bring my partner?"

    def test_organizer_rejects_join_request(self) -> None:
        invitation = _invitation(InvitationStatus.WAITING_APPROVAL)
        invitation.reject()
        assert invitation.status == InvitationStatus.DECLINED

    def test_approval_requires_a_pending_request(self) -> None:
        with pytest.raises(InvalidTransitionError):
            _invitation().approve()
        with pytest.raises(InvalidTransitionError):
            _invitation().reject()

    def test_plus_ones_must_be_non_negative(self) -> None:
        invitation = _invitation()
        with pytest.raises(ValueError):
            invitation.plus_ones = -1

    def test_total_guests_counts_the_guest(self) -> None:
        invitation = _invitation()
        invitation.plus_ones = 2
        assert invitation.total_guests == 3
        assert invitation.has_responded is False


class TestWishlistItem:
    def test_personal_scope(self) -> None:
        assert WishlistItem(title="Book").is_personal is True
        assert WishlistItem(title="Book", event_id=uuid4()).is_personal is False
        assert WishlistItem(title="Book", contact_id=uuid4()).is_personal is False

    def test_price_must_be_non_negative(self) -> None:
        with pytest.raises(ValueError):
            WishlistItem(title="Book", price=Decimal("-1.00"))


class TestLocalStore:
    def test_personal_wishlist_order(self, store, make_event) -> None:
        event = make_event()
        now = utcnow()
        store.upsert(WishlistItem(title="Low", priority=1, created_at=now))
        store.upsert(WishlistItem(title="High old", priority=3, created_at=now))
        store.upsert(
            WishlistItem(title="High new", priority=3, created_at=now + timedelta(minutes=1))
        )
        store.upsert(WishlistItem(title="For the party", priority=3, event_id=event.id))
        store.commit()

        titles = [item.title for item in store.personal_wishlist()]

        assert titles == ["High new", "High old", "Low"]

    def test_deleting_event_removes_dependents(self, store, make_event) -> None:
        event = make_event()
        event.invitations.append(Invitation(guest_name="Sam"))
        event.photos.append(EventPhoto(image_url="https://cdn.test/1.jpg"))
        event.wishlist_items.append(WishlistItem(title="Cake stand"))
        store.commit()

        store.delete(event)
        store.commit()

        assert store.events() == []
        assert store.list_all(Invitation) == []
        assert store.list_all(EventPhoto) == []
        assert store.list_all(WishlistItem) == []

    def test_upsert_reattaches_detached_entities(self, store) -> None:
        profile = UserProfile(id=uuid4(), first_name="Ana")
        store.upsert(profile)
        store.commit()
        store.session.expunge(profile)

        profile.first_name = "Anna"
        attached = store.upsert(profile)
        store.commit()

        assert attached is not profile
        assert store.profile(profile.id).first_name == "Anna"
