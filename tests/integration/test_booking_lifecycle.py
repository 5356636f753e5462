"""Integration tests for booking creation, status transitions and deletion."""

import uuid
from decimal import Decimal

import pytest
from sqlalchemy.exc import SQLAlchemyError

from booking_engine.core.exceptions import (
    AuthorizationError,
    ErrorCode,
    InfrastructureError,
    NotFoundError,
    TransitionError,
    ValidationError,
)
from booking_engine.domain.booking_state import BookingStatus
from booking_engine.repositories.booking_repository import BookingRepository

TIMESTAMPS = {"created_at", "updated_at", "status_changed_at", "deleted_at"}


class StaleRepository(BookingRepository):
    """Hands out the booking as it looked before a concurrent write landed."""

    def __init__(self, stale_status: BookingStatus) -> None:
        self.stale_status = stale_status

    async def get(self, db, booking_id, include_deleted=False):
        booking = await super().get(db, booking_id, include_deleted)
        db.expunge(booking)
        booking.status = self.stale_status.value
        return booking


class TestCreate:
    """Tests for BookingService.create."""

    async def test_creates_in_request_state(self, service, booking, client_id):
        assert booking.status is BookingStatus.REQUEST
        assert booking.status_changed_by == client_id
        assert booking.proposed_rate == Decimal("120.00")
        assert booking.currency == "USD"
        assert booking.timezone == "UTC"
        assert booking.deleted_at is None

    async def test_creation_writes_no_history(self, service, booking):
        assert await service.list_history(booking.id) == []

    async def test_round_trip(self, service, booking):
        """A created booking reads back field for field."""
        found = await service.find_by_id(booking.id)
        assert found.model_dump(exclude=TIMESTAMPS) == booking.model_dump(exclude=TIMESTAMPS)

    async def test_nested_requirements(self, service, booking_payload, client_id):
        booking_payload["requirements"] = [
            {"title": "Kubernetes", "requirementType": "skill", "priority": 2},
            {"title": "Architecture diagram", "requirementType": "deliverable", "priority": 1},
        ]
        created = await service.create(booking_payload, created_by=client_id)

        requirements = await service.list_requirements(created.id)
        assert [r.title for r in requirements] == ["Architecture diagram", "Kubernetes"]

    async def test_invalid_payload_writes_nothing(self, service, booking_payload, client_id):
        booking_payload["title"] = "Tiny"
        with pytest.raises(ValidationError) as exc_info:
            await service.create(booking_payload, created_by=client_id)
        assert exc_info.value.code is ErrorCode.INVALID_TITLE_LENGTH

        result = await service.search()
        assert result.total == 0

    async def test_unknown_booking(self, service):
        with pytest.raises(NotFoundError) as exc_info:
            await service.find_by_id(uuid.uuid4())
        assert exc_info.value.code is ErrorCode.BOOKING_NOT_FOUND
        assert exc_info.value.status_code == 404


class TestStatusLifecycle:
    """Tests for BookingService.update_status."""

    async def test_end_to_end(self, service, booking, client, professional, today):
        """Request to completion writes one history entry per transition."""
        accepted = await service.update_status(
            booking.id, BookingStatus.ACCEPTED, professional, {"agreedRate": 150}
        )
        assert accepted.status is BookingStatus.ACCEPTED
        assert accepted.agreed_rate == Decimal("150")
        assert accepted.status_changed_by == professional.user_id

        history = await service.list_history(booking.id)
        assert len(history) == 1
        assert history[0].from_status is BookingStatus.REQUEST
        assert history[0].to_status is BookingStatus.ACCEPTED
        assert history[0].actor_role.value == "professional"
        assert history[0].metadata == {"agreedRate": 150}

        active = await service.update_status(booking.id, "active", client, {})
        assert active.status is BookingStatus.ACTIVE
        assert active.start_date == today

        delivered = await service.update_status(booking.id, "delivered", professional)
        assert delivered.delivery_date == today

        completed = await service.update_status(booking.id, "COMPLETED", client)
        assert completed.status is BookingStatus.COMPLETED
        assert completed.completion_date == today

        history = await service.list_history(booking.id, order="asc")
        assert [(h.from_status.value, h.to_status.value) for h in history] == [
            ("request", "accepted"),
            ("accepted", "active"),
            ("active", "delivered"),
            ("delivered", "completed"),
        ]
        assert all(h.event_type.value == "status_change" for h in history)

    async def test_rejection_reason_is_stored(self, service, booking, professional):
        rejected = await service.update_status(
            booking.id, "rejected", professional, {"rejectionReason": "<b>Fully booked</b>"}
        )
        assert rejected.rejection_reason == "&lt;b&gt;Fully booked&lt;/b&gt;"

    async def test_admin_may_take_any_edge(self, service, booking, admin):
        cancelled = await service.update_status(
            booking.id, "cancelled", admin, {"cancellationReason": "Duplicate"}
        )
        assert cancelled.cancellation_reason == "Duplicate"
        history = await service.list_history(booking.id)
        assert history[0].actor_role.value == "admin"

    async def test_outsider_is_unauthorized(self, service, booking, stranger):
        with pytest.raises(AuthorizationError) as exc_info:
            await service.update_status(booking.id, "cancelled", stranger)
        assert exc_info.value.code is ErrorCode.UNAUTHORIZED

    async def test_role_is_checked_before_status_name(
        self, service, booking, stranger, professional
    ):
        with pytest.raises(AuthorizationError) as exc_info:
            await service.update_status(booking.id, "archived", stranger)
        assert exc_info.value.code is ErrorCode.UNAUTHORIZED

        with pytest.raises(ValidationError) as exc_info:
            await service.update_status(booking.id, "archived", professional)
        assert exc_info.value.code is ErrorCode.INVALID_STATUS

    async def test_wrong_role_is_unauthorized(self, service, booking, client):
        with pytest.raises(AuthorizationError):
            await service.update_status(booking.id, "accepted", client)
        assert (await service.find_by_id(booking.id)).status is BookingStatus.REQUEST

    async def test_same_state(self, service, booking, professional):
        with pytest.raises(TransitionError) as exc_info:
            await service.update_status(booking.id, "request", professional)
        assert exc_info.value.code is ErrorCode.NO_STATE_CHANGE

    async def test_missing_edge(self, service, booking, professional):
        with pytest.raises(TransitionError) as exc_info:
            await service.update_status(booking.id, "delivered", professional)
        assert exc_info.value.code is ErrorCode.INVALID_TRANSITION
        assert await service.list_history(booking.id) == []

    async def test_bad_rate_rolls_back(self, service, booking, professional):
        """A failing side effect leaves status and history untouched."""
        with pytest.raises(ValidationError) as exc_info:
            await service.update_status(booking.id, "accepted", professional, {"agreedRate": "-1"})
        assert exc_info.value.code is ErrorCode.INVALID_RATE
        assert (await service.find_by_id(booking.id)).status is BookingStatus.REQUEST
        assert await service.list_history(booking.id) == []

    async def test_concurrent_loser_sees_invalid_transition(
        self, service, booking, client, professional
    ):
        """The second writer from a stale REQUEST read loses the compare-and-swap."""
        await service.update_status(booking.id, "cancelled", client)

        service.bookings = StaleRepository(BookingStatus.REQUEST)
        with pytest.raises(TransitionError) as exc_info:
            await service.update_status(booking.id, "accepted", professional, {"agreedRate": 99})
        assert exc_info.value.code is ErrorCode.INVALID_TRANSITION
        assert exc_info.value.extra == {"currentStatus": "cancelled"}

        service.bookings = BookingRepository()
        stored = await service.find_by_id(booking.id)
        assert stored.status is BookingStatus.CANCELLED
        assert stored.agreed_rate is None
        assert len(await service.list_history(booking.id)) == 1

    async def test_allowed_transitions(self, service, booking, client, professional, stranger):
        assert await service.allowed_transitions(booking.id, client) == [BookingStatus.CANCELLED]
        assert set(await service.allowed_transitions(booking.id, professional)) == {
            BookingStatus.PENDING,
            BookingStatus.ACCEPTED,
            BookingStatus.REJECTED,
        }
        with pytest.raises(AuthorizationError):
            await service.allowed_transitions(booking.id, stranger)


class TestDelete:
    """Tests for BookingService.delete."""

    async def test_client_deletes_early_booking(self, service, booking, client):
        assert await service.delete(booking.id, client) is True

        with pytest.raises(NotFoundError):
            await service.find_by_id(booking.id)

        history = await service.list_history(booking.id)
        assert len(history) == 1
        assert history[0].event_type.value == "booking_deleted"
        assert history[0].from_status is BookingStatus.REQUEST
        assert history[0].to_status is None

    async def test_deleted_booking_rejects_mutations(self, service, booking, client, professional):
        await service.delete(booking.id, client)
        with pytest.raises(NotFoundError):
            await service.update_status(booking.id, "accepted", professional)
        with pytest.raises(NotFoundError):
            await service.delete(booking.id, client)

    async def test_professional_never_deletes(self, service, booking, professional):
        with pytest.raises(AuthorizationError) as exc_info:
            await service.delete(booking.id, professional)
        assert exc_info.value.code is ErrorCode.DELETE_NOT_ALLOWED

    async def test_client_cannot_delete_accepted(self, service, booking, client, professional):
        await service.update_status(booking.id, "accepted", professional)
        with pytest.raises(AuthorizationError) as exc_info:
            await service.delete(booking.id, client)
        assert exc_info.value.code is ErrorCode.DELETE_NOT_ALLOWED

    async def test_admin_deletes_any_state(self, service, booking, professional, client, admin):
        await service.update_status(booking.id, "accepted", professional)
        await service.update_status(booking.id, "active", client)
        assert await service.delete(booking.id, admin) is True

        history = await service.list_history(booking.id, order="asc")
        assert history[-1].event_type.value == "booking_deleted"
        assert history[-1].from_status is BookingStatus.ACTIVE


class TestInfrastructureErrors:
    """Tests for wrapping storage failures."""

    async def test_storage_failure_is_wrapped(self, service, booking, monkeypatch):
        async def broken_get(*args, **kwargs):
            raise SQLAlchemyError("connection lost")

        monkeypatch.setattr(service.bookings, "get", broken_get)
        with pytest.raises(InfrastructureError) as exc_info:
            await service.find_by_id(booking.id)
        assert exc_info.value.code is ErrorCode.FIND_FAILED
        assert exc_info.value.status_code == 500
        assert isinstance(exc_info.value.__cause__, SQLAlchemyError)
