"""Integration tests for field updates, requirements, history and reporting."""

import uuid
from decimal import Decimal

import pytest
from sqlalchemy import select

from booking_engine.core.exceptions import (
    AuthorizationError,
    ErrorCode,
    NotFoundError,
    UpdateError,
    ValidationError,
)
from booking_engine.core.immutability import ImmutabilityViolationError
from booking_engine.domain.booking_state import BookingStatus
from booking_engine.models.history import BookingHistory


class TestUpdate:
    """Tests for BookingService.update."""

    async def test_client_updates_own_fields(self, service, booking, client):
        updated = await service.update(
            booking.id, {"title": "Plan the new architecture", "location": "Remote"}, client
        )
        assert updated.title == "Plan the new architecture"
        assert updated.location == "Remote"

    async def test_insignificant_change_is_not_audited(self, service, booking, client):
        await service.update(booking.id, {"clientMessage": "Any update?"}, client)
        assert await service.list_history(booking.id) == []

    async def test_significant_change_is_audited(self, service, booking, client):
        await service.update(
            booking.id, {"proposedRate": "135.5", "startDate": "2026-04-01"}, client
        )
        history = await service.list_history(booking.id)
        assert len(history) == 1
        entry = history[0]
        assert entry.event_type.value == "booking_update"
        assert entry.from_status is None
        assert entry.metadata == {
            "updatedFields": ["proposed_rate", "start_date"],
            "changes": {"proposed_rate": 135.5, "start_date": "2026-04-01"},
        }

    async def test_foreign_fields_only(self, service, booking, professional):
        """Nothing writable leaves the stored booking untouched."""
        before = await service.find_by_id(booking.id)
        with pytest.raises(UpdateError) as exc_info:
            await service.update(booking.id, {"title": "Hijacked title"}, professional)
        assert exc_info.value.code is ErrorCode.NO_VALID_UPDATES

        after = await service.find_by_id(booking.id)
        assert after.updated_at == before.updated_at
        assert after.title == before.title

    async def test_professional_sets_agreed_terms(self, service, booking, professional):
        updated = await service.update(
            booking.id,
            {"agreedRate": 140, "agreedRateType": "project", "professionalResponse": "Deal"},
            professional,
        )
        assert updated.agreed_rate == Decimal("140")
        assert updated.agreed_rate_type.value == "project"
        assert updated.professional_response == "Deal"

    async def test_admin_has_both_sides(self, service, booking, admin):
        updated = await service.update(
            booking.id, {"clientMessage": "Note", "professionalResponse": "Ack"}, admin
        )
        assert updated.client_message == "Note"
        assert updated.professional_response == "Ack"

    async def test_outsider_is_unauthorized(self, service, booking, stranger):
        with pytest.raises(AuthorizationError):
            await service.update(booking.id, {"location": "Berlin"}, stranger)

    async def test_merged_date_range(self, service, booking, client):
        """A new end date is checked against the stored start date."""
        await service.update(booking.id, {"startDate": "2026-05-10"}, client)
        with pytest.raises(ValidationError) as exc_info:
            await service.update(booking.id, {"endDate": "2026-05-01"}, client)
        assert exc_info.value.code is ErrorCode.INVALID_DATE_RANGE


class TestRequirements:
    """Tests for requirement operations."""

    async def test_add_list_remove(self, service, booking, client, professional):
        first = await service.add_requirement(
            booking.id, {"title": "Terraform", "requirementType": "tool", "priority": 3}, client
        )
        second = await service.add_requirement(
            booking.id, {"title": "System design doc", "priority": 1}, professional
        )

        listed = await service.list_requirements(booking.id)
        assert [r.id for r in listed] == [second.id, first.id]

        assert await service.remove_requirement(booking.id, first.id, client) is True
        listed = await service.list_requirements(booking.id)
        assert [r.id for r in listed] == [second.id]

    async def test_no_status_gating(self, service, booking, client, professional):
        await service.update_status(booking.id, "rejected", professional)
        added = await service.add_requirement(booking.id, {"title": "Late note"}, client)
        assert added.title == "Late note"

    async def test_mark_met(self, service, booking, client, professional):
        requirement = await service.add_requirement(booking.id, {"title": "Diagram"}, client)
        met = await service.mark_requirement_met(
            booking.id, requirement.id, client, notes="Reviewed <ok>"
        )
        assert met.is_met is True
        assert met.met_at is not None
        assert met.verified_by == client.user_id
        assert met.verification_notes == "Reviewed &lt;ok&gt;"

    async def test_outsider_cannot_touch_requirements(self, service, booking, stranger):
        with pytest.raises(AuthorizationError):
            await service.add_requirement(booking.id, {"title": "Spam"}, stranger)

    async def test_unknown_requirement(self, service, booking, client):
        with pytest.raises(NotFoundError) as exc_info:
            await service.remove_requirement(booking.id, uuid.uuid4(), client)
        assert exc_info.value.code is ErrorCode.REQUIREMENT_NOT_FOUND


class TestHistory:
    """Tests for history ordering, limits and immutability."""

    async def _walk(self, service, booking, client, professional):
        await service.update_status(booking.id, "pending", professional)
        await service.update_status(booking.id, "accepted", professional)
        await service.update_status(booking.id, "active", client)

    async def test_order_and_limit(self, service, booking, client, professional):
        await self._walk(service, booking, client, professional)

        newest_first = await service.list_history(booking.id)
        assert [h.to_status.value for h in newest_first] == ["active", "accepted", "pending"]

        oldest_first = await service.list_history(booking.id, order="asc", limit=2)
        assert [h.to_status.value for h in oldest_first] == ["pending", "accepted"]

        assert len(await service.list_history(booking.id, limit=0)) == 3
        assert len(await service.list_history(booking.id, limit=10_000)) == 3

    async def test_unlimited_list_returns_whole_trail(self, service, booking, admin):
        """Without a limit nothing is cut off, even past the read cap."""
        for index in range(105):
            await service.append_history(
                booking.id,
                {
                    "eventType": "booking_update",
                    "eventTitle": f"Note {index}",
                    "actorId": str(admin.user_id),
                    "actorRole": "admin",
                },
            )

        assert len(await service.list_history(booking.id)) == 105
        assert len(await service.list_history(booking.id, limit=0)) == 105
        assert len(await service.list_history(booking.id, limit=500)) == 100

        oldest = await service.list_history(booking.id, order="asc", limit=1)
        assert oldest[0].event_title == "Note 0"

    async def test_append_entry(self, service, booking, admin):
        entry = await service.append_history(
            booking.id,
            {
                "eventType": "booking_update",
                "eventTitle": "Manual note",
                "actorId": str(admin.user_id),
                "actorRole": "admin",
                "metadata": {"amount": Decimal("10.50")},
            },
        )
        assert entry.id > 0
        assert entry.metadata == {"amount": 10.5}

    async def test_entries_cannot_be_updated(self, service, database, booking, client, professional):
        await self._walk(service, booking, client, professional)

        async with database.session() as db:
            result = await db.execute(select(BookingHistory).limit(1))
            entry = result.scalar_one()
            entry.event_title = "Rewritten"
            with pytest.raises(ImmutabilityViolationError) as exc_info:
                await db.flush()
        assert exc_info.value.code is ErrorCode.HISTORY_IMMUTABLE

    async def test_entries_cannot_be_deleted(self, service, database, booking, client, professional):
        await self._walk(service, booking, client, professional)

        async with database.session() as db:
            result = await db.execute(select(BookingHistory).limit(1))
            await db.delete(result.scalar_one())
            with pytest.raises(ImmutabilityViolationError):
                await db.flush()


class TestSearch:
    """Tests for BookingService.search."""

    async def _create_many(self, service, payload, client_id, count):
        created = []
        for index in range(count):
            created.append(
                await service.create(
                    {**payload, "title": f"Engagement number {index}"}, created_by=client_id
                )
            )
        return created

    async def test_pagination(self, service, booking_payload, client_id):
        await self._create_many(service, booking_payload, client_id, 5)

        page = await service.search({"clientId": str(client_id)}, {"limit": 2, "offset": 2})
        assert page.total == 5
        assert len(page.bookings) == 2
        assert page.has_more is True

        last = await service.search({"clientId": str(client_id)}, {"limit": 2, "offset": 4})
        assert len(last.bookings) == 1
        assert last.has_more is False

    async def test_limit_is_clamped(self, service, booking_payload, client_id):
        await self._create_many(service, booking_payload, client_id, 2)
        assert (await service.search(options={"limit": 0})).limit == 20
        assert (await service.search(options={"limit": -3})).limit == 1
        assert (await service.search(options={"limit": 500})).limit == 100
        assert (await service.search()).limit == 20

    async def test_filters(self, service, booking_payload, client_id, professional):
        created = await self._create_many(service, booking_payload, client_id, 3)
        await service.update_status(created[0].id, "accepted", professional)

        accepted = await service.search({"status": "accepted"})
        assert [b.id for b in accepted.bookings] == [created[0].id]

        open_ones = await service.search({"status": ["request", "pending"]})
        assert open_ones.total == 2

        nobody = await service.search({"professionalId": str(uuid.uuid4())})
        assert nobody.total == 0

    async def test_sort_by_title(self, service, booking_payload, client_id):
        await self._create_many(service, booking_payload, client_id, 3)
        result = await service.search(options={"sortBy": "title", "sortOrder": "asc"})
        titles = [b.title for b in result.bookings]
        assert titles == sorted(titles)

    async def test_deleted_bookings_are_hidden(self, service, booking, client):
        await service.delete(booking.id, client)
        assert (await service.search()).total == 0


class TestStats:
    """Tests for BookingService.stats."""

    async def test_empty(self, service):
        stats = await service.stats()
        assert stats.total == 0
        assert stats.by_status == {status.value: 0 for status in BookingStatus}
        assert stats.by_engagement_type == {}
        assert stats.total_value == 0
        assert stats.average_rate == 0

    async def test_aggregates(self, service, booking_payload, client_id, professional):
        hourly = await service.create(booking_payload, created_by=client_id)
        fixed = await service.create(
            {**booking_payload, "engagementType": "project", "estimatedHours": None},
            created_by=client_id,
        )
        await service.create(booking_payload, created_by=client_id)

        await service.update_status(hourly.id, "accepted", professional, {"agreedRate": 100})
        await service.update_status(fixed.id, "accepted", professional, {"agreedRate": 50})

        stats = await service.stats({"clientId": str(client_id)})
        assert stats.total == 3
        assert stats.by_status["accepted"] == 2
        assert stats.by_status["request"] == 1
        assert stats.by_status["completed"] == 0
        assert stats.by_engagement_type == {"consulting": 2, "project": 1}
        assert stats.total_value == pytest.approx(100 * 10 + 50)
        assert stats.average_rate == pytest.approx(75)

    async def test_zero_rate_is_not_averaged(
        self, service, booking_payload, client_id, professional
    ):
        """A free booking adds nothing to value and stays out of the average."""
        paid = await service.create(booking_payload, created_by=client_id)
        free = await service.create(booking_payload, created_by=client_id)
        no_hours = await service.create(
            {**booking_payload, "estimatedHours": 0}, created_by=client_id
        )

        await service.update_status(paid.id, "accepted", professional, {"agreedRate": 80})
        await service.update_status(free.id, "accepted", professional, {"agreedRate": 0})
        await service.update_status(no_hours.id, "accepted", professional, {"agreedRate": 40})

        stats = await service.stats()
        assert stats.by_status["accepted"] == 3
        assert stats.average_rate == pytest.approx(60)
        assert stats.total_value == pytest.approx(80 * 10 + 40)
