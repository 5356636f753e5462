"""Booking lifecycle service."""

import logging
from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import asynccontextmanager
from datetime import UTC, date, datetime
from typing import Any, Literal
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.config import Settings, get_settings
from booking_engine.core.exceptions import (
    ErrorCode,
    InfrastructureError,
    NotFoundError,
    TransitionError,
)
from booking_engine.core.immutability import register_immutability_enforcement
from booking_engine.core.permissions import Actor, require_booking_role
from booking_engine.database import Database
from booking_engine.domain.booking_state import (
    BookingStatus,
    assert_booking_transition,
    describe_state,
    initial_state,
    next_states_for_role,
    parse_status,
)
from booking_engine.domain.constants import HistoryEventType
from booking_engine.domain.deletion_policy import assert_can_delete
from booking_engine.domain.field_policy import authorize_patch, significant_changes
from booking_engine.models.booking import Booking, utcnow
from booking_engine.repositories.booking_repository import BookingRepository
from booking_engine.schemas.booking import (
    BookingCreate,
    BookingRead,
    BookingSearchCriteria,
    BookingSearchResult,
    BookingStats,
    SearchOptions,
)
from booking_engine.schemas.history import HistoryEntryCreate, HistoryEntryRead
from booking_engine.schemas.requirement import RequirementCreate, RequirementRead
from booking_engine.services.history_service import HistoryRecorder
from booking_engine.services.requirement_service import RequirementTracker
from booking_engine.utils.validators import validate_date_range

logger = logging.getLogger(__name__)


def _utc_today() -> date:
    return datetime.now(UTC).date()


class BookingService:
    """Service for the booking lifecycle.

    Every public operation runs in its own transaction: all checks finish
    before the first write, and a failure rolls back everything the
    operation wrote.
    """

    def __init__(
        self,
        database: Database,
        settings: Settings | None = None,
        clock: Callable[[], date] | None = None,
    ) -> None:
        self.database = database
        self.settings = settings or get_settings()
        self.today = clock or _utc_today
        self.bookings = BookingRepository()
        self.history = HistoryRecorder(max_limit=self.settings.history_max_limit)
        self.requirements = RequirementTracker()
        register_immutability_enforcement()

    async def close(self) -> None:
        await self.database.close()

    @asynccontextmanager
    async def _transaction(self, code: ErrorCode, action: str) -> AsyncIterator[AsyncSession]:
        """Open a session and transaction, wrapping storage failures as ``code``."""
        try:
            async with self.database.session() as db:
                async with db.begin():
                    yield db
        except SQLAlchemyError as exc:
            logger.exception(f"Failed to {action}")
            raise InfrastructureError(code, f"Failed to {action}") from exc

    async def _get_booking(
        self, db: AsyncSession, booking_id: UUID, include_deleted: bool = False
    ) -> Booking:
        """Get booking by ID or raise NotFoundError."""
        booking = await self.bookings.get(db, booking_id, include_deleted=include_deleted)
        if not booking:
            raise NotFoundError("Booking", str(booking_id))
        return booking

    # Creation and reads

    async def create(
        self, payload: BookingCreate | Mapping[str, Any], created_by: UUID
    ) -> BookingRead:
        """Create a booking in the initial state.

        Args:
            payload: Booking fields, camelCase or snake_case keys
            created_by: User recorded as the last status changer

        Returns:
            The stored booking
        """
        data = (
            payload
            if isinstance(payload, BookingCreate)
            else BookingCreate.model_validate(dict(payload))
        )

        async with self._transaction(ErrorCode.CREATE_FAILED, "create booking") as db:
            now = utcnow()
            booking = Booking(
                client_id=data.client_id,
                professional_id=data.professional_id,
                client_profile_id=data.client_profile_id,
                professional_profile_id=data.professional_profile_id,
                title=data.title,
                description=data.description,
                service_category=data.service_category,
                engagement_type=data.engagement_type.value,
                status=initial_state().value,
                status_changed_at=now,
                status_changed_by=created_by,
                proposed_rate=data.proposed_rate,
                proposed_rate_type=data.proposed_rate_type.value,
                currency=data.currency or self.settings.default_currency,
                start_date=data.start_date,
                end_date=data.end_date,
                estimated_hours=data.estimated_hours,
                flexible_timing=data.flexible_timing,
                timezone=data.timezone or self.settings.default_timezone,
                client_message=data.client_message,
                urgency_level=data.urgency_level.value,
                remote_work=data.remote_work,
                location=data.location,
                created_at=now,
                updated_at=now,
            )
            await self.bookings.add(db, booking)

            for requirement in data.requirements:
                await self.requirements.add(db, booking.id, requirement)

        logger.info(
            f"Booking {booking.id} created by {created_by} "
            f"with {len(data.requirements)} requirement(s)"
        )
        return BookingRead.model_validate(booking)

    async def find_by_id(self, booking_id: UUID) -> BookingRead:
        async with self._transaction(ErrorCode.FIND_FAILED, "find booking") as db:
            booking = await self._get_booking(db, booking_id)
        return BookingRead.model_validate(booking)

    async def search(
        self,
        criteria: BookingSearchCriteria | Mapping[str, Any] | None = None,
        options: SearchOptions | Mapping[str, Any] | None = None,
    ) -> BookingSearchResult:
        """Page through live bookings matching ``criteria``."""
        if criteria is not None and not isinstance(criteria, BookingSearchCriteria):
            criteria = BookingSearchCriteria.model_validate(dict(criteria))
        if not isinstance(options, SearchOptions):
            options = SearchOptions.model_validate(dict(options or {}))

        limit = options.limit or self.settings.search_default_limit
        limit = max(1, min(limit, self.settings.search_max_limit))

        async with self._transaction(ErrorCode.SEARCH_FAILED, "search bookings") as db:
            rows, total = await self.bookings.search(db, criteria, options, limit)
            bookings = [BookingRead.model_validate(row) for row in rows]

        return BookingSearchResult(
            bookings=bookings,
            total=total,
            limit=limit,
            offset=options.offset,
            has_more=options.offset + len(bookings) < total,
        )

    async def stats(
        self, criteria: BookingSearchCriteria | Mapping[str, Any] | None = None
    ) -> BookingStats:
        """Aggregate counts and value over live bookings."""
        if criteria is not None and not isinstance(criteria, BookingSearchCriteria):
            criteria = BookingSearchCriteria.model_validate(dict(criteria))

        async with self._transaction(ErrorCode.STATS_FAILED, "get booking statistics") as db:
            status_counts = await self.bookings.status_counts(db, criteria)
            engagement_counts = await self.bookings.engagement_counts(db, criteria)
            average_rate, total_value = await self.bookings.rate_totals(db, criteria)

        return BookingStats(
            total=sum(status_counts.values()),
            by_status={status.value: status_counts.get(status.value, 0) for status in BookingStatus},
            by_engagement_type=engagement_counts,
            total_value=float(total_value or 0),
            average_rate=float(average_rate or 0),
        )

    # Lifecycle

    async def update_status(
        self,
        booking_id: UUID,
        to_status: BookingStatus | str,
        actor: Actor,
        context: Mapping[str, Any] | None = None,
    ) -> BookingRead:
        """Move a booking through the state machine.

        The write only lands if the status is unchanged since it was read;
        a concurrent winner makes this call fail with INVALID_TRANSITION.

        Raises:
            AuthorizationError: actor has no role, or the role may not take this edge
            TransitionError: NO_STATE_CHANGE or INVALID_TRANSITION
            ValidationError: unknown target status or malformed transition context
        """
        context = dict(context or {})

        async with self._transaction(
            ErrorCode.STATUS_UPDATE_FAILED, "update booking status"
        ) as db:
            booking = await self._get_booking(db, booking_id)
            role = require_booking_role(booking, actor)
            target = parse_status(to_status)
            current = BookingStatus(booking.status)
            side_effects = assert_booking_transition(
                current, target, role, context, booking, self.today()
            )

            now = utcnow()
            values = {
                **side_effects,
                "status": target.value,
                "status_changed_at": now,
                "status_changed_by": actor.user_id,
                "updated_at": now,
            }
            if not await self.bookings.compare_and_set_status(db, booking.id, current, values):
                latest = await self.bookings.current_status(db, booking.id)
                latest_name = latest.value if latest else "deleted"
                raise TransitionError(
                    ErrorCode.INVALID_TRANSITION,
                    f"Cannot transition from {latest_name} to {target.value}",
                    extra={"currentStatus": latest_name},
                )

            await self.history.append(
                db,
                booking.id,
                HistoryEntryCreate(
                    event_type=HistoryEventType.STATUS_CHANGE,
                    event_title=f"Booking {target.value}",
                    event_description=describe_state(target),
                    from_status=current,
                    to_status=target,
                    actor_id=actor.user_id,
                    actor_role=role,
                    metadata=context,
                ),
            )
            await db.refresh(booking)

        logger.info(
            f"Booking {booking_id} moved {current.value} -> {target.value} by {role.value}"
        )
        return BookingRead.model_validate(booking)

    async def allowed_transitions(self, booking_id: UUID, actor: Actor) -> list[BookingStatus]:
        """Statuses this actor could move the booking to right now."""
        async with self._transaction(ErrorCode.FIND_FAILED, "find booking") as db:
            booking = await self._get_booking(db, booking_id)
            role = require_booking_role(booking, actor)
        return next_states_for_role(BookingStatus(booking.status), role)

    async def update(
        self, booking_id: UUID, patch: Mapping[str, Any], actor: Actor
    ) -> BookingRead:
        """Apply the fields of ``patch`` that ``actor``'s role may change.

        Raises:
            AuthorizationError: actor has no role on the booking
            UpdateError: NO_VALID_UPDATES when nothing in the patch is writable
            ValidationError: a writable field has an invalid value
        """
        async with self._transaction(ErrorCode.UPDATE_FAILED, "update booking") as db:
            booking = await self._get_booking(db, booking_id)
            role = require_booking_role(booking, actor)
            changes = authorize_patch(role, patch)
            validate_date_range(
                changes.get("start_date", booking.start_date),
                changes.get("end_date", booking.end_date),
            )

            await self.bookings.apply(db, booking, {**changes, "updated_at": utcnow()})

            if significant_changes(changes):
                await self.history.append(
                    db,
                    booking.id,
                    HistoryEntryCreate(
                        event_type=HistoryEventType.BOOKING_UPDATE,
                        event_title="Booking updated",
                        event_description=f"Updated {', '.join(sorted(changes))}",
                        actor_id=actor.user_id,
                        actor_role=role,
                        metadata={"updatedFields": sorted(changes), "changes": changes},
                    ),
                )

        logger.info(f"Booking {booking_id} updated by {role.value}: {sorted(changes)}")
        return BookingRead.model_validate(booking)

    async def delete(self, booking_id: UUID, actor: Actor) -> bool:
        """Soft-delete a booking; its status and history are kept."""
        async with self._transaction(ErrorCode.DELETE_FAILED, "delete booking") as db:
            booking = await self._get_booking(db, booking_id)
            role = require_booking_role(booking, actor)
            status = BookingStatus(booking.status)
            assert_can_delete(role, status)

            await self.bookings.soft_delete(db, booking, utcnow())
            await self.history.append(
                db,
                booking.id,
                HistoryEntryCreate(
                    event_type=HistoryEventType.BOOKING_DELETED,
                    event_title="Booking deleted",
                    event_description=f"Booking deleted while {status.value}",
                    from_status=status,
                    actor_id=actor.user_id,
                    actor_role=role,
                ),
            )

        logger.info(f"Booking {booking_id} deleted by {role.value}")
        return True

    # Requirements

    async def add_requirement(
        self,
        booking_id: UUID,
        data: RequirementCreate | Mapping[str, Any],
        actor: Actor,
    ) -> RequirementRead:
        if not isinstance(data, RequirementCreate):
            data = RequirementCreate.model_validate(dict(data))

        async with self._transaction(ErrorCode.ADD_REQUIREMENT_FAILED, "add requirement") as db:
            booking = await self._get_booking(db, booking_id)
            require_booking_role(booking, actor)
            requirement = await self.requirements.add(db, booking.id, data)
        return RequirementRead.model_validate(requirement)

    async def list_requirements(self, booking_id: UUID) -> list[RequirementRead]:
        async with self._transaction(
            ErrorCode.GET_REQUIREMENTS_FAILED, "get requirements"
        ) as db:
            booking = await self._get_booking(db, booking_id)
            rows = await self.requirements.list(db, booking.id)
            return [RequirementRead.model_validate(row) for row in rows]

    async def remove_requirement(
        self, booking_id: UUID, requirement_id: UUID, actor: Actor
    ) -> bool:
        async with self._transaction(ErrorCode.UPDATE_FAILED, "remove requirement") as db:
            booking = await self._get_booking(db, booking_id)
            require_booking_role(booking, actor)
            return await self.requirements.remove(db, booking.id, requirement_id)

    async def mark_requirement_met(
        self,
        booking_id: UUID,
        requirement_id: UUID,
        actor: Actor,
        notes: str | None = None,
    ) -> RequirementRead:
        async with self._transaction(ErrorCode.UPDATE_FAILED, "mark requirement met") as db:
            booking = await self._get_booking(db, booking_id)
            require_booking_role(booking, actor)
            requirement = await self.requirements.mark_met(
                db, booking.id, requirement_id, actor.user_id, notes
            )
        return RequirementRead.model_validate(requirement)

    # History

    async def append_history(
        self, booking_id: UUID, entry: HistoryEntryCreate | Mapping[str, Any]
    ) -> HistoryEntryRead:
        """Append an externally produced audit entry to a live booking."""
        if not isinstance(entry, HistoryEntryCreate):
            entry = HistoryEntryCreate.model_validate(dict(entry))

        async with self._transaction(ErrorCode.ADD_HISTORY_FAILED, "add history entry") as db:
            booking = await self._get_booking(db, booking_id)
            record = await self.history.append(db, booking.id, entry)
        return HistoryEntryRead.model_validate(record)

    async def list_history(
        self,
        booking_id: UUID,
        order: Literal["asc", "desc"] = "desc",
        limit: int | None = None,
    ) -> list[HistoryEntryRead]:
        """History of a booking, soft-deleted ones included."""
        async with self._transaction(ErrorCode.GET_HISTORY_FAILED, "get history") as db:
            booking = await self._get_booking(db, booking_id, include_deleted=True)
            rows = await self.history.list(db, booking.id, order=order, limit=limit)
            return [HistoryEntryRead.model_validate(row) for row in rows]

