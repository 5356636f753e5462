"""Booking persistence queries."""

import logging
from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import and_, case, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from booking_engine.domain.booking_state import BookingStatus
from booking_engine.models.booking import Booking
from booking_engine.schemas.booking import BookingSearchCriteria, SearchOptions

logger = logging.getLogger(__name__)

SORTABLE_COLUMNS = {
    "created_at": Booking.created_at,
    "updated_at": Booking.updated_at,
    "status_changed_at": Booking.status_changed_at,
    "start_date": Booking.start_date,
    "end_date": Booking.end_date,
    "title": Booking.title,
}


def _criteria_filters(criteria: BookingSearchCriteria | None) -> list[ColumnElement[bool]]:
    filters: list[ColumnElement[bool]] = [Booking.deleted_at.is_(None)]
    if criteria is None:
        return filters

    if criteria.client_id:
        filters.append(Booking.client_id == criteria.client_id)
    if criteria.professional_id:
        filters.append(Booking.professional_id == criteria.professional_id)
    if criteria.status:
        filters.append(Booking.status.in_([status.value for status in criteria.status]))
    if criteria.engagement_type:
        filters.append(Booking.engagement_type == criteria.engagement_type.value)
    if criteria.service_category:
        filters.append(Booking.service_category == criteria.service_category)
    if criteria.start_date:
        filters.append(Booking.start_date >= criteria.start_date)
    if criteria.end_date:
        filters.append(Booking.end_date <= criteria.end_date)
    return filters


class BookingRepository:
    """Queries over the ``bookings`` table.

    Every method works inside the caller's session and never commits.
    """

    async def get(
        self,
        db: AsyncSession,
        booking_id: UUID,
        include_deleted: bool = False,
    ) -> Booking | None:
        """Get a booking by ID, ignoring soft-deleted rows by default."""
        query = select(Booking).where(Booking.id == booking_id)
        if not include_deleted:
            query = query.where(Booking.deleted_at.is_(None))
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def current_status(self, db: AsyncSession, booking_id: UUID) -> BookingStatus | None:
        """Status as stored right now, or None once the booking is gone."""
        result = await db.execute(
            select(Booking.status).where(
                Booking.id == booking_id, Booking.deleted_at.is_(None)
            )
        )
        value = result.scalar_one_or_none()
        return BookingStatus(value) if value is not None else None

    async def add(self, db: AsyncSession, booking: Booking) -> Booking:
        db.add(booking)
        await db.flush()
        await db.refresh(booking)
        return booking

    async def compare_and_set_status(
        self,
        db: AsyncSession,
        booking_id: UUID,
        expected: BookingStatus,
        values: dict[str, Any],
    ) -> bool:
        """Write ``values`` only if the booking is still live in ``expected``.

        Returns:
            True when exactly one row was updated
        """
        result = await db.execute(
            update(Booking)
            .where(
                and_(
                    Booking.id == booking_id,
                    Booking.status == expected.value,
                    Booking.deleted_at.is_(None),
                )
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(
                f"Status write lost for booking {booking_id}: expected {expected.value}"
            )
            return False
        return True

    async def apply(self, db: AsyncSession, booking: Booking, values: dict[str, Any]) -> Booking:
        for name, value in values.items():
            setattr(booking, name, value)
        await db.flush()
        return booking

    async def soft_delete(self, db: AsyncSession, booking: Booking, when: datetime) -> Booking:
        booking.deleted_at = when
        booking.updated_at = when
        await db.flush()
        return booking

    async def search(
        self,
        db: AsyncSession,
        criteria: BookingSearchCriteria | None,
        options: SearchOptions,
        limit: int,
    ) -> tuple[Sequence[Booking], int]:
        """One page of live bookings plus the unpaged match count."""
        filters = _criteria_filters(criteria)

        total_result = await db.execute(
            select(func.count()).select_from(Booking).where(*filters)
        )
        total = total_result.scalar_one()

        column = SORTABLE_COLUMNS[options.sort_by]
        ordering = column.asc() if options.sort_order == "asc" else column.desc()
        result = await db.execute(
            select(Booking)
            .where(*filters)
            .order_by(ordering, Booking.id)
            .limit(limit)
            .offset(options.offset)
        )
        return result.scalars().all(), total

    async def status_counts(
        self, db: AsyncSession, criteria: BookingSearchCriteria | None
    ) -> dict[str, int]:
        result = await db.execute(
            select(Booking.status, func.count())
            .where(*_criteria_filters(criteria))
            .group_by(Booking.status)
        )
        return {status: count for status, count in result.all()}

    async def engagement_counts(
        self, db: AsyncSession, criteria: BookingSearchCriteria | None
    ) -> dict[str, int]:
        result = await db.execute(
            select(Booking.engagement_type, func.count())
            .where(*_criteria_filters(criteria))
            .group_by(Booking.engagement_type)
        )
        return {engagement: count for engagement, count in result.all()}

    async def rate_totals(
        self, db: AsyncSession, criteria: BookingSearchCriteria | None
    ) -> tuple[Decimal | float | None, Decimal | float | None]:
        """Return (average agreed rate, summed estimated value) over rated bookings.

        Unset or zero rates are left out; unset or zero hours count the rate once.
        """
        value = case(
            (
                Booking.estimated_hours != 0,
                Booking.agreed_rate * Booking.estimated_hours,
            ),
            else_=Booking.agreed_rate,
        )
        result = await db.execute(
            select(func.avg(Booking.agreed_rate), func.sum(value)).where(
                *_criteria_filters(criteria), Booking.agreed_rate > 0
            )
        )
        average, total = result.one()
        return average, total
