"""Booking requirement tracking service."""

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.exceptions import ErrorCode, NotFoundError
from booking_engine.models.booking import BookingRequirement, utcnow
from booking_engine.schemas.requirement import RequirementCreate
from booking_engine.utils.validators import sanitize_optional_text


class RequirementTracker:
    """Service for the requirements attached to a booking."""

    async def add(
        self,
        db: AsyncSession,
        booking_id: UUID,
        data: RequirementCreate,
    ) -> BookingRequirement:
        """Attach a validated requirement to a booking."""
        now = utcnow()
        requirement = BookingRequirement(
            booking_id=booking_id,
            created_at=now,
            updated_at=now,
            **data.to_columns(),
        )
        db.add(requirement)
        await db.flush()
        await db.refresh(requirement)
        return requirement

    async def list(self, db: AsyncSession, booking_id: UUID) -> Sequence[BookingRequirement]:
        """Live requirements, highest priority (lowest number) first."""
        result = await db.execute(
            select(BookingRequirement)
            .where(
                BookingRequirement.booking_id == booking_id,
                BookingRequirement.deleted_at.is_(None),
            )
            .order_by(BookingRequirement.priority.asc(), BookingRequirement.created_at.asc())
        )
        return result.scalars().all()

    async def remove(self, db: AsyncSession, booking_id: UUID, requirement_id: UUID) -> bool:
        """Soft-delete a requirement."""
        requirement = await self._get_requirement(db, booking_id, requirement_id)
        now = utcnow()
        requirement.deleted_at = now
        requirement.updated_at = now
        await db.flush()
        return True

    async def mark_met(
        self,
        db: AsyncSession,
        booking_id: UUID,
        requirement_id: UUID,
        verified_by: UUID,
        notes: str | None = None,
    ) -> BookingRequirement:
        """Record that a requirement has been satisfied."""
        requirement = await self._get_requirement(db, booking_id, requirement_id)
        now = utcnow()
        requirement.is_met = True
        requirement.met_at = now
        requirement.verified_by = verified_by
        requirement.verification_notes = sanitize_optional_text(notes)
        requirement.updated_at = now
        await db.flush()
        return requirement

    async def _get_requirement(
        self, db: AsyncSession, booking_id: UUID, requirement_id: UUID
    ) -> BookingRequirement:
        """Get a live requirement of this booking or raise NotFoundError."""
        result = await db.execute(
            select(BookingRequirement).where(
                BookingRequirement.id == requirement_id,
                BookingRequirement.booking_id == booking_id,
                BookingRequirement.deleted_at.is_(None),
            )
        )
        requirement = result.scalar_one_or_none()
        if not requirement:
            raise NotFoundError(
                "Requirement", str(requirement_id), code=ErrorCode.REQUIREMENT_NOT_FOUND
            )
        return requirement
