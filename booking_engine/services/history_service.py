"""Append-only booking audit trail service."""

from collections.abc import Sequence
from typing import Literal
from uuid import UUID

from fastapi.encoders import jsonable_encoder
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.models.booking import utcnow
from booking_engine.models.history import BookingHistory
from booking_engine.schemas.history import HistoryEntryCreate

DEFAULT_HISTORY_LIMIT = 100


class HistoryRecorder:
    """Service for writing and reading booking history.

    Entries are only ever inserted; the ORM listeners registered in
    ``core.immutability`` reject updates and deletes.
    """

    def __init__(self, max_limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        self.max_limit = max_limit

    async def append(
        self,
        db: AsyncSession,
        booking_id: UUID,
        entry: HistoryEntryCreate,
    ) -> BookingHistory:
        """Append an entry to a booking's history.

        Args:
            db: Database session
            booking_id: Booking the entry belongs to
            entry: Event details; metadata is stored JSON-encoded

        Returns:
            Created history row (flushed, with its ID)
        """
        record = BookingHistory(
            booking_id=booking_id,
            event_type=entry.event_type.value,
            from_status=entry.from_status.value if entry.from_status else None,
            to_status=entry.to_status.value if entry.to_status else None,
            event_title=entry.event_title,
            event_description=entry.event_description,
            actor_id=entry.actor_id,
            actor_role=entry.actor_role.value,
            event_metadata=jsonable_encoder(entry.metadata),
            created_at=utcnow(),
        )
        db.add(record)
        await db.flush()
        return record

    def clamp_limit(self, limit: int | None) -> int | None:
        """Clamp a positive limit to 1..max_limit; None or 0 means the whole trail."""
        if not limit:
            return None
        return max(1, min(limit, self.max_limit))

    async def list(
        self,
        db: AsyncSession,
        booking_id: UUID,
        order: Literal["asc", "desc"] = "desc",
        limit: int | None = None,
    ) -> Sequence[BookingHistory]:
        """List entries ordered by creation time, insertion order breaking ties."""
        if order == "asc":
            ordering = (BookingHistory.created_at.asc(), BookingHistory.id.asc())
        else:
            ordering = (BookingHistory.created_at.desc(), BookingHistory.id.desc())

        query = (
            select(BookingHistory)
            .where(BookingHistory.booking_id == booking_id)
            .order_by(*ordering)
        )
        capped = self.clamp_limit(limit)
        if capped is not None:
            query = query.limit(capped)

        result = await db.execute(query)
        return result.scalars().all()
