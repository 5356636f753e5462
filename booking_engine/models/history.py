"""Append-only booking audit trail."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from booking_engine.database import Base
from booking_engine.models.booking import utcnow

if TYPE_CHECKING:
    from booking_engine.models.booking import Booking


class BookingHistory(Base):
    """One status change or significant update of a booking.

    Rows are never updated or deleted; see ``core.immutability``.
    """

    __tablename__ = "booking_history"

    # Integer key doubles as the insertion-order tiebreaker
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("bookings.id"), nullable=False, index=True
    )

    event_type: Mapped[str] = mapped_column(
        String(50), nullable=False, index=True
    )  # status_change, booking_update, booking_deleted
    from_status: Mapped[str | None] = mapped_column(String(20))
    to_status: Mapped[str | None] = mapped_column(String(20))

    event_title: Mapped[str] = mapped_column(String(200), nullable=False)
    event_description: Mapped[str | None] = mapped_column(Text)

    actor_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    actor_role: Mapped[str] = mapped_column(String(20), nullable=False)  # client, professional, admin

    # "metadata" is reserved on declarative classes
    event_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata", JSON().with_variant(JSONB, "postgresql"), nullable=False, default=dict
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True
    )

    booking: Mapped["Booking"] = relationship("Booking", back_populates="history")
