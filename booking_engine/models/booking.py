"""Booking-related database models."""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from booking_engine.database import Base

if TYPE_CHECKING:
    from booking_engine.models.history import BookingHistory


def utcnow() -> datetime:
    return datetime.now(UTC)


class Booking(Base):
    """Client/professional engagement and its lifecycle state."""

    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    professional_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    client_profile_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    professional_profile_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)

    # Description (stored HTML-escaped, so wider than the 200/5000 input limits)
    title: Mapped[str] = mapped_column(String(1000), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    service_category: Mapped[str | None] = mapped_column(String(100), index=True)
    engagement_type: Mapped[str] = mapped_column(
        String(50), nullable=False, default="freelance", index=True
    )  # freelance, consulting, project, keynote, mentoring

    # Status
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="request", index=True
    )  # request, pending, accepted, rejected, active, delivered, completed, cancelled
    status_changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    status_changed_by: Mapped[uuid.UUID | None] = mapped_column(Uuid)

    # Pricing
    proposed_rate: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    proposed_rate_type: Mapped[str | None] = mapped_column(
        String(20), default="hourly"
    )  # hourly, project, daily, weekly
    agreed_rate: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    agreed_rate_type: Mapped[str | None] = mapped_column(String(20))
    currency: Mapped[str] = mapped_column(String(3), default="USD")

    # Scheduling
    start_date: Mapped[date | None] = mapped_column(Date, index=True)
    end_date: Mapped[date | None] = mapped_column(Date, index=True)
    estimated_hours: Mapped[int | None] = mapped_column(Integer)
    flexible_timing: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    timezone: Mapped[str] = mapped_column(String(50), default="UTC")

    # Set by the state machine only
    delivery_date: Mapped[date | None] = mapped_column(Date)
    completion_date: Mapped[date | None] = mapped_column(Date)

    # Communication
    client_message: Mapped[str | None] = mapped_column(Text)
    professional_response: Mapped[str | None] = mapped_column(Text)
    rejection_reason: Mapped[str | None] = mapped_column(Text)
    cancellation_reason: Mapped[str | None] = mapped_column(Text)

    # Metadata
    urgency_level: Mapped[str] = mapped_column(
        String(20), default="normal"
    )  # low, normal, high, urgent
    remote_work: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    location: Mapped[str | None] = mapped_column(String(1000))

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    requirements: Mapped[list["BookingRequirement"]] = relationship(
        "BookingRequirement", back_populates="booking", order_by="BookingRequirement.priority"
    )
    history: Mapped[list["BookingHistory"]] = relationship(
        "BookingHistory", back_populates="booking", order_by="BookingHistory.id"
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class BookingRequirement(Base):
    """What the client expects delivered for a booking."""

    __tablename__ = "booking_requirements"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("bookings.id"), nullable=False, index=True
    )

    requirement_type: Mapped[str] = mapped_column(
        String(50), nullable=False, default="other"
    )  # skill, experience, certification, tool, deliverable, other
    title: Mapped[str] = mapped_column(String(1000), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    is_mandatory: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # 0 = highest

    # Skill-specific
    skill_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    required_proficiency: Mapped[str | None] = mapped_column(
        String(20)
    )  # beginner, intermediate, advanced, expert
    min_years_experience: Mapped[int | None] = mapped_column(Integer)

    # Deliverable-specific
    deliverable_format: Mapped[str | None] = mapped_column(String(100))
    expected_quantity: Mapped[int | None] = mapped_column(Integer, default=1)

    # Verification
    is_met: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    met_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    verified_by: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    verification_notes: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    booking: Mapped["Booking"] = relationship("Booking", back_populates="requirements")
