"""Booking history Pydantic schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import AliasChoices, AliasGenerator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from booking_engine.core.permissions import BookingRole
from booking_engine.domain.booking_state import BookingStatus
from booking_engine.domain.constants import HistoryEventType


class HistoryEntryCreate(BaseModel):
    """Schema for appending an audit entry."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    event_type: HistoryEventType
    event_title: str = Field(min_length=1, max_length=200)
    event_description: str = ""
    from_status: BookingStatus | None = None
    to_status: BookingStatus | None = None
    actor_id: UUID
    actor_role: BookingRole
    metadata: dict[str, Any] = Field(default_factory=dict)


class HistoryEntryRead(BaseModel):
    """Schema for audit entry response."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=AliasGenerator(serialization_alias=to_camel),
    )

    id: int
    booking_id: UUID
    event_type: HistoryEventType
    from_status: BookingStatus | None
    to_status: BookingStatus | None
    event_title: str
    event_description: str | None
    actor_id: UUID
    actor_role: BookingRole
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("event_metadata", "metadata"),
    )
    created_at: datetime
