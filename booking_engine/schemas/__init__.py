"""Pydantic schemas for the booking engine."""

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

__all__ = [
    # Booking
    "BookingCreate",
    "BookingRead",
    "BookingSearchCriteria",
    "BookingSearchResult",
    "BookingStats",
    "SearchOptions",
    # History
    "HistoryEntryCreate",
    "HistoryEntryRead",
    # Requirement
    "RequirementCreate",
    "RequirementRead",
]
