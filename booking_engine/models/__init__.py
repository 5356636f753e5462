"""Database models."""

from booking_engine.models.booking import Booking, BookingRequirement
from booking_engine.models.history import BookingHistory

__all__ = [
    "Booking",
    "BookingRequirement",
    "BookingHistory",
]
