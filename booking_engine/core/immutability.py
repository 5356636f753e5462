"""Append-only enforcement for the booking audit trail using SQLAlchemy events."""

import logging
from datetime import UTC, datetime

from sqlalchemy import event

from booking_engine.core.exceptions import BookingError, ErrorCode

logger = logging.getLogger(__name__)


class ImmutabilityViolationError(BookingError):
    """Raised when attempting to modify an audit record."""

    default_status = 409

    def __init__(self, model_name: str, operation: str, record_id: str):
        self.model_name = model_name
        self.operation = operation
        self.record_id = record_id
        super().__init__(
            ErrorCode.HISTORY_IMMUTABLE,
            f"Immutability violation: Cannot {operation} {model_name} record {record_id}. "
            "History entries are immutable after creation.",
        )


def _log_immutability_violation(model_name: str, operation: str, record_id: str) -> None:
    logger.warning(
        f"IMMUTABILITY_VIOLATION: Attempted to {operation} {model_name} "
        f"record_id={record_id} at {datetime.now(UTC).isoformat()}"
    )


def _prevent_history_update(mapper, connection, target) -> None:
    _log_immutability_violation("BookingHistory", "UPDATE", str(target.id))
    raise ImmutabilityViolationError("BookingHistory", "UPDATE", str(target.id))


def _prevent_history_delete(mapper, connection, target) -> None:
    _log_immutability_violation("BookingHistory", "DELETE", str(target.id))
    raise ImmutabilityViolationError("BookingHistory", "DELETE", str(target.id))


def register_immutability_enforcement() -> None:
    """Register listeners that reject UPDATE and DELETE of history rows.

    Safe to call more than once.
    """
    from booking_engine.models.history import BookingHistory

    if event.contains(BookingHistory, "before_update", _prevent_history_update):
        return

    event.listen(BookingHistory, "before_update", _prevent_history_update)
    event.listen(BookingHistory, "before_delete", _prevent_history_delete)

    logger.info("Immutability enforcement registered for booking history")
