"""Who may soft-delete a booking, and when."""

from booking_engine.core.exceptions import AuthorizationError, ErrorCode
from booking_engine.core.permissions import BookingRole
from booking_engine.domain.booking_state import BookingStatus

CLIENT_DELETABLE_STATES = frozenset({BookingStatus.REQUEST, BookingStatus.PENDING})


def can_delete_booking(role: BookingRole, status: BookingStatus) -> tuple[bool, str | None]:
    """Check if ``role`` may delete a booking in ``status``.

    Returns:
        Tuple of (can_delete, error_message)
    """
    if role is BookingRole.ADMIN:
        return True, None

    if role is BookingRole.CLIENT:
        if status in CLIENT_DELETABLE_STATES:
            return True, None
        return False, f"Cannot delete booking in {status.value} state"

    if role is BookingRole.PROFESSIONAL:
        return False, "Professionals cannot delete bookings"

    return False, "User not authorized for this booking"


def assert_can_delete(role: BookingRole, status: BookingStatus) -> None:
    allowed, error = can_delete_booking(role, status)
    if not allowed:
        raise AuthorizationError(error or "Cannot delete booking", code=ErrorCode.DELETE_NOT_ALLOWED)
