"""Core errors and authorization primitives."""

from booking_engine.core.exceptions import (
    AppException,
    AuthorizationError,
    BookingError,
    ErrorCode,
    InfrastructureError,
    NotFoundError,
    TransitionError,
    UpdateError,
    ValidationError,
)
from booking_engine.core.permissions import (
    Actor,
    BookingRole,
    effective_role,
    require_booking_role,
    resolve_role,
)

__all__ = [
    "AppException",
    "AuthorizationError",
    "BookingError",
    "ErrorCode",
    "InfrastructureError",
    "NotFoundError",
    "TransitionError",
    "UpdateError",
    "ValidationError",
    "Actor",
    "BookingRole",
    "effective_role",
    "require_booking_role",
    "resolve_role",
]
