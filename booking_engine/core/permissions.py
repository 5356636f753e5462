"""Booking roles and actor resolution."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol
from uuid import UUID

from booking_engine.core.exceptions import AuthorizationError


class BookingRole(str, Enum):
    """Relationship of an actor to a specific booking."""

    CLIENT = "client"
    PROFESSIONAL = "professional"
    ADMIN = "admin"
    UNKNOWN = "unknown"


class HasParticipants(Protocol):
    client_id: Any
    professional_id: Any


@dataclass(frozen=True)
class Actor:
    """Authenticated caller.

    ``is_admin`` is asserted by the external auth layer from the caller's
    session; it is never inferred from booking participation.
    """

    user_id: UUID
    is_admin: bool = False


def _same_user(left: Any, right: Any) -> bool:
    if left is None or right is None:
        return False
    return str(left) == str(right)


def resolve_role(booking: HasParticipants | None, user_id: Any) -> BookingRole:
    """Map a user id to their participant role on a booking."""
    if booking is None or user_id is None:
        return BookingRole.UNKNOWN

    if _same_user(booking.client_id, user_id):
        return BookingRole.CLIENT

    if _same_user(booking.professional_id, user_id):
        return BookingRole.PROFESSIONAL

    return BookingRole.UNKNOWN


def effective_role(booking: HasParticipants, actor: Actor) -> BookingRole:
    """Role used for authorization: admin capability wins over participation."""
    if actor.is_admin:
        return BookingRole.ADMIN
    return resolve_role(booking, actor.user_id)


def require_booking_role(booking: HasParticipants, actor: Actor) -> BookingRole:
    """Resolve the actor's role or raise ``UNAUTHORIZED``."""
    role = effective_role(booking, actor)
    if role is BookingRole.UNKNOWN:
        raise AuthorizationError()
    return role
