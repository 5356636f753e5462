"""Booking state machine.

States: request → pending → accepted/rejected → active → delivered → completed
Cancellation is possible from request, pending, accepted and active.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Mapping

from pydantic.alias_generators import to_snake

from booking_engine.core.exceptions import (
    AuthorizationError,
    ErrorCode,
    TransitionError,
    ValidationError,
)
from booking_engine.core.permissions import BookingRole
from booking_engine.domain.constants import RateType
from booking_engine.utils.validators import sanitize_text, validate_choice, validate_rate


class BookingStatus(str, Enum):
    """Booking lifecycle states."""

    REQUEST = "request"
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    ACTIVE = "active"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


_CLIENT = BookingRole.CLIENT
_PRO = BookingRole.PROFESSIONAL
_ADMIN = BookingRole.ADMIN

# (from, to) -> roles allowed to perform it. Absent pairs are invalid.
BOOKING_TRANSITIONS: dict[tuple[BookingStatus, BookingStatus], frozenset[BookingRole]] = {
    (BookingStatus.REQUEST, BookingStatus.PENDING): frozenset({_PRO, _ADMIN}),
    (BookingStatus.REQUEST, BookingStatus.ACCEPTED): frozenset({_PRO, _ADMIN}),
    (BookingStatus.REQUEST, BookingStatus.REJECTED): frozenset({_PRO, _ADMIN}),
    (BookingStatus.REQUEST, BookingStatus.CANCELLED): frozenset({_CLIENT, _ADMIN}),
    (BookingStatus.PENDING, BookingStatus.ACCEPTED): frozenset({_PRO, _ADMIN}),
    (BookingStatus.PENDING, BookingStatus.REJECTED): frozenset({_PRO, _ADMIN}),
    (BookingStatus.PENDING, BookingStatus.CANCELLED): frozenset({_CLIENT, _ADMIN}),
    (BookingStatus.ACCEPTED, BookingStatus.ACTIVE): frozenset({_CLIENT, _PRO, _ADMIN}),
    (BookingStatus.ACCEPTED, BookingStatus.CANCELLED): frozenset({_CLIENT, _PRO, _ADMIN}),
    (BookingStatus.ACTIVE, BookingStatus.DELIVERED): frozenset({_PRO, _ADMIN}),
    (BookingStatus.ACTIVE, BookingStatus.CANCELLED): frozenset({_CLIENT, _PRO, _ADMIN}),
    (BookingStatus.DELIVERED, BookingStatus.COMPLETED): frozenset({_CLIENT, _ADMIN}),
}

STATE_DESCRIPTIONS: dict[BookingStatus, str] = {
    BookingStatus.REQUEST: "Booking request created",
    BookingStatus.PENDING: "Awaiting professional response",
    BookingStatus.ACCEPTED: "Booking accepted by professional",
    BookingStatus.REJECTED: "Booking declined by professional",
    BookingStatus.ACTIVE: "Work in progress",
    BookingStatus.DELIVERED: "Work delivered, awaiting approval",
    BookingStatus.COMPLETED: "Booking successfully completed",
    BookingStatus.CANCELLED: "Booking cancelled",
}


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a transition check."""

    ok: bool
    code: ErrorCode | None = None
    message: str | None = None
    side_effects: dict[str, Any] = field(default_factory=dict)

    def raise_for_error(self) -> None:
        """Raise the typed error matching ``code`` when not ok."""
        if self.ok:
            return
        if self.code is ErrorCode.UNAUTHORIZED:
            raise AuthorizationError(self.message or "User not authorized for this booking")
        raise TransitionError(self.code or ErrorCode.INVALID_TRANSITION, self.message or "")


def initial_state() -> BookingStatus:
    """State of every newly created booking."""
    return BookingStatus.REQUEST


def next_states(current: BookingStatus) -> list[BookingStatus]:
    """All states reachable from ``current`` in one step."""
    return [to for (frm, to) in BOOKING_TRANSITIONS if frm is current]


def next_states_for_role(current: BookingStatus, role: BookingRole) -> list[BookingStatus]:
    """States reachable from ``current`` that ``role`` may request."""
    return [
        to
        for (frm, to), roles in BOOKING_TRANSITIONS.items()
        if frm is current and role in roles
    ]


def is_final_state(status: BookingStatus) -> bool:
    return not next_states(status)


def can_be_cancelled(status: BookingStatus) -> bool:
    return BookingStatus.CANCELLED in next_states(status)


def describe_state(status: BookingStatus) -> str:
    return STATE_DESCRIPTIONS.get(status, "Unknown state")


def transition_summary(current: BookingStatus, target: BookingStatus) -> dict[str, Any]:
    """Human-readable summary of a transition for audit metadata."""
    return {
        "from": {"state": current.value, "description": describe_state(current)},
        "to": {"state": target.value, "description": describe_state(target)},
    }


def normalize_context(context: Mapping[str, Any] | None) -> dict[str, Any]:
    """Accept camelCase or snake_case context keys."""
    return {to_snake(key): value for key, value in (context or {}).items()}


def compute_side_effects(
    target: BookingStatus,
    booking: Any,
    context: Mapping[str, Any],
    today: date,
) -> dict[str, Any]:
    """Column updates implied by entering ``target``.

    Args:
        target: Requested status
        booking: Current booking snapshot (needs ``start_date``)
        context: Caller-supplied transition data
        today: Current calendar date

    Returns:
        Mapping of booking attribute name to new value
    """
    effects: dict[str, Any] = {}

    if target is BookingStatus.ACCEPTED:
        agreed_rate = validate_rate(context.get("agreed_rate"))
        if agreed_rate is not None:
            effects["agreed_rate"] = agreed_rate
            if context.get("agreed_rate_type"):
                effects["agreed_rate_type"] = validate_choice(
                    context["agreed_rate_type"], RateType, ErrorCode.INVALID_RATE_TYPE, "rate type"
                ).value

    elif target is BookingStatus.REJECTED:
        if context.get("rejection_reason"):
            effects["rejection_reason"] = sanitize_text(context["rejection_reason"])

    elif target is BookingStatus.ACTIVE:
        if getattr(booking, "start_date", None) is None:
            effects["start_date"] = today

    elif target is BookingStatus.DELIVERED:
        effects["delivery_date"] = today

    elif target is BookingStatus.COMPLETED:
        effects["completion_date"] = today

    elif target is BookingStatus.CANCELLED:
        if context.get("cancellation_reason"):
            effects["cancellation_reason"] = sanitize_text(context["cancellation_reason"])

    return effects


def validate_transition(
    current: BookingStatus,
    target: BookingStatus,
    role: BookingRole,
    context: Mapping[str, Any] | None = None,
    booking: Any = None,
    today: date | None = None,
) -> TransitionResult:
    """Decide whether ``role`` may move a booking from ``current`` to ``target``.

    Side effects are only computed when the transition is allowed; a
    malformed rate in ``context`` raises ``ValidationError`` at that point.
    """
    if role is BookingRole.UNKNOWN:
        return TransitionResult(
            ok=False,
            code=ErrorCode.UNAUTHORIZED,
            message="User not authorized for this booking",
        )

    if current is target:
        return TransitionResult(
            ok=False,
            code=ErrorCode.NO_STATE_CHANGE,
            message=f"Booking is already {current.value}",
        )

    allowed_roles = BOOKING_TRANSITIONS.get((current, target))
    if allowed_roles is None:
        return TransitionResult(
            ok=False,
            code=ErrorCode.INVALID_TRANSITION,
            message=f"Cannot transition from {current.value} to {target.value}",
        )

    if role not in allowed_roles:
        return TransitionResult(
            ok=False,
            code=ErrorCode.UNAUTHORIZED,
            message=(
                f"Role {role.value} cannot perform transition "
                f"from {current.value} to {target.value}"
            ),
        )

    side_effects = compute_side_effects(
        target, booking, normalize_context(context), today or date.today()
    )
    return TransitionResult(
        ok=True,
        message=describe_state(target),
        side_effects=side_effects,
    )


def assert_booking_transition(
    current: BookingStatus,
    target: BookingStatus,
    role: BookingRole,
    context: Mapping[str, Any] | None = None,
    booking: Any = None,
    today: date | None = None,
) -> dict[str, Any]:
    """Validate a transition and return its side effects, raising on refusal."""
    result = validate_transition(current, target, role, context, booking, today)
    result.raise_for_error()
    return result.side_effects


def parse_status(value: Any) -> BookingStatus:
    """Parse a status name in any case."""
    if isinstance(value, BookingStatus):
        return value
    try:
        return BookingStatus(str(value).strip().lower())
    except ValueError:
        raise ValidationError(
            ErrorCode.INVALID_STATUS, f"Invalid booking status: {value}"
        ) from None
