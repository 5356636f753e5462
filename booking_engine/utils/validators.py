"""Field validation and sanitization helpers.

Every helper either returns a normalized value or raises a coded
``ValidationError``; integer parsing never raises.
"""

import html
import math
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, TypeVar

from booking_engine.core.exceptions import ErrorCode, ValidationError
from booking_engine.domain.constants import UrgencyLevel

E = TypeVar("E", bound=Enum)


def sanitize_text(value: Any) -> str:
    """Trim and HTML-escape text. Non-strings become an empty string."""
    if not value or not isinstance(value, str):
        return ""
    return html.escape(value.strip(), quote=True)


def sanitize_optional_text(value: Any) -> str | None:
    """Like ``sanitize_text`` but keeps ``None`` for absent values."""
    if value is None:
        return None
    return sanitize_text(value)


def validate_rate(value: Any) -> Decimal | None:
    """Parse a non-negative rate.

    Args:
        value: Number or numeric string, or empty for no rate

    Returns:
        Decimal rate or None

    Raises:
        ValidationError: INVALID_RATE for non-numeric or negative input
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(ErrorCode.INVALID_RATE, "Invalid rate value")
    try:
        rate = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(ErrorCode.INVALID_RATE, "Invalid rate value") from None
    if not rate.is_finite() or rate < 0:
        raise ValidationError(ErrorCode.INVALID_RATE, "Invalid rate value")
    return rate


def validate_integer(value: Any, default: int | None = None) -> int | None:
    """Parse an integer, falling back to ``default`` on bad input."""
    if value is None or value == "" or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else default
    try:
        return int(str(value).strip())
    except ValueError:
        pass
    # Leading-integer forms such as "12.5" or "12h"
    digits = ""
    for index, char in enumerate(str(value).strip()):
        if char.isdigit() or (index == 0 and char in "+-"):
            digits += char
            continue
        break
    try:
        return int(digits)
    except ValueError:
        return default


def validate_date(value: Any) -> date | None:
    """Parse a calendar date from a date, datetime or ISO string.

    Raises:
        ValidationError: INVALID_DATE when the string cannot be parsed
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text)
        except ValueError:
            pass
        try:
            return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
        except ValueError:
            pass
    raise ValidationError(ErrorCode.INVALID_DATE, "Invalid date format")


def validate_date_range(start: date | None, end: date | None) -> None:
    """Require ``start <= end`` when both are present."""
    if start and end and start > end:
        raise ValidationError(
            ErrorCode.INVALID_DATE_RANGE, "Start date cannot be after end date"
        )


def validate_urgency_level(value: Any) -> UrgencyLevel:
    """Coerce to a known urgency level, defaulting to ``normal``."""
    try:
        return UrgencyLevel(value)
    except ValueError:
        return UrgencyLevel.NORMAL


def validate_choice(value: Any, choices: type[E], code: ErrorCode, label: str) -> E:
    """Parse ``value`` into the enum ``choices`` or raise ``code``."""
    try:
        return choices(value)
    except ValueError:
        raise ValidationError(code, f"Invalid {label}: {value}") from None


def validate_length(value: str, minimum: int, maximum: int, code: ErrorCode, label: str) -> None:
    """Check a string's length against inclusive bounds."""
    if not minimum <= len(value) <= maximum:
        raise ValidationError(
            code, f"{label} must be between {minimum} and {maximum} characters"
        )


def validate_max_length(value: str | None, maximum: int, label: str) -> str | None:
    """Reject text longer than its column; ``None`` passes through."""
    if value is not None and len(value) > maximum:
        raise ValidationError(
            ErrorCode.INVALID_FIELD_LENGTH,
            f"{label} must be at most {maximum} characters",
        )
    return value
