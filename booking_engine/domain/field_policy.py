"""Per-role field patches for non-status booking updates.

Each role parses a patch with its own schema; keys the schema does not
declare are dropped before any validation runs.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel

from booking_engine.core.exceptions import AuthorizationError, ErrorCode, UpdateError
from booking_engine.core.permissions import BookingRole
from booking_engine.domain.constants import (
    DESCRIPTION_MAX_LENGTH,
    DESCRIPTION_MIN_LENGTH,
    LOCATION_MAX_LENGTH,
    SIGNIFICANT_FIELDS,
    TITLE_MAX_LENGTH,
    TITLE_MIN_LENGTH,
    RateType,
    UrgencyLevel,
)
from booking_engine.utils.validators import (
    sanitize_text,
    validate_choice,
    validate_date,
    validate_integer,
    validate_length,
    validate_max_length,
    validate_rate,
    validate_urgency_level,
)

_FALSE_STRINGS = {"false", "0", "no", "off", ""}


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    return bool(value)


class BookingPatch(BaseModel):
    """Shared parsing rules; subclasses decide which fields exist."""

    model_config = ConfigDict(
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @field_validator("title", mode="before", check_fields=False)
    @classmethod
    def _check_title(cls, value: Any) -> str:
        raw = value.strip() if isinstance(value, str) else ""
        validate_length(
            raw, TITLE_MIN_LENGTH, TITLE_MAX_LENGTH, ErrorCode.INVALID_TITLE_LENGTH, "Title"
        )
        return sanitize_text(raw)

    @field_validator("description", mode="before", check_fields=False)
    @classmethod
    def _check_description(cls, value: Any) -> str:
        raw = value.strip() if isinstance(value, str) else ""
        validate_length(
            raw,
            DESCRIPTION_MIN_LENGTH,
            DESCRIPTION_MAX_LENGTH,
            ErrorCode.INVALID_DESCRIPTION_LENGTH,
            "Description",
        )
        return sanitize_text(raw)

    @field_validator("client_message", "professional_response", mode="before", check_fields=False)
    @classmethod
    def _sanitize(cls, value: Any) -> str:
        return sanitize_text(value)

    @field_validator("location", mode="before", check_fields=False)
    @classmethod
    def _check_location(cls, value: Any) -> str:
        return validate_max_length(sanitize_text(value), LOCATION_MAX_LENGTH, "Location")

    @field_validator("proposed_rate", "agreed_rate", mode="before", check_fields=False)
    @classmethod
    def _check_rate(cls, value: Any) -> Decimal | None:
        return validate_rate(value)

    @field_validator("proposed_rate_type", "agreed_rate_type", mode="before", check_fields=False)
    @classmethod
    def _check_rate_type(cls, value: Any) -> RateType | None:
        if value is None or value == "":
            return None
        return validate_choice(value, RateType, ErrorCode.INVALID_RATE_TYPE, "rate type")

    @field_validator("start_date", "end_date", mode="before", check_fields=False)
    @classmethod
    def _check_date(cls, value: Any) -> date | None:
        return validate_date(value)

    @field_validator("estimated_hours", mode="before", check_fields=False)
    @classmethod
    def _check_hours(cls, value: Any) -> int | None:
        return validate_integer(value)

    @field_validator("urgency_level", mode="before", check_fields=False)
    @classmethod
    def _check_urgency(cls, value: Any) -> UrgencyLevel:
        return validate_urgency_level(value)

    @field_validator("remote_work", "flexible_timing", mode="before", check_fields=False)
    @classmethod
    def _check_flag(cls, value: Any) -> bool:
        return _coerce_bool(value)

    def changes(self) -> dict[str, Any]:
        """Fields the caller actually sent, with enums as stored values."""
        values: dict[str, Any] = {}
        for name in sorted(self.model_fields_set):
            value = getattr(self, name)
            values[name] = value.value if isinstance(value, Enum) else value
        return values


class SharedPatch(BookingPatch):
    """Fields either participant may change."""

    location: str | None = None
    remote_work: bool | None = None
    flexible_timing: bool | None = None


class ClientPatch(SharedPatch):
    title: str | None = None
    description: str | None = None
    client_message: str | None = None
    proposed_rate: Decimal | None = None
    proposed_rate_type: RateType | None = None
    start_date: date | None = None
    end_date: date | None = None
    estimated_hours: int | None = None
    urgency_level: UrgencyLevel | None = None


class ProfessionalPatch(SharedPatch):
    professional_response: str | None = None
    agreed_rate: Decimal | None = None
    agreed_rate_type: RateType | None = None


class AdminPatch(ClientPatch, ProfessionalPatch):
    """Administrators may edit anything either participant can."""


PATCH_SCHEMAS: dict[BookingRole, type[BookingPatch]] = {
    BookingRole.CLIENT: ClientPatch,
    BookingRole.PROFESSIONAL: ProfessionalPatch,
    BookingRole.ADMIN: AdminPatch,
}


def allowed_fields(role: BookingRole) -> frozenset[str]:
    schema = PATCH_SCHEMAS.get(role)
    if schema is None:
        return frozenset()
    return frozenset(schema.model_fields)


def authorize_patch(role: BookingRole, patch: Mapping[str, Any]) -> dict[str, Any]:
    """Filter ``patch`` to ``role``'s fields and validate what survives.

    Args:
        role: Resolved role of the acting user
        patch: Raw field updates, camelCase or snake_case keys

    Returns:
        Validated column updates keyed by attribute name

    Raises:
        AuthorizationError: UNAUTHORIZED for an unknown role
        UpdateError: NO_VALID_UPDATES when nothing survives the filter
        ValidationError: for any surviving field with an invalid value
    """
    schema = PATCH_SCHEMAS.get(role)
    if schema is None:
        raise AuthorizationError()

    parsed = schema.model_validate(dict(patch))
    changes = parsed.changes()
    if not changes:
        raise UpdateError()
    return changes


def significant_changes(changes: Mapping[str, Any]) -> bool:
    """Whether a validated patch must be written to the audit trail."""
    return any(name in SIGNIFICANT_FIELDS for name in changes)
