"""Booking-related Pydantic schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal
from uuid import UUID

from pydantic import (
    AliasGenerator,
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from booking_engine.core.exceptions import ErrorCode, ValidationError
from booking_engine.domain.booking_state import BookingStatus, parse_status
from booking_engine.domain.constants import (
    CURRENCY_MAX_LENGTH,
    DESCRIPTION_MAX_LENGTH,
    DESCRIPTION_MIN_LENGTH,
    LOCATION_MAX_LENGTH,
    SERVICE_CATEGORY_MAX_LENGTH,
    TIMEZONE_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    TITLE_MIN_LENGTH,
    EngagementType,
    RateType,
    UrgencyLevel,
)
from booking_engine.schemas.requirement import RequirementCreate
from booking_engine.utils.validators import (
    sanitize_text,
    validate_choice,
    validate_date,
    validate_date_range,
    validate_integer,
    validate_length,
    validate_max_length,
    validate_rate,
    validate_urgency_level,
)

_SHORT_TEXT_LIMITS = {
    "service_category": (SERVICE_CATEGORY_MAX_LENGTH, "Service category"),
    "currency": (CURRENCY_MAX_LENGTH, "Currency"),
    "timezone": (TIMEZONE_MAX_LENGTH, "Timezone"),
}

_INPUT_CONFIG = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)
_OUTPUT_CONFIG = ConfigDict(
    from_attributes=True,
    alias_generator=AliasGenerator(serialization_alias=to_camel),
)


def _parse_user_id(value: Any) -> UUID | None:
    if value is None or value == "":
        return None
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise ValidationError(ErrorCode.INVALID_USER_ID, f"Invalid user ID: {value}") from None


class BookingCreate(BaseModel):
    """Schema for creating a booking.

    Required fields are declared optional so that their absence surfaces
    as a coded ``MISSING_*`` error rather than a generic parse failure.
    """

    model_config = _INPUT_CONFIG

    client_id: UUID | None = None
    professional_id: UUID | None = None
    client_profile_id: UUID | None = None
    professional_profile_id: UUID | None = None

    title: str | None = None
    description: str | None = None
    service_category: str | None = None
    engagement_type: EngagementType = EngagementType.FREELANCE

    proposed_rate: Decimal | None = None
    proposed_rate_type: RateType = RateType.HOURLY
    currency: str | None = None

    start_date: date | None = None
    end_date: date | None = None
    estimated_hours: int | None = None
    flexible_timing: bool = False
    timezone: str | None = None

    client_message: str = ""
    urgency_level: UrgencyLevel = UrgencyLevel.NORMAL
    remote_work: bool = True
    location: str = ""

    requirements: list[RequirementCreate] = Field(default_factory=list)

    @field_validator(
        "client_id", "professional_id", "client_profile_id", "professional_profile_id", mode="before"
    )
    @classmethod
    def _check_user_id(cls, value: Any) -> UUID | None:
        return _parse_user_id(value)

    @field_validator("engagement_type", mode="before")
    @classmethod
    def _check_engagement_type(cls, value: Any) -> EngagementType:
        if value is None or value == "":
            return EngagementType.FREELANCE
        return validate_choice(
            value, EngagementType, ErrorCode.INVALID_ENGAGEMENT_TYPE, "engagement type"
        )

    @field_validator("proposed_rate", mode="before")
    @classmethod
    def _check_rate(cls, value: Any) -> Decimal | None:
        return validate_rate(value)

    @field_validator("proposed_rate_type", mode="before")
    @classmethod
    def _check_rate_type(cls, value: Any) -> RateType:
        if value is None or value == "":
            return RateType.HOURLY
        return validate_choice(value, RateType, ErrorCode.INVALID_RATE_TYPE, "rate type")

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _check_date(cls, value: Any) -> date | None:
        return validate_date(value)

    @field_validator("estimated_hours", mode="before")
    @classmethod
    def _check_hours(cls, value: Any) -> int | None:
        return validate_integer(value)

    @field_validator("urgency_level", mode="before")
    @classmethod
    def _check_urgency(cls, value: Any) -> UrgencyLevel:
        return validate_urgency_level(value)

    @field_validator("flexible_timing", mode="before")
    @classmethod
    def _check_flexible(cls, value: Any) -> bool:
        return bool(value)

    @field_validator("remote_work", mode="before")
    @classmethod
    def _remote_unless_false(cls, value: Any) -> bool:
        return value is not False

    @field_validator("client_message", mode="before")
    @classmethod
    def _sanitize(cls, value: Any) -> str:
        return sanitize_text(value)

    @field_validator("location", mode="before")
    @classmethod
    def _check_location(cls, value: Any) -> str:
        return validate_max_length(sanitize_text(value), LOCATION_MAX_LENGTH, "Location")

    @field_validator("service_category", "currency", "timezone", mode="before")
    @classmethod
    def _check_short_text(cls, value: Any, info: ValidationInfo) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        if not text:
            return None
        maximum, label = _SHORT_TEXT_LIMITS[info.field_name]
        return validate_max_length(text, maximum, label)

    @model_validator(mode="after")
    def _check_required(self) -> "BookingCreate":
        if not self.client_id:
            raise ValidationError(ErrorCode.MISSING_CLIENT_ID, "Client ID is required")
        if not self.professional_id:
            raise ValidationError(ErrorCode.MISSING_PROFESSIONAL_ID, "Professional ID is required")
        if not self.title or not self.title.strip():
            raise ValidationError(ErrorCode.MISSING_TITLE, "Title is required")
        if not self.description or not self.description.strip():
            raise ValidationError(ErrorCode.MISSING_DESCRIPTION, "Description is required")
        if self.client_id == self.professional_id:
            raise ValidationError(
                ErrorCode.INVALID_USER_ASSIGNMENT,
                "Client and professional cannot be the same user",
            )

        title = self.title.strip()
        description = self.description.strip()
        validate_length(
            title, TITLE_MIN_LENGTH, TITLE_MAX_LENGTH, ErrorCode.INVALID_TITLE_LENGTH, "Title"
        )
        validate_length(
            description,
            DESCRIPTION_MIN_LENGTH,
            DESCRIPTION_MAX_LENGTH,
            ErrorCode.INVALID_DESCRIPTION_LENGTH,
            "Description",
        )
        validate_date_range(self.start_date, self.end_date)

        self.title = sanitize_text(title)
        self.description = sanitize_text(description)
        return self


class BookingRead(BaseModel):
    """Schema for booking response."""

    model_config = _OUTPUT_CONFIG

    id: UUID
    client_id: UUID
    professional_id: UUID
    client_profile_id: UUID | None
    professional_profile_id: UUID | None

    title: str
    description: str
    service_category: str | None
    engagement_type: EngagementType

    status: BookingStatus
    status_changed_at: datetime
    status_changed_by: UUID | None

    proposed_rate: Decimal | None
    proposed_rate_type: RateType | None
    agreed_rate: Decimal | None
    agreed_rate_type: RateType | None
    currency: str

    start_date: date | None
    end_date: date | None
    estimated_hours: int | None
    flexible_timing: bool
    timezone: str

    delivery_date: date | None
    completion_date: date | None

    client_message: str | None
    professional_response: str | None
    rejection_reason: str | None
    cancellation_reason: str | None

    urgency_level: UrgencyLevel
    remote_work: bool
    location: str | None

    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None


class BookingSearchCriteria(BaseModel):
    """Filters for booking search and statistics."""

    model_config = _INPUT_CONFIG

    client_id: UUID | None = None
    professional_id: UUID | None = None
    status: list[BookingStatus] | None = None
    engagement_type: EngagementType | None = None
    service_category: str | None = None
    start_date: date | None = None
    end_date: date | None = None

    @field_validator("status", mode="before")
    @classmethod
    def _check_status(cls, value: Any) -> list[BookingStatus] | None:
        if value is None or value == []:
            return None
        if not isinstance(value, (list, tuple, set)):
            value = [value]
        return [parse_status(item) for item in value]


class SearchOptions(BaseModel):
    """Sorting and pagination for booking search."""

    model_config = _INPUT_CONFIG

    sort_by: Literal[
        "created_at", "updated_at", "status_changed_at", "start_date", "end_date", "title"
    ] = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"
    limit: int | None = None
    offset: int = 0

    @field_validator("limit", mode="before")
    @classmethod
    def _check_limit(cls, value: Any) -> int | None:
        return validate_integer(value)

    @field_validator("offset", mode="before")
    @classmethod
    def _check_offset(cls, value: Any) -> int:
        return max(0, validate_integer(value, 0))


class BookingSearchResult(BaseModel):
    """Schema for a page of bookings."""

    model_config = ConfigDict(alias_generator=AliasGenerator(serialization_alias=to_camel))

    bookings: list[BookingRead]
    total: int
    limit: int
    offset: int
    has_more: bool


class BookingStats(BaseModel):
    """Aggregate booking statistics."""

    model_config = ConfigDict(alias_generator=AliasGenerator(serialization_alias=to_camel))

    total: int
    by_status: dict[str, int]
    by_engagement_type: dict[str, int]
    total_value: float
    average_rate: float
