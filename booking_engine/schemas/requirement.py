"""Requirement Pydantic schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import AliasGenerator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from booking_engine.core.exceptions import ErrorCode, ValidationError
from booking_engine.domain.constants import (
    DELIVERABLE_FORMAT_MAX_LENGTH,
    REQUIREMENT_TITLE_MAX_LENGTH,
    Proficiency,
    RequirementType,
)
from booking_engine.utils.validators import (
    sanitize_optional_text,
    sanitize_text,
    validate_choice,
    validate_integer,
    validate_max_length,
)


class RequirementCreate(BaseModel):
    """Schema for adding a requirement to a booking."""

    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)

    requirement_type: RequirementType = RequirementType.OTHER
    title: str = Field(default="", validate_default=True)
    description: str | None = None
    is_mandatory: bool = True
    priority: int = 0
    skill_id: UUID | None = None
    required_proficiency: Proficiency | None = None
    min_years_experience: int | None = None
    deliverable_format: str | None = None
    expected_quantity: int = 1

    @field_validator("requirement_type", mode="before")
    @classmethod
    def _check_type(cls, value: Any) -> RequirementType:
        if value is None or value == "":
            return RequirementType.OTHER
        return validate_choice(
            value, RequirementType, ErrorCode.INVALID_REQUIREMENT_TYPE, "requirement type"
        )

    @field_validator("title", mode="before")
    @classmethod
    def _check_title(cls, value: Any) -> str:
        title = sanitize_text(value)
        if not title:
            raise ValidationError(ErrorCode.MISSING_REQUIREMENT_TITLE, "Requirement title is required")
        return validate_max_length(title, REQUIREMENT_TITLE_MAX_LENGTH, "Requirement title")

    @field_validator("description", mode="before")
    @classmethod
    def _sanitize(cls, value: Any) -> str | None:
        return sanitize_optional_text(value)

    @field_validator("deliverable_format", mode="before")
    @classmethod
    def _check_format(cls, value: Any) -> str | None:
        return validate_max_length(
            sanitize_optional_text(value), DELIVERABLE_FORMAT_MAX_LENGTH, "Deliverable format"
        )

    @field_validator("is_mandatory", mode="before")
    @classmethod
    def _mandatory_unless_false(cls, value: Any) -> bool:
        return value is not False

    @field_validator("priority", mode="before")
    @classmethod
    def _check_priority(cls, value: Any) -> int:
        return validate_integer(value, 0)

    @field_validator("expected_quantity", mode="before")
    @classmethod
    def _check_quantity(cls, value: Any) -> int:
        return validate_integer(value, 1)

    @field_validator("min_years_experience", mode="before")
    @classmethod
    def _check_years(cls, value: Any) -> int | None:
        return validate_integer(value)

    @field_validator("required_proficiency", mode="before")
    @classmethod
    def _check_proficiency(cls, value: Any) -> Proficiency | None:
        if value is None or value == "":
            return None
        return validate_choice(value, Proficiency, ErrorCode.INVALID_PROFICIENCY, "proficiency")

    def to_columns(self) -> dict[str, Any]:
        """Column values for a new ``BookingRequirement`` row."""
        return self.model_dump(mode="python") | {
            "requirement_type": self.requirement_type.value,
            "required_proficiency": (
                self.required_proficiency.value if self.required_proficiency else None
            ),
        }


class RequirementRead(BaseModel):
    """Schema for requirement response."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=AliasGenerator(serialization_alias=to_camel),
    )

    id: UUID
    booking_id: UUID
    requirement_type: RequirementType
    title: str
    description: str | None
    is_mandatory: bool
    priority: int
    skill_id: UUID | None
    required_proficiency: Proficiency | None
    min_years_experience: int | None
    deliverable_format: str | None
    expected_quantity: int | None
    is_met: bool
    met_at: datetime | None
    verified_by: UUID | None
    verification_notes: str | None
    created_at: datetime
