"""Custom application exceptions."""

from enum import Enum
from typing import Any

from fastapi import HTTPException, status


class ErrorCode(str, Enum):
    """Stable machine-readable error codes."""

    # Validation
    MISSING_CLIENT_ID = "MISSING_CLIENT_ID"
    MISSING_PROFESSIONAL_ID = "MISSING_PROFESSIONAL_ID"
    MISSING_TITLE = "MISSING_TITLE"
    MISSING_DESCRIPTION = "MISSING_DESCRIPTION"
    MISSING_REQUIREMENT_TITLE = "MISSING_REQUIREMENT_TITLE"
    INVALID_TITLE_LENGTH = "INVALID_TITLE_LENGTH"
    INVALID_DESCRIPTION_LENGTH = "INVALID_DESCRIPTION_LENGTH"
    INVALID_FIELD_LENGTH = "INVALID_FIELD_LENGTH"
    INVALID_ENGAGEMENT_TYPE = "INVALID_ENGAGEMENT_TYPE"
    INVALID_RATE = "INVALID_RATE"
    INVALID_RATE_TYPE = "INVALID_RATE_TYPE"
    INVALID_DATE = "INVALID_DATE"
    INVALID_DATE_RANGE = "INVALID_DATE_RANGE"
    INVALID_USER_ASSIGNMENT = "INVALID_USER_ASSIGNMENT"
    INVALID_USER_ID = "INVALID_USER_ID"
    INVALID_STATUS = "INVALID_STATUS"
    INVALID_REQUIREMENT_TYPE = "INVALID_REQUIREMENT_TYPE"
    INVALID_PROFICIENCY = "INVALID_PROFICIENCY"

    # Authorization
    UNAUTHORIZED = "UNAUTHORIZED"
    DELETE_NOT_ALLOWED = "DELETE_NOT_ALLOWED"

    # Transition
    INVALID_TRANSITION = "INVALID_TRANSITION"
    NO_STATE_CHANGE = "NO_STATE_CHANGE"

    # Update
    NO_VALID_UPDATES = "NO_VALID_UPDATES"

    # Not found
    BOOKING_NOT_FOUND = "BOOKING_NOT_FOUND"
    REQUIREMENT_NOT_FOUND = "REQUIREMENT_NOT_FOUND"

    # Audit trail
    HISTORY_IMMUTABLE = "HISTORY_IMMUTABLE"

    # Infrastructure
    CREATE_FAILED = "CREATE_FAILED"
    FIND_FAILED = "FIND_FAILED"
    SEARCH_FAILED = "SEARCH_FAILED"
    STATUS_UPDATE_FAILED = "STATUS_UPDATE_FAILED"
    UPDATE_FAILED = "UPDATE_FAILED"
    DELETE_FAILED = "DELETE_FAILED"
    ADD_REQUIREMENT_FAILED = "ADD_REQUIREMENT_FAILED"
    GET_REQUIREMENTS_FAILED = "GET_REQUIREMENTS_FAILED"
    ADD_HISTORY_FAILED = "ADD_HISTORY_FAILED"
    GET_HISTORY_FAILED = "GET_HISTORY_FAILED"
    STATS_FAILED = "STATS_FAILED"


class AppException(HTTPException):
    """Base application exception."""

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class BookingError(AppException):
    """Booking engine error carrying a stable code."""

    default_status = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        code: ErrorCode,
        detail: str,
        status_code: int | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.code = ErrorCode(code)
        self.extra = extra or {}
        super().__init__(status_code=status_code or self.default_status, detail=detail)

    def to_dict(self) -> dict[str, Any]:
        """Serializable error body."""
        body: dict[str, Any] = {"code": self.code.value, "detail": self.detail}
        if self.extra:
            body.update(self.extra)
        return body


class ValidationError(BookingError):
    """Input failed validation before any mutation."""

    default_status = status.HTTP_422_UNPROCESSABLE_ENTITY


class AuthorizationError(BookingError):
    """Actor is not allowed to perform the operation."""

    default_status = status.HTTP_403_FORBIDDEN

    def __init__(
        self,
        detail: str = "User not authorized for this booking",
        code: ErrorCode = ErrorCode.UNAUTHORIZED,
    ) -> None:
        super().__init__(code, detail)


class TransitionError(BookingError):
    """Rejected status transition."""

    default_status = status.HTTP_409_CONFLICT


class UpdateError(BookingError):
    """Field patch could not be applied."""

    def __init__(self, detail: str = "No valid fields to update") -> None:
        super().__init__(ErrorCode.NO_VALID_UPDATES, detail)


class NotFoundError(BookingError):
    """Resource not found or soft-deleted."""

    default_status = status.HTTP_404_NOT_FOUND

    def __init__(
        self,
        resource: str = "Booking",
        identifier: str | None = None,
        code: ErrorCode = ErrorCode.BOOKING_NOT_FOUND,
    ) -> None:
        detail = f"{resource} not found"
        if identifier:
            detail = f"{resource} with ID '{identifier}' not found"
        super().__init__(code, detail)


class InfrastructureError(BookingError):
    """Unexpected storage failure, wrapped so raw errors never leak."""

    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR
