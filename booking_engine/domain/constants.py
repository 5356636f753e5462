"""Closed vocabularies for booking fields."""

from enum import Enum


class EngagementType(str, Enum):
    FREELANCE = "freelance"
    CONSULTING = "consulting"
    PROJECT = "project"
    KEYNOTE = "keynote"
    MENTORING = "mentoring"


class RateType(str, Enum):
    HOURLY = "hourly"
    PROJECT = "project"
    DAILY = "daily"
    WEEKLY = "weekly"


class UrgencyLevel(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class RequirementType(str, Enum):
    SKILL = "skill"
    EXPERIENCE = "experience"
    CERTIFICATION = "certification"
    TOOL = "tool"
    DELIVERABLE = "deliverable"
    OTHER = "other"


class Proficiency(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


class HistoryEventType(str, Enum):
    STATUS_CHANGE = "status_change"
    BOOKING_UPDATE = "booking_update"
    BOOKING_DELETED = "booking_deleted"


TITLE_MIN_LENGTH = 5
TITLE_MAX_LENGTH = 200
DESCRIPTION_MIN_LENGTH = 10
DESCRIPTION_MAX_LENGTH = 5000

# Column widths, checked after sanitizing
SERVICE_CATEGORY_MAX_LENGTH = 100
CURRENCY_MAX_LENGTH = 3
TIMEZONE_MAX_LENGTH = 50
LOCATION_MAX_LENGTH = 1000
REQUIREMENT_TITLE_MAX_LENGTH = 1000
DELIVERABLE_FORMAT_MAX_LENGTH = 100

# Patch fields whose change is always audited
SIGNIFICANT_FIELDS = frozenset({"proposed_rate", "agreed_rate", "start_date", "end_date"})
