"""Core enums used across modules."""

from enum import StrEnum


class BookingStatusEnum(StrEnum):
    """Booking lifecycle status."""

    ACTIVE = "active"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class LessonStatusEnum(StrEnum):
    """Lesson status."""

    PLANNED = "planned"
    REST = "rest"
    DELEGATED = "delegated"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class EventStatusEnum(StrEnum):
    """Calendar event status."""

    PLANNED = "planned"
    TBC = "tbc"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class LocationEnum(StrEnum):
    """Named spots where lessons take place."""

    LOS_LANCES = "Los Lances"
    VALDEVAQUEROS = "Valdevaqueros"
    PALMONES = "Palmones"


COMPLETED_EVENT_STATUSES = frozenset({EventStatusEnum.COMPLETED})
PLANNED_EVENT_STATUSES = frozenset({EventStatusEnum.PLANNED, EventStatusEnum.TBC})
