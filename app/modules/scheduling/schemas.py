"""Scheduling schemas."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core.enums import EventStatusEnum, LocationEnum
from app.modules.events.schemas import EventRead
from app.modules.scheduling.types import ScheduleNodeType

TIME_OF_DAY_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class OpenQueueRequest(BaseModel):
    """Open queue request; the preferred start falls back to the configured submit time."""

    preferred_start: str | None = Field(default=None, pattern=TIME_OF_DAY_PATTERN)


class PreferredStartRequest(BaseModel):
    preferred_start: str = Field(pattern=TIME_OF_DAY_PATTERN)


class DurationCapsPayload(BaseModel):
    """Planner preference for default lesson lengths, in minutes."""

    model_config = ConfigDict(from_attributes=True)

    private: int = Field(ge=60, le=360, multiple_of=30)
    semi_private: int = Field(ge=60, le=360, multiple_of=30)
    group: int = Field(ge=60, le=360, multiple_of=30)


class QueueAddRequest(BaseModel):
    """Drag payload: one booking and the teacher lessons taken from it."""

    booking_id: UUID
    lesson_ids: list[UUID] = Field(min_length=1)
    duration: int | None = Field(default=None, gt=0)


class ResizeRequest(BaseModel):
    duration: int = Field(gt=0)


class ShiftRequest(BaseModel):
    delta_minutes: int

    @field_validator("delta_minutes")
    @classmethod
    def validate_delta(cls, value: int) -> int:
        if value == 0:
            raise ValueError("delta_minutes must not be zero")
        return value


class SubmitRequest(BaseModel):
    location: LocationEnum | None = None


class QueueItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    lesson_id: UUID
    booking_id: UUID | None
    start_time: str
    end_time: str
    start_minutes: int
    duration: int
    remaining_minutes: int
    student_names: list[str]
    has_gap: bool
    gap_minutes: int
    can_move_earlier: bool


class QueueRead(BaseModel):
    """Teacher queue with derived flags and submission feasibility."""

    model_config = ConfigDict(from_attributes=True)

    teacher_id: UUID
    day: date
    initialized: bool
    pending: bool
    preferred_start: str | None
    duration_caps: DurationCapsPayload | None
    items: list[QueueItemRead]
    total_minutes: int
    flag_time: str
    can_schedule: bool
    issues: list[str]


class ScheduleNodeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    type: ScheduleNodeType
    start_time: str
    end_time: str
    start_minutes: int
    duration: int
    lesson_id: UUID | None
    event_id: UUID | None
    location: LocationEnum | None


class TimelineRead(BaseModel):
    """Committed day of one teacher plus the merged view with the queue."""

    model_config = ConfigDict(from_attributes=True)

    teacher_id: UUID
    day: date
    flag_time: str
    events: list[ScheduleNodeRead]
    merged: list[ScheduleNodeRead]
    total_gap_minutes: int
    required_minutes: int | None
    available_slots: list[str]


class SchedulableLessonRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    lesson_id: UUID
    booking_id: UUID
    student_names: list[str]
    remaining_minutes: int
    suggested_duration: int
    queued: bool


class TeacherDayStatsRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    teacher_id: UUID
    day: date
    event_count: int
    total_minutes: int
    total_hours: float
    teacher_earnings: Decimal


class SubmitRead(BaseModel):
    """Submission result: the created events and the cleared queue."""

    model_config = ConfigDict(from_attributes=True)

    events: list[EventRead]
    queue: QueueRead


class DurationChangeRequest(ShiftRequest):
    """Grow or shrink an event by ``delta_minutes``."""


class EditedEventRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    event_id: UUID | None
    lesson_id: UUID
    start_time: str
    end_time: str
    start_minutes: int
    duration: int
    location: LocationEnum
    status: EventStatusEnum
    time_adjustment: int
    has_gap: bool
    gap_minutes: int
    can_move_earlier: bool


class EventEditRead(BaseModel):
    """Working copy of a teacher's committed day and whether it can be saved."""

    model_config = ConfigDict(from_attributes=True)

    teacher_id: UUID
    day: date
    initialized: bool
    items: list[EditedEventRead]
    changed_count: int
    can_save: bool
    issues: list[str]


class EventEditSaveRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    events: list[EventRead]
    edit: EventEditRead
