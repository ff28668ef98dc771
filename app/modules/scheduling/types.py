"""
Internal data types for the whiteboard scheduling engine.
Decoupled from SQLAlchemy models so the queue logic stays pure.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum
from uuid import UUID

from app.core.enums import EventStatusEnum, LocationEnum
from app.shared.timeutils import format_minutes_to_time, parse_time_to_minutes

NO_LESSONS_FLAG = "No lessons"


class ScheduleNodeType(StrEnum):
    EVENT = "event"
    QUEUE = "queue"
    GAP = "gap"


@dataclass(frozen=True, slots=True)
class SchedulingPolicy:
    """Operating window and granularity, in minutes since midnight."""

    day_start: int = 360
    day_end: int = 1380
    step: int = 30

    @property
    def min_duration(self) -> int:
        return self.step

    @classmethod
    def from_settings(cls, settings) -> SchedulingPolicy:
        return cls(
            day_start=parse_time_to_minutes(settings.schedule_day_start),
            day_end=parse_time_to_minutes(settings.schedule_day_end),
            step=settings.schedule_step_minutes,
        )

    def fits_window(self, start: int, duration: int) -> bool:
        return start >= self.day_start and start + duration <= self.day_end


@dataclass(frozen=True, slots=True)
class DurationCaps:
    """Default lesson length per group size, chosen by the planner."""

    private: int = 120
    semi_private: int = 180
    group: int = 240

    @classmethod
    def from_settings(cls, settings) -> DurationCaps:
        return cls(
            private=settings.duration_cap_private,
            semi_private=settings.duration_cap_semi_private,
            group=settings.duration_cap_group,
        )


@dataclass(frozen=True, slots=True)
class QueuedLesson:
    """A lesson placement the planner has not committed yet."""

    lesson_id: UUID
    start_minutes: int
    duration: int
    remaining_minutes: int
    student_names: tuple[str, ...] = ()
    booking_id: UUID | None = None

    @property
    def end_minutes(self) -> int:
        return self.start_minutes + self.duration

    @property
    def start_time(self) -> str:
        return format_minutes_to_time(self.start_minutes)

    @property
    def end_time(self) -> str:
        return format_minutes_to_time(self.end_minutes)


@dataclass(frozen=True, slots=True)
class QueueState:
    """Ordered pending queue of one teacher plus the planner's start cursor."""

    preferred_start_minutes: int
    items: tuple[QueuedLesson, ...] = ()

    def index_of(self, lesson_id: UUID) -> int | None:
        for index, item in enumerate(self.items):
            if item.lesson_id == lesson_id:
                return index
        return None

    def get(self, lesson_id: UUID) -> QueuedLesson | None:
        index = self.index_of(lesson_id)
        return None if index is None else self.items[index]

    @property
    def last(self) -> QueuedLesson | None:
        return self.items[-1] if self.items else None

    @property
    def lesson_ids(self) -> list[UUID]:
        return [item.lesson_id for item in self.items]

    def __len__(self) -> int:
        return len(self.items)


@dataclass(frozen=True, slots=True)
class TimelineEvent:
    """A committed calendar event as seen by one teacher's day."""

    event_id: UUID | None
    lesson_id: UUID
    start_minutes: int
    duration: int
    location: LocationEnum
    status: EventStatusEnum = EventStatusEnum.PLANNED

    @property
    def end_minutes(self) -> int:
        return self.start_minutes + self.duration

    @property
    def start_time(self) -> str:
        return format_minutes_to_time(self.start_minutes)

    @property
    def end_time(self) -> str:
        return format_minutes_to_time(self.end_minutes)


@dataclass(frozen=True, slots=True)
class ScheduleNode:
    """Unified timeline entry for committed events, queued lessons and gaps."""

    type: ScheduleNodeType
    start_minutes: int
    duration: int
    lesson_id: UUID | None = None
    event_id: UUID | None = None
    location: LocationEnum | None = None

    @property
    def end_minutes(self) -> int:
        return self.start_minutes + self.duration

    @property
    def start_time(self) -> str:
        return format_minutes_to_time(self.start_minutes)

    @property
    def end_time(self) -> str:
        return format_minutes_to_time(self.end_minutes)


@dataclass(frozen=True, slots=True)
class ConflictInfo:
    has_conflict: bool
    conflicting_nodes: tuple[ScheduleNode, ...] = ()
    suggested_starts: tuple[int, ...] = ()


@dataclass(frozen=True, slots=True)
class EventPayload:
    """Event-creation request handed to the persistence boundary."""

    lesson_id: UUID
    date: date
    start_time: str
    starts_at: datetime
    duration: int
    location: LocationEnum


@dataclass(frozen=True, slots=True)
class TeacherDayStats:
    event_count: int
    total_minutes: int
    total_hours: float
    teacher_earnings: Decimal


@dataclass(frozen=True, slots=True)
class EventEditState:
    """Working copy of a teacher's committed day, plus the snapshot it started from."""

    day: date
    original: tuple[TimelineEvent, ...]
    items: tuple[TimelineEvent, ...]

    def index_of(self, lesson_id: UUID) -> int | None:
        for index, item in enumerate(self.items):
            if item.lesson_id == lesson_id:
                return index
        return None

    def original_of(self, lesson_id: UUID) -> TimelineEvent | None:
        for item in self.original:
            if item.lesson_id == lesson_id:
                return item
        return None


@dataclass(frozen=True, slots=True)
class EventChange:
    """New start and length of one committed event."""

    event_id: UUID
    lesson_id: UUID
    starts_at: datetime
    duration: int
