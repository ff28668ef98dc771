"""
Booking progress calculations.

Pure functions over a booking snapshot: the booking exposes ``status``,
``package.duration`` (minutes) and ``lessons``; each lesson exposes ``status``
and ``events``; each event exposes ``status``, ``duration`` and ``date``.
ORM rows and plain test doubles both fit. Nothing here is cached because
bookings change on every planner action.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from app.core.enums import (
    COMPLETED_EVENT_STATUSES,
    PLANNED_EVENT_STATUSES,
    BookingStatusEnum,
    EventStatusEnum,
    LessonStatusEnum,
)
from app.shared.timeutils import same_utc_date


@dataclass(frozen=True, slots=True)
class BookingProgress:
    used_minutes: int
    planned_minutes: int
    tbc_minutes: int
    cancelled_minutes: int
    total_minutes: int
    remaining_minutes: int
    completion_percentage: float
    is_ready_for_completion: bool


@dataclass(frozen=True, slots=True)
class AttentionReport:
    has_issues: bool
    issues: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ProgressBar:
    used_percentage: float
    planned_percentage: float
    remaining_percentage: float
    is_over_booked: bool
    over_booked_percentage: float


@dataclass(frozen=True, slots=True)
class ValidationResult:
    is_valid: bool
    message: str
    code: str | None = None


def _all_events(booking) -> list:
    return [event for lesson in (booking.lessons or []) for event in (lesson.events or [])]


def _minutes_with_status(events: list, statuses: frozenset) -> int:
    return sum(event.duration or 0 for event in events if event.status in statuses)


def total_minutes(booking) -> int:
    package = booking.package
    return (package.duration or 0) if package is not None else 0


def used_minutes(booking) -> int:
    return _minutes_with_status(_all_events(booking), COMPLETED_EVENT_STATUSES)


def planned_minutes(booking) -> int:
    return _minutes_with_status(_all_events(booking), PLANNED_EVENT_STATUSES)


def remaining_minutes(booking) -> int:
    """Package minutes not yet consumed by completed, planned or tbc events. May go negative."""
    return total_minutes(booking) - used_minutes(booking) - planned_minutes(booking)


def completion_percentage(booking) -> float:
    total = total_minutes(booking)
    if total == 0:
        return 0.0
    return min(used_minutes(booking) / total * 100, 100.0)


def is_ready_for_completion(booking) -> bool:
    total = total_minutes(booking)
    return total > 0 and used_minutes(booking) >= total and booking.status != BookingStatusEnum.COMPLETED


def calculate_progress(booking) -> BookingProgress:
    events = _all_events(booking)
    return BookingProgress(
        used_minutes=_minutes_with_status(events, COMPLETED_EVENT_STATUSES),
        planned_minutes=_minutes_with_status(events, PLANNED_EVENT_STATUSES),
        tbc_minutes=_minutes_with_status(events, frozenset({EventStatusEnum.TBC})),
        cancelled_minutes=_minutes_with_status(events, frozenset({EventStatusEnum.CANCELLED})),
        total_minutes=total_minutes(booking),
        remaining_minutes=remaining_minutes(booking),
        completion_percentage=completion_percentage(booking),
        is_ready_for_completion=is_ready_for_completion(booking),
    )


def needs_attention(booking) -> AttentionReport:
    """Human-readable problems a planner should look at."""
    issues: list[str] = []

    scheduled = used_minutes(booking) + planned_minutes(booking)
    total = total_minutes(booking)
    if scheduled > total:
        issues.append(f"Over-booked by {scheduled - total} minutes")

    if is_ready_for_completion(booking):
        issues.append("Ready for completion but status not updated")

    return AttentionReport(has_issues=bool(issues), issues=tuple(issues))


def progress_bar(booking) -> ProgressBar:
    total = total_minutes(booking)
    if total == 0:
        return ProgressBar(0.0, 0.0, 100.0, False, 0.0)

    used = used_minutes(booking)
    planned = planned_minutes(booking)
    used_pct = min(used / total * 100, 100.0)
    scheduled = used + planned

    if scheduled > total:
        return ProgressBar(
            used_percentage=used_pct,
            planned_percentage=max(0.0, min((total - used) / total * 100, 100.0 - used_pct)),
            remaining_percentage=0.0,
            is_over_booked=True,
            over_booked_percentage=(scheduled - total) / total * 100,
        )

    planned_pct = planned / total * 100
    return ProgressBar(
        used_percentage=used_pct,
        planned_percentage=planned_pct,
        remaining_percentage=max(100.0 - used_pct - planned_pct, 0.0),
        is_over_booked=False,
        over_booked_percentage=0.0,
    )


def can_complete_booking(booking) -> ValidationResult:
    if booking.status == BookingStatusEnum.COMPLETED:
        return ValidationResult(False, "Booking is already completed", "ALREADY_COMPLETED")

    total = total_minutes(booking)
    used = used_minutes(booking)
    if total == 0 or used < total:
        return ValidationResult(False, f"Cannot complete: {total - used} minutes remaining", "PROGRESS_INCOMPLETE")

    if not any(event.status in COMPLETED_EVENT_STATUSES for event in _all_events(booking)):
        return ValidationResult(False, "Cannot complete: no completed events", "NO_COMPLETED_EVENTS")

    return ValidationResult(True, "Booking can be completed")


def is_lesson_schedulable(lesson, day: date) -> bool:
    """A lesson can be queued while planned and without a live event on ``day``."""
    if lesson.status != LessonStatusEnum.PLANNED:
        return False
    return not any(
        event.date is not None and event.status != EventStatusEnum.CANCELLED and same_utc_date(event.date, day)
        for event in (lesson.events or [])
    )
