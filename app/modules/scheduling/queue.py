"""
Teacher queue reducer.

A teacher's pending lessons live in an immutable ``QueueState``. Every planner
control is an action object and ``reduce_queue`` maps ``(state, action)`` to the
next state. Refused actions (out-of-window shift, unknown lesson, nothing left
to book) return the very same state object, so callers can detect a no-op with
``new_state is state``.

Times are never cascaded: moving, resizing or reordering one item leaves every
other item where it was, and gaps or overlaps are surfaced through
``gap_minutes`` and ``schedule_issues`` for the planner to resolve.

Lessons of the same booking draw on one pool of remaining minutes: an item
carries the booking's remaining minutes and its own cap is that pool less
what its queued siblings already take.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from uuid import UUID

from app.modules.scheduling.timeline import DayTimeline
from app.modules.scheduling.types import DurationCaps, QueuedLesson, QueueState, SchedulingPolicy
from app.shared.timeutils import clamp, format_minutes_to_time, intervals_overlap, snap_down

DEFAULT_POLICY = SchedulingPolicy()


@dataclass(frozen=True, slots=True)
class SetPreferredStart:
    start_minutes: int


@dataclass(frozen=True, slots=True)
class AddLesson:
    """Append a lesson; ``duration`` falls back to the caps for the group size."""

    lesson_id: UUID
    remaining_minutes: int
    student_names: tuple[str, ...] = ()
    duration: int | None = None
    caps: DurationCaps | None = None
    booking_id: UUID | None = None


@dataclass(frozen=True, slots=True)
class RemoveLesson:
    lesson_id: UUID


@dataclass(frozen=True, slots=True)
class ResizeLesson:
    lesson_id: UUID
    duration: int


@dataclass(frozen=True, slots=True)
class ShiftLessonStart:
    lesson_id: UUID
    delta_minutes: int


@dataclass(frozen=True, slots=True)
class MoveLessonUp:
    lesson_id: UUID


@dataclass(frozen=True, slots=True)
class MoveLessonDown:
    lesson_id: UUID


@dataclass(frozen=True, slots=True)
class RemoveGap:
    lesson_id: UUID


@dataclass(frozen=True, slots=True)
class ClearQueue:
    pass


QueueAction = (
    SetPreferredStart
    | AddLesson
    | RemoveLesson
    | ResizeLesson
    | ShiftLessonStart
    | MoveLessonUp
    | MoveLessonDown
    | RemoveGap
    | ClearQueue
)


def new_queue(preferred_start_minutes: int, policy: SchedulingPolicy = DEFAULT_POLICY) -> QueueState:
    return QueueState(preferred_start_minutes=_clamp_start(preferred_start_minutes, policy))


def default_duration(student_count: int, caps: DurationCaps) -> int:
    """Default lesson length: private for one student, semi-private for two or three, group above."""
    if student_count >= 4:
        return caps.group
    if student_count >= 2:
        return caps.semi_private
    return caps.private


def clamp_duration(duration: int, remaining_minutes: int, policy: SchedulingPolicy = DEFAULT_POLICY) -> int:
    """Snap to the step grid and keep within ``[step, remaining]``."""
    upper = max(policy.min_duration, snap_down(remaining_minutes, policy.step))
    return clamp(snap_down(duration, policy.step), policy.min_duration, upper)


def _clamp_start(start_minutes: int, policy: SchedulingPolicy) -> int:
    return clamp(start_minutes, policy.day_start, policy.day_end - policy.min_duration)


def _replace_item(state: QueueState, index: int, item: QueuedLesson) -> QueueState:
    items = list(state.items)
    items[index] = item
    return replace(state, items=tuple(items))


def _swap(state: QueueState, first: int, second: int) -> QueueState:
    items = list(state.items)
    items[first], items[second] = items[second], items[first]
    return replace(state, items=tuple(items))


def _set_preferred_start(state: QueueState, action: SetPreferredStart, policy: SchedulingPolicy) -> QueueState:
    start = _clamp_start(action.start_minutes, policy)
    if start == state.preferred_start_minutes:
        return state
    return replace(state, preferred_start_minutes=start)


def _add_lesson(state: QueueState, action: AddLesson, policy: SchedulingPolicy) -> QueueState:
    available = action.remaining_minutes - queued_minutes_for_booking(state, action.booking_id)
    if available < policy.min_duration or state.index_of(action.lesson_id) is not None:
        return state

    requested = action.duration
    if requested is None:
        requested = default_duration(len(action.student_names), action.caps or DurationCaps())

    start = state.preferred_start_minutes
    if state.last is not None:
        start = max(start, state.last.end_minutes)

    item = QueuedLesson(
        lesson_id=action.lesson_id,
        start_minutes=start,
        duration=clamp_duration(requested, available, policy),
        remaining_minutes=action.remaining_minutes,
        student_names=tuple(action.student_names),
        booking_id=action.booking_id,
    )
    return replace(state, items=(*state.items, item))


def _remove_lesson(state: QueueState, action: RemoveLesson, policy: SchedulingPolicy) -> QueueState:
    if state.index_of(action.lesson_id) is None:
        return state
    return replace(state, items=tuple(item for item in state.items if item.lesson_id != action.lesson_id))


def _resize_lesson(state: QueueState, action: ResizeLesson, policy: SchedulingPolicy) -> QueueState:
    index = state.index_of(action.lesson_id)
    if index is None:
        return state

    item = state.items[index]
    duration = clamp_duration(action.duration, available_minutes(state, item.lesson_id), policy)
    if duration > item.duration:
        # growing never pushes the end past closing time
        window_limit = snap_down(policy.day_end - item.start_minutes, policy.step)
        duration = max(item.duration, min(duration, window_limit))

    if duration == item.duration:
        return state
    return _replace_item(state, index, replace(item, duration=duration))


def _shift_lesson_start(state: QueueState, action: ShiftLessonStart, policy: SchedulingPolicy) -> QueueState:
    if action.delta_minutes == 0 or action.delta_minutes % policy.step:
        raise ValueError(f"Start shift must be a non-zero multiple of {policy.step} minutes")

    index = state.index_of(action.lesson_id)
    if index is None:
        return state

    item = state.items[index]
    start = item.start_minutes + action.delta_minutes
    if start < policy.day_start:
        return state
    if action.delta_minutes > 0 and start + item.duration > policy.day_end:
        return state
    return _replace_item(state, index, replace(item, start_minutes=start))


def _move_lesson_up(state: QueueState, action: MoveLessonUp, policy: SchedulingPolicy) -> QueueState:
    index = state.index_of(action.lesson_id)
    if index is None or index == 0:
        return state
    return _swap(state, index - 1, index)


def _move_lesson_down(state: QueueState, action: MoveLessonDown, policy: SchedulingPolicy) -> QueueState:
    index = state.index_of(action.lesson_id)
    if index is None or index == len(state.items) - 1:
        return state
    return _swap(state, index, index + 1)


def _remove_gap(state: QueueState, action: RemoveGap, policy: SchedulingPolicy) -> QueueState:
    if gap_minutes(state, action.lesson_id) <= 0:
        return state
    index = state.index_of(action.lesson_id)
    previous = state.items[index - 1]
    return _replace_item(state, index, replace(state.items[index], start_minutes=previous.end_minutes))


def _clear_queue(state: QueueState, action: ClearQueue, policy: SchedulingPolicy) -> QueueState:
    if not state.items:
        return state
    return replace(state, items=())


_HANDLERS: dict[type, Callable[[QueueState, QueueAction, SchedulingPolicy], QueueState]] = {
    SetPreferredStart: _set_preferred_start,
    AddLesson: _add_lesson,
    RemoveLesson: _remove_lesson,
    ResizeLesson: _resize_lesson,
    ShiftLessonStart: _shift_lesson_start,
    MoveLessonUp: _move_lesson_up,
    MoveLessonDown: _move_lesson_down,
    RemoveGap: _remove_gap,
    ClearQueue: _clear_queue,
}


def reduce_queue(state: QueueState, action: QueueAction, policy: SchedulingPolicy = DEFAULT_POLICY) -> QueueState:
    """Apply one planner action and return the next queue state."""
    handler = _HANDLERS.get(type(action))
    if handler is None:
        raise TypeError(f"Unsupported queue action: {type(action).__name__}")
    return handler(state, action, policy)


def gap_minutes(state: QueueState, lesson_id: UUID) -> int:
    """Idle minutes between the previous queued lesson's end and this lesson's start."""
    index = state.index_of(lesson_id)
    if not index:
        return 0
    previous, item = state.items[index - 1], state.items[index]
    return max(0, item.start_minutes - previous.end_minutes)


def has_gap(state: QueueState, lesson_id: UUID) -> bool:
    return gap_minutes(state, lesson_id) > 0


def can_move_earlier(state: QueueState, lesson_id: UUID, policy: SchedulingPolicy = DEFAULT_POLICY) -> bool:
    index = state.index_of(lesson_id)
    if index is None:
        return False
    floor = state.items[index - 1].end_minutes if index > 0 else policy.day_start
    return state.items[index].start_minutes - policy.step >= floor


def schedule_issues(
    state: QueueState,
    timeline: DayTimeline | None = None,
    policy: SchedulingPolicy = DEFAULT_POLICY,
) -> list[str]:
    """Reasons the queue cannot be submitted as-is; empty when it is feasible."""
    issues: list[str] = []
    committed = timeline.nodes() if timeline is not None else []

    for index, item in enumerate(state.items):
        label = f"Lesson {item.lesson_id} at {item.start_time}"
        if not policy.fits_window(item.start_minutes, item.duration):
            issues.append(
                f"{label} is outside the operating window "
                f"{format_minutes_to_time(policy.day_start)}-{format_minutes_to_time(policy.day_end)}",
            )
        if not policy.min_duration <= item.duration <= max(policy.min_duration, item.remaining_minutes):
            issues.append(f"{label} has an invalid duration of {item.duration} minutes")

        for node in committed:
            if intervals_overlap(item.start_minutes, item.end_minutes, node.start_minutes, node.end_minutes):
                issues.append(f"{label} overlaps a committed event at {node.start_time}")

        for other in state.items[index + 1:]:
            if intervals_overlap(item.start_minutes, item.end_minutes, other.start_minutes, other.end_minutes):
                issues.append(f"{label} overlaps queued lesson {other.lesson_id} at {other.start_time}")

    for booking_id, budget in _booking_budgets(state).items():
        queued = queued_minutes_for_booking(state, booking_id)
        if queued > budget:
            issues.append(f"Booking {booking_id} has {queued} minutes queued but only {max(budget, 0)} remaining")
    return issues


def can_schedule(
    state: QueueState,
    timeline: DayTimeline | None = None,
    policy: SchedulingPolicy = DEFAULT_POLICY,
) -> bool:
    """Submission gate: a non-empty queue with no window, duration or overlap problems."""
    return bool(state.items) and not schedule_issues(state, timeline, policy)


def queued_minutes_for_booking(
    state: QueueState,
    booking_id: UUID | None,
    exclude_lesson_id: UUID | None = None,
) -> int:
    """Minutes already queued for lessons of ``booking_id``, optionally ignoring one lesson."""
    if booking_id is None:
        return 0
    return sum(
        item.duration
        for item in state.items
        if item.booking_id == booking_id and item.lesson_id != exclude_lesson_id
    )


def available_minutes(state: QueueState, lesson_id: UUID) -> int:
    """Booking minutes this item may use once its queued siblings are accounted for."""
    item = state.get(lesson_id)
    if item is None:
        return 0
    return item.remaining_minutes - queued_minutes_for_booking(state, item.booking_id, exclude_lesson_id=lesson_id)


def _booking_budgets(state: QueueState) -> dict[UUID, int]:
    # the smallest figure wins when siblings were queued against different snapshots
    budgets: dict[UUID, int] = {}
    for item in state.items:
        if item.booking_id is not None:
            budgets[item.booking_id] = min(budgets.get(item.booking_id, item.remaining_minutes), item.remaining_minutes)
    return budgets
