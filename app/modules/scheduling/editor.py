"""
Committed-event editor for one teacher day.

Planner adjustments to events that already exist are applied to an
``EventEditState`` by ``reduce_edit``. Unlike the queue, edits cascade: when an
event ends exactly where the next one starts, moving or resizing it carries the
whole touching chain along, so back-to-back lessons stay back-to-back. A chain
stops at the first gap.

An edit that would push a moved event outside the operating window is refused
and the same state object is returned. Nothing is persisted until the caller
saves ``changed_events``; ``RestoreEdits`` goes back to the loaded snapshot.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from datetime import date
from typing import Literal
from uuid import UUID

from app.modules.scheduling.types import EventChange, EventEditState, SchedulingPolicy, TimelineEvent
from app.shared.timeutils import compose_utc_datetime, format_minutes_to_time, intervals_overlap

DEFAULT_POLICY = SchedulingPolicy()


@dataclass(frozen=True, slots=True)
class AdjustEventTime:
    lesson_id: UUID
    delta_minutes: int


@dataclass(frozen=True, slots=True)
class AdjustEventDuration:
    lesson_id: UUID
    delta_minutes: int


@dataclass(frozen=True, slots=True)
class MoveEvent:
    lesson_id: UUID
    direction: Literal["up", "down"]


@dataclass(frozen=True, slots=True)
class CloseEventGap:
    lesson_id: UUID


@dataclass(frozen=True, slots=True)
class OffsetDay:
    """Shift every event of the day by the same amount."""

    delta_minutes: int


@dataclass(frozen=True, slots=True)
class RestoreEdits:
    pass


EditAction = AdjustEventTime | AdjustEventDuration | MoveEvent | CloseEventGap | OffsetDay | RestoreEdits


def new_edit(day: date, events: Iterable[TimelineEvent]) -> EventEditState:
    ordered = tuple(sorted(events, key=lambda event: (event.start_minutes, str(event.lesson_id))))
    return EventEditState(day=day, original=ordered, items=ordered)


def _require_step(delta_minutes: int, policy: SchedulingPolicy) -> None:
    if delta_minutes == 0 or delta_minutes % policy.step:
        raise ValueError(f"Adjustment must be a non-zero multiple of {policy.step} minutes")


def _touches_next(items: list[TimelineEvent], index: int) -> bool:
    return index + 1 < len(items) and items[index].end_minutes == items[index + 1].start_minutes


def _cascade(items: list[TimelineEvent], index: int, delta_minutes: int) -> None:
    """Shift ``items[index]`` and every later event chained to it end to start."""
    while index < len(items):
        chained = _touches_next(items, index)
        items[index] = replace(items[index], start_minutes=items[index].start_minutes + delta_minutes)
        if not chained:
            return
        index += 1


def _finish(state: EventEditState, items: list[TimelineEvent], policy: SchedulingPolicy) -> EventEditState:
    new_items = tuple(items)
    if new_items == state.items:
        return state
    for before, after in zip(state.items, new_items):
        if after != before and not policy.fits_window(after.start_minutes, after.duration):
            return state
    return replace(state, items=new_items)


def _adjust_time(state: EventEditState, action: AdjustEventTime, policy: SchedulingPolicy) -> EventEditState:
    _require_step(action.delta_minutes, policy)
    index = state.index_of(action.lesson_id)
    if index is None:
        return state
    items = list(state.items)
    _cascade(items, index, action.delta_minutes)
    return _finish(state, items, policy)


def _adjust_duration(state: EventEditState, action: AdjustEventDuration, policy: SchedulingPolicy) -> EventEditState:
    _require_step(action.delta_minutes, policy)
    index = state.index_of(action.lesson_id)
    if index is None:
        return state

    item = state.items[index]
    duration = max(policy.min_duration, item.duration + action.delta_minutes)
    change = duration - item.duration
    if change == 0:
        return state

    items = list(state.items)
    chained = _touches_next(items, index)
    items[index] = replace(item, duration=duration)
    if chained:
        _cascade(items, index + 1, change)
    return _finish(state, items, policy)


def _move_event(state: EventEditState, action: MoveEvent, policy: SchedulingPolicy) -> EventEditState:
    index = state.index_of(action.lesson_id)
    if index is None:
        return state
    other = index - 1 if action.direction == "up" else index + 1
    if other < 0 or other >= len(state.items):
        return state

    # the earlier slot keeps its start and everything after it is packed back to back
    earlier = min(index, other)
    items = list(state.items)
    items[index], items[other] = items[other], items[index]
    cursor = state.items[earlier].start_minutes
    for position in range(earlier, len(items)):
        items[position] = replace(items[position], start_minutes=cursor)
        cursor += items[position].duration
    return _finish(state, items, policy)


def _close_gap(state: EventEditState, action: CloseEventGap, policy: SchedulingPolicy) -> EventEditState:
    gap = event_gap_minutes(state, action.lesson_id)
    if gap <= 0:
        return state
    items = list(state.items)
    _cascade(items, state.index_of(action.lesson_id), -gap)
    return _finish(state, items, policy)


def _offset_day(state: EventEditState, action: OffsetDay, policy: SchedulingPolicy) -> EventEditState:
    _require_step(action.delta_minutes, policy)
    items = [replace(item, start_minutes=item.start_minutes + action.delta_minutes) for item in state.items]
    return _finish(state, items, policy)


def _restore(state: EventEditState, action: RestoreEdits, policy: SchedulingPolicy) -> EventEditState:
    if state.items == state.original:
        return state
    return replace(state, items=state.original)


_HANDLERS: dict[type, Callable[[EventEditState, EditAction, SchedulingPolicy], EventEditState]] = {
    AdjustEventTime: _adjust_time,
    AdjustEventDuration: _adjust_duration,
    MoveEvent: _move_event,
    CloseEventGap: _close_gap,
    OffsetDay: _offset_day,
    RestoreEdits: _restore,
}


def reduce_edit(state: EventEditState, action: EditAction, policy: SchedulingPolicy = DEFAULT_POLICY) -> EventEditState:
    """Apply one edit to the working copy and return the next state."""
    handler = _HANDLERS.get(type(action))
    if handler is None:
        raise TypeError(f"Unsupported edit action: {type(action).__name__}")
    return handler(state, action, policy)


def event_gap_minutes(state: EventEditState, lesson_id: UUID) -> int:
    index = state.index_of(lesson_id)
    if not index:
        return 0
    previous, item = state.items[index - 1], state.items[index]
    return max(0, item.start_minutes - previous.end_minutes)


def time_adjustment(state: EventEditState, lesson_id: UUID) -> int:
    """Minutes the event has moved since the edit was opened."""
    index = state.index_of(lesson_id)
    original = state.original_of(lesson_id)
    if index is None or original is None:
        return 0
    return state.items[index].start_minutes - original.start_minutes


def can_move_event_earlier(state: EventEditState, lesson_id: UUID, policy: SchedulingPolicy = DEFAULT_POLICY) -> bool:
    index = state.index_of(lesson_id)
    if index is None:
        return False
    floor = state.items[index - 1].end_minutes if index > 0 else policy.day_start
    return state.items[index].start_minutes - policy.step >= floor


def edit_issues(state: EventEditState, policy: SchedulingPolicy = DEFAULT_POLICY) -> list[str]:
    """Reasons the edited day cannot be saved; empty when it can."""
    issues: list[str] = []
    originals = {item.lesson_id: item for item in state.original}
    for index, item in enumerate(state.items):
        label = f"Event for lesson {item.lesson_id} at {item.start_time}"
        moved = item != originals.get(item.lesson_id)
        if moved and not policy.fits_window(item.start_minutes, item.duration):
            issues.append(
                f"{label} is outside the operating window "
                f"{format_minutes_to_time(policy.day_start)}-{format_minutes_to_time(policy.day_end)}",
            )
        for other in state.items[index + 1:]:
            if intervals_overlap(item.start_minutes, item.end_minutes, other.start_minutes, other.end_minutes):
                issues.append(f"{label} overlaps the event for lesson {other.lesson_id} at {other.start_time}")
    return issues


def changed_events(state: EventEditState) -> list[EventChange]:
    """Persisted events whose start or length differs from the loaded snapshot, in day order."""
    originals = {item.lesson_id: item for item in state.original}
    changes: list[EventChange] = []
    for item in state.items:
        original = originals.get(item.lesson_id)
        if item.event_id is None or original is None:
            continue
        if (item.start_minutes, item.duration) == (original.start_minutes, original.duration):
            continue
        changes.append(
            EventChange(
                event_id=item.event_id,
                lesson_id=item.lesson_id,
                starts_at=compose_utc_datetime(state.day, item.start_time),
                duration=item.duration,
            ),
        )
    return changes
