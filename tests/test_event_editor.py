from __future__ import annotations

from datetime import UTC, date, datetime
from uuid import UUID, uuid4

import pytest

from app.core.enums import LocationEnum
from app.modules.scheduling.editor import (
    AdjustEventDuration,
    AdjustEventTime,
    CloseEventGap,
    MoveEvent,
    OffsetDay,
    RestoreEdits,
    can_move_event_earlier,
    changed_events,
    edit_issues,
    event_gap_minutes,
    new_edit,
    reduce_edit,
    time_adjustment,
)
from app.modules.scheduling.types import EventEditState, SchedulingPolicy, TimelineEvent

POLICY = SchedulingPolicy()
DAY = date(2025, 6, 1)


def _day(*intervals: tuple[int, int]) -> EventEditState:
    return new_edit(
        DAY,
        [
            TimelineEvent(
                event_id=uuid4(),
                lesson_id=uuid4(),
                start_minutes=start,
                duration=duration,
                location=LocationEnum.LOS_LANCES,
            )
            for start, duration in intervals
        ],
    )


def _ids(state: EventEditState) -> list[UUID]:
    return [item.lesson_id for item in state.items]


def _starts(state: EventEditState) -> list[int]:
    return [item.start_minutes for item in state.items]


def test_new_edit_orders_events_by_start() -> None:
    state = _day((720, 60), (540, 60))

    assert _starts(state) == [540, 720]
    assert state.original == state.items


def test_time_shift_carries_touching_chain_and_stops_at_gap() -> None:
    state = _day((540, 60), (600, 60), (660, 30), (720, 60))
    first = _ids(state)[0]

    state = reduce_edit(state, AdjustEventTime(lesson_id=first, delta_minutes=30), POLICY)

    assert _starts(state) == [570, 630, 690, 720]


def test_time_shift_of_detached_event_moves_only_that_event() -> None:
    state = _day((540, 60), (660, 60))
    first = _ids(state)[0]

    state = reduce_edit(state, AdjustEventTime(lesson_id=first, delta_minutes=-30), POLICY)

    assert _starts(state) == [510, 660]


def test_duration_change_pushes_and_pulls_chained_events() -> None:
    state = _day((540, 60), (600, 60), (720, 60))
    first = _ids(state)[0]

    grown = reduce_edit(state, AdjustEventDuration(lesson_id=first, delta_minutes=30), POLICY)
    assert [item.duration for item in grown.items] == [90, 60, 60]
    assert _starts(grown) == [540, 630, 720]

    shrunk = reduce_edit(grown, AdjustEventDuration(lesson_id=first, delta_minutes=-60), POLICY)
    assert [item.duration for item in shrunk.items] == [30, 60, 60]
    assert _starts(shrunk) == [540, 570, 720]


def test_duration_never_drops_below_one_step() -> None:
    state = _day((540, 30))
    lesson_id = _ids(state)[0]

    assert reduce_edit(state, AdjustEventDuration(lesson_id=lesson_id, delta_minutes=-30), POLICY) is state


def test_edits_leaving_the_window_are_refused() -> None:
    state = _day((1290, 60), (1350, 30))
    first, last = _ids(state)

    assert reduce_edit(state, AdjustEventTime(lesson_id=first, delta_minutes=30), POLICY) is state
    assert reduce_edit(state, AdjustEventDuration(lesson_id=last, delta_minutes=30), POLICY) is state
    assert reduce_edit(state, OffsetDay(delta_minutes=60), POLICY) is state

    early = _day((360, 60))
    assert reduce_edit(early, OffsetDay(delta_minutes=-30), POLICY) is early


@pytest.mark.parametrize("delta", [0, 15, -45])
def test_adjustments_require_non_zero_step_multiples(delta: int) -> None:
    state = _day((540, 60))
    lesson_id = _ids(state)[0]

    with pytest.raises(ValueError):
        reduce_edit(state, AdjustEventTime(lesson_id=lesson_id, delta_minutes=delta), POLICY)
    with pytest.raises(ValueError):
        reduce_edit(state, AdjustEventDuration(lesson_id=lesson_id, delta_minutes=delta), POLICY)
    with pytest.raises(ValueError):
        reduce_edit(state, OffsetDay(delta_minutes=delta), POLICY)


def test_move_swaps_and_packs_from_the_earlier_slot() -> None:
    state = _day((540, 60), (600, 90), (780, 30))
    first, second, third = _ids(state)

    state = reduce_edit(state, MoveEvent(lesson_id=second, direction="up"), POLICY)

    assert _ids(state) == [second, first, third]
    assert _starts(state) == [540, 630, 690]


def test_move_at_the_edges_is_a_noop() -> None:
    state = _day((540, 60), (600, 60))
    first, last = _ids(state)

    assert reduce_edit(state, MoveEvent(lesson_id=first, direction="up"), POLICY) is state
    assert reduce_edit(state, MoveEvent(lesson_id=last, direction="down"), POLICY) is state
    assert reduce_edit(state, MoveEvent(lesson_id=uuid4(), direction="up"), POLICY) is state


def test_close_gap_carries_chain_and_is_idempotent() -> None:
    state = _day((540, 60), (660, 60), (720, 30), (840, 30))
    second = _ids(state)[1]
    assert event_gap_minutes(state, second) == 60

    once = reduce_edit(state, CloseEventGap(lesson_id=second), POLICY)
    twice = reduce_edit(once, CloseEventGap(lesson_id=second), POLICY)

    assert _starts(once) == [540, 600, 660, 840]
    assert twice is once
    assert event_gap_minutes(once, second) == 0


def test_restore_returns_to_loaded_snapshot() -> None:
    state = _day((540, 60), (600, 60))
    assert reduce_edit(state, RestoreEdits(), POLICY) is state

    moved = reduce_edit(state, OffsetDay(delta_minutes=120), POLICY)
    restored = reduce_edit(moved, RestoreEdits(), POLICY)

    assert restored.items == state.original
    assert changed_events(restored) == []


def test_time_adjustment_and_move_earlier_flags() -> None:
    state = _day((540, 60), (630, 60))
    first, second = _ids(state)

    assert can_move_event_earlier(state, second, POLICY) is True
    state = reduce_edit(state, AdjustEventTime(lesson_id=second, delta_minutes=-30), POLICY)

    assert time_adjustment(state, second) == -30
    assert time_adjustment(state, first) == 0
    assert can_move_event_earlier(state, second, POLICY) is False

    opening = _day((360, 60))
    assert can_move_event_earlier(opening, _ids(opening)[0], POLICY) is False


def test_changed_events_compose_utc_instants() -> None:
    state = _day((540, 60), (600, 60), (720, 60))
    first, second, _ = _ids(state)

    state = reduce_edit(state, AdjustEventTime(lesson_id=first, delta_minutes=60), POLICY)
    changes = changed_events(state)

    assert [change.lesson_id for change in changes] == [first, second]
    assert changes[0].starts_at == datetime(2025, 6, 1, 10, 0, tzinfo=UTC)
    assert changes[1].starts_at == datetime(2025, 6, 1, 11, 0, tzinfo=UTC)
    assert changes[0].event_id == state.items[0].event_id


def test_edit_issues_report_overlaps_created_by_growth() -> None:
    state = _day((540, 60), (660, 60))
    first = _ids(state)[0]
    assert edit_issues(state, POLICY) == []

    state = reduce_edit(state, AdjustEventDuration(lesson_id=first, delta_minutes=90), POLICY)

    issues = edit_issues(state, POLICY)
    assert len(issues) == 1
    assert "overlaps" in issues[0]


def test_reduce_edit_rejects_unknown_action() -> None:
    with pytest.raises(TypeError):
        reduce_edit(_day(), object(), POLICY)  # type: ignore[arg-type]
