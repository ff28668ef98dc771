from __future__ import annotations

from datetime import UTC, date, datetime
from uuid import uuid4

from app.core.enums import LocationEnum
from app.modules.scheduling.materializer import begin_commit, materialize
from app.modules.scheduling.queue import MoveLessonDown, MoveLessonUp, reduce_queue
from app.modules.scheduling.types import QueuedLesson, QueueState

DAY = date(2025, 6, 1)


def _queue() -> QueueState:
    return QueueState(
        preferred_start_minutes=540,
        items=(
            QueuedLesson(lesson_id=uuid4(), start_minutes=540, duration=60, remaining_minutes=120),
            QueuedLesson(lesson_id=uuid4(), start_minutes=600, duration=90, remaining_minutes=180),
        ),
    )


def test_materialize_composes_utc_instants_in_queue_order() -> None:
    state = _queue()

    payloads = materialize(state, LocationEnum.LOS_LANCES, DAY)

    assert [payload.lesson_id for payload in payloads] == state.lesson_ids
    assert [payload.starts_at for payload in payloads] == [
        datetime(2025, 6, 1, 9, 0, tzinfo=UTC),
        datetime(2025, 6, 1, 10, 0, tzinfo=UTC),
    ]
    assert [payload.start_time for payload in payloads] == ["09:00", "10:00"]
    assert [payload.duration for payload in payloads] == [60, 90]
    assert all(payload.location == LocationEnum.LOS_LANCES for payload in payloads)
    assert all(payload.date == DAY for payload in payloads)


def test_materialize_follows_reordered_queue() -> None:
    state = _queue()
    first, second = state.lesson_ids

    reordered = reduce_queue(state, MoveLessonUp(lesson_id=second))
    assert [payload.lesson_id for payload in materialize(reordered, LocationEnum.PALMONES, DAY)] == [second, first]

    restored = reduce_queue(reordered, MoveLessonDown(lesson_id=second))
    assert [payload.lesson_id for payload in materialize(restored, LocationEnum.PALMONES, DAY)] == [first, second]


def test_materialize_does_not_touch_queue() -> None:
    state = _queue()

    materialize(state, LocationEnum.VALDEVAQUEROS, DAY)

    assert len(state) == 2


def test_empty_queue_materializes_nothing() -> None:
    assert materialize(QueueState(preferred_start_minutes=600), LocationEnum.LOS_LANCES, DAY) == []


def test_commit_confirm_clears_and_rollback_restores() -> None:
    state = _queue()

    commit = begin_commit(state, LocationEnum.LOS_LANCES, DAY)

    assert len(commit.payloads) == 2
    assert commit.rollback() is state
    confirmed = commit.confirm_committed()
    assert confirmed.items == ()
    assert confirmed.preferred_start_minutes == 540
