"""Turn a teacher queue into event-creation payloads."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date

from app.core.enums import LocationEnum
from app.modules.scheduling.types import EventPayload, QueueState
from app.shared.timeutils import compose_utc_datetime


def materialize(state: QueueState, location: LocationEnum, day: date) -> list[EventPayload]:
    """One payload per queued lesson, in queue order. The queue itself is not touched."""
    return [
        EventPayload(
            lesson_id=item.lesson_id,
            date=day,
            start_time=item.start_time,
            starts_at=compose_utc_datetime(day, item.start_time),
            duration=item.duration,
            location=location,
        )
        for item in state.items
    ]


@dataclass(frozen=True, slots=True)
class QueueCommit:
    """Pending hand-off of a queue to the persistence boundary.

    The queue is cleared only through ``confirm_committed`` once events exist;
    ``rollback`` gives back the exact state the payloads were built from.
    """

    snapshot: QueueState
    payloads: tuple[EventPayload, ...]
    location: LocationEnum
    day: date

    def confirm_committed(self) -> QueueState:
        return replace(self.snapshot, items=())

    def rollback(self) -> QueueState:
        return self.snapshot


def begin_commit(state: QueueState, location: LocationEnum, day: date) -> QueueCommit:
    return QueueCommit(
        snapshot=state,
        payloads=tuple(materialize(state, location, day)),
        location=location,
        day=day,
    )
