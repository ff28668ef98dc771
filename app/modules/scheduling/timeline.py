"""
Per-teacher day timeline built from committed events.
Answers free-slot, conflict and display questions for the whiteboard.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from datetime import date
from decimal import Decimal
from uuid import UUID

from app.core.enums import EventStatusEnum
from app.modules.scheduling.types import (
    NO_LESSONS_FLAG,
    ConflictInfo,
    QueueState,
    ScheduleNode,
    ScheduleNodeType,
    SchedulingPolicy,
    TeacherDayStats,
    TimelineEvent,
)
from app.shared.timeutils import format_minutes_to_time, intervals_overlap, minutes_of_day, same_utc_date


def _node_sort_key(node: ScheduleNode) -> tuple[int, str]:
    return node.start_minutes, str(node.lesson_id or "")


def queue_nodes(queue: QueueState | None) -> list[ScheduleNode]:
    """Queued lessons as schedule nodes, in queue order."""
    if queue is None:
        return []
    return [
        ScheduleNode(
            type=ScheduleNodeType.QUEUE,
            start_minutes=item.start_minutes,
            duration=item.duration,
            lesson_id=item.lesson_id,
        )
        for item in queue.items
    ]


def insert_gaps(nodes: Iterable[ScheduleNode]) -> list[ScheduleNode]:
    """Sort nodes by start time and add a gap node wherever idle time sits between two of them."""
    ordered = sorted(nodes, key=_node_sort_key)
    result: list[ScheduleNode] = []
    latest_end: int | None = None

    for node in ordered:
        if latest_end is not None and node.start_minutes > latest_end:
            result.append(
                ScheduleNode(
                    type=ScheduleNodeType.GAP,
                    start_minutes=latest_end,
                    duration=node.start_minutes - latest_end,
                ),
            )
        result.append(node)
        latest_end = node.end_minutes if latest_end is None else max(latest_end, node.end_minutes)
    return result


class DayTimeline:
    """Committed events of one teacher on one date, ordered by start time."""

    def __init__(
        self,
        day: date,
        events: Iterable[TimelineEvent] = (),
        policy: SchedulingPolicy | None = None,
    ) -> None:
        self.day = day
        self.policy = policy or SchedulingPolicy()
        self._events = tuple(sorted(events, key=lambda event: (event.start_minutes, str(event.lesson_id))))

    @classmethod
    def from_records(cls, day: date, records: Iterable, policy: SchedulingPolicy | None = None) -> DayTimeline:
        """Build a timeline from event records (ORM rows or compatible objects).

        Records dated on another UTC day and cancelled events are ignored.
        """
        events = [
            TimelineEvent(
                event_id=record.id,
                lesson_id=record.lesson_id,
                start_minutes=minutes_of_day(record.date),
                duration=record.duration,
                location=record.location,
                status=record.status,
            )
            for record in records
            if record.date is not None
            and same_utc_date(record.date, day)
            and record.status != EventStatusEnum.CANCELLED
        ]
        return cls(day, events, policy)

    @property
    def events(self) -> tuple[TimelineEvent, ...]:
        return self._events

    def nodes(self) -> list[ScheduleNode]:
        return [
            ScheduleNode(
                type=ScheduleNodeType.EVENT,
                start_minutes=event.start_minutes,
                duration=event.duration,
                lesson_id=event.lesson_id,
                event_id=event.event_id,
                location=event.location,
            )
            for event in self._events
        ]

    def merged_nodes(self, queue: QueueState | None = None) -> list[ScheduleNode]:
        """Committed and queued nodes on one ordered line, with gaps made explicit."""
        return insert_gaps([*self.nodes(), *queue_nodes(queue)])

    def total_gap_minutes(self, queue: QueueState | None = None) -> int:
        return sum(node.duration for node in self.merged_nodes(queue) if node.type == ScheduleNodeType.GAP)

    def _busy_intervals(self, queue: QueueState | None) -> list[tuple[int, int]]:
        nodes = [*self.nodes(), *queue_nodes(queue)]
        return [(node.start_minutes, node.end_minutes) for node in nodes]

    def is_free(self, start: int, duration: int, queue: QueueState | None = None) -> bool:
        end = start + duration
        return not any(
            intervals_overlap(start, end, busy_start, busy_end)
            for busy_start, busy_end in self._busy_intervals(queue)
        )

    def available_slots(self, required_minutes: int, queue: QueueState | None = None) -> Iterator[int]:
        """Yield start minutes where a block of ``required_minutes`` fits without overlap.

        Every call returns a fresh generator walking the operating window in
        policy steps, so callers may stop early and ask again later.
        """
        if required_minutes <= 0:
            return
        busy = self._busy_intervals(queue)
        start = self.policy.day_start
        while start + required_minutes <= self.policy.day_end:
            end = start + required_minutes
            if not any(intervals_overlap(start, end, busy_start, busy_end) for busy_start, busy_end in busy):
                yield start
            start += self.policy.step

    def check_conflict(self, start: int, duration: int, queue: QueueState | None = None) -> ConflictInfo:
        end = start + duration
        nodes = [*self.nodes(), *queue_nodes(queue)]
        conflicting = tuple(
            node for node in nodes if intervals_overlap(start, end, node.start_minutes, node.end_minutes)
        )
        if not conflicting:
            return ConflictInfo(has_conflict=False)
        return ConflictInfo(
            has_conflict=True,
            conflicting_nodes=conflicting,
            suggested_starts=tuple(self.available_slots(duration, queue)),
        )

    def flag_time(self, queue: QueueState | None = None) -> str:
        """Earliest start across committed and queued lessons, for display only."""
        starts = [node.start_minutes for node in self.nodes()]
        starts.extend(node.start_minutes for node in queue_nodes(queue))
        if not starts:
            return NO_LESSONS_FLAG
        return format_minutes_to_time(min(starts))

    def stats(self, commission_rates: Mapping[UUID, Decimal] | None = None) -> TeacherDayStats:
        """Count, minutes and commission earnings of the committed day.

        ``commission_rates`` maps lesson id to the teacher's rate per hour;
        lessons without a rate contribute no earnings.
        """
        rates = commission_rates or {}
        total_minutes = 0
        earnings = Decimal("0")
        for event in self._events:
            total_minutes += event.duration
            rate = rates.get(event.lesson_id)
            if rate is not None:
                earnings += Decimal(rate) * Decimal(event.duration) / Decimal(60)

        return TeacherDayStats(
            event_count=len(self._events),
            total_minutes=total_minutes,
            total_hours=round(total_minutes / 60, 1),
            teacher_earnings=earnings.quantize(Decimal("0.01")),
        )
