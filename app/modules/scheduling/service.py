"""Scheduling business logic: teacher timelines, queues, queue submission and event edits."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, get_settings
from app.core.database import get_db_session
from app.core.enums import EventStatusEnum, LessonStatusEnum, LocationEnum
from app.core.metrics import record_event_edit, record_queue_submission
from app.modules.booking.progress import is_lesson_schedulable, remaining_minutes
from app.modules.events.models import Event
from app.modules.events.repository import EventsRepository
from app.modules.lessons.models import Lesson
from app.modules.lessons.repository import LessonsRepository
from app.modules.scheduling.editor import (
    AdjustEventDuration,
    AdjustEventTime,
    CloseEventGap,
    EditAction,
    MoveEvent,
    OffsetDay,
    RestoreEdits,
    can_move_event_earlier,
    changed_events,
    edit_issues,
    event_gap_minutes,
    time_adjustment,
)
from app.modules.scheduling.queue import (
    AddLesson,
    ClearQueue,
    MoveLessonDown,
    MoveLessonUp,
    QueueAction,
    RemoveGap,
    RemoveLesson,
    ResizeLesson,
    SetPreferredStart,
    ShiftLessonStart,
    available_minutes,
    can_move_earlier,
    clamp_duration,
    default_duration,
    gap_minutes,
    queued_minutes_for_booking,
    schedule_issues,
)
from app.modules.scheduling.session import (
    EventEditRegistry,
    EventEditSession,
    TeacherQueueRegistry,
    TeacherQueueSession,
)
from app.modules.scheduling.timeline import DayTimeline
from app.modules.scheduling.types import (
    DurationCaps,
    EventEditState,
    QueuedLesson,
    ScheduleNode,
    SchedulingPolicy,
    TeacherDayStats,
    TimelineEvent,
)
from app.modules.teachers.repository import TeachersRepository
from app.shared.exceptions import (
    BusinessRuleException,
    ConflictException,
    NotFoundException,
    PersistenceException,
)
from app.shared.timeutils import format_minutes_to_time, parse_time_to_minutes

logger = logging.getLogger(__name__)


def build_queue_registry(settings: Settings) -> TeacherQueueRegistry:
    return TeacherQueueRegistry(
        policy=SchedulingPolicy.from_settings(settings),
        default_caps=DurationCaps.from_settings(settings),
    )


queue_registry = build_queue_registry(get_settings())
edit_registry = EventEditRegistry(queue_registry.policy)


@dataclass(frozen=True, slots=True)
class QueueItemView:
    lesson_id: UUID
    booking_id: UUID | None
    start_time: str
    end_time: str
    start_minutes: int
    duration: int
    remaining_minutes: int
    student_names: tuple[str, ...]
    has_gap: bool
    gap_minutes: int
    can_move_earlier: bool


@dataclass(frozen=True, slots=True)
class QueueView:
    teacher_id: UUID
    day: date
    initialized: bool
    pending: bool
    preferred_start: str | None
    duration_caps: DurationCaps | None
    items: tuple[QueueItemView, ...]
    total_minutes: int
    flag_time: str
    can_schedule: bool
    issues: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class TimelineView:
    teacher_id: UUID
    day: date
    flag_time: str
    events: list[ScheduleNode]
    merged: list[ScheduleNode]
    total_gap_minutes: int
    required_minutes: int | None
    available_slots: list[str]


@dataclass(frozen=True, slots=True)
class SchedulableLesson:
    lesson_id: UUID
    booking_id: UUID
    student_names: tuple[str, ...]
    remaining_minutes: int
    suggested_duration: int
    queued: bool


@dataclass(frozen=True, slots=True)
class DayStatsView:
    teacher_id: UUID
    day: date
    event_count: int
    total_minutes: int
    total_hours: float
    teacher_earnings: Decimal

    @classmethod
    def from_stats(cls, teacher_id: UUID, day: date, stats: TeacherDayStats) -> DayStatsView:
        return cls(
            teacher_id=teacher_id,
            day=day,
            event_count=stats.event_count,
            total_minutes=stats.total_minutes,
            total_hours=stats.total_hours,
            teacher_earnings=stats.teacher_earnings,
        )


@dataclass(frozen=True, slots=True)
class SubmitResult:
    events: list[Event]
    queue: QueueView


class SchedulingService:
    """Whiteboard scheduling service for one request."""

    def __init__(
        self,
        lessons_repository: LessonsRepository,
        events_repository: EventsRepository,
        teachers_repository: TeachersRepository,
        registry: TeacherQueueRegistry,
        settings: Settings,
    ) -> None:
        self.lessons_repository = lessons_repository
        self.events_repository = events_repository
        self.teachers_repository = teachers_repository
        self.registry = registry
        self.settings = settings

    @property
    def policy(self) -> SchedulingPolicy:
        return self.registry.policy

    async def _require_teacher(self, teacher_id: UUID) -> None:
        teacher = await self.teachers_repository.get_teacher_by_id(teacher_id)
        if teacher is None:
            raise NotFoundException("Teacher not found")

    def _require_session(self, teacher_id: UUID) -> TeacherQueueSession:
        session = self.registry.get(teacher_id)
        if session is None:
            raise NotFoundException("Queue is not initialized for this teacher")
        return session

    async def load_timeline(self, teacher_id: UUID, day: date) -> DayTimeline:
        events = await self.events_repository.list_events_for_teacher_on_day(teacher_id, day)
        return DayTimeline.from_records(day, events, self.policy)

    async def get_timeline(self, teacher_id: UUID, day: date, required_minutes: int | None = None) -> TimelineView:
        """Committed nodes, merged view with the teacher's queue and free slots."""
        await self._require_teacher(teacher_id)
        timeline = await self.load_timeline(teacher_id, day)
        session = self.registry.get(teacher_id)
        queue = session.state if session is not None else None

        slots: list[str] = []
        if required_minutes:
            slots = [format_minutes_to_time(start) for start in timeline.available_slots(required_minutes, queue)]

        return TimelineView(
            teacher_id=teacher_id,
            day=day,
            flag_time=timeline.flag_time(queue),
            events=timeline.nodes(),
            merged=timeline.merged_nodes(queue),
            total_gap_minutes=timeline.total_gap_minutes(queue),
            required_minutes=required_minutes,
            available_slots=slots,
        )

    async def get_stats(self, teacher_id: UUID, day: date) -> DayStatsView:
        await self._require_teacher(teacher_id)
        timeline = await self.load_timeline(teacher_id, day)
        lesson_ids = {event.lesson_id for event in timeline.events}
        rates: dict[UUID, Decimal] = {}
        if lesson_ids:
            for lesson in await self.lessons_repository.get_lessons_by_ids(lesson_ids):
                if lesson.commission is not None:
                    rates[lesson.id] = lesson.commission.price_per_hour
        return DayStatsView.from_stats(teacher_id, day, timeline.stats(rates))

    def _remaining_for_queue(self, lesson: Lesson, session: TeacherQueueSession | None) -> int:
        remaining = remaining_minutes(lesson.booking)
        if session is not None:
            remaining -= queued_minutes_for_booking(session.state, lesson.booking_id, exclude_lesson_id=lesson.id)
        return remaining

    async def list_schedulable_lessons(self, teacher_id: UUID, day: date) -> list[SchedulableLesson]:
        """Planned lessons of the teacher that can still be placed on ``day``."""
        await self._require_teacher(teacher_id)
        session = self.registry.get(teacher_id)
        caps = session.caps if session is not None else self.registry.default_caps
        lessons = await self.lessons_repository.list_lessons_for_teacher(teacher_id, LessonStatusEnum.PLANNED)

        result: list[SchedulableLesson] = []
        for lesson in lessons:
            if not is_lesson_schedulable(lesson, day):
                continue
            remaining = self._remaining_for_queue(lesson, session)
            student_names = tuple(lesson.booking.student_names)
            suggested = 0
            if remaining >= self.policy.min_duration:
                suggested = clamp_duration(default_duration(len(student_names), caps), remaining, self.policy)
            result.append(
                SchedulableLesson(
                    lesson_id=lesson.id,
                    booking_id=lesson.booking_id,
                    student_names=student_names,
                    remaining_minutes=remaining,
                    suggested_duration=suggested,
                    queued=session is not None and session.state.index_of(lesson.id) is not None,
                ),
            )
        return result

    def _queue_view(self, teacher_id: UUID, day: date, timeline: DayTimeline) -> QueueView:
        session = self.registry.get(teacher_id)
        if session is None:
            return QueueView(
                teacher_id=teacher_id,
                day=day,
                initialized=False,
                pending=False,
                preferred_start=None,
                duration_caps=None,
                items=(),
                total_minutes=0,
                flag_time=timeline.flag_time(),
                can_schedule=False,
                issues=(),
            )

        state = session.state
        issues = tuple(schedule_issues(state, timeline, self.policy))
        return QueueView(
            teacher_id=teacher_id,
            day=day,
            initialized=True,
            pending=session.pending is not None,
            preferred_start=format_minutes_to_time(state.preferred_start_minutes),
            duration_caps=session.caps,
            items=tuple(self._item_view(session, item) for item in state.items),
            total_minutes=sum(item.duration for item in state.items),
            flag_time=timeline.flag_time(state),
            can_schedule=bool(state.items) and not issues and session.pending is None,
            issues=issues,
        )

    def _item_view(self, session: TeacherQueueSession, item: QueuedLesson) -> QueueItemView:
        gap = gap_minutes(session.state, item.lesson_id)
        return QueueItemView(
            lesson_id=item.lesson_id,
            booking_id=item.booking_id,
            start_time=item.start_time,
            end_time=item.end_time,
            start_minutes=item.start_minutes,
            duration=item.duration,
            remaining_minutes=available_minutes(session.state, item.lesson_id),
            student_names=item.student_names,
            has_gap=gap > 0,
            gap_minutes=gap,
            can_move_earlier=can_move_earlier(session.state, item.lesson_id, self.policy),
        )

    async def get_queue(self, teacher_id: UUID, day: date) -> QueueView:
        timeline = await self.load_timeline(teacher_id, day)
        return self._queue_view(teacher_id, day, timeline)

    async def open_queue(self, teacher_id: UUID, day: date, preferred_start: str | None = None) -> QueueView:
        await self._require_teacher(teacher_id)
        start = parse_time_to_minutes(preferred_start or self.settings.default_submit_time)
        self.registry.open(teacher_id, start)
        return await self.get_queue(teacher_id, day)

    async def _dispatch(self, teacher_id: UUID, day: date, action: QueueAction) -> QueueView:
        self._require_session(teacher_id)
        try:
            self.registry.dispatch(teacher_id, action)
        except ValueError as exc:
            raise BusinessRuleException(str(exc)) from exc
        return await self.get_queue(teacher_id, day)

    async def set_preferred_start(self, teacher_id: UUID, day: date, preferred_start: str) -> QueueView:
        return await self._dispatch(
            teacher_id,
            day,
            SetPreferredStart(start_minutes=parse_time_to_minutes(preferred_start)),
        )

    async def set_duration_caps(self, teacher_id: UUID, day: date, caps: DurationCaps) -> QueueView:
        self._require_session(teacher_id)
        self.registry.set_caps(teacher_id, caps)
        return await self.get_queue(teacher_id, day)

    async def add_lessons(
        self,
        teacher_id: UUID,
        day: date,
        booking_id: UUID,
        lesson_ids: list[UUID],
        duration: int | None = None,
    ) -> QueueView:
        """Queue lessons dragged from one booking, in the given order.

        Every lesson is checked before the queue is touched, so a rejected
        payload leaves the queue as it was.
        """
        session = self._require_session(teacher_id)
        lessons = {lesson.id: lesson for lesson in await self.lessons_repository.get_lessons_by_ids(lesson_ids)}

        accepted: list[Lesson] = []
        for lesson_id in lesson_ids:
            lesson = lessons.get(lesson_id)
            if lesson is None or lesson.teacher_id != teacher_id:
                raise NotFoundException(f"Lesson {lesson_id} not found for this teacher")
            if lesson.booking_id != booking_id:
                raise BusinessRuleException(f"Lesson {lesson_id} does not belong to booking {booking_id}")
            if not is_lesson_schedulable(lesson, day):
                raise BusinessRuleException(f"Lesson {lesson_id} cannot be scheduled on {day.isoformat()}")
            accepted.append(lesson)

        for lesson in accepted:
            self.registry.dispatch(
                teacher_id,
                AddLesson(
                    lesson_id=lesson.id,
                    remaining_minutes=remaining_minutes(lesson.booking),
                    student_names=tuple(lesson.booking.student_names),
                    duration=duration,
                    caps=session.caps,
                    booking_id=lesson.booking_id,
                ),
            )
        return await self.get_queue(teacher_id, day)

    async def remove_lesson(self, teacher_id: UUID, day: date, lesson_id: UUID) -> QueueView:
        return await self._dispatch(teacher_id, day, RemoveLesson(lesson_id=lesson_id))

    async def resize_lesson(self, teacher_id: UUID, day: date, lesson_id: UUID, duration: int) -> QueueView:
        return await self._dispatch(teacher_id, day, ResizeLesson(lesson_id=lesson_id, duration=duration))

    async def shift_lesson(self, teacher_id: UUID, day: date, lesson_id: UUID, delta_minutes: int) -> QueueView:
        return await self._dispatch(
            teacher_id,
            day,
            ShiftLessonStart(lesson_id=lesson_id, delta_minutes=delta_minutes),
        )

    async def move_lesson_up(self, teacher_id: UUID, day: date, lesson_id: UUID) -> QueueView:
        return await self._dispatch(teacher_id, day, MoveLessonUp(lesson_id=lesson_id))

    async def move_lesson_down(self, teacher_id: UUID, day: date, lesson_id: UUID) -> QueueView:
        return await self._dispatch(teacher_id, day, MoveLessonDown(lesson_id=lesson_id))

    async def remove_gap(self, teacher_id: UUID, day: date, lesson_id: UUID) -> QueueView:
        return await self._dispatch(teacher_id, day, RemoveGap(lesson_id=lesson_id))

    async def clear_queue(self, teacher_id: UUID, day: date) -> QueueView:
        return await self._dispatch(teacher_id, day, ClearQueue())

    async def _unschedulable_lessons(self, lesson_ids: list[UUID], day: date) -> list[UUID]:
        """Queued lessons that stopped being planned or got an event on ``day`` since they were queued."""
        lessons = {lesson.id: lesson for lesson in await self.lessons_repository.get_lessons_by_ids(lesson_ids)}
        return [
            lesson_id
            for lesson_id in lesson_ids
            if lesson_id not in lessons or not is_lesson_schedulable(lessons[lesson_id], day)
        ]

    async def submit_queue(self, teacher_id: UUID, day: date, location: LocationEnum | None = None) -> SubmitResult:
        """Create one event per queued lesson; the queue clears only after the commit lands."""
        session = self._require_session(teacher_id)
        if session.pending is not None:
            raise ConflictException("A submission is already in progress for this teacher")

        timeline = await self.load_timeline(teacher_id, day)
        issues = schedule_issues(session.state, timeline, self.policy)
        if not session.state.items or issues:
            record_queue_submission("rejected")
            raise ConflictException(issues[0] if issues else "Queue is empty")

        stale = await self._unschedulable_lessons(session.state.lesson_ids, day)
        if stale:
            record_queue_submission("rejected")
            raise ConflictException(f"Lesson {stale[0]} can no longer be scheduled on {day.isoformat()}")

        commit = self.registry.begin_commit(teacher_id, location or self.settings.default_location, day)
        if commit is None:
            raise ConflictException("A submission is already in progress for this teacher")

        try:
            events = await self.events_repository.create_events(commit.payloads)
            await self.events_repository.commit()
        except Exception as exc:
            logger.exception("Failed to persist queue for teacher %s on %s", teacher_id, day.isoformat())
            await self.events_repository.rollback()
            self.registry.rollback(teacher_id)
            record_queue_submission("rolled_back")
            if isinstance(exc, SQLAlchemyError):
                raise PersistenceException("Could not save events; the queue was restored") from exc
            raise

        self.registry.confirm_committed(teacher_id)
        record_queue_submission("committed", events_created=len(events))
        logger.info("Committed %s events for teacher %s on %s", len(events), teacher_id, day.isoformat())
        return SubmitResult(events=events, queue=await self.get_queue(teacher_id, day))


async def get_scheduling_service(session: AsyncSession = Depends(get_db_session)) -> SchedulingService:
    """Dependency provider for scheduling service."""
    return SchedulingService(
        LessonsRepository(session),
        EventsRepository(session),
        TeachersRepository(session),
        queue_registry,
        get_settings(),
    )


@dataclass(frozen=True, slots=True)
class EditedEventView:
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


@dataclass(frozen=True, slots=True)
class EventEditView:
    teacher_id: UUID
    day: date
    initialized: bool
    items: tuple[EditedEventView, ...]
    changed_count: int
    can_save: bool
    issues: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class EventEditSaveResult:
    events: list[Event]
    edit: EventEditView


class EventEditService:
    """Edits of a teacher's committed events for one request.

    Changes stay in the in-memory working copy until ``save_edit`` writes the
    moved events in one transaction; a failed save keeps the working copy.
    """

    def __init__(
        self,
        events_repository: EventsRepository,
        teachers_repository: TeachersRepository,
        registry: EventEditRegistry,
    ) -> None:
        self.events_repository = events_repository
        self.teachers_repository = teachers_repository
        self.registry = registry

    @property
    def policy(self) -> SchedulingPolicy:
        return self.registry.policy

    def _require_session(self, teacher_id: UUID, day: date) -> EventEditSession:
        session = self.registry.get(teacher_id)
        if session is None or session.state.day != day:
            raise NotFoundException(f"No event edit is open for this teacher on {day.isoformat()}")
        return session

    def _edit_view(self, teacher_id: UUID, day: date) -> EventEditView:
        session = self.registry.get(teacher_id)
        if session is None or session.state.day != day:
            return EventEditView(
                teacher_id=teacher_id,
                day=day,
                initialized=False,
                items=(),
                changed_count=0,
                can_save=False,
                issues=(),
            )

        state = session.state
        issues = tuple(edit_issues(state, self.policy))
        return EventEditView(
            teacher_id=teacher_id,
            day=day,
            initialized=True,
            items=tuple(self._event_view(state, item) for item in state.items),
            changed_count=len(changed_events(state)),
            can_save=not issues,
            issues=issues,
        )

    def _event_view(self, state: EventEditState, item: TimelineEvent) -> EditedEventView:
        gap = event_gap_minutes(state, item.lesson_id)
        return EditedEventView(
            event_id=item.event_id,
            lesson_id=item.lesson_id,
            start_time=item.start_time,
            end_time=item.end_time,
            start_minutes=item.start_minutes,
            duration=item.duration,
            location=item.location,
            status=item.status,
            time_adjustment=time_adjustment(state, item.lesson_id),
            has_gap=gap > 0,
            gap_minutes=gap,
            can_move_earlier=can_move_event_earlier(state, item.lesson_id, self.policy),
        )

    async def open_edit(self, teacher_id: UUID, day: date) -> EventEditView:
        teacher = await self.teachers_repository.get_teacher_by_id(teacher_id)
        if teacher is None:
            raise NotFoundException("Teacher not found")
        records = await self.events_repository.list_events_for_teacher_on_day(teacher_id, day)
        timeline = DayTimeline.from_records(day, records, self.policy)
        self.registry.open(teacher_id, day, timeline.events)
        return self._edit_view(teacher_id, day)

    async def get_edit(self, teacher_id: UUID, day: date) -> EventEditView:
        return self._edit_view(teacher_id, day)

    async def _dispatch(self, teacher_id: UUID, day: date, action: EditAction) -> EventEditView:
        self._require_session(teacher_id, day)
        try:
            self.registry.dispatch(teacher_id, action)
        except ValueError as exc:
            raise BusinessRuleException(str(exc)) from exc
        return self._edit_view(teacher_id, day)

    async def adjust_time(self, teacher_id: UUID, day: date, lesson_id: UUID, delta_minutes: int) -> EventEditView:
        return await self._dispatch(teacher_id, day, AdjustEventTime(lesson_id=lesson_id, delta_minutes=delta_minutes))

    async def adjust_duration(
        self,
        teacher_id: UUID,
        day: date,
        lesson_id: UUID,
        delta_minutes: int,
    ) -> EventEditView:
        return await self._dispatch(
            teacher_id,
            day,
            AdjustEventDuration(lesson_id=lesson_id, delta_minutes=delta_minutes),
        )

    async def move_up(self, teacher_id: UUID, day: date, lesson_id: UUID) -> EventEditView:
        return await self._dispatch(teacher_id, day, MoveEvent(lesson_id=lesson_id, direction="up"))

    async def move_down(self, teacher_id: UUID, day: date, lesson_id: UUID) -> EventEditView:
        return await self._dispatch(teacher_id, day, MoveEvent(lesson_id=lesson_id, direction="down"))

    async def close_gap(self, teacher_id: UUID, day: date, lesson_id: UUID) -> EventEditView:
        return await self._dispatch(teacher_id, day, CloseEventGap(lesson_id=lesson_id))

    async def offset_day(self, teacher_id: UUID, day: date, delta_minutes: int) -> EventEditView:
        return await self._dispatch(teacher_id, day, OffsetDay(delta_minutes=delta_minutes))

    async def restore_edit(self, teacher_id: UUID, day: date) -> EventEditView:
        return await self._dispatch(teacher_id, day, RestoreEdits())

    async def cancel_edit(self, teacher_id: UUID, day: date) -> EventEditView:
        self._require_session(teacher_id, day)
        self.registry.close(teacher_id)
        return self._edit_view(teacher_id, day)

    async def save_edit(self, teacher_id: UUID, day: date) -> EventEditSaveResult:
        """Write moved and resized events, then close the edit."""
        session = self._require_session(teacher_id, day)
        issues = edit_issues(session.state, self.policy)
        if issues:
            record_event_edit("rejected")
            raise ConflictException(issues[0])

        changes = changed_events(session.state)
        records = await self.events_repository.get_events_by_ids(change.event_id for change in changes)
        stored = {event.id: event for event in records}
        missing = [change.event_id for change in changes if change.event_id not in stored]
        if missing:
            record_event_edit("rejected")
            raise ConflictException(f"Event {missing[0]} no longer exists; reopen the edit")

        try:
            updated = [
                await self.events_repository.update_event(
                    stored[change.event_id],
                    date=change.starts_at,
                    duration=change.duration,
                )
                for change in changes
            ]
            await self.events_repository.commit()
        except Exception as exc:
            logger.exception("Failed to save event edits for teacher %s on %s", teacher_id, day.isoformat())
            await self.events_repository.rollback()
            record_event_edit("rolled_back")
            if isinstance(exc, SQLAlchemyError):
                raise PersistenceException("Could not save event changes; the edits were kept") from exc
            raise

        self.registry.close(teacher_id)
        record_event_edit("saved", events_updated=len(updated))
        logger.info("Rescheduled %s events for teacher %s on %s", len(updated), teacher_id, day.isoformat())
        return EventEditSaveResult(events=updated, edit=self._edit_view(teacher_id, day))


async def get_event_edit_service(session: AsyncSession = Depends(get_db_session)) -> EventEditService:
    """Dependency provider for the committed-event editor."""
    return EventEditService(EventsRepository(session), TeachersRepository(session), edit_registry)
