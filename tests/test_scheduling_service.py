from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

import pytest
from prometheus_client import REGISTRY
from sqlalchemy.exc import OperationalError

from app.core.config import Settings
from app.core.enums import BookingStatusEnum, EventStatusEnum, LessonStatusEnum, LocationEnum
from app.modules.scheduling.schemas import EventEditSaveRead, QueueRead, SubmitRead, TimelineRead
from app.modules.scheduling.service import EventEditService, SchedulingService, build_queue_registry
from app.modules.scheduling.session import EventEditRegistry
from app.modules.scheduling.types import DurationCaps, EventPayload
from app.shared.exceptions import (
    BusinessRuleException,
    ConflictException,
    NotFoundException,
    PersistenceException,
)

DAY = date(2025, 6, 1)


@dataclass
class FakeTeacher:
    id: UUID
    name: str = "Teacher"


@dataclass
class FakePackage:
    duration: int


@dataclass
class FakeCommission:
    price_per_hour: Decimal


@dataclass
class FakeEvent:
    lesson_id: UUID
    date: datetime
    duration: int
    location: LocationEnum = LocationEnum.LOS_LANCES
    status: EventStatusEnum = EventStatusEnum.PLANNED
    id: UUID = field(default_factory=uuid4)


@dataclass(eq=False)
class FakeLesson:
    teacher_id: UUID
    booking: FakeBooking = field(repr=False)
    status: LessonStatusEnum = LessonStatusEnum.PLANNED
    events: list[FakeEvent] = field(default_factory=list)
    commission: FakeCommission | None = None
    id: UUID = field(default_factory=uuid4)

    @property
    def booking_id(self) -> UUID:
        return self.booking.id


@dataclass(eq=False)
class FakeBooking:
    package: FakePackage
    student_names: list[str]
    status: BookingStatusEnum = BookingStatusEnum.ACTIVE
    lessons: list[FakeLesson] = field(default_factory=list)
    id: UUID = field(default_factory=uuid4)


class FakeTeachersRepository:
    def __init__(self, teachers: list[FakeTeacher]) -> None:
        self._teachers = {teacher.id: teacher for teacher in teachers}

    async def get_teacher_by_id(self, teacher_id: UUID) -> FakeTeacher | None:
        return self._teachers.get(teacher_id)


class FakeLessonsRepository:
    def __init__(self, lessons: list[FakeLesson]) -> None:
        self._lessons = lessons

    async def list_lessons_for_teacher(
        self,
        teacher_id: UUID,
        status: LessonStatusEnum | None = None,
    ) -> list[FakeLesson]:
        return [
            lesson
            for lesson in self._lessons
            if lesson.teacher_id == teacher_id and (status is None or lesson.status == status)
        ]

    async def get_lessons_by_ids(self, lesson_ids) -> list[FakeLesson]:
        wanted = set(lesson_ids)
        return [lesson for lesson in self._lessons if lesson.id in wanted]


class FakeEventsRepository:
    def __init__(self, lessons: list[FakeLesson], fail_on_create: bool = False, fail_on_update: bool = False) -> None:
        self._lessons = lessons
        self.fail_on_create = fail_on_create
        self.fail_on_update = fail_on_update
        self.created: list[EventPayload] = []
        self.updated: list[FakeEvent] = []
        self.commit_calls = 0
        self.rollback_calls = 0

    async def list_events_for_teacher_on_day(self, teacher_id: UUID, day: date) -> list[FakeEvent]:
        return [
            event
            for lesson in self._lessons
            if lesson.teacher_id == teacher_id
            for event in lesson.events
            if event.date.date() == day
        ]

    async def create_events(self, payloads) -> list[FakeEvent]:
        if self.fail_on_create:
            raise OperationalError("INSERT INTO events", {}, Exception("connection reset"))
        lessons = {lesson.id: lesson for lesson in self._lessons}
        events = []
        for payload in payloads:
            self.created.append(payload)
            event = FakeEvent(
                lesson_id=payload.lesson_id,
                date=payload.starts_at,
                duration=payload.duration,
                location=payload.location,
            )
            lessons[payload.lesson_id].events.append(event)
            events.append(event)
        return events

    async def get_events_by_ids(self, event_ids) -> list[FakeEvent]:
        wanted = set(event_ids)
        return [event for lesson in self._lessons for event in lesson.events if event.id in wanted]

    async def update_event(self, event: FakeEvent, **changes) -> FakeEvent:
        if self.fail_on_update:
            raise OperationalError("UPDATE events", {}, Exception("connection reset"))
        for key, value in changes.items():
            setattr(event, key, value)
        self.updated.append(event)
        return event

    async def commit(self) -> None:
        self.commit_calls += 1

    async def rollback(self) -> None:
        self.rollback_calls += 1


@dataclass
class World:
    teacher_id: UUID
    service: SchedulingService
    editor: EventEditService
    events: FakeEventsRepository
    lessons: list[FakeLesson]


def _booking(duration: int, *students: str) -> FakeBooking:
    return FakeBooking(package=FakePackage(duration=duration), student_names=list(students))


def _lesson(teacher_id: UUID, booking: FakeBooking, **kwargs) -> FakeLesson:
    lesson = FakeLesson(teacher_id=teacher_id, booking=booking, **kwargs)
    booking.lessons.append(lesson)
    return lesson


def _world(lessons_factory, fail_on_create: bool = False, fail_on_update: bool = False) -> World:
    teacher_id = uuid4()
    lessons = lessons_factory(teacher_id)
    settings = Settings(_env_file=None)
    events = FakeEventsRepository(lessons, fail_on_create=fail_on_create, fail_on_update=fail_on_update)
    teachers = FakeTeachersRepository([FakeTeacher(id=teacher_id)])
    registry = build_queue_registry(settings)
    service = SchedulingService(FakeLessonsRepository(lessons), events, teachers, registry, settings)
    editor = EventEditService(events, teachers, EventEditRegistry(registry.policy))
    return World(teacher_id=teacher_id, service=service, editor=editor, events=events, lessons=lessons)


def _two_students(teacher_id: UUID) -> list[FakeLesson]:
    return [_lesson(teacher_id, _booking(240, "Ana", "Luis"))]


def _sample(outcome: str) -> float:
    return REGISTRY.get_sample_value("kiteschool_queue_submissions_total", {"outcome": outcome}) or 0.0


@pytest.mark.asyncio
async def test_open_queue_uses_default_submit_time() -> None:
    world = _world(_two_students)

    view = await world.service.open_queue(world.teacher_id, DAY)

    assert view.initialized is True
    assert view.preferred_start == "11:00"
    assert view.items == ()
    assert view.can_schedule is False
    assert QueueRead.model_validate(view).duration_caps.group == 240


@pytest.mark.asyncio
async def test_open_queue_for_unknown_teacher_fails() -> None:
    world = _world(_two_students)

    with pytest.raises(NotFoundException):
        await world.service.open_queue(uuid4(), DAY)


@pytest.mark.asyncio
async def test_uninitialized_queue_reads_empty_and_rejects_mutations() -> None:
    world = _world(_two_students)

    view = await world.service.get_queue(world.teacher_id, DAY)
    assert view.initialized is False
    assert view.flag_time == "No lessons"

    with pytest.raises(NotFoundException):
        await world.service.clear_queue(world.teacher_id, DAY)


@pytest.mark.asyncio
async def test_add_lessons_uses_semi_private_cap() -> None:
    world = _world(_two_students)
    lesson = world.lessons[0]
    await world.service.open_queue(world.teacher_id, DAY, "10:00")

    view = await world.service.add_lessons(world.teacher_id, DAY, lesson.booking_id, [lesson.id])

    assert len(view.items) == 1
    item = view.items[0]
    assert (item.start_time, item.end_time, item.duration) == ("10:00", "13:00", 180)
    assert item.student_names == ("Ana", "Luis")
    assert view.can_schedule is True
    assert view.flag_time == "10:00"


@pytest.mark.asyncio
async def test_add_lessons_subtracts_minutes_queued_for_same_booking() -> None:
    def _factory(teacher_id: UUID) -> list[FakeLesson]:
        booking = _booking(180, "Ana")
        return [_lesson(teacher_id, booking), _lesson(teacher_id, booking)]

    world = _world(_factory)
    first, second = world.lessons
    await world.service.open_queue(world.teacher_id, DAY, "09:00")

    view = await world.service.add_lessons(world.teacher_id, DAY, first.booking_id, [first.id, second.id])

    assert [item.duration for item in view.items] == [120, 60]
    assert [item.start_time for item in view.items] == ["09:00", "11:00"]


@pytest.mark.asyncio
async def test_add_lessons_validates_ownership_booking_and_day() -> None:
    def _factory(teacher_id: UUID) -> list[FakeLesson]:
        busy = _lesson(teacher_id, _booking(240, "Ana"))
        busy.events.append(FakeEvent(lesson_id=busy.id, date=datetime(2025, 6, 1, 9, 0, tzinfo=UTC), duration=60))
        return [
            busy,
            _lesson(teacher_id, _booking(240, "Luis")),
            _lesson(uuid4(), _booking(240, "Marta")),
        ]

    world = _world(_factory)
    busy, free, foreign = world.lessons
    await world.service.open_queue(world.teacher_id, DAY)

    with pytest.raises(BusinessRuleException):
        await world.service.add_lessons(world.teacher_id, DAY, busy.booking_id, [busy.id])
    with pytest.raises(BusinessRuleException):
        await world.service.add_lessons(world.teacher_id, DAY, busy.booking_id, [free.id])
    with pytest.raises(NotFoundException):
        await world.service.add_lessons(world.teacher_id, DAY, foreign.booking_id, [foreign.id])


@pytest.mark.asyncio
async def test_queue_controls_flow_through_reducer() -> None:
    def _factory(teacher_id: UUID) -> list[FakeLesson]:
        return [_lesson(teacher_id, _booking(240, "Ana")), _lesson(teacher_id, _booking(240, "Luis"))]

    world = _world(_factory)
    first, second = world.lessons
    teacher_id = world.teacher_id
    await world.service.open_queue(teacher_id, DAY, "10:00")
    await world.service.add_lessons(teacher_id, DAY, first.booking_id, [first.id], duration=60)
    await world.service.add_lessons(teacher_id, DAY, second.booking_id, [second.id], duration=60)

    view = await world.service.shift_lesson(teacher_id, DAY, second.id, 60)
    assert view.items[1].has_gap is True
    assert view.items[1].gap_minutes == 60

    view = await world.service.remove_gap(teacher_id, DAY, second.id)
    assert view.items[1].start_time == "11:00"

    view = await world.service.resize_lesson(teacher_id, DAY, first.id, 90)
    assert view.can_schedule is False
    assert view.issues

    view = await world.service.move_lesson_down(teacher_id, DAY, first.id)
    assert [item.lesson_id for item in view.items] == [second.id, first.id]
    view = await world.service.move_lesson_up(teacher_id, DAY, first.id)
    assert [item.lesson_id for item in view.items] == [first.id, second.id]

    view = await world.service.remove_lesson(teacher_id, DAY, second.id)
    assert [item.lesson_id for item in view.items] == [first.id]

    view = await world.service.set_preferred_start(teacher_id, DAY, "14:00")
    assert view.preferred_start == "14:00"

    view = await world.service.clear_queue(teacher_id, DAY)
    assert view.items == ()


@pytest.mark.asyncio
async def test_shift_by_non_step_delta_is_a_business_error() -> None:
    world = _world(_two_students)
    lesson = world.lessons[0]
    await world.service.open_queue(world.teacher_id, DAY)
    await world.service.add_lessons(world.teacher_id, DAY, lesson.booking_id, [lesson.id])

    with pytest.raises(BusinessRuleException):
        await world.service.shift_lesson(world.teacher_id, DAY, lesson.id, 15)


@pytest.mark.asyncio
async def test_duration_caps_apply_to_later_adds() -> None:
    world = _world(_two_students)
    lesson = world.lessons[0]
    await world.service.open_queue(world.teacher_id, DAY)

    await world.service.set_duration_caps(world.teacher_id, DAY, DurationCaps(private=60, semi_private=90, group=120))
    view = await world.service.add_lessons(world.teacher_id, DAY, lesson.booking_id, [lesson.id])

    assert view.items[0].duration == 90


@pytest.mark.asyncio
async def test_submit_creates_events_and_clears_queue() -> None:
    world = _world(_two_students)
    lesson = world.lessons[0]
    await world.service.open_queue(world.teacher_id, DAY, "09:00")
    await world.service.add_lessons(world.teacher_id, DAY, lesson.booking_id, [lesson.id], duration=120)
    committed_before = _sample("committed")

    result = await world.service.submit_queue(world.teacher_id, DAY, LocationEnum.VALDEVAQUEROS)

    assert world.events.commit_calls == 1
    assert len(result.events) == 1
    assert result.events[0].date == datetime(2025, 6, 1, 9, 0, tzinfo=UTC)
    assert result.events[0].location == LocationEnum.VALDEVAQUEROS
    assert result.queue.items == ()
    assert result.queue.pending is False
    assert result.queue.flag_time == "09:00"
    assert _sample("committed") == committed_before + 1
    assert SubmitRead.model_validate(result).events[0].duration == 120


@pytest.mark.asyncio
async def test_submit_failure_restores_queue() -> None:
    world = _world(_two_students, fail_on_create=True)
    lesson = world.lessons[0]
    await world.service.open_queue(world.teacher_id, DAY, "09:00")
    await world.service.add_lessons(world.teacher_id, DAY, lesson.booking_id, [lesson.id])
    before = await world.service.get_queue(world.teacher_id, DAY)
    rolled_back_before = _sample("rolled_back")

    with pytest.raises(PersistenceException):
        await world.service.submit_queue(world.teacher_id, DAY)

    after = await world.service.get_queue(world.teacher_id, DAY)
    assert after.items == before.items
    assert after.pending is False
    assert world.events.rollback_calls == 1
    assert world.events.commit_calls == 0
    assert _sample("rolled_back") == rolled_back_before + 1


@pytest.mark.asyncio
async def test_submit_rejects_infeasible_or_empty_queue() -> None:
    def _factory(teacher_id: UUID) -> list[FakeLesson]:
        committed = _lesson(teacher_id, _booking(240, "Ana"))
        committed.events.append(
            FakeEvent(lesson_id=committed.id, date=datetime(2025, 6, 1, 11, 0, tzinfo=UTC), duration=60),
        )
        return [committed, _lesson(teacher_id, _booking(240, "Luis"))]

    world = _world(_factory)
    _, queued = world.lessons
    await world.service.open_queue(world.teacher_id, DAY, "10:30")
    rejected_before = _sample("rejected")

    with pytest.raises(ConflictException):
        await world.service.submit_queue(world.teacher_id, DAY)

    await world.service.add_lessons(world.teacher_id, DAY, queued.booking_id, [queued.id], duration=60)
    with pytest.raises(ConflictException):
        await world.service.submit_queue(world.teacher_id, DAY)

    assert world.events.created == []
    assert _sample("rejected") == rejected_before + 2


@pytest.mark.asyncio
async def test_timeline_merges_queue_and_lists_slots() -> None:
    def _factory(teacher_id: UUID) -> list[FakeLesson]:
        committed = _lesson(teacher_id, _booking(240, "Ana"))
        committed.events.append(
            FakeEvent(lesson_id=committed.id, date=datetime(2025, 6, 1, 10, 0, tzinfo=UTC), duration=60),
        )
        return [committed, _lesson(teacher_id, _booking(240, "Luis"))]

    world = _world(_factory)
    _, queued = world.lessons
    await world.service.open_queue(world.teacher_id, DAY, "12:00")
    await world.service.add_lessons(world.teacher_id, DAY, queued.booking_id, [queued.id], duration=60)

    view = await world.service.get_timeline(world.teacher_id, DAY, required_minutes=60)

    assert view.flag_time == "10:00"
    assert [node.type for node in view.merged] == ["event", "gap", "queue"]
    assert view.total_gap_minutes == 60
    assert "09:00" in view.available_slots
    assert "10:00" not in view.available_slots
    assert "12:00" not in view.available_slots
    assert TimelineRead.model_validate(view).events[0].start_time == "10:00"


@pytest.mark.asyncio
async def test_schedulable_lessons_and_stats() -> None:
    def _factory(teacher_id: UUID) -> list[FakeLesson]:
        committed = _lesson(teacher_id, _booking(240, "Ana"), commission=FakeCommission(Decimal("25.00")))
        committed.events.append(
            FakeEvent(lesson_id=committed.id, date=datetime(2025, 6, 1, 10, 0, tzinfo=UTC), duration=90),
        )
        return [
            committed,
            _lesson(teacher_id, _booking(240, "Luis", "Marta", "Ines", "Pablo")),
            _lesson(teacher_id, _booking(240, "Rosa"), status=LessonStatusEnum.DELEGATED),
        ]

    world = _world(_factory)
    _, group, _ = world.lessons

    lessons = await world.service.list_schedulable_lessons(world.teacher_id, DAY)
    assert [lesson.lesson_id for lesson in lessons] == [group.id]
    assert lessons[0].suggested_duration == 240
    assert lessons[0].queued is False

    stats = await world.service.get_stats(world.teacher_id, DAY)
    assert stats.event_count == 1
    assert stats.total_minutes == 90
    assert stats.total_hours == 1.5
    assert stats.teacher_earnings == Decimal("37.50")


def _shared_booking(teacher_id: UUID) -> list[FakeLesson]:
    booking = _booking(120, "Ana")
    return [_lesson(teacher_id, booking), _lesson(teacher_id, booking)]


@pytest.mark.asyncio
async def test_resize_respects_minutes_queued_for_other_lessons_of_booking() -> None:
    world = _world(_shared_booking)
    first, second = world.lessons
    await world.service.open_queue(world.teacher_id, DAY, "09:00")
    await world.service.add_lessons(world.teacher_id, DAY, first.booking_id, [first.id, second.id], duration=60)

    view = await world.service.resize_lesson(world.teacher_id, DAY, first.id, 120)

    assert [item.duration for item in view.items] == [60, 60]
    assert view.total_minutes <= 120
    assert [item.remaining_minutes for item in view.items] == [60, 60]
    assert view.can_schedule is True

    await world.service.remove_lesson(world.teacher_id, DAY, second.id)
    view = await world.service.resize_lesson(world.teacher_id, DAY, first.id, 120)
    assert [item.duration for item in view.items] == [120]


@pytest.mark.asyncio
async def test_rejected_add_leaves_queue_untouched() -> None:
    def _factory(teacher_id: UUID) -> list[FakeLesson]:
        return [_lesson(teacher_id, _booking(240, "Ana")), _lesson(teacher_id, _booking(240, "Luis"))]

    world = _world(_factory)
    first, other_booking = world.lessons
    await world.service.open_queue(world.teacher_id, DAY, "09:00")

    with pytest.raises(NotFoundException):
        await world.service.add_lessons(world.teacher_id, DAY, first.booking_id, [first.id, uuid4()])
    with pytest.raises(BusinessRuleException):
        await world.service.add_lessons(world.teacher_id, DAY, first.booking_id, [first.id, other_booking.id])

    view = await world.service.get_queue(world.teacher_id, DAY)
    assert view.items == ()


@pytest.mark.asyncio
async def test_submit_rejects_lesson_that_got_an_event_meanwhile() -> None:
    world = _world(_two_students)
    lesson = world.lessons[0]
    await world.service.open_queue(world.teacher_id, DAY, "09:00")
    await world.service.add_lessons(world.teacher_id, DAY, lesson.booking_id, [lesson.id], duration=60)
    lesson.events.append(FakeEvent(lesson_id=lesson.id, date=datetime(2025, 6, 1, 15, 0, tzinfo=UTC), duration=60))
    rejected_before = _sample("rejected")

    with pytest.raises(ConflictException):
        await world.service.submit_queue(world.teacher_id, DAY)

    view = await world.service.get_queue(world.teacher_id, DAY)
    assert [item.lesson_id for item in view.items] == [lesson.id]
    assert world.events.created == []
    assert _sample("rejected") == rejected_before + 1


def _committed_day(teacher_id: UUID) -> list[FakeLesson]:
    lessons = []
    for hour in (9, 10, 12):
        lesson = _lesson(teacher_id, _booking(240, "Ana"))
        lesson.events.append(
            FakeEvent(lesson_id=lesson.id, date=datetime(2025, 6, 1, hour, 0, tzinfo=UTC), duration=60),
        )
        lessons.append(lesson)
    return lessons


def _edit_sample(outcome: str) -> float:
    return REGISTRY.get_sample_value("kiteschool_event_edits_total", {"outcome": outcome}) or 0.0


@pytest.mark.asyncio
async def test_event_edit_cascades_and_saves_moved_events() -> None:
    world = _world(_committed_day)
    first, second, third = world.lessons
    saved_before = _edit_sample("saved")

    view = await world.editor.open_edit(world.teacher_id, DAY)
    assert [item.start_time for item in view.items] == ["09:00", "10:00", "12:00"]
    assert view.items[2].has_gap is True

    view = await world.editor.adjust_time(world.teacher_id, DAY, first.id, 30)
    assert [item.start_time for item in view.items] == ["09:30", "10:30", "12:00"]
    assert [item.time_adjustment for item in view.items] == [30, 30, 0]
    assert view.changed_count == 2
    assert view.can_save is True

    result = await world.editor.save_edit(world.teacher_id, DAY)

    assert world.events.commit_calls == 1
    assert first.events[0].date == datetime(2025, 6, 1, 9, 30, tzinfo=UTC)
    assert second.events[0].date == datetime(2025, 6, 1, 10, 30, tzinfo=UTC)
    assert third.events[0].date == datetime(2025, 6, 1, 12, 0, tzinfo=UTC)
    assert len(result.events) == 2
    assert result.edit.initialized is False
    assert _edit_sample("saved") == saved_before + 1
    assert EventEditSaveRead.model_validate(result).events[0].duration == 60


@pytest.mark.asyncio
async def test_event_edit_save_failure_keeps_working_copy() -> None:
    world = _world(_committed_day, fail_on_update=True)
    first = world.lessons[0]
    await world.editor.open_edit(world.teacher_id, DAY)
    await world.editor.adjust_duration(world.teacher_id, DAY, first.id, 30)

    with pytest.raises(PersistenceException):
        await world.editor.save_edit(world.teacher_id, DAY)

    view = await world.editor.get_edit(world.teacher_id, DAY)
    assert view.initialized is True
    assert [item.end_time for item in view.items][:2] == ["10:30", "11:30"]
    assert world.events.rollback_calls == 1
    assert first.events[0].duration == 60


@pytest.mark.asyncio
async def test_event_edit_refuses_to_save_overlaps() -> None:
    world = _world(_committed_day)
    second = world.lessons[1]
    await world.editor.open_edit(world.teacher_id, DAY)

    view = await world.editor.adjust_duration(world.teacher_id, DAY, second.id, 90)
    assert view.can_save is False
    assert view.issues

    with pytest.raises(ConflictException):
        await world.editor.save_edit(world.teacher_id, DAY)
    assert world.events.updated == []


@pytest.mark.asyncio
async def test_event_edit_offset_restore_and_cancel() -> None:
    world = _world(_committed_day)
    first = world.lessons[0]
    await world.editor.open_edit(world.teacher_id, DAY)

    view = await world.editor.offset_day(world.teacher_id, DAY, 60)
    assert [item.start_time for item in view.items] == ["10:00", "11:00", "13:00"]

    view = await world.editor.restore_edit(world.teacher_id, DAY)
    assert [item.start_time for item in view.items] == ["09:00", "10:00", "12:00"]
    assert view.changed_count == 0

    with pytest.raises(NotFoundException):
        await world.editor.adjust_time(world.teacher_id, date(2025, 6, 2), first.id, 30)
    with pytest.raises(BusinessRuleException):
        await world.editor.adjust_time(world.teacher_id, DAY, first.id, 15)

    view = await world.editor.cancel_edit(world.teacher_id, DAY)
    assert view.initialized is False
    with pytest.raises(NotFoundException):
        await world.editor.close_gap(world.teacher_id, DAY, first.id)
    assert world.events.updated == []
