"""Scheduling API router: teacher day timelines, queues and committed-event edits."""

from __future__ import annotations

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from app.modules.scheduling.schemas import (
    DurationCapsPayload,
    DurationChangeRequest,
    EventEditRead,
    EventEditSaveRead,
    OpenQueueRequest,
    PreferredStartRequest,
    QueueAddRequest,
    QueueRead,
    ResizeRequest,
    SchedulableLessonRead,
    ShiftRequest,
    SubmitRead,
    SubmitRequest,
    TeacherDayStatsRead,
    TimelineRead,
)
from app.modules.scheduling.service import (
    EventEditService,
    SchedulingService,
    get_event_edit_service,
    get_scheduling_service,
)
from app.modules.scheduling.types import DurationCaps

router = APIRouter(prefix="/scheduling/teachers/{teacher_id}/days/{day}", tags=["scheduling"])


@router.get("/timeline", response_model=TimelineRead)
async def get_timeline(
    teacher_id: UUID,
    day: date,
    required_minutes: int | None = Query(default=None, gt=0, le=1440),
    service: SchedulingService = Depends(get_scheduling_service),
) -> TimelineRead:
    """Committed events, merged queue view and free slots for one teacher day."""
    view = await service.get_timeline(teacher_id, day, required_minutes)
    return TimelineRead.model_validate(view)


@router.get("/lessons", response_model=list[SchedulableLessonRead])
async def list_schedulable_lessons(
    teacher_id: UUID,
    day: date,
    service: SchedulingService = Depends(get_scheduling_service),
) -> list[SchedulableLessonRead]:
    """Lessons the teacher can still take on this day."""
    lessons = await service.list_schedulable_lessons(teacher_id, day)
    return [SchedulableLessonRead.model_validate(lesson) for lesson in lessons]


@router.get("/stats", response_model=TeacherDayStatsRead)
async def get_stats(
    teacher_id: UUID,
    day: date,
    service: SchedulingService = Depends(get_scheduling_service),
) -> TeacherDayStatsRead:
    """Event count, hours and commission earnings of the day."""
    view = await service.get_stats(teacher_id, day)
    return TeacherDayStatsRead.model_validate(view)


@router.post("/queue", response_model=QueueRead, status_code=status.HTTP_201_CREATED)
async def open_queue(
    teacher_id: UUID,
    day: date,
    payload: OpenQueueRequest,
    service: SchedulingService = Depends(get_scheduling_service),
) -> QueueRead:
    """Open the teacher queue or move its preferred start."""
    view = await service.open_queue(teacher_id, day, payload.preferred_start)
    return QueueRead.model_validate(view)


@router.get("/queue", response_model=QueueRead)
async def get_queue(
    teacher_id: UUID,
    day: date,
    service: SchedulingService = Depends(get_scheduling_service),
) -> QueueRead:
    """Get the teacher queue with derived flags."""
    view = await service.get_queue(teacher_id, day)
    return QueueRead.model_validate(view)


@router.delete("/queue", response_model=QueueRead)
async def clear_queue(
    teacher_id: UUID,
    day: date,
    service: SchedulingService = Depends(get_scheduling_service),
) -> QueueRead:
    """Drop every queued lesson."""
    view = await service.clear_queue(teacher_id, day)
    return QueueRead.model_validate(view)


@router.put("/queue/preferred-start", response_model=QueueRead)
async def set_preferred_start(
    teacher_id: UUID,
    day: date,
    payload: PreferredStartRequest,
    service: SchedulingService = Depends(get_scheduling_service),
) -> QueueRead:
    view = await service.set_preferred_start(teacher_id, day, payload.preferred_start)
    return QueueRead.model_validate(view)


@router.put("/queue/duration-caps", response_model=QueueRead)
async def set_duration_caps(
    teacher_id: UUID,
    day: date,
    payload: DurationCapsPayload,
    service: SchedulingService = Depends(get_scheduling_service),
) -> QueueRead:
    caps = DurationCaps(private=payload.private, semi_private=payload.semi_private, group=payload.group)
    view = await service.set_duration_caps(teacher_id, day, caps)
    return QueueRead.model_validate(view)


@router.post("/queue/lessons", response_model=QueueRead)
async def add_lessons(
    teacher_id: UUID,
    day: date,
    payload: QueueAddRequest,
    service: SchedulingService = Depends(get_scheduling_service),
) -> QueueRead:
    """Append lessons dragged from a booking."""
    view = await service.add_lessons(teacher_id, day, payload.booking_id, payload.lesson_ids, payload.duration)
    return QueueRead.model_validate(view)


@router.delete("/queue/lessons/{lesson_id}", response_model=QueueRead)
async def remove_lesson(
    teacher_id: UUID,
    day: date,
    lesson_id: UUID,
    service: SchedulingService = Depends(get_scheduling_service),
) -> QueueRead:
    view = await service.remove_lesson(teacher_id, day, lesson_id)
    return QueueRead.model_validate(view)


@router.patch("/queue/lessons/{lesson_id}/duration", response_model=QueueRead)
async def resize_lesson(
    teacher_id: UUID,
    day: date,
    lesson_id: UUID,
    payload: ResizeRequest,
    service: SchedulingService = Depends(get_scheduling_service),
) -> QueueRead:
    view = await service.resize_lesson(teacher_id, day, lesson_id, payload.duration)
    return QueueRead.model_validate(view)


@router.post("/queue/lessons/{lesson_id}/shift", response_model=QueueRead)
async def shift_lesson(
    teacher_id: UUID,
    day: date,
    lesson_id: UUID,
    payload: ShiftRequest,
    service: SchedulingService = Depends(get_scheduling_service),
) -> QueueRead:
    view = await service.shift_lesson(teacher_id, day, lesson_id, payload.delta_minutes)
    return QueueRead.model_validate(view)


@router.post("/queue/lessons/{lesson_id}/move-up", response_model=QueueRead)
async def move_lesson_up(
    teacher_id: UUID,
    day: date,
    lesson_id: UUID,
    service: SchedulingService = Depends(get_scheduling_service),
) -> QueueRead:
    view = await service.move_lesson_up(teacher_id, day, lesson_id)
    return QueueRead.model_validate(view)


@router.post("/queue/lessons/{lesson_id}/move-down", response_model=QueueRead)
async def move_lesson_down(
    teacher_id: UUID,
    day: date,
    lesson_id: UUID,
    service: SchedulingService = Depends(get_scheduling_service),
) -> QueueRead:
    view = await service.move_lesson_down(teacher_id, day, lesson_id)
    return QueueRead.model_validate(view)


@router.post("/queue/lessons/{lesson_id}/remove-gap", response_model=QueueRead)
async def remove_gap(
    teacher_id: UUID,
    day: date,
    lesson_id: UUID,
    service: SchedulingService = Depends(get_scheduling_service),
) -> QueueRead:
    """Pull the lesson back to the end of the previous queued lesson."""
    view = await service.remove_gap(teacher_id, day, lesson_id)
    return QueueRead.model_validate(view)


@router.post("/queue/submit", response_model=SubmitRead, status_code=status.HTTP_201_CREATED)
async def submit_queue(
    teacher_id: UUID,
    day: date,
    payload: SubmitRequest,
    service: SchedulingService = Depends(get_scheduling_service),
) -> SubmitRead:
    """Turn the queue into calendar events."""
    result = await service.submit_queue(teacher_id, day, payload.location)
    return SubmitRead.model_validate(result)


@router.post("/edit", response_model=EventEditRead, status_code=status.HTTP_201_CREATED)
async def open_event_edit(
    teacher_id: UUID,
    day: date,
    service: EventEditService = Depends(get_event_edit_service),
) -> EventEditRead:
    """Load the committed events of the day into a fresh working copy."""
    view = await service.open_edit(teacher_id, day)
    return EventEditRead.model_validate(view)


@router.get("/edit", response_model=EventEditRead)
async def get_event_edit(
    teacher_id: UUID,
    day: date,
    service: EventEditService = Depends(get_event_edit_service),
) -> EventEditRead:
    view = await service.get_edit(teacher_id, day)
    return EventEditRead.model_validate(view)


@router.delete("/edit", response_model=EventEditRead)
async def cancel_event_edit(
    teacher_id: UUID,
    day: date,
    service: EventEditService = Depends(get_event_edit_service),
) -> EventEditRead:
    """Drop the working copy without touching stored events."""
    view = await service.cancel_edit(teacher_id, day)
    return EventEditRead.model_validate(view)


@router.post("/edit/restore", response_model=EventEditRead)
async def restore_event_edit(
    teacher_id: UUID,
    day: date,
    service: EventEditService = Depends(get_event_edit_service),
) -> EventEditRead:
    view = await service.restore_edit(teacher_id, day)
    return EventEditRead.model_validate(view)


@router.post("/edit/offset", response_model=EventEditRead)
async def offset_event_day(
    teacher_id: UUID,
    day: date,
    payload: ShiftRequest,
    service: EventEditService = Depends(get_event_edit_service),
) -> EventEditRead:
    """Move every event of the day by the same amount."""
    view = await service.offset_day(teacher_id, day, payload.delta_minutes)
    return EventEditRead.model_validate(view)


@router.post("/edit/events/{lesson_id}/shift", response_model=EventEditRead)
async def shift_event(
    teacher_id: UUID,
    day: date,
    lesson_id: UUID,
    payload: ShiftRequest,
    service: EventEditService = Depends(get_event_edit_service),
) -> EventEditRead:
    view = await service.adjust_time(teacher_id, day, lesson_id, payload.delta_minutes)
    return EventEditRead.model_validate(view)


@router.post("/edit/events/{lesson_id}/duration", response_model=EventEditRead)
async def change_event_duration(
    teacher_id: UUID,
    day: date,
    lesson_id: UUID,
    payload: DurationChangeRequest,
    service: EventEditService = Depends(get_event_edit_service),
) -> EventEditRead:
    view = await service.adjust_duration(teacher_id, day, lesson_id, payload.delta_minutes)
    return EventEditRead.model_validate(view)


@router.post("/edit/events/{lesson_id}/move-up", response_model=EventEditRead)
async def move_event_up(
    teacher_id: UUID,
    day: date,
    lesson_id: UUID,
    service: EventEditService = Depends(get_event_edit_service),
) -> EventEditRead:
    view = await service.move_up(teacher_id, day, lesson_id)
    return EventEditRead.model_validate(view)


@router.post("/edit/events/{lesson_id}/move-down", response_model=EventEditRead)
async def move_event_down(
    teacher_id: UUID,
    day: date,
    lesson_id: UUID,
    service: EventEditService = Depends(get_event_edit_service),
) -> EventEditRead:
    view = await service.move_down(teacher_id, day, lesson_id)
    return EventEditRead.model_validate(view)


@router.post("/edit/events/{lesson_id}/remove-gap", response_model=EventEditRead)
async def close_event_gap(
    teacher_id: UUID,
    day: date,
    lesson_id: UUID,
    service: EventEditService = Depends(get_event_edit_service),
) -> EventEditRead:
    view = await service.close_gap(teacher_id, day, lesson_id)
    return EventEditRead.model_validate(view)


@router.post("/edit/save", response_model=EventEditSaveRead)
async def save_event_edit(
    teacher_id: UUID,
    day: date,
    service: EventEditService = Depends(get_event_edit_service),
) -> EventEditSaveRead:
    """Persist moved and resized events and close the edit."""
    result = await service.save_edit(teacher_id, day)
    return EventEditSaveRead.model_validate(result)
