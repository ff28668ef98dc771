"""Events repository: the persistence boundary of the scheduler."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, date, datetime, time, timedelta
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.enums import EventStatusEnum
from app.modules.events.models import Event
from app.modules.lessons.models import Lesson
from app.modules.scheduling.types import EventPayload


class EventsRepository:
    """DB operations for calendar events."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_events_for_teacher_on_day(self, teacher_id: UUID, day: date) -> list[Event]:
        day_start = datetime.combine(day, time.min, tzinfo=UTC)
        stmt = (
            select(Event)
            .join(Lesson, Lesson.id == Event.lesson_id)
            .where(
                Lesson.teacher_id == teacher_id,
                Event.date >= day_start,
                Event.date < day_start + timedelta(days=1),
            )
            .order_by(Event.date.asc())
        )
        return list((await self.session.scalars(stmt)).all())

    async def create_events(self, payloads: Iterable[EventPayload]) -> list[Event]:
        events = [
            Event(
                lesson_id=payload.lesson_id,
                date=payload.starts_at,
                duration=payload.duration,
                location=payload.location,
                status=EventStatusEnum.PLANNED,
            )
            for payload in payloads
        ]
        self.session.add_all(events)
        await self.session.flush()
        return events

    async def get_events_by_ids(self, event_ids: Iterable[UUID]) -> list[Event]:
        ids = list(event_ids)
        if not ids:
            return []
        stmt = select(Event).where(Event.id.in_(ids))
        return list((await self.session.scalars(stmt)).all())

    async def update_event(self, event: Event, **changes) -> Event:
        for key, value in changes.items():
            if value is not None:
                setattr(event, key, value)
        await self.session.flush()
        return event

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()
