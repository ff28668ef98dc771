"""Lessons repository layer."""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import Select, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.enums import LessonStatusEnum
from app.modules.booking.models import Booking, BookingStudent
from app.modules.lessons.models import Lesson


def _with_booking_context(stmt: Select[tuple[Lesson]]) -> Select[tuple[Lesson]]:
    return stmt.options(
        selectinload(Lesson.events),
        selectinload(Lesson.commission),
        selectinload(Lesson.booking).selectinload(Booking.package),
        selectinload(Lesson.booking).selectinload(Booking.students).selectinload(BookingStudent.student),
        selectinload(Lesson.booking).selectinload(Booking.lessons).selectinload(Lesson.events),
    )


class LessonsRepository:
    """DB operations for lessons as the scheduler sees them."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_lessons_for_teacher(
        self,
        teacher_id: UUID,
        status: LessonStatusEnum | None = None,
    ) -> list[Lesson]:
        """Teacher lessons with their booking, students, events and commission loaded."""
        stmt = _with_booking_context(select(Lesson).where(Lesson.teacher_id == teacher_id)).order_by(
            Lesson.created_at.asc(),
        )
        if status is not None:
            stmt = stmt.where(Lesson.status == status)
        return list((await self.session.scalars(stmt)).all())

    async def get_lessons_by_ids(self, lesson_ids: Iterable[UUID]) -> list[Lesson]:
        stmt = _with_booking_context(select(Lesson).where(Lesson.id.in_(list(lesson_ids))))
        return list((await self.session.scalars(stmt)).all())
