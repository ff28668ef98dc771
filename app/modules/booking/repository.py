"""Booking repository layer."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.enums import BookingStatusEnum
from app.modules.booking.models import Booking, BookingStudent
from app.modules.lessons.models import Lesson


def _with_progress_data(stmt: Select[tuple[Booking]]) -> Select[tuple[Booking]]:
    return stmt.options(
        selectinload(Booking.package),
        selectinload(Booking.students).selectinload(BookingStudent.student),
        selectinload(Booking.lessons).selectinload(Lesson.events),
    )


class BookingRepository:
    """DB access for bookings and everything progress needs."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_booking_by_id(self, booking_id: UUID) -> Booking | None:
        stmt = _with_progress_data(select(Booking).where(Booking.id == booking_id))
        return await self.session.scalar(stmt)

    async def list_bookings(
        self,
        status: BookingStatusEnum | None,
        limit: int,
        offset: int,
    ) -> tuple[list[Booking], int]:
        base_stmt: Select[tuple[Booking]] = select(Booking)
        if status is not None:
            base_stmt = base_stmt.where(Booking.status == status)

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = _with_progress_data(base_stmt.order_by(Booking.date_start.asc()).limit(limit).offset(offset))
        items = (await self.session.scalars(stmt)).all()
        return list(items), total
