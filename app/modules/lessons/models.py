"""Lessons ORM models."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base, BaseModelMixin, value_enum
from app.core.enums import LessonStatusEnum

if TYPE_CHECKING:
    from app.modules.booking.models import Booking
    from app.modules.events.models import Event
    from app.modules.teachers.models import Commission, Teacher


class Lesson(BaseModelMixin, Base):
    """A teacher's share of a booking's hours."""

    __tablename__ = "lessons"

    booking_id: Mapped[UUID] = mapped_column(
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    teacher_id: Mapped[UUID] = mapped_column(
        ForeignKey("teachers.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    commission_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("commissions.id", ondelete="SET NULL"),
        nullable=True,
    )
    status: Mapped[LessonStatusEnum] = mapped_column(
        value_enum(LessonStatusEnum, "lesson_status_enum"),
        default=LessonStatusEnum.PLANNED,
        nullable=False,
        index=True,
    )

    booking: Mapped[Booking] = relationship(back_populates="lessons")
    teacher: Mapped[Teacher] = relationship()
    commission: Mapped[Commission | None] = relationship()
    events: Mapped[list[Event]] = relationship(back_populates="lesson", order_by="Event.date")
