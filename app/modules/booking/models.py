"""Booking ORM models: students, packages and bookings."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base, BaseModelMixin, value_enum
from app.core.enums import BookingStatusEnum

if TYPE_CHECKING:
    from app.modules.lessons.models import Lesson


class Student(BaseModelMixin, Base):
    """Kite student."""

    __tablename__ = "students"

    name: Mapped[str] = mapped_column(String(128), nullable=False)
    country: Mapped[str | None] = mapped_column(String(64), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class Package(BaseModelMixin, Base):
    """Purchasable block of lesson time."""

    __tablename__ = "packages"

    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    price_per_student: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    capacity_students: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    capacity_kites: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class Booking(BaseModelMixin, Base):
    """Package purchased by one or more students for a date range."""

    __tablename__ = "bookings"

    package_id: Mapped[UUID] = mapped_column(
        ForeignKey("packages.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    date_start: Mapped[date] = mapped_column(Date, nullable=False)
    date_end: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[BookingStatusEnum] = mapped_column(
        value_enum(BookingStatusEnum, "booking_status_enum"),
        default=BookingStatusEnum.ACTIVE,
        nullable=False,
        index=True,
    )

    package: Mapped[Package] = relationship()
    students: Mapped[list[BookingStudent]] = relationship(
        back_populates="booking",
        cascade="all, delete-orphan",
    )
    lessons: Mapped[list[Lesson]] = relationship(back_populates="booking")

    @property
    def student_names(self) -> list[str]:
        return [link.student.name for link in self.students]


class BookingStudent(BaseModelMixin, Base):
    """Student attached to a booking."""

    __tablename__ = "booking_students"
    __table_args__ = (UniqueConstraint("booking_id", "student_id", name="uq_booking_students_booking_student"),)

    booking_id: Mapped[UUID] = mapped_column(
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    student_id: Mapped[UUID] = mapped_column(
        ForeignKey("students.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    booking: Mapped[Booking] = relationship(back_populates="students")
    student: Mapped[Student] = relationship()
