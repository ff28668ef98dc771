"""Teachers ORM models."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base, BaseModelMixin


class Teacher(BaseModelMixin, Base):
    """Kite instructor."""

    __tablename__ = "teachers"

    name: Mapped[str] = mapped_column(String(128), nullable=False)
    languages: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    commissions: Mapped[list[Commission]] = relationship(back_populates="teacher")


class Commission(BaseModelMixin, Base):
    """Hourly rate a teacher earns for lessons booked under it."""

    __tablename__ = "commissions"

    teacher_id: Mapped[UUID] = mapped_column(
        ForeignKey("teachers.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    price_per_hour: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    teacher: Mapped[Teacher] = relationship(back_populates="commissions")
