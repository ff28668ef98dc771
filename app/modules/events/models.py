"""Calendar events and kite assignments."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base, BaseModelMixin, value_enum
from app.core.enums import EventStatusEnum, LocationEnum

if TYPE_CHECKING:
    from app.modules.lessons.models import Lesson


class Event(BaseModelMixin, Base):
    """Committed occurrence of a lesson at an absolute UTC time."""

    __tablename__ = "events"

    lesson_id: Mapped[UUID] = mapped_column(
        ForeignKey("lessons.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    location: Mapped[LocationEnum] = mapped_column(
        value_enum(LocationEnum, "location_enum"),
        nullable=False,
    )
    status: Mapped[EventStatusEnum] = mapped_column(
        value_enum(EventStatusEnum, "event_status_enum"),
        default=EventStatusEnum.PLANNED,
        nullable=False,
        index=True,
    )

    lesson: Mapped[Lesson] = relationship(back_populates="events")
    kites: Mapped[list[KiteEvent]] = relationship(back_populates="event", cascade="all, delete-orphan")


class Kite(BaseModelMixin, Base):
    """School kite available for lessons."""

    __tablename__ = "kites"

    model: Mapped[str] = mapped_column(String(64), nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    serial_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)


class KiteEvent(BaseModelMixin, Base):
    """Kite assigned to an event."""

    __tablename__ = "kite_events"
    __table_args__ = (UniqueConstraint("event_id", "kite_id", name="uq_kite_events_event_kite"),)

    event_id: Mapped[UUID] = mapped_column(ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    kite_id: Mapped[UUID] = mapped_column(ForeignKey("kites.id", ondelete="RESTRICT"), nullable=False, index=True)

    event: Mapped[Event] = relationship(back_populates="kites")
    kite: Mapped[Kite] = relationship()
