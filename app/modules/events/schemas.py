"""Events schemas."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.core.enums import EventStatusEnum, LocationEnum


class EventRead(BaseModel):
    """Calendar event response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    lesson_id: UUID
    date: datetime
    duration: int
    location: LocationEnum
    status: EventStatusEnum
