"""Teachers schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class CommissionRead(BaseModel):
    """Commission response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    price_per_hour: Decimal
    description: str | None


class TeacherRead(BaseModel):
    """Teacher response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    languages: str
    is_active: bool
    commissions: list[CommissionRead]
    created_at: datetime
    updated_at: datetime
