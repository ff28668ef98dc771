"""Booking schemas."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.core.enums import BookingStatusEnum


class PackageRead(BaseModel):
    """Package response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    duration: int
    price_per_student: Decimal
    capacity_students: int
    capacity_kites: int
    description: str | None


class BookingRead(BaseModel):
    """Booking response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    package: PackageRead
    student_names: list[str]
    date_start: date
    date_end: date
    status: BookingStatusEnum
    created_at: datetime
    updated_at: datetime


class ProgressBarRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    used_percentage: float
    planned_percentage: float
    remaining_percentage: float
    is_over_booked: bool
    over_booked_percentage: float


class CompletionCheckRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    is_valid: bool
    message: str
    code: str | None


class BookingProgressRead(BaseModel):
    """Booking progress response schema."""

    model_config = ConfigDict(from_attributes=True)

    booking_id: UUID
    status: BookingStatusEnum
    used_minutes: int
    planned_minutes: int
    tbc_minutes: int
    cancelled_minutes: int
    total_minutes: int
    remaining_minutes: int
    completion_percentage: float
    is_ready_for_completion: bool
    has_issues: bool
    issues: list[str]
    progress_bar: ProgressBarRead
    completion_check: CompletionCheckRead
