"""Booking business logic layer."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_session
from app.core.enums import BookingStatusEnum
from app.modules.booking.models import Booking
from app.modules.booking.progress import (
    BookingProgress,
    ProgressBar,
    ValidationResult,
    calculate_progress,
    can_complete_booking,
    needs_attention,
    progress_bar,
)
from app.modules.booking.repository import BookingRepository
from app.shared.exceptions import NotFoundException


@dataclass(frozen=True, slots=True)
class BookingProgressView:
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
    issues: tuple[str, ...]
    progress_bar: ProgressBar
    completion_check: ValidationResult


def build_progress_view(booking: Booking) -> BookingProgressView:
    progress: BookingProgress = calculate_progress(booking)
    attention = needs_attention(booking)
    return BookingProgressView(
        booking_id=booking.id,
        status=booking.status,
        used_minutes=progress.used_minutes,
        planned_minutes=progress.planned_minutes,
        tbc_minutes=progress.tbc_minutes,
        cancelled_minutes=progress.cancelled_minutes,
        total_minutes=progress.total_minutes,
        remaining_minutes=progress.remaining_minutes,
        completion_percentage=progress.completion_percentage,
        is_ready_for_completion=progress.is_ready_for_completion,
        has_issues=attention.has_issues,
        issues=attention.issues,
        progress_bar=progress_bar(booking),
        completion_check=can_complete_booking(booking),
    )


class BookingService:
    """Booking domain service."""

    def __init__(self, repository: BookingRepository) -> None:
        self.repository = repository

    async def get_booking(self, booking_id: UUID) -> Booking:
        booking = await self.repository.get_booking_by_id(booking_id)
        if booking is None:
            raise NotFoundException("Booking not found")
        return booking

    async def get_progress(self, booking_id: UUID) -> BookingProgressView:
        """Progress, attention flags and completion check of one booking."""
        return build_progress_view(await self.get_booking(booking_id))

    async def list_bookings(
        self,
        status: BookingStatusEnum | None,
        limit: int,
        offset: int,
    ) -> tuple[list[Booking], int]:
        return await self.repository.list_bookings(status, limit, offset)


async def get_booking_service(session: AsyncSession = Depends(get_db_session)) -> BookingService:
    """Dependency provider for booking service."""
    return BookingService(BookingRepository(session))
