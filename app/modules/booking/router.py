"""Booking API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.core.enums import BookingStatusEnum
from app.modules.booking.schemas import BookingProgressRead, BookingRead
from app.modules.booking.service import BookingService, get_booking_service
from app.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/bookings", tags=["booking"])


@router.get("", response_model=Page[BookingRead])
async def list_bookings(
    status: BookingStatusEnum | None = Query(default=None),
    pagination=Depends(get_pagination_params),
    service: BookingService = Depends(get_booking_service),
) -> Page[BookingRead]:
    """List bookings, optionally filtered by status."""
    items, total = await service.list_bookings(status, pagination.limit, pagination.offset)
    serialized = [BookingRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.get("/{booking_id}", response_model=BookingRead)
async def get_booking(
    booking_id: UUID,
    service: BookingService = Depends(get_booking_service),
) -> BookingRead:
    """Get booking."""
    booking = await service.get_booking(booking_id)
    return BookingRead.model_validate(booking)


@router.get("/{booking_id}/progress", response_model=BookingProgressRead)
async def get_booking_progress(
    booking_id: UUID,
    service: BookingService = Depends(get_booking_service),
) -> BookingProgressRead:
    """Get booking progress."""
    view = await service.get_progress(booking_id)
    return BookingProgressRead.model_validate(view)
