"""Teachers API router."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.modules.teachers.schemas import TeacherRead
from app.modules.teachers.service import TeachersService, get_teachers_service
from app.shared.pagination import Page, build_page, get_pagination_params

router = APIRouter(prefix="/teachers", tags=["teachers"])


@router.get("", response_model=Page[TeacherRead])
async def list_teachers(
    active_only: bool = Query(default=True),
    pagination=Depends(get_pagination_params),
    service: TeachersService = Depends(get_teachers_service),
) -> Page[TeacherRead]:
    """List teachers."""
    items, total = await service.list_teachers(active_only, pagination.limit, pagination.offset)
    serialized = [TeacherRead.model_validate(item) for item in items]
    return build_page(serialized, total, pagination)


@router.get("/{teacher_id}", response_model=TeacherRead)
async def get_teacher(
    teacher_id: UUID,
    service: TeachersService = Depends(get_teachers_service),
) -> TeacherRead:
    """Get teacher with commissions."""
    teacher = await service.get_teacher(teacher_id)
    return TeacherRead.model_validate(teacher)
