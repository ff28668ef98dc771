"""Teachers business logic layer."""

from __future__ import annotations

from uuid import UUID

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db_session
from app.modules.teachers.models import Teacher
from app.modules.teachers.repository import TeachersRepository
from app.shared.exceptions import NotFoundException


class TeachersService:
    """Teachers domain service."""

    def __init__(self, repository: TeachersRepository) -> None:
        self.repository = repository

    async def get_teacher(self, teacher_id: UUID) -> Teacher:
        teacher = await self.repository.get_teacher_by_id(teacher_id)
        if teacher is None:
            raise NotFoundException("Teacher not found")
        return teacher

    async def list_teachers(self, active_only: bool, limit: int, offset: int) -> tuple[list[Teacher], int]:
        return await self.repository.list_teachers(active_only, limit, offset)


async def get_teachers_service(session: AsyncSession = Depends(get_db_session)) -> TeachersService:
    """Dependency provider for teachers service."""
    return TeachersService(TeachersRepository(session))
