"""Teachers repository layer."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.modules.teachers.models import Teacher


class TeachersRepository:
    """DB operations for teachers."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_teacher_by_id(self, teacher_id: UUID) -> Teacher | None:
        stmt = select(Teacher).where(Teacher.id == teacher_id).options(selectinload(Teacher.commissions))
        return await self.session.scalar(stmt)

    async def list_teachers(self, active_only: bool, limit: int, offset: int) -> tuple[list[Teacher], int]:
        base_stmt: Select[tuple[Teacher]] = select(Teacher)
        if active_only:
            base_stmt = base_stmt.where(Teacher.is_active.is_(True))

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = int((await self.session.scalar(count_stmt)) or 0)

        stmt = (
            base_stmt.options(selectinload(Teacher.commissions))
            .order_by(Teacher.name.asc())
            .limit(limit)
            .offset(offset)
        )
        items = (await self.session.scalars(stmt)).all()
        return list(items), total
