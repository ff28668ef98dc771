"""Seed idempotent kite school demo data for local/non-production environments."""

from __future__ import annotations

import argparse
import asyncio
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.database import SessionLocal, close_engine
from app.core.enums import BookingStatusEnum, LessonStatusEnum
from app.modules.booking.models import Booking, BookingStudent, Package, Student
from app.modules.lessons.models import Lesson
from app.modules.teachers.models import Commission, Teacher

DEMO_TEACHERS = (
    ("Miguel Torres", "es,en", Decimal("25.00")),
    ("Sofia Lang", "de,en,es", Decimal("28.00")),
)

# (description, minutes, price per student, capacity)
DEMO_PACKAGES = (
    ("Private discovery", 240, Decimal("260.00"), 1),
    ("Semi-private course", 360, Decimal("320.00"), 2),
    ("Group course", 480, Decimal("290.00"), 4),
)

# (package index, teacher index, student names)
DEMO_BOOKINGS = (
    (0, 0, ("Ana Ruiz",)),
    (1, 0, ("Luis Perez", "Marta Gil")),
    (2, 1, ("Ines Mora", "Pablo Vidal", "Tom Becker", "Lea Fischer")),
    (1, 1, ("Noah Smith", "Emma Jones")),
)

DEMO_BOOKING_DAYS = 5


@dataclass(slots=True)
class SeedStats:
    teachers_created: int = 0
    packages_created: int = 0
    students_created: int = 0
    bookings_created: int = 0
    lessons_created: int = 0


async def _ensure_teachers(session: AsyncSession, stats: SeedStats) -> list[Teacher]:
    teachers: list[Teacher] = []
    for name, languages, price_per_hour in DEMO_TEACHERS:
        teacher = await session.scalar(select(Teacher).where(Teacher.name == name))
        if teacher is None:
            teacher = Teacher(name=name, languages=languages, is_active=True)
            session.add(teacher)
            await session.flush()
            session.add(Commission(teacher_id=teacher.id, price_per_hour=price_per_hour, description="Standard"))
            stats.teachers_created += 1
        teachers.append(teacher)
    await session.flush()
    return teachers


async def _ensure_packages(session: AsyncSession, stats: SeedStats) -> list[Package]:
    packages: list[Package] = []
    for description, minutes, price, capacity in DEMO_PACKAGES:
        package = await session.scalar(select(Package).where(Package.description == description))
        if package is None:
            package = Package(
                description=description,
                duration=minutes,
                price_per_student=price,
                capacity_students=capacity,
                capacity_kites=capacity,
            )
            session.add(package)
            stats.packages_created += 1
        packages.append(package)
    await session.flush()
    return packages


async def _ensure_student(session: AsyncSession, name: str, stats: SeedStats) -> Student:
    student = await session.scalar(select(Student).where(Student.name == name))
    if student is None:
        student = Student(name=name)
        session.add(student)
        await session.flush()
        stats.students_created += 1
    return student


async def _commission_for(session: AsyncSession, teacher: Teacher) -> Commission | None:
    return await session.scalar(select(Commission).where(Commission.teacher_id == teacher.id))


async def _ensure_bookings(
    session: AsyncSession,
    teachers: list[Teacher],
    packages: list[Package],
    stats: SeedStats,
) -> None:
    today = date.today()
    for package_index, teacher_index, student_names in DEMO_BOOKINGS:
        students = [await _ensure_student(session, name, stats) for name in student_names]
        existing = await session.scalar(
            select(Booking)
            .join(BookingStudent, BookingStudent.booking_id == Booking.id)
            .where(BookingStudent.student_id == students[0].id),
        )
        if existing is not None:
            continue

        booking = Booking(
            package_id=packages[package_index].id,
            date_start=today,
            date_end=today + timedelta(days=DEMO_BOOKING_DAYS),
            status=BookingStatusEnum.ACTIVE,
        )
        session.add(booking)
        await session.flush()
        for student in students:
            session.add(BookingStudent(booking_id=booking.id, student_id=student.id))

        teacher = teachers[teacher_index]
        commission = await _commission_for(session, teacher)
        session.add(
            Lesson(
                booking_id=booking.id,
                teacher_id=teacher.id,
                commission_id=commission.id if commission is not None else None,
                status=LessonStatusEnum.PLANNED,
            ),
        )
        stats.bookings_created += 1
        stats.lessons_created += 1
    await session.flush()


async def _run_seed(*, allow_production: bool) -> SeedStats:
    settings = get_settings()
    app_env = settings.app_env.strip().lower()
    if app_env in {"production", "prod"} and not allow_production:
        raise RuntimeError(
            "Refusing to seed demo data in production. "
            "Re-run with --allow-production only if you are absolutely sure.",
        )

    stats = SeedStats()

    async with SessionLocal() as session:
        try:
            teachers = await _ensure_teachers(session, stats)
            packages = await _ensure_packages(session, stats)
            await _ensure_bookings(session, teachers, packages, stats)
            await session.commit()
        except Exception:
            await session.rollback()
            raise

    return stats


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Seed idempotent demo data for the kite school whiteboard (teachers, commissions, "
            "packages, bookings and planned lessons)."
        ),
    )
    parser.add_argument(
        "--allow-production",
        action="store_true",
        help="Allow seeding even when APP_ENV is production/prod.",
    )
    return parser


def _print_summary(stats: SeedStats) -> None:
    print("Demo seed completed.")
    print(f"- Teachers created: {stats.teachers_created}")
    print(f"- Packages created: {stats.packages_created}")
    print(f"- Students created: {stats.students_created}")
    print(f"- Bookings created: {stats.bookings_created}")
    print(f"- Lessons created: {stats.lessons_created}")


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()

    try:
        stats = asyncio.run(_run_seed(allow_production=args.allow_production))
    except Exception as exc:
        print(f"Demo seed failed: {exc}")
        return 1
    finally:
        asyncio.run(close_engine())

    _print_summary(stats)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
