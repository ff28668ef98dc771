"""Kite school schema

Revision ID: 20260301_0001
Revises:
Create Date: 2026-03-01 09:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "20260301_0001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


booking_status_enum = sa.Enum("active", "cancelled", "completed", name="booking_status_enum", native_enum=False)
lesson_status_enum = sa.Enum(
    "planned",
    "rest",
    "delegated",
    "completed",
    "cancelled",
    name="lesson_status_enum",
    native_enum=False,
)
event_status_enum = sa.Enum("planned", "tbc", "completed", "cancelled", name="event_status_enum", native_enum=False)
location_enum = sa.Enum("Los Lances", "Valdevaqueros", "Palmones", name="location_enum", native_enum=False)


def _id_col() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True, nullable=False)


def _created_col() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), nullable=False)


def _updated_col() -> sa.Column:
    return sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False)


def upgrade() -> None:
    op.create_table(
        "students",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("country", sa.String(length=64), nullable=True),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
    )

    op.create_table(
        "packages",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("price_per_student", sa.Numeric(10, 2), nullable=False),
        sa.Column("capacity_students", sa.Integer(), nullable=False),
        sa.Column("capacity_kites", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
    )

    op.create_table(
        "teachers",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("name", sa.String(length=128), nullable=False),
        sa.Column("languages", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
    )

    op.create_table(
        "commissions",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("teacher_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("price_per_hour", sa.Numeric(10, 2), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(
            ["teacher_id"],
            ["teachers.id"],
            name="fk_commissions_teacher_id_teachers",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_commissions_teacher_id", "commissions", ["teacher_id"], unique=False)

    op.create_table(
        "bookings",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("package_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("date_start", sa.Date(), nullable=False),
        sa.Column("date_end", sa.Date(), nullable=False),
        sa.Column("status", booking_status_enum, nullable=False),
        sa.ForeignKeyConstraint(
            ["package_id"],
            ["packages.id"],
            name="fk_bookings_package_id_packages",
            ondelete="RESTRICT",
        ),
    )
    op.create_index("ix_bookings_package_id", "bookings", ["package_id"], unique=False)
    op.create_index("ix_bookings_status", "bookings", ["status"], unique=False)

    op.create_table(
        "booking_students",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("booking_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("student_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["booking_id"],
            ["bookings.id"],
            name="fk_booking_students_booking_id_bookings",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["student_id"],
            ["students.id"],
            name="fk_booking_students_student_id_students",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("booking_id", "student_id", name="uq_booking_students_booking_student"),
    )
    op.create_index("ix_booking_students_booking_id", "booking_students", ["booking_id"], unique=False)
    op.create_index("ix_booking_students_student_id", "booking_students", ["student_id"], unique=False)

    op.create_table(
        "lessons",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("booking_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("teacher_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("commission_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("status", lesson_status_enum, nullable=False),
        sa.ForeignKeyConstraint(
            ["booking_id"],
            ["bookings.id"],
            name="fk_lessons_booking_id_bookings",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["teacher_id"],
            ["teachers.id"],
            name="fk_lessons_teacher_id_teachers",
            ondelete="RESTRICT",
        ),
        sa.ForeignKeyConstraint(
            ["commission_id"],
            ["commissions.id"],
            name="fk_lessons_commission_id_commissions",
            ondelete="SET NULL",
        ),
    )
    op.create_index("ix_lessons_booking_id", "lessons", ["booking_id"], unique=False)
    op.create_index("ix_lessons_teacher_id", "lessons", ["teacher_id"], unique=False)
    op.create_index("ix_lessons_status", "lessons", ["status"], unique=False)

    op.create_table(
        "events",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("lesson_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("location", location_enum, nullable=False),
        sa.Column("status", event_status_enum, nullable=False),
        sa.ForeignKeyConstraint(["lesson_id"], ["lessons.id"], name="fk_events_lesson_id_lessons", ondelete="CASCADE"),
    )
    op.create_index("ix_events_lesson_id", "events", ["lesson_id"], unique=False)
    op.create_index("ix_events_date", "events", ["date"], unique=False)
    op.create_index("ix_events_status", "events", ["status"], unique=False)

    op.create_table(
        "kites",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("model", sa.String(length=64), nullable=False),
        sa.Column("size", sa.Integer(), nullable=False),
        sa.Column("serial_id", sa.String(length=64), nullable=False),
        sa.UniqueConstraint("serial_id", name="uq_kites_serial_id"),
    )

    op.create_table(
        "kite_events",
        _id_col(),
        _created_col(),
        _updated_col(),
        sa.Column("event_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("kite_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.ForeignKeyConstraint(["event_id"], ["events.id"], name="fk_kite_events_event_id_events", ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["kite_id"], ["kites.id"], name="fk_kite_events_kite_id_kites", ondelete="RESTRICT"),
        sa.UniqueConstraint("event_id", "kite_id", name="uq_kite_events_event_kite"),
    )
    op.create_index("ix_kite_events_event_id", "kite_events", ["event_id"], unique=False)
    op.create_index("ix_kite_events_kite_id", "kite_events", ["kite_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_kite_events_kite_id", table_name="kite_events")
    op.drop_index("ix_kite_events_event_id", table_name="kite_events")
    op.drop_table("kite_events")
    op.drop_table("kites")

    op.drop_index("ix_events_status", table_name="events")
    op.drop_index("ix_events_date", table_name="events")
    op.drop_index("ix_events_lesson_id", table_name="events")
    op.drop_table("events")

    op.drop_index("ix_lessons_status", table_name="lessons")
    op.drop_index("ix_lessons_teacher_id", table_name="lessons")
    op.drop_index("ix_lessons_booking_id", table_name="lessons")
    op.drop_table("lessons")

    op.drop_index("ix_booking_students_student_id", table_name="booking_students")
    op.drop_index("ix_booking_students_booking_id", table_name="booking_students")
    op.drop_table("booking_students")

    op.drop_index("ix_bookings_status", table_name="bookings")
    op.drop_index("ix_bookings_package_id", table_name="bookings")
    op.drop_table("bookings")

    op.drop_index("ix_commissions_teacher_id", table_name="commissions")
    op.drop_table("commissions")
    op.drop_table("teachers")
    op.drop_table("packages")
    op.drop_table("students")
