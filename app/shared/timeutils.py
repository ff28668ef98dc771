"""Time arithmetic shared by the scheduling core.

Queue and timeline positions are plain integers counting minutes since
midnight. Clock strings are zero-padded 24h ``HH:mm`` values and all
absolute timestamps are UTC.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, time

MINUTES_PER_HOUR = 60
MINUTES_PER_DAY = 24 * MINUTES_PER_HOUR


def utc_now() -> datetime:
    """Return aware UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(dt: datetime) -> datetime:
    """Normalize datetime to UTC timezone."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def parse_time_to_minutes(value: str) -> int:
    """Convert ``HH:mm`` into minutes since midnight."""
    hours_part, sep, minutes_part = value.strip().partition(":")
    if not sep or not hours_part.isdigit() or not minutes_part.isdigit() or len(minutes_part) != 2:
        raise ValueError(f"Invalid time {value!r}, expected HH:mm")

    hours, minutes = int(hours_part), int(minutes_part)
    if hours > 23 or minutes > 59:
        raise ValueError(f"Invalid time {value!r}, expected HH:mm")
    return hours * MINUTES_PER_HOUR + minutes


def format_minutes_to_time(minutes: int) -> str:
    """Convert minutes since midnight into ``HH:mm``.

    Values past midnight are rendered as-is (``24:30``) so that the end of an
    interval that overruns the day stays visible instead of wrapping.
    """
    if minutes < 0:
        raise ValueError("Minutes of day cannot be negative")
    hours, mins = divmod(minutes, MINUTES_PER_HOUR)
    return f"{hours:02d}:{mins:02d}"


def intervals_overlap(start1: int, end1: int, start2: int, end2: int) -> bool:
    """Check if two half-open intervals overlap; touching ends do not."""
    return start1 < end2 and start2 < end1


def snap_down(value: int, step: int) -> int:
    """Largest multiple of ``step`` not above ``value``."""
    return (value // step) * step


def clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(value, upper))


def compose_utc_datetime(day: date, clock: str) -> datetime:
    """Combine a calendar date and an ``HH:mm`` clock into a UTC instant."""
    hours, minutes = divmod(parse_time_to_minutes(clock), MINUTES_PER_HOUR)
    return datetime.combine(day, time(hours, minutes), tzinfo=UTC)


def minutes_of_day(moment: datetime) -> int:
    """Minutes since UTC midnight for an absolute timestamp."""
    moment = ensure_utc(moment)
    return moment.hour * MINUTES_PER_HOUR + moment.minute


def same_utc_date(moment: datetime, day: date) -> bool:
    return ensure_utc(moment).date() == day
