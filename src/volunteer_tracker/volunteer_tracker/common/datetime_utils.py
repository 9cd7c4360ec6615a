from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Any, Optional

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime((value or "").strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"Invalid date {value!r} (expected YYYY-MM-DD)")


def parse_clock(value: str) -> time:
    """Parse a local clock string (HH:MM or HH:MM:SS)."""
    v = (value or "").strip()
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(v, fmt).time()
        except ValueError:
            continue
    raise ValidationError(f"Invalid time {value!r} (expected HH:MM)")


def combine_clock(work_date: date, clock: time | str) -> datetime:
    if isinstance(clock, str):
        clock = parse_clock(clock)
    return datetime.combine(work_date, clock)


def to_instant(value: Any, *, work_date: Optional[date] = None) -> datetime:
    """Convert a request/store value into the naive local datetime used by the core.

    Accepts datetimes (aware ones are converted to local time), ISO-8601 strings,
    and bare HH:MM clocks when ``work_date`` is given.
    """

    if isinstance(value, datetime):
        if value.tzinfo is not None:
            return value.astimezone().replace(tzinfo=None)
        return value

    if isinstance(value, str):
        v = value.strip()
        if not v:
            raise ValidationError("Time value is empty")
        if work_date is not None and "T" not in v and "-" not in v:
            return combine_clock(work_date, v)
        try:
            parsed = datetime.fromisoformat(v.replace("Z", "+00:00"))
        except ValueError:
            raise ValidationError(f"Invalid timestamp {value!r}")
        return to_instant(parsed)

    raise ValidationError(f"Unsupported time value {value!r}")


def monday_of(day: date) -> date:
    return day - timedelta(days=day.weekday())


def format_clock(value: Optional[datetime]) -> str:
    """Render a time like 9:02 AM (used in change-log descriptions)."""
    if value is None:
        return "none"
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {suffix}"


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()
