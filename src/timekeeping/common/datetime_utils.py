from __future__ import annotations

from datetime import date, datetime, time, timedelta


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_iso_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value)


def parse_hhmm(value: str) -> time:
    """Parse HH:MM string into time."""
    return datetime.strptime(value.strip(), "%H:%M").time()


def format_hhmm(value: time) -> str:
    return value.strftime("%H:%M")


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes elapsed from start to end (negative if end is earlier)."""
    return int((end - start).total_seconds() // 60)


def window_minutes(start: time, end: time) -> int:
    """Length of a time-of-day window; windows ending before they start wrap midnight."""
    day = date(2000, 1, 1)
    begin = datetime.combine(day, start)
    finish = datetime.combine(day, end)
    if finish <= begin:
        finish += timedelta(days=1)
    return minutes_between(begin, finish)


def day_of_week(value: date) -> int:
    """Day index with 0 = Sunday, matching the schedule configuration."""
    return (value.weekday() + 1) % 7


def start_of_next_day(value: date) -> datetime:
    return datetime.combine(value + timedelta(days=1), time.min)


def format_minutes(minutes: int) -> str:
    """Render signed minutes as hours, e.g. 150 -> "2h 30min", -75 -> "-1h 15min"."""
    negative = minutes < 0
    hours, rest = divmod(abs(int(minutes)), 60)

    parts = []
    if hours:
        parts.append(f"{hours}h")
    if rest:
        parts.append(f"{rest}min")
    text = " ".join(parts) or "0min"
    return f"-{text}" if negative else text
