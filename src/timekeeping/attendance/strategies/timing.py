from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional, Sequence

from ...common.datetime_utils import minutes_between
from ...schedules.model import WorkShift


def shift_start(now: datetime, shift: WorkShift) -> datetime:
    """Latest acceptable start; flexible shifts move it by their flexibility window."""
    start = datetime.combine(now.date(), shift.start_time)
    if shift.is_flexible:
        start += timedelta(minutes=shift.flexibility_minutes)
    return start


def shift_end(now: datetime, shift: WorkShift) -> datetime:
    start = datetime.combine(now.date(), shift.start_time)
    return start + timedelta(minutes=shift.duration_minutes)


def minutes_after_start(now: datetime, shift: WorkShift) -> int:
    return minutes_between(shift_start(now, shift), now)


def nearest_shift(now: datetime, shifts: Sequence[WorkShift]) -> Optional[WorkShift]:
    if not shifts:
        return None
    return min(shifts, key=lambda s: abs((shift_start(now, s) - now).total_seconds()))
