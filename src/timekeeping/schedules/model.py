from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Optional

from ..common.datetime_utils import window_minutes
from ..core.enums import ScheduleType


@dataclass(frozen=True)
class WorkShift:
    """Expected working window for one day."""

    shift_id: int
    name: str
    start_time: time
    end_time: time
    is_flexible: bool = False
    flexibility_minutes: int = 0

    @property
    def duration_minutes(self) -> int:
        return window_minutes(self.start_time, self.end_time)


@dataclass(frozen=True)
class BreakConfig:
    break_id: int
    name: str
    start_time: time
    end_time: time
    is_paid: bool = False
    is_required: bool = False
    minimum_duration: int = 0
    maximum_duration: int = 0

    @property
    def window_minutes(self) -> int:
        return window_minutes(self.start_time, self.end_time)


@dataclass(frozen=True)
class Tolerance:
    """Grace windows in minutes."""

    entry_minutes: int = 0
    exit_minutes: int = 0
    lunch_minutes: int = 0


@dataclass(frozen=True)
class WorkDay:
    day_of_week: int  # 0 = Sunday
    is_work_day: bool
    shifts: tuple[WorkShift, ...] = ()


@dataclass(frozen=True)
class WorkSchedule:
    """Employer-supplied schedule configuration. Never mutated once assigned."""

    schedule_id: int
    name: str
    schedule_type: ScheduleType
    work_days: tuple[WorkDay, ...]
    tolerance: Tolerance = field(default_factory=Tolerance)
    breaks: tuple[BreakConfig, ...] = ()
    allow_overtime: bool = True
    require_justification: bool = False
    is_active: bool = True
    description: Optional[str] = None

    def day(self, day_of_week: int) -> Optional[WorkDay]:
        for work_day in self.work_days:
            if work_day.day_of_week == day_of_week:
                return work_day
        return None


@dataclass(frozen=True)
class ScheduleAssignment:
    """Versioned link between an employee and a schedule over a date range."""

    assignment_id: int
    employee_id: int
    schedule_id: int
    start_date: date
    end_date: Optional[date]
    created_at: datetime
    assigned_by: Optional[int] = None
    note: Optional[str] = None

    def covers(self, work_date: date) -> bool:
        if work_date < self.start_date:
            return False
        return self.end_date is None or work_date <= self.end_date


@dataclass(frozen=True)
class ResolvedDay:
    """What the employee is expected to work on one date."""

    employee_id: int
    work_date: date
    schedule_id: int
    shifts: tuple[WorkShift, ...]
    breaks: tuple[BreakConfig, ...]
    tolerance: Tolerance
    allow_overtime: bool = True
    require_justification: bool = False
    warnings: tuple[str, ...] = ()

    @property
    def is_work_day(self) -> bool:
        return bool(self.shifts)

    @property
    def expected_minutes(self) -> int:
        if not self.shifts:
            return 0
        scheduled = sum(s.duration_minutes for s in self.shifts)
        unpaid_breaks = sum(b.window_minutes for b in self.breaks if not b.is_paid)
        return max(scheduled - unpaid_breaks, 0)
