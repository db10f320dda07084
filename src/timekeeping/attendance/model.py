from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import minutes_between
from ..core.enums import BreakType, ClockRecordType, ClockState, ComplianceFlag, SessionStatus


@dataclass(frozen=True)
class GeoLocation:
    latitude: float
    longitude: float
    accuracy: float = 0.0
    address: Optional[str] = None


@dataclass(frozen=True)
class ClockRecord:
    """A single clock event. Manual entries only differ by their provenance fields."""

    timestamp: datetime
    record_type: ClockRecordType
    location: Optional[GeoLocation] = None
    ip_address: Optional[str] = None
    is_manual: bool = False
    manual_reason: Optional[str] = None
    registered_by: Optional[int] = None


@dataclass(frozen=True)
class BreakRecord:
    break_type: BreakType
    start_time: datetime
    end_time: Optional[datetime] = None
    is_paid: bool = False
    break_config_id: Optional[int] = None
    flags: tuple[ComplianceFlag, ...] = ()

    @property
    def is_complete(self) -> bool:
        return self.end_time is not None

    @property
    def duration_minutes(self) -> Optional[int]:
        if self.end_time is None:
            return None
        return minutes_between(self.start_time, self.end_time)


@dataclass(frozen=True)
class TimeClockSession:
    """Domain entity: one employee, one calendar date."""

    session_id: int
    employee_id: int
    work_date: date
    clock_in: ClockRecord
    status: SessionStatus
    expected_minutes: int = 0
    clock_out: Optional[ClockRecord] = None
    breaks: tuple[BreakRecord, ...] = ()
    total_worked_minutes: int = 0
    overtime_minutes: int = 0
    overtime_billable: bool = True
    is_late: bool = False
    minutes_late: int = 0
    justification: Optional[str] = None
    flags: tuple[ComplianceFlag, ...] = ()
    schedule_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.status == SessionStatus.ACTIVE

    @property
    def active_break(self) -> Optional[BreakRecord]:
        for record in self.breaks:
            if not record.is_complete:
                return record
        return None

    @property
    def state(self) -> ClockState:
        if self.status == SessionStatus.COMPLETED:
            return ClockState.FINISHED
        if self.status == SessionStatus.INTERRUPTED:
            return ClockState.INTERRUPTED
        return ClockState.ON_BREAK if self.active_break else ClockState.WORKING

    @property
    def break_minutes(self) -> int:
        return sum(b.duration_minutes or 0 for b in self.breaks)


@dataclass(frozen=True)
class TodayStats:
    """Live view of the current employee-day."""

    state: ClockState
    worked_minutes: int = 0
    expected_minutes: int = 0
    break_minutes: int = 0
    remaining_minutes: int = 0
    overtime_minutes: int = 0
