from __future__ import annotations

from datetime import date, datetime, time, timedelta
from types import SimpleNamespace

import pytest

from timekeeping.container import build_memory_container
from timekeeping.core.enums import Role, ScheduleType
from timekeeping.identity.provider import StaticRoleProvider
from timekeeping.schedules.model import BreakConfig, Tolerance, WorkDay, WorkSchedule, WorkShift

# 2026-03-02 is a Monday.
MONDAY = date(2026, 3, 2)

EMPLOYEE = 1
OTHER_EMPLOYEE = 2
SUPERVISOR = 10
HR_MANAGER = 20
ADMIN = 30


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, value: datetime) -> None:
        self.now = value

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def at(hh: int, mm: int = 0, *, day: date = MONDAY) -> datetime:
    return datetime.combine(day, time(hh, mm))


def office_schedule(**overrides) -> WorkSchedule:
    """08:00-17:30 Mon-Fri with an unpaid, required 90-minute lunch window (expected 480 min)."""
    shift = WorkShift(shift_id=1, name="Office", start_time=time(8, 0), end_time=time(17, 30))
    values = dict(
        schedule_id=0,
        name="Office hours",
        schedule_type=ScheduleType.FIXED,
        work_days=tuple(
            WorkDay(day_of_week=d, is_work_day=0 < d < 6, shifts=(shift,) if 0 < d < 6 else ())
            for d in range(7)
        ),
        tolerance=Tolerance(entry_minutes=10, exit_minutes=10, lunch_minutes=15),
        breaks=(
            BreakConfig(
                break_id=1,
                name="Lunch",
                start_time=time(12, 0),
                end_time=time(13, 30),
                is_required=True,
                minimum_duration=30,
                maximum_duration=90,
            ),
        ),
    )
    values.update(overrides)
    return WorkSchedule(**values)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(at(7, 0))


@pytest.fixture
def settings():
    return SimpleNamespace(
        HOUR_BANK_MAX_POSITIVE_MINUTES=2400,
        HOUR_BANK_MAX_NEGATIVE_MINUTES=600,
        HIGH_IMPACT_EDIT_MINUTES=120,
        AUTO_APPROVE_SESSION_DELTAS=True,
    )


@pytest.fixture
def roles() -> StaticRoleProvider:
    return StaticRoleProvider({
        EMPLOYEE: Role.EMPLOYEE,
        OTHER_EMPLOYEE: Role.EMPLOYEE,
        SUPERVISOR: Role.SUPERVISOR,
        HR_MANAGER: Role.HR_MANAGER,
        ADMIN: Role.ADMIN,
    })


@pytest.fixture
def container(clock, settings, roles):
    """Memory-backed container with the office schedule assigned to both employees from 2026-01-01."""
    c = build_memory_container(settings=settings, roles=roles, clock=clock)
    schedule_id = c.schedule_service.create_schedule(current_role=Role.ADMIN, schedule=office_schedule())
    for employee_id in (EMPLOYEE, OTHER_EMPLOYEE):
        c.schedule_service.assign(
            current_role=Role.ADMIN,
            employee_id=employee_id,
            schedule_id=schedule_id,
            start_date=date(2026, 1, 1),
        )
    return c
