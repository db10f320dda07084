from __future__ import annotations

from datetime import date, datetime, time, timedelta

import pytest

from conftest import EMPLOYEE, MONDAY, office_schedule
from timekeeping.core.enums import Role
from timekeeping.core.exceptions import NoScheduleAssigned
from timekeeping.database.memory import MemoryStore
from timekeeping.schedules.memory_schedule_repository import MemoryScheduleRepository
from timekeeping.schedules.model import WorkDay, WorkShift
from timekeeping.schedules.resolver import ScheduleResolver


def _repo_with(*schedules):
    repo = MemoryScheduleRepository(MemoryStore())
    ids = [repo.add_schedule(s) for s in schedules]
    return repo, ids


def test_resolves_weekday_shift_breaks_and_expected_minutes():
    repo, (schedule_id,) = _repo_with(office_schedule())
    repo.add_assignment(employee_id=EMPLOYEE, schedule_id=schedule_id, start_date=date(2026, 1, 1), end_date=None,
                        created_at=datetime(2026, 1, 1, 9, 0))

    day = ScheduleResolver(repo).resolve(EMPLOYEE, MONDAY)

    assert day.is_work_day
    assert [s.start_time for s in day.shifts] == [time(8, 0)]
    assert [b.name for b in day.breaks] == ["Lunch"]
    assert day.tolerance.entry_minutes == 10
    # 570 scheduled minutes minus the 90-minute unpaid lunch window
    assert day.expected_minutes == 480
    assert day.warnings == ()


def test_weekend_resolves_to_non_work_day():
    repo, (schedule_id,) = _repo_with(office_schedule())
    repo.add_assignment(employee_id=EMPLOYEE, schedule_id=schedule_id, start_date=date(2026, 1, 1), end_date=None,
                        created_at=datetime(2026, 1, 1, 9, 0))

    day = ScheduleResolver(repo).resolve(EMPLOYEE, date(2026, 3, 1))  # Sunday

    assert not day.is_work_day
    assert day.shifts == ()
    assert day.breaks == ()
    assert day.expected_minutes == 0


def test_no_assignment_raises():
    repo, _ = _repo_with(office_schedule())

    with pytest.raises(NoScheduleAssigned):
        ScheduleResolver(repo).resolve(EMPLOYEE, MONDAY)


def test_date_outside_assignment_interval_raises():
    repo, (schedule_id,) = _repo_with(office_schedule())
    repo.add_assignment(employee_id=EMPLOYEE, schedule_id=schedule_id, start_date=date(2026, 1, 1),
                        end_date=date(2026, 2, 28), created_at=datetime(2026, 1, 1, 9, 0))

    with pytest.raises(NoScheduleAssigned):
        ScheduleResolver(repo).resolve(EMPLOYEE, MONDAY)


def test_inactive_schedule_is_not_resolved():
    repo, (schedule_id,) = _repo_with(office_schedule(is_active=False))
    repo.add_assignment(employee_id=EMPLOYEE, schedule_id=schedule_id, start_date=date(2026, 1, 1), end_date=None,
                        created_at=datetime(2026, 1, 1, 9, 0))

    with pytest.raises(NoScheduleAssigned):
        ScheduleResolver(repo).resolve(EMPLOYEE, MONDAY)


def test_later_assignment_supersedes_without_warning():
    late_shift = WorkShift(shift_id=2, name="Late", start_time=time(10, 0), end_time=time(19, 0))
    late = office_schedule(
        name="Late hours",
        work_days=tuple(WorkDay(day_of_week=d, is_work_day=0 < d < 6, shifts=(late_shift,) if 0 < d < 6 else ()) for d in range(7)),
    )
    repo, (office_id, late_id) = _repo_with(office_schedule(), late)
    repo.add_assignment(employee_id=EMPLOYEE, schedule_id=office_id, start_date=date(2026, 1, 1), end_date=None,
                        created_at=datetime(2026, 1, 1, 9, 0))
    repo.add_assignment(employee_id=EMPLOYEE, schedule_id=late_id, start_date=date(2026, 3, 1), end_date=None,
                        created_at=datetime(2026, 2, 20, 9, 0))
    resolver = ScheduleResolver(repo)

    before = resolver.resolve(EMPLOYEE, date(2026, 2, 23))
    after = resolver.resolve(EMPLOYEE, MONDAY)

    assert before.schedule_id == office_id
    assert after.schedule_id == late_id
    assert after.shifts[0].start_time == time(10, 0)
    assert after.warnings == ()


def test_overlapping_assignments_pick_most_recent_and_warn():
    repo, (first_id, second_id) = _repo_with(office_schedule(), office_schedule(name="Copy"))
    repo.add_assignment(employee_id=EMPLOYEE, schedule_id=first_id, start_date=date(2026, 3, 1), end_date=None,
                        created_at=datetime(2026, 2, 25, 9, 0))
    repo.add_assignment(employee_id=EMPLOYEE, schedule_id=second_id, start_date=date(2026, 2, 1), end_date=None,
                        created_at=datetime(2026, 2, 26, 9, 0))

    day = ScheduleResolver(repo).resolve(EMPLOYEE, MONDAY)

    assert day.schedule_id == second_id
    assert len(day.warnings) == 1
    assert "Overlapping" in day.warnings[0]


def test_resolution_is_cached_until_invalidated(container):
    first = container.resolver.resolve(EMPLOYEE, MONDAY)
    assert container.resolver.resolve(EMPLOYEE, MONDAY) is first

    replacement = container.schedule_service.create_schedule(current_role=Role.ADMIN, schedule=office_schedule())
    container.schedule_service.assign(
        current_role=Role.HR_MANAGER, employee_id=EMPLOYEE, schedule_id=replacement, start_date=MONDAY,
    )

    assert container.resolver.resolve(EMPLOYEE, MONDAY).schedule_id == replacement


def test_cache_keeps_only_the_most_recently_used_days():
    repo, (office_id, late_id) = _repo_with(office_schedule(), office_schedule(name="Late"))
    repo.add_assignment(employee_id=EMPLOYEE, schedule_id=office_id, start_date=date(2026, 1, 1), end_date=None,
                        created_at=datetime(2026, 1, 1, 9, 0))
    resolver = ScheduleResolver(repo, cache_size=2)
    tuesday, wednesday = MONDAY + timedelta(days=1), MONDAY + timedelta(days=2)

    for day in (MONDAY, tuesday, wednesday):
        assert resolver.resolve(EMPLOYEE, day).schedule_id == office_id

    repo.add_assignment(employee_id=EMPLOYEE, schedule_id=late_id, start_date=date(2026, 1, 1), end_date=None,
                        created_at=datetime(2026, 2, 1, 9, 0))

    assert resolver.resolve(EMPLOYEE, wednesday).schedule_id == office_id
    assert resolver.resolve(EMPLOYEE, MONDAY).schedule_id == late_id
