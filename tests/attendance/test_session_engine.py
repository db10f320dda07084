from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import date, time, timedelta

import pytest

from conftest import EMPLOYEE, MONDAY, OTHER_EMPLOYEE, at, office_schedule
from timekeeping.attendance.model import BreakRecord
from timekeeping.core.enums import BreakType, ClockState, ComplianceFlag, Role, SessionStatus
from timekeeping.core.exceptions import (
    AlreadyClockedIn,
    BreakAlreadyActive,
    NoActiveBreak,
    NoActiveSession,
    NoScheduleAssigned,
    NotFoundError,
    TimestampBeforeClockIn,
    ValidationError,
)
from timekeeping.schedules.model import WorkDay, WorkShift

TUESDAY = MONDAY + timedelta(days=1)


def _full_day(service, *, clock_in=(8, 0), lunch=((12, 0), (13, 30)), clock_out=(17, 30)):
    service.clock_in(EMPLOYEE, timestamp=at(*clock_in))
    if lunch:
        service.start_break(EMPLOYEE, BreakType.LUNCH, timestamp=at(*lunch[0]))
        service.end_break(EMPLOYEE, timestamp=at(*lunch[1]))
    return service.clock_out(EMPLOYEE, timestamp=at(*clock_out))


def test_clock_in_within_entry_tolerance_is_not_late(container):
    session = container.attendance_service.clock_in(EMPLOYEE, timestamp=at(8, 10))

    assert session.status == SessionStatus.ACTIVE
    assert session.is_late is False
    assert session.minutes_late == 0
    assert session.expected_minutes == 480
    assert session.flags == ()


def test_clock_in_after_tolerance_is_late_counted_from_shift_start(container):
    session = container.attendance_service.clock_in(EMPLOYEE, timestamp=at(8, 25))

    assert session.is_late is True
    assert session.minutes_late == 25
    assert ComplianceFlag.JUSTIFICATION_REQUIRED in session.flags


def test_second_clock_in_fails_and_clock_out_completes(container):
    service = container.attendance_service
    service.clock_in(EMPLOYEE, timestamp=at(8, 0))

    with pytest.raises(AlreadyClockedIn):
        service.clock_in(EMPLOYEE, timestamp=at(8, 5))

    closed = service.clock_out(EMPLOYEE, timestamp=at(17, 30))
    assert closed.status == SessionStatus.COMPLETED

    with pytest.raises(AlreadyClockedIn):
        service.clock_in(EMPLOYEE, timestamp=at(18, 0))


def test_unpaid_lunch_is_subtracted_from_worked_time(container):
    closed = _full_day(container.attendance_service)

    assert closed.total_worked_minutes == 480
    assert closed.overtime_minutes == 0
    assert closed.breaks[0].is_paid is False
    assert closed.breaks[0].break_config_id == 1
    assert closed.breaks[0].duration_minutes == 90
    assert closed.flags == ()
    assert closed.state == ClockState.FINISHED


@pytest.mark.parametrize(
    "lunch,clock_out",
    [
        (((12, 0), (13, 30)), (17, 30)),
        (((10, 0), (10, 20)), (16, 0)),
        (None, (19, 45)),
    ],
)
def test_worked_time_never_exceeds_elapsed_time(container, lunch, clock_out):
    closed = _full_day(container.attendance_service, lunch=lunch, clock_out=clock_out)

    elapsed = int((closed.clock_out.timestamp - closed.clock_in.timestamp).total_seconds() // 60)
    assert 0 <= closed.total_worked_minutes <= elapsed


def test_clock_out_requires_open_session_and_later_timestamp(container):
    service = container.attendance_service

    with pytest.raises(NoActiveSession):
        service.clock_out(EMPLOYEE, timestamp=at(17, 0))

    service.clock_in(EMPLOYEE, timestamp=at(8, 0))
    with pytest.raises(TimestampBeforeClockIn):
        service.clock_out(EMPLOYEE, timestamp=at(8, 0))


def test_break_state_errors(container):
    service = container.attendance_service

    with pytest.raises(NoActiveSession):
        service.start_break(EMPLOYEE, timestamp=at(12, 0))

    service.clock_in(EMPLOYEE, timestamp=at(8, 0))
    with pytest.raises(NoActiveBreak):
        service.end_break(EMPLOYEE, timestamp=at(12, 0))

    service.start_break(EMPLOYEE, timestamp=at(12, 0))
    with pytest.raises(BreakAlreadyActive):
        service.start_break(EMPLOYEE, BreakType.COFFEE, timestamp=at(12, 10))


def test_short_and_long_breaks_are_flagged_not_rejected(container):
    service = container.attendance_service
    service.clock_in(EMPLOYEE, timestamp=at(8, 0))

    service.start_break(EMPLOYEE, timestamp=at(12, 0))
    short = service.end_break(EMPLOYEE, timestamp=at(12, 20)).breaks[-1]
    assert short.flags == (ComplianceFlag.BREAK_TOO_SHORT,)

    service.start_break(EMPLOYEE, timestamp=at(12, 30))
    long = service.end_break(EMPLOYEE, timestamp=at(14, 30)).breaks[-1]
    assert long.flags == (ComplianceFlag.BREAK_TOO_LONG,)


def test_break_outside_configured_windows_is_unpaid_and_unmatched(container):
    service = container.attendance_service
    service.clock_in(EMPLOYEE, timestamp=at(8, 0))

    session = service.start_break(EMPLOYEE, BreakType.COFFEE, timestamp=at(10, 0))

    assert session.active_break.break_config_id is None
    assert session.active_break.is_paid is False
    assert session.state == ClockState.ON_BREAK


def test_clock_out_closes_open_break_at_clock_out_time(container):
    service = container.attendance_service
    service.clock_in(EMPLOYEE, timestamp=at(8, 0))
    service.start_break(EMPLOYEE, timestamp=at(12, 0))

    closed = service.clock_out(EMPLOYEE, timestamp=at(13, 0))

    assert closed.breaks[0].end_time == at(13, 0)
    assert closed.total_worked_minutes == 240
    assert ComplianceFlag.EARLY_LEAVE in closed.flags


def test_missing_required_break_and_billable_overtime(container):
    closed = _full_day(container.attendance_service, lunch=None)

    assert closed.total_worked_minutes == 570
    assert closed.overtime_minutes == 90
    assert closed.overtime_billable is True
    assert ComplianceFlag.REQUIRED_BREAK_MISSING in closed.flags
    assert container.ledger.get_hour_bank(EMPLOYEE).current_balance == 90


def test_disallowed_overtime_is_recorded_but_not_billable(container):
    strict = container.schedule_service.create_schedule(
        current_role=Role.ADMIN, schedule=office_schedule(allow_overtime=False),
    )
    container.schedule_service.assign(current_role=Role.ADMIN, employee_id=EMPLOYEE, schedule_id=strict, start_date=MONDAY)

    closed = _full_day(container.attendance_service, clock_out=(18, 30))

    assert closed.overtime_minutes == 60
    assert closed.overtime_billable is False
    assert ComplianceFlag.OVERTIME_NOT_ALLOWED in closed.flags


def test_late_session_completes_with_standing_flag_until_justified(container):
    service = container.attendance_service
    service.clock_in(EMPLOYEE, timestamp=at(8, 25))

    closed = service.clock_out(EMPLOYEE, timestamp=at(17, 30))
    assert closed.status == SessionStatus.COMPLETED
    assert ComplianceFlag.JUSTIFICATION_REQUIRED in closed.flags

    justified = service.submit_justification(EMPLOYEE, MONDAY, "Train delayed")
    assert ComplianceFlag.JUSTIFICATION_REQUIRED not in justified.flags
    assert justified.justification == "Train delayed"


def test_justification_before_clock_out_clears_the_flag(container):
    service = container.attendance_service
    service.clock_in(EMPLOYEE, timestamp=at(8, 25))
    service.submit_justification(EMPLOYEE, MONDAY, "Doctor appointment")

    closed = service.clock_out(EMPLOYEE, timestamp=at(17, 30))

    assert ComplianceFlag.JUSTIFICATION_REQUIRED not in closed.flags


def test_force_close_day_interrupts_open_sessions_up_to_boundary(container):
    service = container.attendance_service
    service.clock_in(EMPLOYEE, timestamp=at(8, 0))
    service.start_break(EMPLOYEE, timestamp=at(12, 0))

    closed = service.force_close_day(MONDAY, boundary=at(18, 0))

    assert len(closed) == 1
    session = closed[0]
    assert session.status == SessionStatus.INTERRUPTED
    assert session.state == ClockState.INTERRUPTED
    assert session.clock_out is None
    assert session.breaks[0].end_time == at(18, 0)
    # 600 elapsed minus the 360-minute break that was still open
    assert session.total_worked_minutes == 240
    assert ComplianceFlag.CLOSED_WITHOUT_CLOCK_OUT in session.flags
    assert container.ledger.list_transactions(EMPLOYEE) == []


def test_force_close_day_is_idempotent(container):
    service = container.attendance_service
    service.clock_in(EMPLOYEE, timestamp=at(8, 0))

    first = service.force_close_day(MONDAY)
    second = service.force_close_day(MONDAY)

    assert len(first) == 1
    assert first[0].total_worked_minutes == 16 * 60
    assert second == []
    assert service.get_session(EMPLOYEE, MONDAY).status == SessionStatus.INTERRUPTED


def test_force_close_session_interrupts_one_session_and_is_then_a_no_op(container, clock):
    service = container.attendance_service
    service.clock_in(EMPLOYEE, timestamp=at(8, 0))
    service.clock_in(OTHER_EMPLOYEE, timestamp=at(8, 0))

    closed = service.force_close_session(EMPLOYEE, MONDAY, boundary=at(12, 0))

    assert closed.status == SessionStatus.INTERRUPTED
    assert closed.total_worked_minutes == 240
    assert ComplianceFlag.CLOSED_WITHOUT_CLOCK_OUT in closed.flags
    assert service.get_session(OTHER_EMPLOYEE, MONDAY).status == SessionStatus.ACTIVE

    clock.set(at(15, 0))
    assert service.force_close_session(EMPLOYEE, MONDAY) == closed
    assert service.get_session(EMPLOYEE, MONDAY) == closed


def test_force_close_session_defaults_to_now_and_needs_a_session(container, clock):
    service = container.attendance_service
    service.clock_in(EMPLOYEE, timestamp=at(8, 0))
    clock.set(at(10, 30))

    assert service.force_close_session(EMPLOYEE, MONDAY).total_worked_minutes == 150
    with pytest.raises(NotFoundError):
        service.force_close_session(EMPLOYEE, TUESDAY)


def test_force_close_day_waits_for_overnight_shifts_to_end(container, clock):
    night = WorkShift(shift_id=2, name="Night", start_time=time(22, 0), end_time=time(6, 0))
    nights = container.schedule_service.create_schedule(
        current_role=Role.ADMIN,
        schedule=office_schedule(
            name="Nights",
            work_days=tuple(WorkDay(day_of_week=d, is_work_day=True, shifts=(night,)) for d in range(7)),
            breaks=(),
        ),
    )
    container.schedule_service.assign(current_role=Role.ADMIN, employee_id=EMPLOYEE, schedule_id=nights, start_date=MONDAY)
    service = container.attendance_service
    service.clock_in(EMPLOYEE, timestamp=at(22, 0))

    clock.set(at(0, 5, day=TUESDAY))
    assert service.force_close_day(MONDAY) == []
    assert service.get_session(EMPLOYEE, MONDAY).is_open

    clock.set(at(7, 0, day=TUESDAY))
    closed = service.force_close_day(MONDAY)

    assert len(closed) == 1
    # shift end 06:00 plus the 10-minute exit tolerance
    assert closed[0].total_worked_minutes == 490
    assert closed[0].status == SessionStatus.INTERRUPTED


def test_clock_ins_for_different_employees_run_in_parallel(container):
    schedule_id = container.schedule_service.create_schedule(current_role=Role.ADMIN, schedule=office_schedule())
    employees = range(100, 400)
    for employee_id in employees:
        container.schedule_service.assign(
            current_role=Role.ADMIN, employee_id=employee_id, schedule_id=schedule_id, start_date=MONDAY,
        )
    service = container.attendance_service

    def clock_in(employee_id):
        service.clock_in(employee_id, timestamp=at(8, 0))
        return service.get_session(employee_id, MONDAY)

    with ThreadPoolExecutor(max_workers=8) as pool:
        sessions = list(pool.map(clock_in, employees))

    assert all(s.status == SessionStatus.ACTIVE for s in sessions)
    assert len({s.session_id for s in sessions}) == len(employees)


def test_overnight_session_is_closed_on_the_next_calendar_day(container):
    service = container.attendance_service
    service.clock_in(EMPLOYEE, timestamp=at(22, 0))

    closed = service.clock_out(EMPLOYEE, timestamp=at(2, 0, day=TUESDAY))

    assert closed.work_date == MONDAY
    assert closed.total_worked_minutes == 240


def test_manual_entries_need_reason_and_registrar(container):
    service = container.attendance_service

    with pytest.raises(ValidationError):
        service.clock_in(EMPLOYEE, timestamp=at(8, 0), is_manual=True, registered_by=20)

    session = service.clock_in(
        EMPLOYEE, timestamp=at(8, 0), is_manual=True, manual_reason="Badge reader offline", registered_by=20,
    )
    assert session.clock_in.is_manual is True
    assert session.clock_in.registered_by == 20


def test_clock_in_without_schedule_fails(container):
    with pytest.raises(NoScheduleAssigned):
        container.attendance_service.clock_in(99, timestamp=at(8, 0))


def test_state_machine_and_live_stats(container, clock):
    service = container.attendance_service
    assert service.current_state(EMPLOYEE, today=MONDAY) == ClockState.NOT_STARTED

    service.clock_in(EMPLOYEE, timestamp=at(8, 0))
    assert service.current_state(EMPLOYEE, today=MONDAY) == ClockState.WORKING

    service.start_break(EMPLOYEE, timestamp=at(12, 0))
    assert service.current_state(EMPLOYEE, today=MONDAY) == ClockState.ON_BREAK

    service.end_break(EMPLOYEE, timestamp=at(12, 45))
    clock.set(at(14, 0))
    stats = service.today_stats(EMPLOYEE)
    assert stats.state == ClockState.WORKING
    assert stats.worked_minutes == 360 - 45
    assert stats.remaining_minutes == 480 - 315

    service.clock_out(EMPLOYEE, timestamp=at(17, 30))
    assert service.current_state(EMPLOYEE, today=MONDAY) == ClockState.FINISHED


def test_correction_creates_missing_session(container):
    service = container.attendance_service
    breaks = [BreakRecord(BreakType.LUNCH, start_time=at(12, 0, day=TUESDAY), end_time=at(13, 30, day=TUESDAY))]

    session = service.apply_correction(
        EMPLOYEE,
        TUESDAY,
        clock_in=at(8, 0, day=TUESDAY),
        clock_out=at(17, 30, day=TUESDAY),
        breaks=breaks,
        corrected_by=10,
        reason="Forgot to clock",
    )

    assert session.session_id > 0
    assert session.status == SessionStatus.COMPLETED
    assert session.total_worked_minutes == 480
    assert session.breaks[0].break_config_id == 1
    assert session.clock_in.is_manual is True
    assert service.get_session(EMPLOYEE, TUESDAY) == session


def test_correction_rejects_breaks_outside_the_session(container):
    service = container.attendance_service
    _full_day(service)

    with pytest.raises(ValidationError):
        service.apply_correction(
            EMPLOYEE,
            MONDAY,
            breaks=[BreakRecord(BreakType.LUNCH, start_time=at(17, 0), end_time=at(18, 0))],
        )


def test_preview_does_not_persist(container):
    service = container.attendance_service
    original = _full_day(service)

    preview = service.preview_correction(EMPLOYEE, MONDAY, clock_out=at(18, 30))

    assert preview.total_worked_minutes == 540
    assert service.get_session(EMPLOYEE, MONDAY) == original


def test_list_sessions_in_range(container):
    service = container.attendance_service
    _full_day(service)

    assert [s.work_date for s in service.list_sessions(EMPLOYEE, start=MONDAY, end=TUESDAY)] == [MONDAY]
    assert service.list_sessions(EMPLOYEE, start=date(2026, 1, 1), end=date(2026, 1, 31)) == []
