from __future__ import annotations

from datetime import time

from timekeeping.container import build_container
from timekeeping.core.enums import Role, ScheduleType
from timekeeping.database.mysql_base import db_cursor
from timekeeping.main import configure_logging, load_settings
from timekeeping.common.datetime_utils import now_local
from timekeeping.schedules.model import BreakConfig, Tolerance, WorkDay, WorkSchedule, WorkShift

DEMO_EMPLOYEES = [
    ("Admin Demo", Role.ADMIN),
    ("HR Demo", Role.HR_MANAGER),
    ("Supervisor Demo", Role.SUPERVISOR),
    ("Employee Demo", Role.EMPLOYEE),
]


def office_schedule() -> WorkSchedule:
    shift = WorkShift(shift_id=1, name="Office", start_time=time(8, 0), end_time=time(17, 30))
    return WorkSchedule(
        schedule_id=0,
        name="Office hours",
        schedule_type=ScheduleType.FIXED,
        work_days=tuple(WorkDay(day_of_week=d, is_work_day=0 < d < 6, shifts=(shift,) if 0 < d < 6 else ()) for d in range(7)),
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


def main() -> None:
    settings = load_settings()
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    container = build_container(db_config=dict(settings.DB_CONFIG), settings=settings)

    employee_ids = []
    with db_cursor(container.transactions) as (_, cur):
        for full_name, role in DEMO_EMPLOYEES:
            cur.execute("INSERT INTO employees(full_name, role) VALUES(%s, %s)", (full_name, role.value))
            employee_ids.append(int(cur.lastrowid))

    schedule_id = container.schedule_service.create_schedule(current_role=Role.ADMIN, schedule=office_schedule())
    for employee_id in employee_ids:
        container.schedule_service.assign(
            current_role=Role.ADMIN,
            employee_id=employee_id,
            schedule_id=schedule_id,
            start_date=now_local().date().replace(day=1),
            assigned_by=employee_ids[0],
        )

    print(f"OK: Seeded {len(employee_ids)} employee(s) on schedule #{schedule_id}")


if __name__ == "__main__":
    main()
