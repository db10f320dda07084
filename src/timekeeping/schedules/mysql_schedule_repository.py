from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import ScheduleType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dumps, fetchall, fetchone, loads, normalize_mysql_date
from .codec import (
    break_config_from_dict,
    break_config_to_dict,
    tolerance_from_dict,
    tolerance_to_dict,
    work_days_from_list,
    work_days_to_list,
)
from .model import ScheduleAssignment, WorkSchedule
from .repository import ScheduleRepository


class MySQLScheduleRepository(ScheduleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_schedule(self, schedule_id: int) -> Optional[WorkSchedule]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT schedule_id, name, description, schedule_type, work_days, tolerance, breaks,
                       allow_overtime, require_justification, is_active
                FROM work_schedules
                WHERE schedule_id=%s
                """,
                (int(schedule_id),),
            )
            r = fetchone(cur)
            if not r:
                return None
            return WorkSchedule(
                schedule_id=int(r["schedule_id"]),
                name=r["name"],
                description=r.get("description"),
                schedule_type=ScheduleType(r["schedule_type"]),
                work_days=work_days_from_list(loads(r.get("work_days"), [])),
                tolerance=tolerance_from_dict(loads(r.get("tolerance"), {})),
                breaks=tuple(break_config_from_dict(b) for b in loads(r.get("breaks"), [])),
                allow_overtime=bool(r["allow_overtime"]),
                require_justification=bool(r["require_justification"]),
                is_active=bool(r["is_active"]),
            )

    def list_assignments(self, *, employee_id: int) -> Sequence[ScheduleAssignment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT assignment_id, employee_id, schedule_id, start_date, end_date,
                       created_at, assigned_by, note
                FROM schedule_assignments
                WHERE employee_id=%s
                ORDER BY assignment_id
                """,
                (int(employee_id),),
            )
            rows = fetchall(cur)
            return [
                ScheduleAssignment(
                    assignment_id=int(r["assignment_id"]),
                    employee_id=int(r["employee_id"]),
                    schedule_id=int(r["schedule_id"]),
                    start_date=normalize_mysql_date(r["start_date"]),
                    end_date=normalize_mysql_date(r.get("end_date")),
                    created_at=r["created_at"],
                    assigned_by=r.get("assigned_by"),
                    note=r.get("note"),
                )
                for r in rows
            ]

    def add_schedule(self, schedule: WorkSchedule) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO work_schedules(
                    name, description, schedule_type, work_days, tolerance, breaks,
                    allow_overtime, require_justification, is_active
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    schedule.name,
                    schedule.description,
                    schedule.schedule_type.value,
                    dumps(work_days_to_list(schedule.work_days)),
                    dumps(tolerance_to_dict(schedule.tolerance)),
                    dumps([break_config_to_dict(b) for b in schedule.breaks]),
                    int(schedule.allow_overtime),
                    int(schedule.require_justification),
                    int(schedule.is_active),
                ),
            )
            return int(cur.lastrowid)

    def add_assignment(
        self,
        *,
        employee_id: int,
        schedule_id: int,
        start_date: date,
        end_date: Optional[date],
        created_at: datetime,
        assigned_by: Optional[int] = None,
        note: Optional[str] = None,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO schedule_assignments(
                    employee_id, schedule_id, start_date, end_date, created_at, assigned_by, note
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (int(employee_id), int(schedule_id), start_date, end_date, created_at, assigned_by, note),
            )
            return int(cur.lastrowid)
