from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Optional, Sequence

from ..database.memory import MemoryStore
from .model import ScheduleAssignment, WorkSchedule
from .repository import ScheduleRepository


class MemoryScheduleRepository(ScheduleRepository):
    def __init__(self, store: MemoryStore):
        self._store = store

    def get_schedule(self, schedule_id: int) -> Optional[WorkSchedule]:
        return self._store.table("work_schedules").get(int(schedule_id))

    def list_assignments(self, *, employee_id: int) -> Sequence[ScheduleAssignment]:
        rows = self._store.rows("schedule_assignments")
        return sorted((a for a in rows if a.employee_id == int(employee_id)), key=lambda a: a.assignment_id)

    def add_schedule(self, schedule: WorkSchedule) -> int:
        with self._store.lock:
            schedule_id = schedule.schedule_id or self._store.next_id("work_schedules")
            self._store.table("work_schedules")[schedule_id] = replace(schedule, schedule_id=schedule_id)
            return schedule_id

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
        with self._store.lock:
            assignment_id = self._store.next_id("schedule_assignments")
            self._store.table("schedule_assignments")[assignment_id] = ScheduleAssignment(
                assignment_id=assignment_id,
                employee_id=int(employee_id),
                schedule_id=int(schedule_id),
                start_date=start_date,
                end_date=end_date,
                created_at=created_at,
                assigned_by=assigned_by,
                note=note,
            )
            return assignment_id
