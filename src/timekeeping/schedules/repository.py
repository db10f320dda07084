from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from .model import ScheduleAssignment, WorkSchedule


class ScheduleRepository(Protocol):
    """Read side of the external schedule configuration store."""

    def get_schedule(self, schedule_id: int) -> Optional[WorkSchedule]:
        raise NotImplementedError

    def list_assignments(self, *, employee_id: int) -> Sequence[ScheduleAssignment]:
        raise NotImplementedError

    def add_schedule(self, schedule: WorkSchedule) -> int:
        raise NotImplementedError

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
        """Record a new assignment version. Existing rows are never updated.

        Returns assignment_id.
        """

        raise NotImplementedError
