from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable, Optional

from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty, require_positive_id
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, NotFoundError, ValidationError
from .model import ResolvedDay, WorkSchedule
from .repository import ScheduleRepository
from .resolver import ScheduleResolver

logger = logging.getLogger(__name__)

SCHEDULE_MANAGERS = {Role.ADMIN, Role.HR_MANAGER}


class ScheduleService:
    def __init__(
        self,
        schedules: ScheduleRepository,
        resolver: ScheduleResolver,
        *,
        clock: Callable[[], datetime] = now_local,
    ):
        self._schedules = schedules
        self._resolver = resolver
        self._clock = clock

    def assign(
        self,
        *,
        current_role: Role,
        employee_id: int,
        schedule_id: int,
        start_date: date,
        end_date: Optional[date] = None,
        assigned_by: Optional[int] = None,
        note: Optional[str] = None,
    ) -> int:
        """Add a new assignment version that supersedes older ones from start_date."""
        if current_role not in SCHEDULE_MANAGERS:
            raise AuthorizationError("Not allowed to assign schedules")

        require_positive_id(employee_id, "Employee")
        require_positive_id(schedule_id, "Schedule")
        if end_date is not None and end_date < start_date:
            raise ValidationError("End date must be on or after start date")

        schedule = self._schedules.get_schedule(int(schedule_id))
        if schedule is None:
            raise NotFoundError(f"Schedule #{schedule_id} not found")
        if not schedule.is_active:
            raise ValidationError(f"Schedule #{schedule_id} is inactive")

        assignment_id = self._schedules.add_assignment(
            employee_id=int(employee_id),
            schedule_id=int(schedule_id),
            start_date=start_date,
            end_date=end_date,
            created_at=self._clock(),
            assigned_by=assigned_by,
            note=note.strip() if note else None,
        )
        self._resolver.invalidate(int(employee_id))
        logger.info("assigned schedule %s to employee %s from %s", schedule_id, employee_id, start_date)
        return assignment_id

    def create_schedule(self, *, current_role: Role, schedule: WorkSchedule) -> int:
        if current_role not in SCHEDULE_MANAGERS:
            raise AuthorizationError("Not allowed to create schedules")

        require_non_empty(schedule.name, "Schedule name")
        days = [d.day_of_week for d in schedule.work_days]
        if any(d < 0 or d > 6 for d in days) or len(days) != len(set(days)):
            raise ValidationError("Work days must be distinct values between 0 (Sunday) and 6")

        schedule_id = self._schedules.add_schedule(schedule)
        logger.info("created schedule %s (%s)", schedule_id, schedule.name)
        return schedule_id

    def get_schedule(self, schedule_id: int) -> WorkSchedule:
        schedule = self._schedules.get_schedule(int(schedule_id))
        if schedule is None:
            raise NotFoundError(f"Schedule #{schedule_id} not found")
        return schedule

    def resolve_day(self, employee_id: int, work_date: date) -> ResolvedDay:
        return self._resolver.resolve(employee_id, work_date)
