from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import date
from threading import Lock
from typing import Optional

from ..common.datetime_utils import day_of_week
from ..core.constants import RESOLVER_CACHE_SIZE
from ..core.exceptions import NoScheduleAssigned
from .model import ResolvedDay, ScheduleAssignment
from .repository import ScheduleRepository

logger = logging.getLogger(__name__)


class ScheduleResolver:
    """Resolve the expected shifts, breaks and tolerances of an employee-day.

    Resolution has no side effects, so results are cached per
    (employee_id, date) until `invalidate` is called. The cache keeps the
    `cache_size` most recently used days.
    """

    def __init__(self, schedules: ScheduleRepository, *, cache_size: int = RESOLVER_CACHE_SIZE):
        self._schedules = schedules
        self._cache: OrderedDict[tuple[int, date], ResolvedDay] = OrderedDict()
        self._cache_size = max(int(cache_size), 1)
        self._cache_lock = Lock()

    def resolve(self, employee_id: int, work_date: date) -> ResolvedDay:
        key = (int(employee_id), work_date)
        with self._cache_lock:
            cached = self._cache.get(key)
            if cached is not None:
                self._cache.move_to_end(key)
                return cached

        resolved = self._resolve(int(employee_id), work_date)
        with self._cache_lock:
            self._cache[key] = resolved
            while len(self._cache) > self._cache_size:
                self._cache.popitem(last=False)
        return resolved

    def invalidate(self, employee_id: Optional[int] = None) -> None:
        with self._cache_lock:
            if employee_id is None:
                self._cache.clear()
                return
            for key in [k for k in self._cache if k[0] == int(employee_id)]:
                del self._cache[key]

    def _resolve(self, employee_id: int, work_date: date) -> ResolvedDay:
        candidates = [a for a in self._schedules.list_assignments(employee_id=employee_id) if a.covers(work_date)]
        if not candidates:
            raise NoScheduleAssigned(f"No schedule assigned to employee {employee_id} on {work_date.isoformat()}")

        winner = max(candidates, key=lambda a: (a.created_at, a.assignment_id))
        warnings: list[str] = []
        if _is_ambiguous(winner, candidates):
            message = (
                f"Overlapping schedule assignments for employee {employee_id} on {work_date.isoformat()}; "
                f"using assignment #{winner.assignment_id}"
            )
            logger.warning(message)
            warnings.append(message)

        schedule = self._schedules.get_schedule(winner.schedule_id)
        if schedule is None or not schedule.is_active:
            raise NoScheduleAssigned(f"Schedule #{winner.schedule_id} is missing or inactive")

        work_day = schedule.day(day_of_week(work_date))
        shifts = work_day.shifts if work_day and work_day.is_work_day else ()

        return ResolvedDay(
            employee_id=employee_id,
            work_date=work_date,
            schedule_id=schedule.schedule_id,
            shifts=tuple(shifts),
            breaks=schedule.breaks if shifts else (),
            tolerance=schedule.tolerance,
            allow_overtime=schedule.allow_overtime,
            require_justification=schedule.require_justification,
            warnings=tuple(warnings),
        )


def _is_ambiguous(winner: ScheduleAssignment, candidates: list[ScheduleAssignment]) -> bool:
    # A newer assignment starting after the older ones supersedes them as of its
    # start date; anything else covering the same day is an upstream overlap.
    others = [a for a in candidates if a.assignment_id != winner.assignment_id]
    return any(other.start_date >= winner.start_date for other in others)
