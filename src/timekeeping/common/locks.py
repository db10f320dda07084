from __future__ import annotations

from contextlib import contextmanager
from threading import Lock, RLock
from typing import Iterator


class EmployeeLocks:
    """Per-employee exclusive locks.

    Every mutating operation holds its employee's lock; operations on different
    employees never contend. Locks are re-entrant so a service may call another
    service for the same employee inside one unit of work.
    """

    def __init__(self) -> None:
        self._guard = Lock()
        self._locks: dict[int, RLock] = {}

    def _lock_for(self, employee_id: int) -> RLock:
        with self._guard:
            lock = self._locks.get(employee_id)
            if lock is None:
                lock = RLock()
                self._locks[employee_id] = lock
            return lock

    @contextmanager
    def hold(self, employee_id: int) -> Iterator[None]:
        with self._lock_for(int(employee_id)):
            yield
