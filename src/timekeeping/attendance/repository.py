from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import TimeClockSession


class SessionRepository(Protocol):
    """Session table keyed by (employee_id, work_date)."""

    def get(self, employee_id: int, work_date: date) -> Optional[TimeClockSession]:
        raise NotImplementedError

    def add(self, session: TimeClockSession) -> int:
        """Insert a new session; the session_id on the argument is ignored.

        Returns session_id.
        """

        raise NotImplementedError

    def save(self, session: TimeClockSession) -> bool:
        """Overwrite the row identified by session.session_id."""

        raise NotImplementedError

    def list_open(self, *, work_date: date) -> Sequence[TimeClockSession]:
        raise NotImplementedError

    def list_for_employee(self, employee_id: int, *, start: date, end: date) -> Sequence[TimeClockSession]:
        raise NotImplementedError
