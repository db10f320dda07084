from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Optional, Sequence

from ..core.exceptions import AlreadyClockedIn
from ..database.memory import MemoryStore
from .model import TimeClockSession
from .repository import SessionRepository

_TABLE = "time_clock_sessions"


class MemorySessionRepository(SessionRepository):
    def __init__(self, store: MemoryStore):
        self._store = store

    def get(self, employee_id: int, work_date: date) -> Optional[TimeClockSession]:
        for session in self._store.rows(_TABLE):
            if session.employee_id == int(employee_id) and session.work_date == work_date:
                return session
        return None

    def add(self, session: TimeClockSession) -> int:
        with self._store.lock:
            if self.get(session.employee_id, session.work_date) is not None:
                raise AlreadyClockedIn("A session already exists for this employee and date")
            session_id = self._store.next_id(_TABLE)
            self._store.table(_TABLE)[session_id] = replace(session, session_id=session_id)
            return session_id

    def save(self, session: TimeClockSession) -> bool:
        with self._store.lock:
            rows = self._store.table(_TABLE)
            if session.session_id not in rows:
                return False
            rows[session.session_id] = session
            return True

    def list_open(self, *, work_date: date) -> Sequence[TimeClockSession]:
        return [s for s in self._store.rows(_TABLE) if s.work_date == work_date and s.is_open]

    def list_for_employee(self, employee_id: int, *, start: date, end: date) -> Sequence[TimeClockSession]:
        rows = [
            s for s in self._store.rows(_TABLE)
            if s.employee_id == int(employee_id) and start <= s.work_date <= end
        ]
        return sorted(rows, key=lambda s: s.work_date)
