from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional, Sequence

import mysql.connector

from ..core.enums import SessionStatus
from ..core.exceptions import AlreadyClockedIn
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dumps, fetchall, fetchone, loads, normalize_mysql_date
from .codec import (
    break_record_from_dict,
    break_record_to_dict,
    clock_record_from_dict,
    clock_record_to_dict,
    flags_from_list,
)
from .model import TimeClockSession
from .repository import SessionRepository

_COLUMNS = """
    session_id, employee_id, work_date, status, clock_in, clock_out, breaks,
    expected_minutes, total_worked_minutes, overtime_minutes, overtime_billable,
    is_late, minutes_late, justification, flags, schedule_id, created_at, updated_at
"""


def _row_to_session(r: Dict[str, Any]) -> TimeClockSession:
    return TimeClockSession(
        session_id=int(r["session_id"]),
        employee_id=int(r["employee_id"]),
        work_date=normalize_mysql_date(r["work_date"]),
        status=SessionStatus(r["status"]),
        clock_in=clock_record_from_dict(loads(r["clock_in"])),
        clock_out=clock_record_from_dict(loads(r.get("clock_out"))),
        breaks=tuple(break_record_from_dict(b) for b in loads(r.get("breaks"), [])),
        expected_minutes=int(r.get("expected_minutes") or 0),
        total_worked_minutes=int(r.get("total_worked_minutes") or 0),
        overtime_minutes=int(r.get("overtime_minutes") or 0),
        overtime_billable=bool(r.get("overtime_billable", 1)),
        is_late=bool(r.get("is_late")),
        minutes_late=int(r.get("minutes_late") or 0),
        justification=r.get("justification"),
        flags=flags_from_list(loads(r.get("flags"), [])),
        schedule_id=r.get("schedule_id"),
        created_at=r.get("created_at"),
        updated_at=r.get("updated_at"),
    )


def _params(s: TimeClockSession) -> tuple:
    return (
        s.status.value,
        dumps(clock_record_to_dict(s.clock_in)),
        dumps(clock_record_to_dict(s.clock_out)) if s.clock_out else None,
        dumps([break_record_to_dict(b) for b in s.breaks]),
        int(s.expected_minutes),
        int(s.total_worked_minutes),
        int(s.overtime_minutes),
        int(s.overtime_billable),
        int(s.is_late),
        int(s.minutes_late),
        s.justification,
        dumps([f.value for f in s.flags]),
        s.schedule_id,
        s.updated_at,
    )


class MySQLSessionRepository(SessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, employee_id: int, work_date: date) -> Optional[TimeClockSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM time_clock_sessions WHERE employee_id=%s AND work_date=%s",
                (int(employee_id), work_date),
            )
            r = fetchone(cur)
            return _row_to_session(r) if r else None

    def add(self, session: TimeClockSession) -> int:
        try:
            with db_cursor(self._conn_factory) as (_, cur):
                cur.execute(
                    """
                    INSERT INTO time_clock_sessions(
                        employee_id, work_date, status, clock_in, clock_out, breaks,
                        expected_minutes, total_worked_minutes, overtime_minutes, overtime_billable,
                        is_late, minutes_late, justification, flags, schedule_id, updated_at, created_at
                    )
                    VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                    """,
                    (int(session.employee_id), session.work_date) + _params(session) + (session.created_at,),
                )
                return int(cur.lastrowid)
        except mysql.connector.IntegrityError as e:
            # uq_session_employee_date
            raise AlreadyClockedIn("A session already exists for this employee and date") from e

    def save(self, session: TimeClockSession) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE time_clock_sessions
                SET status=%s, clock_in=%s, clock_out=%s, breaks=%s,
                    expected_minutes=%s, total_worked_minutes=%s, overtime_minutes=%s, overtime_billable=%s,
                    is_late=%s, minutes_late=%s, justification=%s, flags=%s, schedule_id=%s, updated_at=%s
                WHERE session_id=%s
                """,
                _params(session) + (int(session.session_id),),
            )
            return cur.rowcount > 0

    def list_open(self, *, work_date: date) -> Sequence[TimeClockSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM time_clock_sessions WHERE work_date=%s AND status=%s",
                (work_date, SessionStatus.ACTIVE.value),
            )
            return [_row_to_session(r) for r in fetchall(cur)]

    def list_for_employee(self, employee_id: int, *, start: date, end: date) -> Sequence[TimeClockSession]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM time_clock_sessions
                WHERE employee_id=%s AND work_date BETWEEN %s AND %s
                ORDER BY work_date
                """,
                (int(employee_id), start, end),
            )
            return [_row_to_session(r) for r in fetchall(cur)]
