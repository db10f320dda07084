from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Sequence

from ..core.enums import EditRequestStatus, EditRequestType, Priority
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dumps, fetchall, fetchone, loads, normalize_mysql_date
from .codec import (
    changes_from_dict,
    changes_to_dict,
    comment_from_dict,
    comment_to_dict,
    status_change_from_dict,
    status_change_to_dict,
    step_from_dict,
    step_to_dict,
)
from .model import TimeEditRequest
from .repository import EditRequestRepository

_COLUMNS = """
    request_id, employee_id, request_type, target_date, priority, reason, description, status,
    changes, approval_flow, current_approval_step, status_history, comments,
    submitted_by, session_id, hour_bank_impact, ledger_transaction_id,
    submitted_at, reviewed_at, resolved_at
"""


def _row_to_request(r: Dict[str, Any]) -> TimeEditRequest:
    return TimeEditRequest(
        request_id=int(r["request_id"]),
        employee_id=int(r["employee_id"]),
        request_type=EditRequestType(r["request_type"]),
        target_date=normalize_mysql_date(r["target_date"]),
        priority=Priority(r["priority"]),
        reason=r["reason"],
        description=r.get("description"),
        status=EditRequestStatus(r["status"]),
        changes=changes_from_dict(loads(r.get("changes"), {})),
        approval_flow=tuple(step_from_dict(s) for s in loads(r.get("approval_flow"), [])),
        current_approval_step=int(r.get("current_approval_step") or 0),
        status_history=tuple(status_change_from_dict(c) for c in loads(r.get("status_history"), [])),
        comments=tuple(comment_from_dict(c) for c in loads(r.get("comments"), [])),
        submitted_by=r.get("submitted_by"),
        session_id=r.get("session_id"),
        hour_bank_impact=int(r.get("hour_bank_impact") or 0),
        ledger_transaction_id=r.get("ledger_transaction_id"),
        submitted_at=r["submitted_at"],
        reviewed_at=r.get("reviewed_at"),
        resolved_at=r.get("resolved_at"),
    )


def _mutable_params(request: TimeEditRequest) -> tuple:
    return (
        request.status.value,
        dumps(changes_to_dict(request.changes)),
        dumps([step_to_dict(s) for s in request.approval_flow]),
        int(request.current_approval_step),
        dumps([status_change_to_dict(c) for c in request.status_history]),
        dumps([comment_to_dict(c) for c in request.comments]),
        request.session_id,
        int(request.hour_bank_impact),
        request.ledger_transaction_id,
        request.reviewed_at,
        request.resolved_at,
    )


class MySQLEditRequestRepository(EditRequestRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def add(self, request: TimeEditRequest) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO time_edit_requests(
                    employee_id, request_type, target_date, priority, reason, description, submitted_by, submitted_at,
                    status, changes, approval_flow, current_approval_step, status_history, comments,
                    session_id, hour_bank_impact, ledger_transaction_id, reviewed_at, resolved_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(request.employee_id),
                    request.request_type.value,
                    request.target_date,
                    request.priority.value,
                    request.reason,
                    request.description,
                    request.submitted_by,
                    request.submitted_at,
                ) + _mutable_params(request),
            )
            return int(cur.lastrowid)

    def get(self, request_id: int) -> Optional[TimeEditRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM time_edit_requests WHERE request_id=%s", (int(request_id),))
            r = fetchone(cur)
            return _row_to_request(r) if r else None

    def get_for_update(self, request_id: int) -> Optional[TimeEditRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM time_edit_requests WHERE request_id=%s FOR UPDATE",
                (int(request_id),),
            )
            r = fetchone(cur)
            return _row_to_request(r) if r else None

    def save(self, request: TimeEditRequest) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE time_edit_requests
                SET status=%s, changes=%s, approval_flow=%s, current_approval_step=%s,
                    status_history=%s, comments=%s, session_id=%s, hour_bank_impact=%s,
                    ledger_transaction_id=%s, reviewed_at=%s, resolved_at=%s
                WHERE request_id=%s
                """,
                _mutable_params(request) + (int(request.request_id),),
            )
            return cur.rowcount > 0

    def list_requests(
        self,
        *,
        employee_id: Optional[int] = None,
        statuses: Optional[Iterable[EditRequestStatus]] = None,
    ) -> Sequence[TimeEditRequest]:
        where = ["1=1"]
        params: list[Any] = []
        if employee_id is not None:
            where.append("employee_id=%s")
            params.append(int(employee_id))
        if statuses is not None:
            values = [s.value for s in statuses]
            if not values:
                return []
            where.append(f"status IN ({','.join(['%s'] * len(values))})")
            params.extend(values)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM time_edit_requests WHERE {' AND '.join(where)} "
                "ORDER BY submitted_at DESC, request_id DESC",
                tuple(params),
            )
            return [_row_to_request(r) for r in fetchall(cur)]
