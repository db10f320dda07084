from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, Optional, Sequence

from ..core.enums import CompensationStatus, TransactionStatus, TransactionType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, normalize_mysql_date
from .model import CompensationPeriod, HourBank, HourBankTransaction, TransactionDraft
from .repository import LedgerRepository

_TX_COLUMNS = """
    transaction_id, employee_id, work_date, tx_type, amount, reason, description, status,
    session_id, edit_request_id, compensation_id, created_by, created_at,
    approved_by, approved_at, rejection_reason
"""

_PERIOD_COLUMNS = "period_id, employee_id, start_date, end_date, target_balance, current_balance, status, description"


def _row_to_transaction(r: Dict[str, Any]) -> HourBankTransaction:
    return HourBankTransaction(
        transaction_id=int(r["transaction_id"]),
        employee_id=int(r["employee_id"]),
        work_date=normalize_mysql_date(r["work_date"]),
        tx_type=TransactionType(r["tx_type"]),
        amount=int(r["amount"]),
        reason=r["reason"],
        description=r.get("description"),
        status=TransactionStatus(r["status"]),
        session_id=r.get("session_id"),
        edit_request_id=r.get("edit_request_id"),
        compensation_id=r.get("compensation_id"),
        created_by=r.get("created_by"),
        created_at=r["created_at"],
        approved_by=r.get("approved_by"),
        approved_at=r.get("approved_at"),
        rejection_reason=r.get("rejection_reason"),
    )


def _row_to_period(r: Dict[str, Any]) -> CompensationPeriod:
    return CompensationPeriod(
        period_id=int(r["period_id"]),
        employee_id=int(r["employee_id"]),
        start_date=normalize_mysql_date(r["start_date"]),
        end_date=normalize_mysql_date(r["end_date"]),
        target_balance=int(r.get("target_balance") or 0),
        current_balance=int(r.get("current_balance") or 0),
        status=CompensationStatus(r["status"]),
        description=r.get("description"),
    )


class MySQLLedgerRepository(LedgerRepository):
    """Transactions are only ever inserted; the single UPDATE moves a pending row to a terminal status."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def add_transaction(self, draft: TransactionDraft, *, created_at: datetime) -> HourBankTransaction:
        approved = draft.status == TransactionStatus.APPROVED
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO hour_bank_transactions(
                    employee_id, work_date, tx_type, amount, reason, description, status,
                    session_id, edit_request_id, compensation_id, created_by, created_at,
                    approved_by, approved_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(draft.employee_id),
                    draft.work_date,
                    draft.tx_type.value,
                    int(draft.amount),
                    draft.reason,
                    draft.description,
                    draft.status.value,
                    draft.session_id,
                    draft.edit_request_id,
                    draft.compensation_id,
                    draft.created_by,
                    created_at,
                    draft.created_by if approved else None,
                    created_at if approved else None,
                ),
            )
            transaction_id = int(cur.lastrowid)
        return self.get_transaction(transaction_id)

    def get_transaction(self, transaction_id: int) -> Optional[HourBankTransaction]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_TX_COLUMNS} FROM hour_bank_transactions WHERE transaction_id=%s", (int(transaction_id),))
            r = fetchone(cur)
            return _row_to_transaction(r) if r else None

    def resolve_transaction(
        self,
        transaction_id: int,
        *,
        status: TransactionStatus,
        resolved_by: Optional[int],
        resolved_at: datetime,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE hour_bank_transactions
                SET status=%s, approved_by=%s, approved_at=%s, rejection_reason=%s
                WHERE transaction_id=%s AND status=%s
                """,
                (
                    status.value,
                    resolved_by,
                    resolved_at,
                    rejection_reason,
                    int(transaction_id),
                    TransactionStatus.PENDING.value,
                ),
            )
            return cur.rowcount > 0

    def list_transactions(
        self,
        employee_id: int,
        *,
        status: Optional[TransactionStatus] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[HourBankTransaction]:
        where = ["employee_id=%s"]
        params: list[Any] = [int(employee_id)]
        if status is not None:
            where.append("status=%s")
            params.append(status.value)
        if start is not None:
            where.append("work_date>=%s")
            params.append(start)
        if end is not None:
            where.append("work_date<=%s")
            params.append(end)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_TX_COLUMNS} FROM hour_bank_transactions
                WHERE {' AND '.join(where)}
                ORDER BY work_date, created_at, transaction_id
                """,
                tuple(params),
            )
            return [_row_to_transaction(r) for r in fetchall(cur)]

    def list_for_session(self, session_id: int) -> Sequence[HourBankTransaction]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_TX_COLUMNS} FROM hour_bank_transactions
                WHERE session_id=%s ORDER BY work_date, created_at, transaction_id
                """,
                (int(session_id),),
            )
            return [_row_to_transaction(r) for r in fetchall(cur)]

    def list_for_edit_request(self, edit_request_id: int) -> Sequence[HourBankTransaction]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_TX_COLUMNS} FROM hour_bank_transactions
                WHERE edit_request_id=%s ORDER BY work_date, created_at, transaction_id
                """,
                (int(edit_request_id),),
            )
            return [_row_to_transaction(r) for r in fetchall(cur)]

    def get_hour_bank(self, employee_id: int) -> Optional[HourBank]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT employee_id, current_balance, max_positive_balance, max_negative_balance, last_calculated_at
                FROM hour_banks WHERE employee_id=%s
                """,
                (int(employee_id),),
            )
            r = fetchone(cur)
        if not r:
            return None
        return HourBank(
            employee_id=int(r["employee_id"]),
            current_balance=int(r["current_balance"]),
            max_positive_balance=int(r["max_positive_balance"]),
            max_negative_balance=int(r["max_negative_balance"]),
            last_calculated_at=r.get("last_calculated_at"),
            compensation_periods=tuple(self.list_compensation_periods(employee_id=employee_id)),
        )

    def lock_hour_bank(self, employee_id: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT employee_id FROM hour_banks WHERE employee_id=%s FOR UPDATE", (int(employee_id),))
            fetchall(cur)

    def save_hour_bank(self, bank: HourBank) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO hour_banks(
                    employee_id, current_balance, max_positive_balance, max_negative_balance, last_calculated_at
                )
                VALUES(%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    current_balance=VALUES(current_balance),
                    max_positive_balance=VALUES(max_positive_balance),
                    max_negative_balance=VALUES(max_negative_balance),
                    last_calculated_at=VALUES(last_calculated_at)
                """,
                (
                    int(bank.employee_id),
                    int(bank.current_balance),
                    int(bank.max_positive_balance),
                    int(bank.max_negative_balance),
                    bank.last_calculated_at,
                ),
            )

    def add_compensation_period(self, period: CompensationPeriod) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO compensation_periods(
                    employee_id, start_date, end_date, target_balance, current_balance, status, description
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(period.employee_id),
                    period.start_date,
                    period.end_date,
                    int(period.target_balance),
                    int(period.current_balance),
                    period.status.value,
                    period.description,
                ),
            )
            return int(cur.lastrowid)

    def update_compensation_period(self, period_id: int, *, status: CompensationStatus, current_balance: int) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE compensation_periods SET status=%s, current_balance=%s WHERE period_id=%s",
                (status.value, int(current_balance), int(period_id)),
            )

    def list_compensation_periods(
        self,
        *,
        employee_id: Optional[int] = None,
        status: Optional[CompensationStatus] = None,
    ) -> Sequence[CompensationPeriod]:
        where = ["1=1"]
        params: list[Any] = []
        if employee_id is not None:
            where.append("employee_id=%s")
            params.append(int(employee_id))
        if status is not None:
            where.append("status=%s")
            params.append(status.value)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_PERIOD_COLUMNS} FROM compensation_periods WHERE {' AND '.join(where)} ORDER BY end_date, period_id",
                tuple(params),
            )
            return [_row_to_period(r) for r in fetchall(cur)]
