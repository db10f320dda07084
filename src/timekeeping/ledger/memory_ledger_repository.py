from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import CompensationStatus, TransactionStatus
from ..database.memory import MemoryStore
from .model import CompensationPeriod, HourBank, HourBankTransaction, TransactionDraft
from .repository import LedgerRepository

_TABLE = "hour_bank_transactions"


def _order(tx: HourBankTransaction):
    return (tx.work_date, tx.created_at, tx.transaction_id)


class MemoryLedgerRepository(LedgerRepository):
    def __init__(self, store: MemoryStore):
        self._store = store

    def _transactions(self) -> dict[int, HourBankTransaction]:
        return self._store.table(_TABLE)

    def add_transaction(self, draft: TransactionDraft, *, created_at: datetime) -> HourBankTransaction:
        with self._store.lock:
            transaction_id = self._store.next_id(_TABLE)
            tx = HourBankTransaction(
                transaction_id=transaction_id,
                employee_id=int(draft.employee_id),
                work_date=draft.work_date,
                tx_type=draft.tx_type,
                amount=draft.amount,
                reason=draft.reason,
                status=draft.status,
                created_at=created_at,
                created_by=draft.created_by,
                description=draft.description,
                session_id=draft.session_id,
                edit_request_id=draft.edit_request_id,
                compensation_id=draft.compensation_id,
                approved_by=draft.created_by if draft.status == TransactionStatus.APPROVED else None,
                approved_at=created_at if draft.status == TransactionStatus.APPROVED else None,
            )
            self._transactions()[transaction_id] = tx
            return tx

    def get_transaction(self, transaction_id: int) -> Optional[HourBankTransaction]:
        return self._transactions().get(int(transaction_id))

    def resolve_transaction(
        self,
        transaction_id: int,
        *,
        status: TransactionStatus,
        resolved_by: Optional[int],
        resolved_at: datetime,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        with self._store.lock:
            rows = self._transactions()
            tx = rows.get(int(transaction_id))
            if tx is None or tx.status != TransactionStatus.PENDING:
                return False
            rows[tx.transaction_id] = replace(
                tx,
                status=status,
                approved_by=resolved_by,
                approved_at=resolved_at,
                rejection_reason=rejection_reason,
            )
            return True

    def list_transactions(
        self,
        employee_id: int,
        *,
        status: Optional[TransactionStatus] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[HourBankTransaction]:
        rows = [
            tx for tx in self._store.rows(_TABLE)
            if tx.employee_id == int(employee_id)
            and (status is None or tx.status == status)
            and (start is None or tx.work_date >= start)
            and (end is None or tx.work_date <= end)
        ]
        return sorted(rows, key=_order)

    def list_for_session(self, session_id: int) -> Sequence[HourBankTransaction]:
        return sorted((tx for tx in self._store.rows(_TABLE) if tx.session_id == int(session_id)), key=_order)

    def list_for_edit_request(self, edit_request_id: int) -> Sequence[HourBankTransaction]:
        rows = self._store.rows(_TABLE)
        return sorted((tx for tx in rows if tx.edit_request_id == int(edit_request_id)), key=_order)

    def get_hour_bank(self, employee_id: int) -> Optional[HourBank]:
        bank = self._store.table("hour_banks").get(int(employee_id))
        if bank is None:
            return None
        return replace(bank, compensation_periods=tuple(self.list_compensation_periods(employee_id=employee_id)))

    def lock_hour_bank(self, employee_id: int) -> None:
        # MemoryStore.transaction already holds the store lock for the whole block.
        return None

    def save_hour_bank(self, bank: HourBank) -> None:
        with self._store.lock:
            self._store.table("hour_banks")[bank.employee_id] = replace(bank, compensation_periods=())

    def add_compensation_period(self, period: CompensationPeriod) -> int:
        with self._store.lock:
            period_id = self._store.next_id("compensation_periods")
            self._store.table("compensation_periods")[period_id] = replace(period, period_id=period_id)
            return period_id

    def update_compensation_period(self, period_id: int, *, status: CompensationStatus, current_balance: int) -> None:
        with self._store.lock:
            rows = self._store.table("compensation_periods")
            period = rows.get(int(period_id))
            if period is not None:
                rows[period.period_id] = replace(period, status=status, current_balance=current_balance)

    def list_compensation_periods(
        self,
        *,
        employee_id: Optional[int] = None,
        status: Optional[CompensationStatus] = None,
    ) -> Sequence[CompensationPeriod]:
        rows = [
            p for p in self._store.rows("compensation_periods")
            if (employee_id is None or p.employee_id == int(employee_id))
            and (status is None or p.status == status)
        ]
        return sorted(rows, key=lambda p: (p.end_date, p.period_id))
