from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import CompensationStatus, TransactionStatus
from .model import CompensationPeriod, HourBank, HourBankTransaction, TransactionDraft


class LedgerRepository(Protocol):
    """Append-only transaction log plus the per-employee hour-bank row."""

    def add_transaction(self, draft: TransactionDraft, *, created_at: datetime) -> HourBankTransaction:
        raise NotImplementedError

    def get_transaction(self, transaction_id: int) -> Optional[HourBankTransaction]:
        raise NotImplementedError

    def resolve_transaction(
        self,
        transaction_id: int,
        *,
        status: TransactionStatus,
        resolved_by: Optional[int],
        resolved_at: datetime,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        """Move a pending transaction to a terminal status.

        Returns False when the row is missing or no longer pending.
        """

        raise NotImplementedError

    def list_transactions(
        self,
        employee_id: int,
        *,
        status: Optional[TransactionStatus] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[HourBankTransaction]:
        """Ordered by (work_date, created_at, transaction_id)."""

        raise NotImplementedError

    def list_for_session(self, session_id: int) -> Sequence[HourBankTransaction]:
        raise NotImplementedError

    def list_for_edit_request(self, edit_request_id: int) -> Sequence[HourBankTransaction]:
        raise NotImplementedError

    def get_hour_bank(self, employee_id: int) -> Optional[HourBank]:
        raise NotImplementedError

    def lock_hour_bank(self, employee_id: int) -> None:
        """Hold the employee's hour-bank row until the surrounding transaction ends.

        Posting and reviewing take this lock before the duplicate checks so that
        two writers for the same employee are serialized across processes.
        """

        raise NotImplementedError

    def save_hour_bank(self, bank: HourBank) -> None:
        """Upsert the hour-bank row (caps, cached balance). Periods are stored separately."""

        raise NotImplementedError

    def add_compensation_period(self, period: CompensationPeriod) -> int:
        raise NotImplementedError

    def update_compensation_period(
        self,
        period_id: int,
        *,
        status: CompensationStatus,
        current_balance: int,
    ) -> None:
        raise NotImplementedError

    def list_compensation_periods(
        self,
        *,
        employee_id: Optional[int] = None,
        status: Optional[CompensationStatus] = None,
    ) -> Sequence[CompensationPeriod]:
        raise NotImplementedError
