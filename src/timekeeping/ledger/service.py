from __future__ import annotations

import logging
from contextlib import nullcontext
from dataclasses import replace
from datetime import date, datetime
from typing import Callable, ContextManager, Optional, Sequence

from ..attendance.model import TimeClockSession
from ..common.datetime_utils import now_local
from ..common.locks import EmployeeLocks
from ..common.validators import require_non_empty
from ..core.constants import DEFAULT_MAX_NEGATIVE_BALANCE, DEFAULT_MAX_POSITIVE_BALANCE
from ..core.enums import CompensationStatus, TransactionStatus, TransactionType
from ..core.exceptions import AlreadyResolved, DuplicateReference, InvalidAmount, NotFoundError, ValidationError
from ..database.transaction import TransactionManager
from .alerts import generate_alerts
from .model import (
    CompensationPeriod,
    HourBank,
    HourBankAlert,
    HourBankSummary,
    HourBankTransaction,
    PeriodStats,
    TransactionDraft,
)
from .repository import LedgerRepository

logger = logging.getLogger(__name__)

# Types an approved edit request may post with a zero amount.
EDIT_TYPES = (TransactionType.ADJUSTMENT, TransactionType.COMPENSATION)


class HourBankLedger:
    """Append-only signed-minute ledger with a cached per-employee balance.

    Corrections never touch an existing approved row; they are new
    transactions. `recompute_balance` is the only writer of
    `HourBank.current_balance`.
    """

    def __init__(
        self,
        repository: LedgerRepository,
        *,
        transactions: Optional[TransactionManager] = None,
        locks: Optional[EmployeeLocks] = None,
        clock: Callable[[], datetime] = now_local,
        max_positive_balance: int = DEFAULT_MAX_POSITIVE_BALANCE,
        max_negative_balance: int = DEFAULT_MAX_NEGATIVE_BALANCE,
        auto_approve_session_deltas: bool = False,
    ):
        self._repo = repository
        self._transactions = transactions
        self._locks = locks or EmployeeLocks()
        self._clock = clock
        self._max_positive = int(max_positive_balance)
        self._max_negative = int(max_negative_balance)
        self._auto_approve = bool(auto_approve_session_deltas)

    # -------- Posting --------
    def post_transaction(self, draft: TransactionDraft) -> HourBankTransaction:
        self._validate_draft(draft)

        with self._locks.hold(draft.employee_id), self._transaction():
            self.ensure_hour_bank(draft.employee_id)
            self._repo.lock_hour_bank(draft.employee_id)
            self._check_duplicate(session_id=draft.session_id, edit_request_id=draft.edit_request_id)
            tx = self._repo.add_transaction(draft, created_at=self._clock())
            if tx.is_approved:
                self.recompute_balance(draft.employee_id)

            logger.info(
                "posted %s %s transaction #%s of %s min for employee %s",
                tx.status.value, tx.tx_type.value, tx.transaction_id, tx.amount, tx.employee_id,
            )
            return tx

    def review_transaction(
        self,
        transaction_id: int,
        *,
        approve: bool,
        reviewer_id: Optional[int] = None,
        rejection_reason: Optional[str] = None,
    ) -> HourBankTransaction:
        tx = self._repo.get_transaction(transaction_id)
        if tx is None:
            raise NotFoundError(f"Transaction #{transaction_id} not found")

        with self._locks.hold(tx.employee_id), self._transaction():
            self._repo.lock_hour_bank(tx.employee_id)
            tx = self._repo.get_transaction(transaction_id)
            if tx.status != TransactionStatus.PENDING:
                raise AlreadyResolved(f"Transaction #{transaction_id} is already {tx.status.value}")

            if approve:
                self._check_duplicate(session_id=tx.session_id, edit_request_id=tx.edit_request_id)
                status = TransactionStatus.APPROVED
            else:
                rejection_reason = require_non_empty(rejection_reason or "", "Rejection reason")
                status = TransactionStatus.REJECTED

            self._repo.resolve_transaction(
                tx.transaction_id,
                status=status,
                resolved_by=reviewer_id,
                resolved_at=self._clock(),
                rejection_reason=None if approve else rejection_reason,
            )
            if approve:
                self.recompute_balance(tx.employee_id)
            return self._repo.get_transaction(tx.transaction_id)

    def session_closed(self, session: TimeClockSession) -> Optional[HourBankTransaction]:
        return self.post_session_delta(session)

    def post_session_delta(self, session: TimeClockSession) -> Optional[HourBankTransaction]:
        """Post worked - expected for a completed session. A zero delta posts nothing."""
        delta = session.total_worked_minutes - session.expected_minutes
        if delta == 0:
            return None

        status = TransactionStatus.APPROVED if self._auto_approve else TransactionStatus.PENDING
        return self.post_transaction(TransactionDraft(
            employee_id=session.employee_id,
            work_date=session.work_date,
            tx_type=TransactionType.CREDIT if delta > 0 else TransactionType.DEBIT,
            amount=delta,
            reason=f"Worked time for {session.work_date.isoformat()}",
            status=status,
            session_id=session.session_id,
        ))

    def net_for_session(self, session_id: int) -> int:
        """Approved minutes already attributed to a session, compensations included."""
        return sum(tx.amount for tx in self._repo.list_for_session(session_id) if tx.is_approved)

    def supersede_pending_for_session(self, session_id: int, *, resolved_by: Optional[int], reason: str) -> int:
        superseded = 0
        for tx in self._repo.list_for_session(session_id):
            if tx.status != TransactionStatus.PENDING:
                continue
            if self._repo.resolve_transaction(
                tx.transaction_id,
                status=TransactionStatus.REJECTED,
                resolved_by=resolved_by,
                resolved_at=self._clock(),
                rejection_reason=reason,
            ):
                superseded += 1
        return superseded

    # -------- Balance --------
    def recompute_balance(self, employee_id: int) -> int:
        with self._locks.hold(employee_id):
            balance = 0
            for tx in self._repo.list_transactions(employee_id, status=TransactionStatus.APPROVED):
                balance += tx.amount

            bank = self.ensure_hour_bank(employee_id)
            self._repo.save_hour_bank(replace(bank, current_balance=balance, last_calculated_at=self._clock()))
            return balance

    def ensure_hour_bank(self, employee_id: int) -> HourBank:
        bank = self._repo.get_hour_bank(employee_id)
        if bank is None:
            bank = HourBank(
                employee_id=int(employee_id),
                max_positive_balance=self._max_positive,
                max_negative_balance=self._max_negative,
            )
            self._repo.save_hour_bank(bank)
        return bank

    def configure_limits(
        self,
        employee_id: int,
        *,
        max_positive_balance: Optional[int] = None,
        max_negative_balance: Optional[int] = None,
    ) -> HourBank:
        for value in (max_positive_balance, max_negative_balance):
            if value is not None and (not isinstance(value, int) or value < 0):
                raise ValidationError("Balance limits must be non-negative minute counts")

        with self._locks.hold(employee_id):
            bank = self.ensure_hour_bank(employee_id)
            bank = replace(
                bank,
                max_positive_balance=bank.max_positive_balance if max_positive_balance is None else max_positive_balance,
                max_negative_balance=bank.max_negative_balance if max_negative_balance is None else max_negative_balance,
            )
            self._repo.save_hour_bank(bank)
            return self._repo.get_hour_bank(employee_id)

    # -------- Compensation periods --------
    def open_compensation_period(
        self,
        employee_id: int,
        *,
        start_date: date,
        end_date: date,
        target_balance: int = 0,
        description: Optional[str] = None,
    ) -> CompensationPeriod:
        if end_date < start_date:
            raise ValidationError("Compensation period cannot end before it starts")
        if isinstance(target_balance, bool) or not isinstance(target_balance, int):
            raise InvalidAmount("Target balance must be a whole number of minutes")

        with self._locks.hold(employee_id):
            bank = self.ensure_hour_bank(employee_id)
            period = CompensationPeriod(
                period_id=0,
                employee_id=int(employee_id),
                start_date=start_date,
                end_date=end_date,
                target_balance=target_balance,
                current_balance=bank.current_balance,
                description=description,
            )
            period_id = self._repo.add_compensation_period(period)
            logger.info("opened compensation period #%s for employee %s", period_id, employee_id)
            return replace(period, period_id=period_id)

    def sweep_compensation_periods(self, today: date) -> list[CompensationPeriod]:
        """Resolve active periods whose end date has passed. Re-running is a no-op."""
        resolved: list[CompensationPeriod] = []

        for period in self._repo.list_compensation_periods(status=CompensationStatus.ACTIVE):
            with self._locks.hold(period.employee_id):
                balance = self.recompute_balance(period.employee_id)
                if period.end_date >= today:
                    self._repo.update_compensation_period(
                        period.period_id, status=CompensationStatus.ACTIVE, current_balance=balance,
                    )
                    continue

                status = CompensationStatus.COMPLETED if balance >= period.target_balance else CompensationStatus.EXPIRED
                self._repo.update_compensation_period(period.period_id, status=status, current_balance=balance)
                resolved.append(replace(period, status=status, current_balance=balance))
                logger.info(
                    "compensation period #%s of employee %s %s (balance=%s, target=%s)",
                    period.period_id, period.employee_id, status.value, balance, period.target_balance,
                )

        return resolved

    # -------- Reads --------
    def get_hour_bank(self, employee_id: int) -> HourBank:
        return self.ensure_hour_bank(employee_id)

    def get_transaction(self, transaction_id: int) -> Optional[HourBankTransaction]:
        return self._repo.get_transaction(transaction_id)

    def list_transactions(
        self,
        employee_id: int,
        *,
        status: Optional[TransactionStatus] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> Sequence[HourBankTransaction]:
        return self._repo.list_transactions(employee_id, status=status, start=start, end=end)

    def list_for_edit_request(self, edit_request_id: int) -> Sequence[HourBankTransaction]:
        return self._repo.list_for_edit_request(edit_request_id)

    def alerts(self, employee_id: int, *, today: Optional[date] = None) -> list[HourBankAlert]:
        return generate_alerts(self.ensure_hour_bank(employee_id), today=today or self._clock().date())

    def summary(
        self,
        employee_id: int,
        *,
        start: Optional[date] = None,
        end: Optional[date] = None,
        today: Optional[date] = None,
    ) -> HourBankSummary:
        today = today or self._clock().date()
        start = start or today.replace(day=1)
        end = end or today

        credits = debits = pending = 0
        for tx in self._repo.list_transactions(employee_id, start=start, end=end):
            if tx.status == TransactionStatus.PENDING:
                pending += tx.amount
            elif tx.is_approved and tx.amount > 0:
                credits += tx.amount
            elif tx.is_approved:
                debits += -tx.amount

        bank = self.ensure_hour_bank(employee_id)
        upcoming = tuple(
            p for p in bank.compensation_periods
            if p.status == CompensationStatus.ACTIVE and p.end_date >= today
        )
        return HourBankSummary(
            employee_id=bank.employee_id,
            current_balance=bank.current_balance,
            max_positive_balance=bank.max_positive_balance,
            max_negative_balance=bank.max_negative_balance,
            period=PeriodStats(
                start=start,
                end=end,
                total_credits=credits,
                total_debits=debits,
                net_change=credits - debits,
                pending_minutes=pending,
            ),
            upcoming_compensations=upcoming,
            alerts=tuple(generate_alerts(bank, today=today)),
        )

    # -------- Internals --------
    def _transaction(self) -> ContextManager[None]:
        return self._transactions.transaction() if self._transactions else nullcontext()

    @staticmethod
    def _validate_draft(draft: TransactionDraft) -> None:
        amount = draft.amount
        if isinstance(amount, bool) or not isinstance(amount, int):
            raise InvalidAmount("Amount must be a whole number of minutes")
        if amount == 0 and not (draft.edit_request_id is not None and draft.tx_type in EDIT_TYPES):
            raise InvalidAmount("Amount cannot be zero")
        if draft.tx_type == TransactionType.CREDIT and amount < 0:
            raise InvalidAmount("Credit amount must be positive")
        if draft.tx_type == TransactionType.DEBIT and amount > 0:
            raise InvalidAmount("Debit amount must be negative")
        if draft.status not in (TransactionStatus.PENDING, TransactionStatus.APPROVED):
            raise ValidationError("New transactions must be pending or approved")
        require_non_empty(draft.reason, "Reason")

    def _check_duplicate(self, *, session_id: Optional[int], edit_request_id: Optional[int]) -> None:
        if edit_request_id is not None:
            if any(tx.is_approved for tx in self._repo.list_for_edit_request(edit_request_id)):
                raise DuplicateReference(f"Edit request #{edit_request_id} already has an approved transaction")
            return

        if session_id is not None:
            worked = [tx for tx in self._repo.list_for_session(session_id) if tx.edit_request_id is None]
            if any(tx.is_approved for tx in worked):
                raise DuplicateReference(f"Session #{session_id} already has an approved transaction")
