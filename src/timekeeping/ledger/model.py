from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import format_minutes
from ..core.constants import DEFAULT_MAX_NEGATIVE_BALANCE, DEFAULT_MAX_POSITIVE_BALANCE
from ..core.enums import AlertSeverity, AlertType, CompensationStatus, TransactionStatus, TransactionType


@dataclass(frozen=True)
class TransactionDraft:
    """Input to `HourBankLedger.post_transaction`."""

    employee_id: int
    work_date: date
    tx_type: TransactionType
    amount: int
    reason: str
    status: TransactionStatus = TransactionStatus.PENDING
    description: Optional[str] = None
    created_by: Optional[int] = None
    session_id: Optional[int] = None
    edit_request_id: Optional[int] = None
    compensation_id: Optional[int] = None


@dataclass(frozen=True)
class HourBankTransaction:
    """Ledger entry. Approved and rejected entries are never changed again."""

    transaction_id: int
    employee_id: int
    work_date: date
    tx_type: TransactionType
    amount: int
    reason: str
    status: TransactionStatus
    created_at: datetime
    created_by: Optional[int] = None
    description: Optional[str] = None
    session_id: Optional[int] = None
    edit_request_id: Optional[int] = None
    compensation_id: Optional[int] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    @property
    def is_approved(self) -> bool:
        return self.status == TransactionStatus.APPROVED


@dataclass(frozen=True)
class CompensationPeriod:
    period_id: int
    employee_id: int
    start_date: date
    end_date: date
    target_balance: int = 0
    current_balance: int = 0
    status: CompensationStatus = CompensationStatus.ACTIVE
    description: Optional[str] = None

    def days_remaining(self, today: date) -> int:
        return (self.end_date - today).days


@dataclass(frozen=True)
class HourBank:
    """Per-employee projection. `current_balance` is a cache over approved transactions."""

    employee_id: int
    current_balance: int = 0
    max_positive_balance: int = DEFAULT_MAX_POSITIVE_BALANCE
    max_negative_balance: int = DEFAULT_MAX_NEGATIVE_BALANCE
    compensation_periods: tuple[CompensationPeriod, ...] = ()
    last_calculated_at: Optional[datetime] = None


@dataclass(frozen=True)
class HourBankAlert:
    alert_type: AlertType
    severity: AlertSeverity
    message: str
    period_id: Optional[int] = None
    days_remaining: Optional[int] = None


@dataclass(frozen=True)
class PeriodStats:
    start: date
    end: date
    total_credits: int = 0
    total_debits: int = 0
    net_change: int = 0
    pending_minutes: int = 0


@dataclass(frozen=True)
class HourBankSummary:
    employee_id: int
    current_balance: int
    max_positive_balance: int
    max_negative_balance: int
    period: PeriodStats
    upcoming_compensations: tuple[CompensationPeriod, ...] = ()
    alerts: tuple[HourBankAlert, ...] = field(default_factory=tuple)

    @property
    def balance_in_hours(self) -> str:
        return format_minutes(self.current_balance)
