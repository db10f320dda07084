from __future__ import annotations

from typing import Any, Optional

from ..common.datetime_utils import format_minutes, parse_iso_date
from ..core.enums import TransactionStatus, TransactionType
from ..core.exceptions import ValidationError
from .model import (
    CompensationPeriod,
    HourBank,
    HourBankAlert,
    HourBankSummary,
    HourBankTransaction,
    TransactionDraft,
)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def transaction_to_dict(tx: HourBankTransaction) -> dict[str, Any]:
    return {
        "transaction_id": tx.transaction_id,
        "employee_id": tx.employee_id,
        "date": tx.work_date.isoformat(),
        "type": tx.tx_type.value,
        "amount": tx.amount,
        "amount_display": format_minutes(tx.amount),
        "reason": tx.reason,
        "description": tx.description,
        "status": tx.status.value,
        "session_id": tx.session_id,
        "edit_request_id": tx.edit_request_id,
        "compensation_id": tx.compensation_id,
        "created_by": tx.created_by,
        "created_at": _iso(tx.created_at),
        "approved_by": tx.approved_by,
        "approved_at": _iso(tx.approved_at),
        "rejection_reason": tx.rejection_reason,
    }


def draft_from_dict(data: dict[str, Any], *, employee_id: int, created_by: Optional[int]) -> TransactionDraft:
    try:
        return TransactionDraft(
            employee_id=int(employee_id),
            work_date=parse_iso_date(str(data["date"])),
            tx_type=TransactionType(data["type"]),
            amount=data["amount"],
            reason=str(data.get("reason") or ""),
            status=TransactionStatus(data.get("status", TransactionStatus.PENDING.value)),
            description=data.get("description"),
            created_by=created_by,
            session_id=data.get("session_id"),
            edit_request_id=data.get("edit_request_id"),
            compensation_id=data.get("compensation_id"),
        )
    except KeyError as e:
        raise ValidationError(f"Missing field: {e.args[0]}") from e
    except ValueError as e:
        raise ValidationError(str(e)) from e


def period_to_dict(period: CompensationPeriod) -> dict[str, Any]:
    return {
        "period_id": period.period_id,
        "employee_id": period.employee_id,
        "start_date": period.start_date.isoformat(),
        "end_date": period.end_date.isoformat(),
        "target_balance": period.target_balance,
        "current_balance": period.current_balance,
        "status": period.status.value,
        "description": period.description,
    }


def alert_to_dict(alert: HourBankAlert) -> dict[str, Any]:
    return {
        "type": alert.alert_type.value,
        "severity": alert.severity.value,
        "message": alert.message,
        "period_id": alert.period_id,
        "days_remaining": alert.days_remaining,
    }


def hour_bank_to_dict(bank: HourBank) -> dict[str, Any]:
    return {
        "employee_id": bank.employee_id,
        "current_balance": bank.current_balance,
        "balance_in_hours": format_minutes(bank.current_balance),
        "max_positive_balance": bank.max_positive_balance,
        "max_negative_balance": bank.max_negative_balance,
        "compensation_periods": [period_to_dict(p) for p in bank.compensation_periods],
        "last_calculated_at": _iso(bank.last_calculated_at),
    }


def summary_to_dict(summary: HourBankSummary) -> dict[str, Any]:
    return {
        "employee_id": summary.employee_id,
        "current_balance": summary.current_balance,
        "balance_in_hours": summary.balance_in_hours,
        "max_positive_balance": summary.max_positive_balance,
        "max_negative_balance": summary.max_negative_balance,
        "period": {
            "start": summary.period.start.isoformat(),
            "end": summary.period.end.isoformat(),
            "total_credits": summary.period.total_credits,
            "total_debits": summary.period.total_debits,
            "net_change": summary.period.net_change,
            "pending_minutes": summary.period.pending_minutes,
        },
        "upcoming_compensations": [period_to_dict(p) for p in summary.upcoming_compensations],
        "alerts": [alert_to_dict(a) for a in summary.alerts],
    }
