from __future__ import annotations

from datetime import date

from ..common.datetime_utils import format_minutes
from ..core.constants import APPROACHING_LIMIT_RATIO, COMPENSATION_CRITICAL_DAYS, COMPENSATION_WARNING_DAYS
from ..core.enums import AlertSeverity, AlertType, CompensationStatus
from .model import HourBank, HourBankAlert


def generate_alerts(hour_bank: HourBank, *, today: date) -> list[HourBankAlert]:
    """Derive alerts from the hour-bank state. Rules are independent; several may fire."""

    alerts: list[HourBankAlert] = []
    balance = hour_bank.current_balance

    cap = hour_bank.max_positive_balance
    if cap > 0 and balance >= cap:
        alerts.append(HourBankAlert(
            alert_type=AlertType.EXCEEDED_LIMIT,
            severity=AlertSeverity.ERROR,
            message=f"Balance {format_minutes(balance)} exceeds the maximum of {format_minutes(cap)}",
        ))
    elif cap > 0 and balance >= cap * APPROACHING_LIMIT_RATIO:
        alerts.append(HourBankAlert(
            alert_type=AlertType.APPROACHING_LIMIT,
            severity=AlertSeverity.WARNING,
            message=f"Balance {format_minutes(balance)} is approaching the maximum of {format_minutes(cap)}",
        ))

    floor = hour_bank.max_negative_balance
    if balance < 0 and -balance > floor:
        alerts.append(HourBankAlert(
            alert_type=AlertType.EXCEEDED_LIMIT,
            severity=AlertSeverity.ERROR,
            message=f"Negative balance {format_minutes(balance)} exceeds the limit of {format_minutes(floor)}",
        ))
    elif balance < 0:
        alerts.append(HourBankAlert(
            alert_type=AlertType.NEGATIVE_BALANCE,
            severity=AlertSeverity.WARNING,
            message=f"Negative balance of {format_minutes(balance)}",
        ))

    due = sorted(
        (p for p in hour_bank.compensation_periods if p.status == CompensationStatus.ACTIVE),
        key=lambda p: (p.end_date, p.period_id),
    )
    for period in due:
        remaining = period.days_remaining(today)
        if remaining > COMPENSATION_WARNING_DAYS:
            continue
        severity = AlertSeverity.ERROR if remaining <= COMPENSATION_CRITICAL_DAYS else AlertSeverity.WARNING
        alerts.append(HourBankAlert(
            alert_type=AlertType.COMPENSATION_DUE,
            severity=severity,
            message=f"Compensation period ends in {max(remaining, 0)} day(s)",
            period_id=period.period_id,
            days_remaining=remaining,
        ))

    return alerts
