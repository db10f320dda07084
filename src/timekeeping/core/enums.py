from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Roles resolved by the identity provider and used on approval steps."""

    EMPLOYEE = "employee"
    SUPERVISOR = "supervisor"
    HR_MANAGER = "hr_manager"
    ADMIN = "admin"


class ScheduleType(str, Enum):
    FIXED = "fixed"
    FLEXIBLE = "flexible"
    SHIFT = "shift"
    REMOTE = "remote"


class SessionStatus(str, Enum):
    """Persisted status of a clock session."""

    ACTIVE = "active"
    COMPLETED = "completed"
    INTERRUPTED = "interrupted"


class ClockState(str, Enum):
    """Derived state of an employee-day, as shown to callers."""

    NOT_STARTED = "not_started"
    WORKING = "working"
    ON_BREAK = "on_break"
    FINISHED = "finished"
    INTERRUPTED = "interrupted"


class ClockRecordType(str, Enum):
    CLOCK_IN = "clock_in"
    CLOCK_OUT = "clock_out"


class BreakType(str, Enum):
    LUNCH = "lunch"
    COFFEE = "coffee"
    PERSONAL = "personal"
    OTHER = "other"


class ComplianceFlag(str, Enum):
    """Advisory warnings attached to sessions and breaks. Never blocking."""

    BREAK_TOO_SHORT = "break_too_short"
    BREAK_TOO_LONG = "break_too_long"
    REQUIRED_BREAK_MISSING = "required_break_missing"
    JUSTIFICATION_REQUIRED = "justification_required"
    EARLY_LEAVE = "early_leave"
    OVERTIME_NOT_ALLOWED = "overtime_not_allowed"
    CLOSED_WITHOUT_CLOCK_OUT = "closed_without_clock_out"


class TransactionType(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"
    COMPENSATION = "compensation"
    ADJUSTMENT = "adjustment"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class CompensationStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    EXPIRED = "expired"


class AlertType(str, Enum):
    APPROACHING_LIMIT = "approaching_limit"
    EXCEEDED_LIMIT = "exceeded_limit"
    COMPENSATION_DUE = "compensation_due"
    NEGATIVE_BALANCE = "negative_balance"


class AlertSeverity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class EditRequestStatus(str, Enum):
    """Approval workflow states for time edit requests."""

    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class EditRequestType(str, Enum):
    CORRECTION = "correction"
    ADDITION = "addition"
    REMOVAL = "removal"
    JUSTIFICATION = "justification"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class StepStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SKIPPED = "skipped"


class Decision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
