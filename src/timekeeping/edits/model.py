from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Optional

from ..core.enums import BreakType, Decision, EditRequestStatus, EditRequestType, Priority, Role, StepStatus

TERMINAL_STATUSES = frozenset({EditRequestStatus.APPROVED, EditRequestStatus.REJECTED, EditRequestStatus.CANCELLED})


@dataclass(frozen=True)
class ClockChange:
    requested: time
    original: Optional[time] = None
    reason: str = ""


@dataclass(frozen=True)
class BreakEntry:
    break_type: BreakType
    start: time
    end: time


@dataclass(frozen=True)
class BreakChange:
    """Replacement for the whole break list of the target day."""

    requested: tuple[BreakEntry, ...]
    original: tuple[BreakEntry, ...] = ()
    reason: str = ""


@dataclass(frozen=True)
class JustificationChange:
    text: str
    original: Optional[str] = None


@dataclass(frozen=True)
class TimeEditChanges:
    clock_in: Optional[ClockChange] = None
    clock_out: Optional[ClockChange] = None
    breaks: Optional[BreakChange] = None
    justification: Optional[JustificationChange] = None

    @property
    def is_empty(self) -> bool:
        return not (self.clock_in or self.clock_out or self.breaks is not None or self.justification)


@dataclass(frozen=True)
class ApprovalStep:
    step_number: int
    approver_role: Role
    status: StepStatus = StepStatus.PENDING
    approver_id: Optional[int] = None
    decision: Optional[Decision] = None
    comments: Optional[str] = None
    decided_at: Optional[datetime] = None
    is_required: bool = True


@dataclass(frozen=True)
class StatusChange:
    """One entry of the append-only status history."""

    from_status: Optional[EditRequestStatus]
    to_status: EditRequestStatus
    changed_by: Optional[int]
    changed_at: datetime
    reason: Optional[str] = None


@dataclass(frozen=True)
class RequestComment:
    author_id: Optional[int]
    text: str
    created_at: datetime
    is_system: bool = False


@dataclass(frozen=True)
class TimeEditRequest:
    request_id: int
    employee_id: int
    request_type: EditRequestType
    target_date: date
    reason: str
    changes: TimeEditChanges
    status: EditRequestStatus
    approval_flow: tuple[ApprovalStep, ...]
    submitted_at: datetime
    current_approval_step: int = 0
    status_history: tuple[StatusChange, ...] = ()
    comments: tuple[RequestComment, ...] = ()
    priority: Priority = Priority.MEDIUM
    description: Optional[str] = None
    submitted_by: Optional[int] = None
    session_id: Optional[int] = None
    hour_bank_impact: int = 0
    reviewed_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    ledger_transaction_id: Optional[int] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def current_step(self) -> Optional[ApprovalStep]:
        if self.is_terminal or self.current_approval_step >= len(self.approval_flow):
            return None
        return self.approval_flow[self.current_approval_step]


@dataclass(frozen=True)
class TimeEditRequestSummary:
    total: int = 0
    by_status: dict[str, int] = field(default_factory=dict)
    by_type: dict[str, int] = field(default_factory=dict)
    approval_rate: float = 0.0
    average_resolution_hours: float = 0.0
