from __future__ import annotations

from typing import Any, Optional

from ..common.datetime_utils import format_hhmm, parse_hhmm, parse_iso_datetime
from ..core.enums import BreakType, Decision, EditRequestStatus, Role, StepStatus
from ..core.exceptions import ValidationError
from .model import (
    ApprovalStep,
    BreakChange,
    BreakEntry,
    ClockChange,
    JustificationChange,
    RequestComment,
    StatusChange,
    TimeEditChanges,
    TimeEditRequest,
    TimeEditRequestSummary,
)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _dt(value):
    return parse_iso_datetime(value) if value else None


def _hhmm(value):
    return format_hhmm(value) if value is not None else None


# -------- Changes --------
def clock_change_to_dict(change: Optional[ClockChange]) -> Optional[dict[str, Any]]:
    if change is None:
        return None
    return {"original": _hhmm(change.original), "requested": format_hhmm(change.requested), "reason": change.reason}


def clock_change_from_dict(data: Optional[dict[str, Any]]) -> Optional[ClockChange]:
    if not data:
        return None
    original = data.get("original")
    return ClockChange(
        requested=parse_hhmm(data["requested"]),
        original=parse_hhmm(original) if original else None,
        reason=str(data.get("reason") or ""),
    )


def break_entry_to_dict(entry: BreakEntry) -> dict[str, Any]:
    return {"type": entry.break_type.value, "start": format_hhmm(entry.start), "end": format_hhmm(entry.end)}


def break_entry_from_dict(data: dict[str, Any]) -> BreakEntry:
    return BreakEntry(
        break_type=BreakType(data.get("type", BreakType.OTHER.value)),
        start=parse_hhmm(data["start"]),
        end=parse_hhmm(data["end"]),
    )


def changes_to_dict(changes: TimeEditChanges) -> dict[str, Any]:
    out: dict[str, Any] = {
        "clock_in": clock_change_to_dict(changes.clock_in),
        "clock_out": clock_change_to_dict(changes.clock_out),
        "breaks": None,
        "justification": None,
    }
    if changes.breaks is not None:
        out["breaks"] = {
            "original": [break_entry_to_dict(e) for e in changes.breaks.original],
            "requested": [break_entry_to_dict(e) for e in changes.breaks.requested],
            "reason": changes.breaks.reason,
        }
    if changes.justification is not None:
        out["justification"] = {"original": changes.justification.original, "text": changes.justification.text}
    return out


def changes_from_dict(data: Optional[dict[str, Any]]) -> TimeEditChanges:
    data = data or {}
    breaks = data.get("breaks")
    justification = data.get("justification")
    try:
        return TimeEditChanges(
            clock_in=clock_change_from_dict(data.get("clock_in")),
            clock_out=clock_change_from_dict(data.get("clock_out")),
            breaks=BreakChange(
                requested=tuple(break_entry_from_dict(e) for e in breaks.get("requested") or []),
                original=tuple(break_entry_from_dict(e) for e in breaks.get("original") or []),
                reason=str(breaks.get("reason") or ""),
            ) if breaks is not None else None,
            justification=JustificationChange(
                text=str(justification.get("text") or ""),
                original=justification.get("original"),
            ) if justification else None,
        )
    except (KeyError, ValueError) as e:
        raise ValidationError(f"Invalid changes: {e}") from e


# -------- Flow / history --------
def step_to_dict(step: ApprovalStep) -> dict[str, Any]:
    return {
        "step_number": step.step_number,
        "approver_role": step.approver_role.value,
        "status": step.status.value,
        "approver_id": step.approver_id,
        "decision": step.decision.value if step.decision else None,
        "comments": step.comments,
        "decided_at": _iso(step.decided_at),
        "is_required": step.is_required,
    }


def step_from_dict(data: dict[str, Any]) -> ApprovalStep:
    return ApprovalStep(
        step_number=int(data["step_number"]),
        approver_role=Role(data["approver_role"]),
        status=StepStatus(data.get("status", StepStatus.PENDING.value)),
        approver_id=data.get("approver_id"),
        decision=Decision(data["decision"]) if data.get("decision") else None,
        comments=data.get("comments"),
        decided_at=_dt(data.get("decided_at")),
        is_required=bool(data.get("is_required", True)),
    )


def status_change_to_dict(change: StatusChange) -> dict[str, Any]:
    return {
        "from_status": change.from_status.value if change.from_status else None,
        "to_status": change.to_status.value,
        "changed_by": change.changed_by,
        "changed_at": change.changed_at.isoformat(),
        "reason": change.reason,
    }


def status_change_from_dict(data: dict[str, Any]) -> StatusChange:
    return StatusChange(
        from_status=EditRequestStatus(data["from_status"]) if data.get("from_status") else None,
        to_status=EditRequestStatus(data["to_status"]),
        changed_by=data.get("changed_by"),
        changed_at=parse_iso_datetime(data["changed_at"]),
        reason=data.get("reason"),
    )


def comment_to_dict(comment: RequestComment) -> dict[str, Any]:
    return {
        "author_id": comment.author_id,
        "text": comment.text,
        "created_at": comment.created_at.isoformat(),
        "is_system": comment.is_system,
    }


def comment_from_dict(data: dict[str, Any]) -> RequestComment:
    return RequestComment(
        author_id=data.get("author_id"),
        text=str(data["text"]),
        created_at=parse_iso_datetime(data["created_at"]),
        is_system=bool(data.get("is_system", False)),
    )


def request_to_dict(request: TimeEditRequest) -> dict[str, Any]:
    return {
        "request_id": request.request_id,
        "employee_id": request.employee_id,
        "request_type": request.request_type.value,
        "target_date": request.target_date.isoformat(),
        "priority": request.priority.value,
        "reason": request.reason,
        "description": request.description,
        "status": request.status.value,
        "changes": changes_to_dict(request.changes),
        "approval_flow": [step_to_dict(s) for s in request.approval_flow],
        "current_approval_step": request.current_approval_step,
        "status_history": [status_change_to_dict(c) for c in request.status_history],
        "comments": [comment_to_dict(c) for c in request.comments],
        "submitted_by": request.submitted_by,
        "session_id": request.session_id,
        "hour_bank_impact": request.hour_bank_impact,
        "ledger_transaction_id": request.ledger_transaction_id,
        "submitted_at": _iso(request.submitted_at),
        "reviewed_at": _iso(request.reviewed_at),
        "resolved_at": _iso(request.resolved_at),
    }


def summary_to_dict(summary: TimeEditRequestSummary) -> dict[str, Any]:
    return {
        "total": summary.total,
        "by_status": dict(summary.by_status),
        "by_type": dict(summary.by_type),
        "approval_rate": summary.approval_rate,
        "average_resolution_hours": summary.average_resolution_hours,
    }
