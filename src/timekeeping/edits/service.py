from __future__ import annotations

import logging
from collections import Counter
from contextlib import nullcontext
from dataclasses import replace
from datetime import date, datetime
from typing import Any, Callable, ContextManager, Optional, Sequence

from ..attendance.model import BreakRecord, TimeClockSession
from ..attendance.service import AttendanceService
from ..common.datetime_utils import now_local
from ..common.locks import EmployeeLocks
from ..common.validators import require_min_length, require_non_empty
from ..core.constants import MIN_REASON_LENGTH
from ..core.enums import (
    Decision,
    EditRequestStatus,
    EditRequestType,
    Priority,
    Role,
    SessionStatus,
    StepStatus,
    TransactionStatus,
    TransactionType,
)
from ..core.exceptions import (
    AlreadyResolved,
    AuthorizationError,
    MaterializationError,
    NotCurrentApprover,
    NotFoundError,
    ValidationError,
)
from ..database.transaction import TransactionManager
from ..identity.provider import RoleProvider
from ..ledger.model import TransactionDraft
from ..ledger.service import HourBankLedger
from .model import (
    ApprovalStep,
    BreakEntry,
    JustificationChange,
    RequestComment,
    StatusChange,
    TimeEditChanges,
    TimeEditRequest,
    TimeEditRequestSummary,
)
from .policy import ApprovalPolicy
from .repository import EditRequestRepository

logger = logging.getLogger(__name__)

OPEN_STATUSES = (EditRequestStatus.PENDING, EditRequestStatus.UNDER_REVIEW)


class TimeEditWorkflow:
    """Approval workflow for retroactive time edits.

    Pending -> UnderReview -> Approved | Rejected, with Cancelled open to the
    requester while the request is not terminal. Approving the last step
    applies the change to the session and posts the compensating ledger entry
    in a single transaction.
    """

    def __init__(
        self,
        requests: EditRequestRepository,
        attendance: AttendanceService,
        ledger: HourBankLedger,
        roles: RoleProvider,
        transactions: Optional[TransactionManager] = None,
        *,
        policy: Optional[ApprovalPolicy] = None,
        locks: Optional[EmployeeLocks] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._requests = requests
        self._attendance = attendance
        self._ledger = ledger
        self._roles = roles
        self._transactions = transactions
        self._policy = policy or ApprovalPolicy()
        self._locks = locks or EmployeeLocks()
        self._clock = clock

    # -------- Submission --------
    def submit(
        self,
        employee_id: int,
        *,
        request_type: EditRequestType,
        target_date: date,
        reason: str,
        changes: TimeEditChanges,
        priority: Priority = Priority.MEDIUM,
        description: Optional[str] = None,
        submitted_by: Optional[int] = None,
    ) -> TimeEditRequest:
        reason = require_min_length(reason, "Reason", MIN_REASON_LENGTH)
        if changes.is_empty:
            raise ValidationError("At least one change is required")
        now = self._clock()
        if target_date > now.date():
            raise ValidationError("Cannot edit a future date")

        submitted_by = employee_id if submitted_by is None else submitted_by
        if submitted_by != employee_id and self._roles.role_of(submitted_by) in (None, Role.EMPLOYEE):
            raise AuthorizationError("Only managers can submit requests on behalf of another employee")

        with self._locks.hold(employee_id):
            session = self._attendance.get_session(employee_id, target_date)
            self._check_shape(request_type, changes, session)
            changes = self._with_originals(changes, session)

            impact = self._impact(employee_id, target_date, changes, session)
            roles = self._policy.roles_for(request_type, changes, impact)

            request = TimeEditRequest(
                request_id=0,
                employee_id=int(employee_id),
                request_type=request_type,
                target_date=target_date,
                reason=reason,
                changes=changes,
                status=EditRequestStatus.PENDING,
                approval_flow=tuple(ApprovalStep(step_number=i + 1, approver_role=r) for i, r in enumerate(roles)),
                submitted_at=now,
                status_history=(StatusChange(None, EditRequestStatus.PENDING, submitted_by, now),),
                priority=priority,
                description=description,
                submitted_by=submitted_by,
                session_id=session.session_id if session else None,
                hour_bank_impact=impact,
            )
            request_id = self._requests.add(request)
            logger.info(
                "edit request #%s submitted for employee %s on %s (impact=%s, steps=%s)",
                request_id, employee_id, target_date.isoformat(), impact, [r.value for r in roles],
            )
            return replace(request, request_id=request_id)

    # -------- Decisions --------
    def decide(
        self,
        request_id: int,
        approver_id: int,
        decision: Decision,
        comments: Optional[str] = None,
    ) -> TimeEditRequest:
        request = self.get(request_id)

        with self._locks.hold(request.employee_id):
            request = self.get(request_id)
            if request.is_terminal:
                raise AlreadyResolved(f"Request #{request_id} is already {request.status.value}")

            step = request.current_step
            if approver_id == request.employee_id:
                raise NotCurrentApprover("Requesters cannot decide their own request")
            role = self._roles.role_of(approver_id)
            if role != step.approver_role:
                raise NotCurrentApprover(f"Step {step.step_number} requires role {step.approver_role.value}")

            now = self._clock()
            history = list(request.status_history)
            base = request
            if request.status == EditRequestStatus.PENDING:
                history.append(StatusChange(EditRequestStatus.PENDING, EditRequestStatus.UNDER_REVIEW, approver_id, now))
                base = replace(
                    request,
                    status=EditRequestStatus.UNDER_REVIEW,
                    status_history=tuple(history),
                    reviewed_at=now,
                )

            index = request.current_approval_step
            flow = list(request.approval_flow)
            flow[index] = replace(
                step,
                status=StepStatus.APPROVED if decision == Decision.APPROVE else StepStatus.REJECTED,
                approver_id=approver_id,
                decision=decision,
                comments=comments,
                decided_at=now,
            )

            if decision == Decision.REJECT:
                for later in range(index + 1, len(flow)):
                    flow[later] = replace(flow[later], status=StepStatus.SKIPPED)
                rejected = replace(
                    base,
                    status=EditRequestStatus.REJECTED,
                    approval_flow=tuple(flow),
                    status_history=base.status_history + (
                        StatusChange(base.status, EditRequestStatus.REJECTED, approver_id, now, comments),
                    ),
                    resolved_at=now,
                )
                self._requests.save(rejected)
                logger.info("edit request #%s rejected by %s at step %s", request_id, approver_id, step.step_number)
                return rejected

            if index + 1 < len(flow):
                advanced = replace(base, approval_flow=tuple(flow), current_approval_step=index + 1)
                self._requests.save(advanced)
                return advanced

            approved = replace(
                base,
                status=EditRequestStatus.APPROVED,
                approval_flow=tuple(flow),
                status_history=base.status_history + (
                    StatusChange(base.status, EditRequestStatus.APPROVED, approver_id, now, comments),
                ),
                resolved_at=now,
            )
            try:
                with self._transaction():
                    self._recheck_open(request)
                    transaction_id = self._materialize(approved, approver_id)
                    approved = replace(approved, ledger_transaction_id=transaction_id)
                    self._requests.save(approved)
            except AlreadyResolved:
                raise
            except Exception as e:
                logger.warning("materialization of edit request #%s failed: %s", request_id, e)
                reverted = replace(
                    base,
                    comments=base.comments + (
                        RequestComment(None, f"Approval could not be applied and was rolled back: {e}", now, is_system=True),
                    ),
                )
                self._requests.save(reverted)
                raise MaterializationError(request_id, str(e)) from e

            logger.info("edit request #%s approved and applied (transaction=%s)", request_id, approved.ledger_transaction_id)
            return approved

    def cancel(self, request_id: int, actor_id: int, reason: Optional[str] = None) -> TimeEditRequest:
        request = self.get(request_id)

        with self._locks.hold(request.employee_id):
            request = self.get(request_id)
            if request.is_terminal:
                raise AlreadyResolved(f"Request #{request_id} is already {request.status.value}")
            if actor_id != request.employee_id:
                raise AuthorizationError("Only the requester can cancel a request")

            now = self._clock()
            flow = tuple(
                replace(s, status=StepStatus.SKIPPED) if s.status == StepStatus.PENDING else s
                for s in request.approval_flow
            )
            cancelled = replace(
                request,
                status=EditRequestStatus.CANCELLED,
                approval_flow=flow,
                status_history=request.status_history + (
                    StatusChange(request.status, EditRequestStatus.CANCELLED, actor_id, now, reason),
                ),
                resolved_at=now,
            )
            self._requests.save(cancelled)
            return cancelled

    def add_comment(self, request_id: int, author_id: int, text: str) -> TimeEditRequest:
        text = require_non_empty(text, "Comment")
        request = self.get(request_id)
        if author_id != request.employee_id and self._roles.role_of(author_id) in (None, Role.EMPLOYEE):
            raise AuthorizationError("Not allowed to comment on this request")

        with self._locks.hold(request.employee_id):
            request = self.get(request_id)
            updated = replace(request, comments=request.comments + (RequestComment(author_id, text, self._clock()),))
            self._requests.save(updated)
            return updated

    # -------- Reads --------
    def get(self, request_id: int) -> TimeEditRequest:
        request = self._requests.get(request_id)
        if request is None:
            raise NotFoundError(f"Edit request #{request_id} not found")
        return request

    def list_for_employee(
        self,
        employee_id: int,
        *,
        status: Optional[EditRequestStatus] = None,
    ) -> Sequence[TimeEditRequest]:
        statuses = [status] if status is not None else None
        return self._requests.list_requests(employee_id=employee_id, statuses=statuses)

    def pending_for_approver(self, approver_id: int) -> list[TimeEditRequest]:
        role = self._roles.role_of(approver_id)
        if role in (None, Role.EMPLOYEE):
            return []
        return [
            r for r in self._requests.list_requests(statuses=OPEN_STATUSES)
            if r.employee_id != approver_id and r.current_step and r.current_step.approver_role == role
        ]

    def summary(
        self,
        *,
        employee_id: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> TimeEditRequestSummary:
        rows = [
            r for r in self._requests.list_requests(employee_id=employee_id)
            if (start is None or r.submitted_at.date() >= start)
            and (end is None or r.submitted_at.date() <= end)
        ]
        by_status = Counter(r.status.value for r in rows)
        by_type = Counter(r.request_type.value for r in rows)

        decided = by_status[EditRequestStatus.APPROVED.value] + by_status[EditRequestStatus.REJECTED.value]
        rate = round(by_status[EditRequestStatus.APPROVED.value] * 100 / decided, 1) if decided else 0.0

        durations = [
            (r.resolved_at - r.submitted_at).total_seconds() / 3600
            for r in rows
            if r.resolved_at and r.status in (EditRequestStatus.APPROVED, EditRequestStatus.REJECTED)
        ]
        average = round(sum(durations) / len(durations), 1) if durations else 0.0

        return TimeEditRequestSummary(
            total=len(rows),
            by_status=dict(by_status),
            by_type=dict(by_type),
            approval_rate=rate,
            average_resolution_hours=average,
        )

    # -------- Internals --------
    def _transaction(self) -> ContextManager[None]:
        return self._transactions.transaction() if self._transactions else nullcontext()

    @staticmethod
    def _check_shape(
        request_type: EditRequestType,
        changes: TimeEditChanges,
        session: Optional[TimeClockSession],
    ) -> None:
        if request_type == EditRequestType.ADDITION:
            if session is not None:
                raise ValidationError("A session already exists for that date; submit a correction instead")
            if not (changes.clock_in and changes.clock_out):
                raise ValidationError("An addition needs both clock-in and clock-out")
        elif session is None:
            raise NotFoundError("No session exists for that date")

        if request_type == EditRequestType.JUSTIFICATION and not changes.justification:
            raise ValidationError("A justification request needs a justification text")
        if changes.justification:
            require_non_empty(changes.justification.text, "Justification")

        clock_in = changes.clock_in.requested if changes.clock_in else (session.clock_in.timestamp.time() if session else None)
        clock_out = changes.clock_out.requested if changes.clock_out else (
            session.clock_out.timestamp.time() if session and session.clock_out else None
        )
        if clock_in is not None and clock_out is not None and clock_out <= clock_in:
            raise ValidationError("Clock-out must be after clock-in")

        if changes.breaks is not None:
            for entry in changes.breaks.requested:
                if entry.end <= entry.start:
                    raise ValidationError("Each break must end after it starts")

    @staticmethod
    def _with_originals(changes: TimeEditChanges, session: Optional[TimeClockSession]) -> TimeEditChanges:
        if session is None:
            return changes

        if changes.clock_in and changes.clock_in.original is None:
            changes = replace(changes, clock_in=replace(changes.clock_in, original=session.clock_in.timestamp.time()))
        if changes.clock_out and changes.clock_out.original is None and session.clock_out:
            changes = replace(changes, clock_out=replace(changes.clock_out, original=session.clock_out.timestamp.time()))
        if changes.breaks is not None and not changes.breaks.original:
            original = tuple(
                BreakEntry(b.break_type, b.start_time.time(), b.end_time.time())
                for b in session.breaks
                if b.end_time is not None
            )
            changes = replace(changes, breaks=replace(changes.breaks, original=original))
        if changes.justification and changes.justification.original is None and session.justification:
            changes = replace(
                changes,
                justification=JustificationChange(changes.justification.text, original=session.justification),
            )
        return changes

    @staticmethod
    def _correction_args(request_date: date, changes: TimeEditChanges) -> dict[str, Any]:
        args: dict[str, Any] = {}
        if changes.clock_in:
            args["clock_in"] = datetime.combine(request_date, changes.clock_in.requested)
        if changes.clock_out:
            args["clock_out"] = datetime.combine(request_date, changes.clock_out.requested)
        if changes.breaks is not None:
            args["breaks"] = [
                BreakRecord(
                    break_type=e.break_type,
                    start_time=datetime.combine(request_date, e.start),
                    end_time=datetime.combine(request_date, e.end),
                )
                for e in changes.breaks.requested
            ]
        if changes.justification:
            args["justification"] = changes.justification.text.strip()
        return args

    @staticmethod
    def _target_delta(session: TimeClockSession) -> int:
        if session.status != SessionStatus.COMPLETED:
            return 0
        return session.total_worked_minutes - session.expected_minutes

    def _impact(
        self,
        employee_id: int,
        target_date: date,
        changes: TimeEditChanges,
        session: Optional[TimeClockSession],
    ) -> int:
        preview = self._attendance.preview_correction(
            employee_id, target_date, **self._correction_args(target_date, changes)
        )
        already = self._ledger.net_for_session(session.session_id) if session else 0
        return self._target_delta(preview) - already

    def _recheck_open(self, request: TimeEditRequest) -> None:
        """Lock the request row and make sure no other writer decided this step meanwhile."""
        current = self._requests.get_for_update(request.request_id)
        if (
            current is None
            or current.is_terminal
            or current.current_approval_step != request.current_approval_step
        ):
            raise AlreadyResolved(f"Request #{request.request_id} was decided by another reviewer")

    def _materialize(self, request: TimeEditRequest, approver_id: int) -> int:
        """Apply the change to the session and post the compensating entry. Runs inside a transaction."""
        session = self._attendance.apply_correction(
            request.employee_id,
            request.target_date,
            corrected_by=approver_id,
            reason=f"Edit request #{request.request_id}",
            **self._correction_args(request.target_date, request.changes),
        )

        amount = self._target_delta(session) - self._ledger.net_for_session(session.session_id)
        self._ledger.supersede_pending_for_session(
            session.session_id,
            resolved_by=approver_id,
            reason=f"Superseded by edit request #{request.request_id}",
        )

        tx = self._ledger.post_transaction(TransactionDraft(
            employee_id=request.employee_id,
            work_date=request.target_date,
            tx_type=TransactionType.ADJUSTMENT,
            amount=amount,
            reason=f"Edit request #{request.request_id}",
            description=request.reason,
            status=TransactionStatus.APPROVED,
            created_by=approver_id,
            session_id=session.session_id,
            edit_request_id=request.request_id,
        ))
        return tx.transaction_id
