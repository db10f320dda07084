from __future__ import annotations

from datetime import date, time, timedelta

import pytest

from conftest import EMPLOYEE, HR_MANAGER, MONDAY, OTHER_EMPLOYEE, SUPERVISOR, at
from timekeeping.core.enums import (
    BreakType,
    Decision,
    EditRequestStatus,
    EditRequestType,
    Role,
    StepStatus,
    TransactionType,
)
from timekeeping.core.exceptions import (
    AlreadyResolved,
    AuthorizationError,
    NotCurrentApprover,
    NotFoundError,
    ValidationError,
)
from timekeeping.edits.model import BreakChange, BreakEntry, ClockChange, JustificationChange, TimeEditChanges

TUESDAY = MONDAY + timedelta(days=1)
REASON = "Forgot to clock out after the late meeting"


@pytest.fixture
def worked_monday(container, clock):
    """Employee works Monday 08:00-17:30 with a 90-minute lunch; the clock then moves to Tuesday morning."""
    service = container.attendance_service
    service.clock_in(EMPLOYEE, timestamp=at(8, 0))
    service.start_break(EMPLOYEE, timestamp=at(12, 0))
    service.end_break(EMPLOYEE, timestamp=at(13, 30))
    session = service.clock_out(EMPLOYEE, timestamp=at(17, 30))
    clock.set(at(9, 0, day=TUESDAY))
    return session


def submit_clock_out(container, hh, mm=0, **kwargs):
    return container.edit_workflow.submit(
        kwargs.pop("employee_id", EMPLOYEE),
        request_type=kwargs.pop("request_type", EditRequestType.CORRECTION),
        target_date=kwargs.pop("target_date", MONDAY),
        reason=kwargs.pop("reason", REASON),
        changes=TimeEditChanges(clock_out=ClockChange(requested=time(hh, mm))),
        **kwargs,
    )


def test_submit_records_originals_impact_and_history(container, worked_monday):
    request = submit_clock_out(container, 18, 0)

    assert request.request_id > 0
    assert request.status == EditRequestStatus.PENDING
    assert request.changes.clock_out.original == time(17, 30)
    assert request.hour_bank_impact == 30
    assert request.session_id == worked_monday.session_id
    assert [s.approver_role for s in request.approval_flow] == [Role.SUPERVISOR]
    assert [(c.from_status, c.to_status) for c in request.status_history] == [(None, EditRequestStatus.PENDING)]
    assert container.edit_workflow.get(request.request_id) == request


def test_single_step_approval_applies_the_change(container, worked_monday):
    request = submit_clock_out(container, 18, 0)

    approved = container.edit_workflow.decide(request.request_id, SUPERVISOR, Decision.APPROVE, "Confirmed")

    assert approved.status == EditRequestStatus.APPROVED
    assert approved.approval_flow[0].status == StepStatus.APPROVED
    assert approved.approval_flow[0].approver_id == SUPERVISOR
    assert [c.to_status for c in approved.status_history] == [
        EditRequestStatus.PENDING,
        EditRequestStatus.UNDER_REVIEW,
        EditRequestStatus.APPROVED,
    ]

    session = container.attendance_service.get_session(EMPLOYEE, MONDAY)
    assert session.clock_out.timestamp == at(18, 0)
    assert session.clock_out.is_manual is True
    assert session.total_worked_minutes == 510

    tx = container.ledger.get_transaction(approved.ledger_transaction_id)
    assert tx.tx_type == TransactionType.ADJUSTMENT
    assert tx.amount == 30
    assert tx.edit_request_id == request.request_id
    assert container.ledger.get_hour_bank(EMPLOYEE).current_balance == 30


def test_high_impact_request_needs_supervisor_then_hr(container, worked_monday):
    request = submit_clock_out(container, 19, 30)
    assert [s.approver_role for s in request.approval_flow] == [Role.SUPERVISOR, Role.HR_MANAGER]

    with pytest.raises(NotCurrentApprover):
        container.edit_workflow.decide(request.request_id, HR_MANAGER, Decision.APPROVE)

    first = container.edit_workflow.decide(request.request_id, SUPERVISOR, Decision.APPROVE)
    assert first.status == EditRequestStatus.UNDER_REVIEW
    assert first.current_approval_step == 1
    assert container.ledger.list_for_edit_request(request.request_id) == []

    with pytest.raises(NotCurrentApprover):
        container.edit_workflow.decide(request.request_id, SUPERVISOR, Decision.APPROVE)

    final = container.edit_workflow.decide(request.request_id, HR_MANAGER, Decision.APPROVE)
    assert final.status == EditRequestStatus.APPROVED
    assert container.ledger.get_hour_bank(EMPLOYEE).current_balance == 120


def test_break_changes_always_escalate(container, worked_monday):
    request = container.edit_workflow.submit(
        EMPLOYEE,
        request_type=EditRequestType.CORRECTION,
        target_date=MONDAY,
        reason="Lunch was shorter than recorded",
        changes=TimeEditChanges(breaks=BreakChange(requested=(BreakEntry(BreakType.LUNCH, time(12, 0), time(13, 0)),))),
    )

    assert request.hour_bank_impact == 30
    assert len(request.approval_flow) == 2
    assert request.changes.breaks.original == (BreakEntry(BreakType.LUNCH, time(12, 0), time(13, 30)),)


def test_rejection_skips_later_steps_and_changes_nothing(container, worked_monday):
    request = submit_clock_out(container, 19, 30)

    rejected = container.edit_workflow.decide(request.request_id, SUPERVISOR, Decision.REJECT, "No evidence")

    assert rejected.status == EditRequestStatus.REJECTED
    assert [s.status for s in rejected.approval_flow] == [StepStatus.REJECTED, StepStatus.SKIPPED]
    assert rejected.status_history[-1].reason == "No evidence"
    assert container.attendance_service.get_session(EMPLOYEE, MONDAY) == worked_monday
    assert container.ledger.list_transactions(EMPLOYEE) == []

    with pytest.raises(AlreadyResolved):
        container.edit_workflow.decide(request.request_id, SUPERVISOR, Decision.APPROVE)


def test_requesters_cannot_approve_their_own_request(container, clock):
    container.schedule_service.assign(
        current_role=Role.ADMIN, employee_id=SUPERVISOR, schedule_id=1, start_date=date(2026, 1, 1),
    )
    service = container.attendance_service
    service.clock_in(SUPERVISOR, timestamp=at(8, 0))
    service.clock_out(SUPERVISOR, timestamp=at(16, 0))
    clock.set(at(9, 0, day=TUESDAY))

    request = submit_clock_out(container, 16, 30, employee_id=SUPERVISOR)

    with pytest.raises(NotCurrentApprover):
        container.edit_workflow.decide(request.request_id, SUPERVISOR, Decision.APPROVE)
    assert container.edit_workflow.pending_for_approver(SUPERVISOR) == []


def test_unknown_approver_is_refused(container, worked_monday):
    request = submit_clock_out(container, 18, 0)
    with pytest.raises(NotCurrentApprover):
        container.edit_workflow.decide(request.request_id, 999, Decision.APPROVE)


def test_only_the_requester_can_cancel(container, worked_monday):
    request = submit_clock_out(container, 19, 30)

    with pytest.raises(AuthorizationError):
        container.edit_workflow.cancel(request.request_id, SUPERVISOR)

    cancelled = container.edit_workflow.cancel(request.request_id, EMPLOYEE, "Submitted by mistake")
    assert cancelled.status == EditRequestStatus.CANCELLED
    assert {s.status for s in cancelled.approval_flow} == {StepStatus.SKIPPED}

    with pytest.raises(AlreadyResolved):
        container.edit_workflow.cancel(request.request_id, EMPLOYEE)
    with pytest.raises(AlreadyResolved):
        container.edit_workflow.decide(request.request_id, SUPERVISOR, Decision.APPROVE)


@pytest.mark.parametrize(
    "kwargs,error",
    [
        (dict(reason="too short"), ValidationError),
        (dict(changes=TimeEditChanges()), ValidationError),
        (dict(target_date=TUESDAY + timedelta(days=1)), ValidationError),
        (dict(changes=TimeEditChanges(clock_out=ClockChange(requested=time(7, 30)))), ValidationError),
        (dict(request_type=EditRequestType.ADDITION), ValidationError),
        (dict(target_date=TUESDAY), NotFoundError),
        (dict(request_type=EditRequestType.JUSTIFICATION), ValidationError),
        (
            dict(changes=TimeEditChanges(breaks=BreakChange(requested=(BreakEntry(BreakType.LUNCH, time(13, 0), time(12, 0)),)))),
            ValidationError,
        ),
        (dict(submitted_by=OTHER_EMPLOYEE), AuthorizationError),
    ],
)
def test_submit_validation(container, worked_monday, kwargs, error):
    values = dict(
        request_type=EditRequestType.CORRECTION,
        target_date=MONDAY,
        reason=REASON,
        changes=TimeEditChanges(clock_out=ClockChange(requested=time(18, 0))),
    )
    values.update(kwargs)

    with pytest.raises(error):
        container.edit_workflow.submit(EMPLOYEE, **values)
    assert container.edit_workflow.list_for_employee(EMPLOYEE) == []


def test_addition_needs_both_times(container, clock):
    clock.set(at(9, 0, day=TUESDAY))
    with pytest.raises(ValidationError):
        container.edit_workflow.submit(
            EMPLOYEE,
            request_type=EditRequestType.ADDITION,
            target_date=MONDAY,
            reason=REASON,
            changes=TimeEditChanges(clock_in=ClockChange(requested=time(8, 0))),
        )


def test_manager_can_submit_on_behalf(container, worked_monday):
    request = submit_clock_out(container, 18, 0, submitted_by=HR_MANAGER)

    assert request.employee_id == EMPLOYEE
    assert request.submitted_by == HR_MANAGER
    assert request.status_history[0].changed_by == HR_MANAGER


def test_pending_queue_follows_the_current_step(container, worked_monday):
    request = submit_clock_out(container, 19, 30)
    workflow = container.edit_workflow

    assert [r.request_id for r in workflow.pending_for_approver(SUPERVISOR)] == [request.request_id]
    assert workflow.pending_for_approver(HR_MANAGER) == []
    assert workflow.pending_for_approver(EMPLOYEE) == []

    workflow.decide(request.request_id, SUPERVISOR, Decision.APPROVE)

    assert workflow.pending_for_approver(SUPERVISOR) == []
    assert [r.request_id for r in workflow.pending_for_approver(HR_MANAGER)] == [request.request_id]


def test_comments(container, worked_monday):
    request = submit_clock_out(container, 18, 0)
    workflow = container.edit_workflow

    workflow.add_comment(request.request_id, EMPLOYEE, "Meeting minutes attached")
    updated = workflow.add_comment(request.request_id, SUPERVISOR, "Checked with the team lead")
    assert [c.author_id for c in updated.comments] == [EMPLOYEE, SUPERVISOR]

    with pytest.raises(AuthorizationError):
        workflow.add_comment(request.request_id, OTHER_EMPLOYEE, "Me too")
    with pytest.raises(ValidationError):
        workflow.add_comment(request.request_id, EMPLOYEE, "   ")


def test_summary_counts_and_resolution_time(container, worked_monday, clock):
    workflow = container.edit_workflow
    approved = submit_clock_out(container, 18, 0)
    rejected = submit_clock_out(container, 18, 15)
    submit_clock_out(container, 18, 30)

    clock.advance(hours=2)
    workflow.decide(approved.request_id, SUPERVISOR, Decision.APPROVE)
    workflow.decide(rejected.request_id, SUPERVISOR, Decision.REJECT, "Duplicate")

    summary = workflow.summary(employee_id=EMPLOYEE)

    assert summary.total == 3
    assert summary.by_status == {"approved": 1, "rejected": 1, "pending": 1}
    assert summary.by_type == {"correction": 3}
    assert summary.approval_rate == 50.0
    assert summary.average_resolution_hours == 2.0


def test_get_unknown_request(container):
    with pytest.raises(NotFoundError):
        container.edit_workflow.get(404)
