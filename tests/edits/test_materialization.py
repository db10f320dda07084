from __future__ import annotations

from dataclasses import replace
from datetime import date, time, timedelta
from types import SimpleNamespace

import pytest

from conftest import EMPLOYEE, HR_MANAGER, MONDAY, OTHER_EMPLOYEE, SUPERVISOR, at, office_schedule
from timekeeping.container import build_memory_container
from timekeeping.core.enums import (
    BreakType,
    ComplianceFlag,
    Decision,
    EditRequestStatus,
    EditRequestType,
    Role,
    SessionStatus,
    TransactionStatus,
    TransactionType,
)
from timekeeping.core.exceptions import AlreadyResolved, MaterializationError
from timekeeping.edits.model import BreakChange, BreakEntry, ClockChange, JustificationChange, TimeEditChanges

TUESDAY = MONDAY + timedelta(days=1)


def _work(container, employee_id=EMPLOYEE, *, clock_in=(8, 0), lunch=True, clock_out=(17, 30)):
    service = container.attendance_service
    service.clock_in(employee_id, timestamp=at(*clock_in))
    if lunch:
        service.start_break(employee_id, timestamp=at(12, 0))
        service.end_break(employee_id, timestamp=at(13, 30))
    return service.clock_out(employee_id, timestamp=at(*clock_out))


def _approve_all(container, request):
    approvers = {Role.SUPERVISOR: SUPERVISOR, Role.HR_MANAGER: HR_MANAGER}
    for step in request.approval_flow:
        request = container.edit_workflow.decide(request.request_id, approvers[step.approver_role], Decision.APPROVE)
    return request


def test_failed_materialization_rolls_back_and_can_be_retried(container, clock, monkeypatch):
    original = _work(container)
    clock.set(at(9, 0, day=TUESDAY))
    request = container.edit_workflow.submit(
        EMPLOYEE,
        request_type=EditRequestType.CORRECTION,
        target_date=MONDAY,
        reason="Stayed for the release window",
        changes=TimeEditChanges(clock_out=ClockChange(requested=time(18, 0))),
    )

    def unavailable(draft):
        raise RuntimeError("ledger unavailable")

    monkeypatch.setattr(container.ledger, "post_transaction", unavailable)
    with pytest.raises(MaterializationError) as excinfo:
        container.edit_workflow.decide(request.request_id, SUPERVISOR, Decision.APPROVE)
    assert excinfo.value.request_id == request.request_id

    stored = container.edit_workflow.get(request.request_id)
    assert stored.status == EditRequestStatus.UNDER_REVIEW
    assert stored.current_step.step_number == 1
    assert stored.comments[-1].is_system is True
    assert container.attendance_service.get_session(EMPLOYEE, MONDAY) == original
    assert container.ledger.list_transactions(EMPLOYEE) == []

    monkeypatch.undo()
    approved = container.edit_workflow.decide(request.request_id, SUPERVISOR, Decision.APPROVE)

    assert approved.status == EditRequestStatus.APPROVED
    assert len(container.ledger.list_for_edit_request(request.request_id)) == 1
    assert container.attendance_service.get_session(EMPLOYEE, MONDAY).clock_out.timestamp == at(18, 0)
    assert container.ledger.get_hour_bank(EMPLOYEE).current_balance == 30


def test_correction_appends_instead_of_rewriting_history(container, clock):
    _work(container, lunch=False)
    worked = container.ledger.list_transactions(EMPLOYEE)
    assert [(t.tx_type, t.amount) for t in worked] == [(TransactionType.CREDIT, 90)]

    clock.set(at(9, 0, day=TUESDAY))
    request = container.edit_workflow.submit(
        EMPLOYEE,
        request_type=EditRequestType.CORRECTION,
        target_date=MONDAY,
        reason="Lunch break was not recorded",
        changes=TimeEditChanges(breaks=BreakChange(requested=(BreakEntry(BreakType.LUNCH, time(12, 0), time(13, 30)),))),
    )
    assert request.hour_bank_impact == -90

    _approve_all(container, request)

    rows = container.ledger.list_transactions(EMPLOYEE)
    assert [(t.tx_type, t.amount, t.status) for t in rows] == [
        (TransactionType.CREDIT, 90, TransactionStatus.APPROVED),
        (TransactionType.ADJUSTMENT, -90, TransactionStatus.APPROVED),
    ]
    assert rows[0] == worked[0]
    assert container.ledger.get_hour_bank(EMPLOYEE).current_balance == 0


def test_addition_creates_the_session_and_its_adjustment(container, clock):
    clock.set(at(9, 0, day=TUESDAY))
    request = container.edit_workflow.submit(
        OTHER_EMPLOYEE,
        request_type=EditRequestType.ADDITION,
        target_date=MONDAY,
        reason="Badge reader was broken all day",
        changes=TimeEditChanges(clock_in=ClockChange(requested=time(8, 0)), clock_out=ClockChange(requested=time(17, 30))),
    )
    assert request.session_id is None
    assert request.hour_bank_impact == 90

    approved = _approve_all(container, request)

    session = container.attendance_service.get_session(OTHER_EMPLOYEE, MONDAY)
    assert session.status == SessionStatus.COMPLETED
    assert session.total_worked_minutes == 570
    tx = container.ledger.get_transaction(approved.ledger_transaction_id)
    assert tx.session_id == session.session_id
    assert tx.amount == 90


def test_justification_only_request_posts_a_zero_adjustment(container, clock):
    _work(container, clock_in=(8, 25))
    assert ComplianceFlag.JUSTIFICATION_REQUIRED in container.attendance_service.get_session(EMPLOYEE, MONDAY).flags

    clock.set(at(9, 0, day=TUESDAY))
    request = container.edit_workflow.submit(
        EMPLOYEE,
        request_type=EditRequestType.JUSTIFICATION,
        target_date=MONDAY,
        reason="Explaining Monday's late arrival",
        changes=TimeEditChanges(justification=JustificationChange("Train was cancelled")),
    )
    assert request.hour_bank_impact == 0

    approved = _approve_all(container, request)

    rows = container.ledger.list_for_edit_request(request.request_id)
    assert [(t.tx_type, t.amount, t.status) for t in rows] == [(TransactionType.ADJUSTMENT, 0, TransactionStatus.APPROVED)]
    assert approved.ledger_transaction_id == rows[0].transaction_id
    session = container.attendance_service.get_session(EMPLOYEE, MONDAY)
    assert session.justification == "Train was cancelled"
    assert ComplianceFlag.JUSTIFICATION_REQUIRED not in session.flags


def test_removal_of_breaks_escalates_and_credits_the_time(container, clock):
    _work(container)
    clock.set(at(9, 0, day=TUESDAY))
    request = container.edit_workflow.submit(
        EMPLOYEE,
        request_type=EditRequestType.REMOVAL,
        target_date=MONDAY,
        reason="Worked through lunch at the client site",
        changes=TimeEditChanges(breaks=BreakChange(requested=())),
    )
    assert [s.approver_role for s in request.approval_flow] == [Role.SUPERVISOR, Role.HR_MANAGER]

    _approve_all(container, request)

    assert container.attendance_service.get_session(EMPLOYEE, MONDAY).breaks == ()
    assert container.ledger.get_hour_bank(EMPLOYEE).current_balance == 90


def test_pending_worked_delta_is_superseded(clock, roles):
    settings = SimpleNamespace(AUTO_APPROVE_SESSION_DELTAS=False)
    container = build_memory_container(settings=settings, roles=roles, clock=clock)
    schedule_id = container.schedule_service.create_schedule(current_role=Role.ADMIN, schedule=office_schedule())
    container.schedule_service.assign(
        current_role=Role.ADMIN, employee_id=EMPLOYEE, schedule_id=schedule_id, start_date=date(2026, 1, 1),
    )

    _work(container, clock_out=(18, 0))
    pending = container.ledger.list_transactions(EMPLOYEE)
    assert [(t.amount, t.status) for t in pending] == [(30, TransactionStatus.PENDING)]

    clock.set(at(9, 0, day=TUESDAY))
    request = container.edit_workflow.submit(
        EMPLOYEE,
        request_type=EditRequestType.CORRECTION,
        target_date=MONDAY,
        reason="Left at half past six, not six",
        changes=TimeEditChanges(clock_out=ClockChange(requested=time(18, 30))),
    )
    assert request.hour_bank_impact == 60

    _approve_all(container, request)

    rows = {t.transaction_id: t for t in container.ledger.list_transactions(EMPLOYEE)}
    assert rows[pending[0].transaction_id].status == TransactionStatus.REJECTED
    assert container.ledger.get_hour_bank(EMPLOYEE).current_balance == 60


def test_shifted_day_with_unchanged_total_still_posts_one_adjustment(container, clock):
    _work(container)
    balance = container.ledger.get_hour_bank(EMPLOYEE).current_balance

    clock.set(at(9, 0, day=TUESDAY))
    request = container.edit_workflow.submit(
        EMPLOYEE,
        request_type=EditRequestType.CORRECTION,
        target_date=MONDAY,
        reason="Whole day was half an hour later",
        changes=TimeEditChanges(clock_in=ClockChange(requested=time(8, 30)), clock_out=ClockChange(requested=time(18, 0))),
    )
    approved = _approve_all(container, request)

    assert approved.status == EditRequestStatus.APPROVED
    rows = container.ledger.list_for_edit_request(request.request_id)
    assert len(rows) == 1
    assert rows[0].amount == 0
    assert approved.ledger_transaction_id == rows[0].transaction_id
    assert container.ledger.recompute_balance(EMPLOYEE) == balance


def test_decision_already_taken_elsewhere_does_not_materialize(container, clock, monkeypatch):
    original = _work(container)
    clock.set(at(9, 0, day=TUESDAY))
    request = container.edit_workflow.submit(
        EMPLOYEE,
        request_type=EditRequestType.CORRECTION,
        target_date=MONDAY,
        reason="Stayed for the release window",
        changes=TimeEditChanges(clock_out=ClockChange(requested=time(18, 0))),
    )

    repo = container.edit_requests_repo
    stored = repo.get(request.request_id)
    monkeypatch.setattr(repo, "get_for_update", lambda request_id: replace(stored, status=EditRequestStatus.APPROVED))

    with pytest.raises(AlreadyResolved):
        container.edit_workflow.decide(request.request_id, SUPERVISOR, Decision.APPROVE)

    assert container.ledger.list_for_edit_request(request.request_id) == []
    assert container.attendance_service.get_session(EMPLOYEE, MONDAY) == original
    assert container.edit_workflow.get(request.request_id).comments == ()
