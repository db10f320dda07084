from __future__ import annotations

from flask import Flask, request

from ..common.web import (
    current_user_id,
    date_arg,
    json_body,
    login_required,
    ok,
    roles_required,
    target_employee_id,
)
from ..core.enums import Role, TransactionStatus
from ..core.exceptions import ValidationError
from ..container import Container
from .codec import alert_to_dict, draft_from_dict, hour_bank_to_dict, period_to_dict, summary_to_dict, transaction_to_dict


def register(app: Flask, container: Container) -> None:
    ledger = container.ledger
    managers = (Role.HR_MANAGER, Role.ADMIN)

    @app.route("/api/hour-bank/summary", methods=["GET"], endpoint="api_hour_bank_summary")
    @login_required
    def api_hour_bank_summary():
        employee_id = target_employee_id(request.args.get("employee_id", type=int))
        summary = ledger.summary(
            employee_id,
            start=date_arg(request.args.get("start"), "start"),
            end=date_arg(request.args.get("end"), "end"),
        )
        return ok(summary_to_dict(summary))

    @app.route("/api/hour-bank/alerts", methods=["GET"], endpoint="api_hour_bank_alerts")
    @login_required
    def api_hour_bank_alerts():
        employee_id = target_employee_id(request.args.get("employee_id", type=int))
        return ok([alert_to_dict(a) for a in ledger.alerts(employee_id)])

    @app.route("/api/hour-bank/transactions", methods=["GET"], endpoint="api_hour_bank_transactions")
    @login_required
    def api_hour_bank_transactions():
        employee_id = target_employee_id(request.args.get("employee_id", type=int))
        status = request.args.get("status")
        try:
            status = TransactionStatus(status) if status else None
        except ValueError as e:
            raise ValidationError(str(e)) from e
        rows = ledger.list_transactions(
            employee_id,
            status=status,
            start=date_arg(request.args.get("start"), "start"),
            end=date_arg(request.args.get("end"), "end"),
        )
        return ok([transaction_to_dict(tx) for tx in rows])

    @app.route("/api/hour-bank/transactions", methods=["POST"], endpoint="api_hour_bank_post")
    @roles_required(*managers)
    def api_hour_bank_post():
        data = json_body()
        draft = draft_from_dict(data, employee_id=int(data.get("employee_id") or 0), created_by=current_user_id())
        return ok(transaction_to_dict(ledger.post_transaction(draft)), 201)

    @app.route("/api/hour-bank/transactions/<int:transaction_id>/review", methods=["POST"], endpoint="api_hour_bank_review")
    @roles_required(Role.SUPERVISOR, *managers)
    def api_hour_bank_review(transaction_id: int):
        data = json_body()
        tx = ledger.review_transaction(
            transaction_id,
            approve=bool(data.get("approve")),
            reviewer_id=current_user_id(),
            rejection_reason=data.get("reason"),
        )
        return ok(transaction_to_dict(tx))

    @app.route("/api/hour-bank/<int:employee_id>/recompute", methods=["POST"], endpoint="api_hour_bank_recompute")
    @roles_required(*managers)
    def api_hour_bank_recompute(employee_id: int):
        ledger.recompute_balance(employee_id)
        return ok(hour_bank_to_dict(ledger.get_hour_bank(employee_id)))

    @app.route("/api/hour-bank/<int:employee_id>/limits", methods=["PUT"], endpoint="api_hour_bank_limits")
    @roles_required(*managers)
    def api_hour_bank_limits(employee_id: int):
        data = json_body()
        bank = ledger.configure_limits(
            employee_id,
            max_positive_balance=data.get("max_positive_balance"),
            max_negative_balance=data.get("max_negative_balance"),
        )
        return ok(hour_bank_to_dict(bank))

    @app.route(
        "/api/hour-bank/<int:employee_id>/compensation-periods",
        methods=["POST"],
        endpoint="api_hour_bank_open_period",
    )
    @roles_required(*managers)
    def api_hour_bank_open_period(employee_id: int):
        data = json_body()
        start_date = date_arg(data.get("start_date"), "start_date")
        end_date = date_arg(data.get("end_date"), "end_date")
        if start_date is None or end_date is None:
            raise ValidationError("start_date and end_date are required")
        period = ledger.open_compensation_period(
            employee_id,
            start_date=start_date,
            end_date=end_date,
            target_balance=data.get("target_balance", 0),
            description=data.get("description"),
        )
        return ok(period_to_dict(period), 201)
