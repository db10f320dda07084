from __future__ import annotations

from flask import Flask, request

from ..common.web import current_role, current_user_id, date_arg, json_body, login_required, ok, roles_required
from ..core.enums import Decision, EditRequestStatus, EditRequestType, Priority, Role
from ..core.exceptions import AuthorizationError, ValidationError
from ..container import Container
from .codec import changes_from_dict, request_to_dict, summary_to_dict


def _enum(kind, value, field_name: str):
    try:
        return kind(value)
    except ValueError as e:
        raise ValidationError(f"Invalid {field_name}: {value!r}") from e


def register(app: Flask, container: Container) -> None:
    workflow = container.edit_workflow

    @app.route("/api/time-edit-requests", methods=["POST"], endpoint="api_submit_edit_request")
    @login_required
    def api_submit_edit_request():
        data = json_body()
        target_date = date_arg(data.get("target_date"), "target_date")
        if target_date is None:
            raise ValidationError("target_date is required")
        user_id = current_user_id()
        edit = workflow.submit(
            int(data.get("employee_id") or user_id),
            request_type=_enum(EditRequestType, data.get("request_type", "correction"), "request_type"),
            target_date=target_date,
            reason=str(data.get("reason") or ""),
            changes=changes_from_dict(data.get("changes")),
            priority=_enum(Priority, data.get("priority", "medium"), "priority"),
            description=data.get("description"),
            submitted_by=user_id,
        )
        return ok(request_to_dict(edit), 201)

    @app.route("/api/time-edit-requests", methods=["GET"], endpoint="api_my_edit_requests")
    @login_required
    def api_my_edit_requests():
        status = request.args.get("status")
        status = _enum(EditRequestStatus, status, "status") if status else None
        rows = workflow.list_for_employee(current_user_id(), status=status)
        return ok([request_to_dict(r) for r in rows])

    @app.route("/api/time-edit-requests/pending", methods=["GET"], endpoint="api_pending_edit_requests")
    @roles_required(Role.SUPERVISOR, Role.HR_MANAGER, Role.ADMIN)
    def api_pending_edit_requests():
        return ok([request_to_dict(r) for r in workflow.pending_for_approver(current_user_id())])

    @app.route("/api/time-edit-requests/summary", methods=["GET"], endpoint="api_edit_request_summary")
    @roles_required(Role.SUPERVISOR, Role.HR_MANAGER, Role.ADMIN)
    def api_edit_request_summary():
        summary = workflow.summary(
            employee_id=request.args.get("employee_id", type=int),
            start=date_arg(request.args.get("start"), "start"),
            end=date_arg(request.args.get("end"), "end"),
        )
        return ok(summary_to_dict(summary))

    @app.route("/api/time-edit-requests/<int:request_id>", methods=["GET"], endpoint="api_get_edit_request")
    @login_required
    def api_get_edit_request(request_id: int):
        edit = workflow.get(request_id)
        if edit.employee_id != current_user_id() and current_role() in (None, Role.EMPLOYEE):
            raise AuthorizationError("Not allowed to view this request")
        return ok(request_to_dict(edit))

    @app.route("/api/time-edit-requests/<int:request_id>/decision", methods=["POST"], endpoint="api_decide_edit_request")
    @roles_required(Role.SUPERVISOR, Role.HR_MANAGER, Role.ADMIN)
    def api_decide_edit_request(request_id: int):
        data = json_body()
        edit = workflow.decide(
            request_id,
            current_user_id(),
            _enum(Decision, data.get("decision"), "decision"),
            data.get("comments"),
        )
        return ok(request_to_dict(edit))

    @app.route("/api/time-edit-requests/<int:request_id>/cancel", methods=["POST"], endpoint="api_cancel_edit_request")
    @login_required
    def api_cancel_edit_request(request_id: int):
        data = json_body()
        return ok(request_to_dict(workflow.cancel(request_id, current_user_id(), data.get("reason"))))

    @app.route("/api/time-edit-requests/<int:request_id>/comments", methods=["POST"], endpoint="api_comment_edit_request")
    @login_required
    def api_comment_edit_request(request_id: int):
        data = json_body()
        edit = workflow.add_comment(request_id, current_user_id(), str(data.get("text") or ""))
        return ok(request_to_dict(edit), 201)
