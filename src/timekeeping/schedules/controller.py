from __future__ import annotations

from flask import Flask, request

from ..common.web import (
    current_role,
    current_user_id,
    date_arg,
    json_body,
    login_required,
    ok,
    roles_required,
    target_employee_id,
)
from ..core.enums import Role
from ..core.exceptions import ValidationError
from ..container import Container
from .codec import resolved_day_to_dict, schedule_from_dict, schedule_to_dict


def register(app: Flask, container: Container) -> None:
    managers = (Role.ADMIN, Role.HR_MANAGER)

    @app.route("/api/schedules", methods=["POST"], endpoint="api_create_schedule")
    @roles_required(*managers)
    def api_create_schedule():
        data = json_body()
        try:
            schedule = schedule_from_dict(data)
        except (KeyError, ValueError) as e:
            raise ValidationError(f"Invalid schedule: {e}") from e
        schedule_id = container.schedule_service.create_schedule(current_role=current_role(), schedule=schedule)
        return ok({"schedule_id": schedule_id}, 201)

    @app.route("/api/schedules/<int:schedule_id>", methods=["GET"], endpoint="api_get_schedule")
    @login_required
    def api_get_schedule(schedule_id: int):
        return ok(schedule_to_dict(container.schedule_service.get_schedule(schedule_id)))

    @app.route("/api/schedules/<int:schedule_id>/assignments", methods=["POST"], endpoint="api_assign_schedule")
    @roles_required(*managers)
    def api_assign_schedule(schedule_id: int):
        data = json_body()
        start_date = date_arg(data.get("start_date"), "start_date")
        if start_date is None:
            raise ValidationError("start_date is required")
        assignment_id = container.schedule_service.assign(
            current_role=current_role(),
            employee_id=int(data.get("employee_id") or 0),
            schedule_id=schedule_id,
            start_date=start_date,
            end_date=date_arg(data.get("end_date"), "end_date"),
            assigned_by=current_user_id(),
            note=data.get("note"),
        )
        return ok({"assignment_id": assignment_id}, 201)

    @app.route("/api/schedules/resolved", methods=["GET"], endpoint="api_resolved_day")
    @login_required
    def api_resolved_day():
        employee_id = target_employee_id(request.args.get("employee_id", type=int))
        work_date = date_arg(request.args.get("date"), "date")
        if work_date is None:
            raise ValidationError("date is required")
        day = container.schedule_service.resolve_day(employee_id, work_date)
        return ok(resolved_day_to_dict(day))
