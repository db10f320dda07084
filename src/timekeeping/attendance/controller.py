from __future__ import annotations

from datetime import timedelta

from flask import Flask, request

from ..common.web import current_user_id, date_arg, datetime_arg, json_body, login_required, ok, roles_required
from ..core.enums import BreakType, ClockRecordType, Role
from ..core.exceptions import ValidationError
from ..container import Container
from .codec import location_from_dict, session_to_dict, today_stats_to_dict


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    @app.route("/api/attendance/clock-in", methods=["POST"], endpoint="api_clock_in")
    @login_required
    def api_clock_in():
        data = json_body()
        session_ = service.clock_in(
            current_user_id(),
            location=location_from_dict(data.get("location")),
            ip_address=request.remote_addr,
        )
        return ok(session_to_dict(session_), 201)

    @app.route("/api/attendance/clock-out", methods=["POST"], endpoint="api_clock_out")
    @login_required
    def api_clock_out():
        data = json_body()
        session_ = service.clock_out(
            current_user_id(),
            location=location_from_dict(data.get("location")),
            ip_address=request.remote_addr,
        )
        return ok(session_to_dict(session_))

    @app.route("/api/attendance/breaks/start", methods=["POST"], endpoint="api_start_break")
    @login_required
    def api_start_break():
        data = json_body()
        try:
            break_type = BreakType(data.get("type", BreakType.LUNCH.value))
        except ValueError as e:
            raise ValidationError(str(e)) from e
        session_ = service.start_break(current_user_id(), break_type, break_config_id=data.get("break_config_id"))
        return ok(session_to_dict(session_))

    @app.route("/api/attendance/breaks/end", methods=["POST"], endpoint="api_end_break")
    @login_required
    def api_end_break():
        return ok(session_to_dict(service.end_break(current_user_id())))

    @app.route("/api/attendance/today", methods=["GET"], endpoint="api_attendance_today")
    @login_required
    def api_attendance_today():
        employee_id = current_user_id()
        session_ = service.get_session(employee_id, service.today())
        return ok({
            "stats": today_stats_to_dict(service.today_stats(employee_id)),
            "session": session_to_dict(session_) if session_ else None,
        })

    @app.route("/api/attendance/sessions", methods=["GET"], endpoint="api_attendance_sessions")
    @login_required
    def api_attendance_sessions():
        today = service.today()
        end = date_arg(request.args.get("end"), "end") or today
        start = date_arg(request.args.get("start"), "start") or end - timedelta(days=30)
        if start > end:
            raise ValidationError("start must be on or before end")
        sessions = service.list_sessions(current_user_id(), start=start, end=end)
        return ok([session_to_dict(s) for s in sessions])

    @app.route("/api/attendance/justification", methods=["POST"], endpoint="api_attendance_justification")
    @login_required
    def api_attendance_justification():
        data = json_body()
        work_date = date_arg(data.get("date"), "date") or service.today()
        session_ = service.submit_justification(current_user_id(), work_date, str(data.get("text") or ""))
        return ok(session_to_dict(session_))

    @app.route("/api/attendance/manual", methods=["POST"], endpoint="api_attendance_manual")
    @roles_required(Role.SUPERVISOR, Role.HR_MANAGER, Role.ADMIN)
    def api_attendance_manual():
        """Register a clock event on behalf of an employee (device outage, forgotten badge)."""
        data = json_body()
        timestamp = datetime_arg(data.get("timestamp"), "timestamp")
        if timestamp is None:
            raise ValidationError("timestamp is required")
        try:
            record_type = ClockRecordType(data.get("type"))
        except ValueError as e:
            raise ValidationError(str(e)) from e

        action = service.clock_in if record_type == ClockRecordType.CLOCK_IN else service.clock_out
        session_ = action(
            int(data.get("employee_id") or 0),
            timestamp=timestamp,
            is_manual=True,
            manual_reason=data.get("reason"),
            registered_by=current_user_id(),
        )
        return ok(session_to_dict(session_))

    @app.route("/api/attendance/force-close", methods=["POST"], endpoint="api_attendance_force_close")
    @roles_required(Role.HR_MANAGER, Role.ADMIN)
    def api_attendance_force_close():
        data = json_body()
        work_date = date_arg(data.get("date"), "date")
        if work_date is None:
            raise ValidationError("date is required")
        if data.get("employee_id"):
            closed = [service.force_close_session(int(data["employee_id"]), work_date)]
        else:
            closed = service.force_close_day(work_date)
        return ok([session_to_dict(s) for s in closed])
