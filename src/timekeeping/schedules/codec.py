from __future__ import annotations

from typing import Any

from ..common.datetime_utils import format_hhmm, parse_hhmm
from ..core.enums import ScheduleType
from .model import BreakConfig, ResolvedDay, Tolerance, WorkDay, WorkSchedule, WorkShift


def shift_to_dict(shift: WorkShift) -> dict[str, Any]:
    return {
        "shift_id": shift.shift_id,
        "name": shift.name,
        "start_time": format_hhmm(shift.start_time),
        "end_time": format_hhmm(shift.end_time),
        "is_flexible": shift.is_flexible,
        "flexibility_minutes": shift.flexibility_minutes,
    }


def shift_from_dict(data: dict[str, Any]) -> WorkShift:
    return WorkShift(
        shift_id=int(data.get("shift_id", 0)),
        name=str(data.get("name", "")),
        start_time=parse_hhmm(data["start_time"]),
        end_time=parse_hhmm(data["end_time"]),
        is_flexible=bool(data.get("is_flexible", False)),
        flexibility_minutes=int(data.get("flexibility_minutes") or 0),
    )


def break_config_to_dict(config: BreakConfig) -> dict[str, Any]:
    return {
        "break_id": config.break_id,
        "name": config.name,
        "start_time": format_hhmm(config.start_time),
        "end_time": format_hhmm(config.end_time),
        "is_paid": config.is_paid,
        "is_required": config.is_required,
        "minimum_duration": config.minimum_duration,
        "maximum_duration": config.maximum_duration,
    }


def break_config_from_dict(data: dict[str, Any]) -> BreakConfig:
    return BreakConfig(
        break_id=int(data.get("break_id", 0)),
        name=str(data.get("name", "")),
        start_time=parse_hhmm(data["start_time"]),
        end_time=parse_hhmm(data["end_time"]),
        is_paid=bool(data.get("is_paid", False)),
        is_required=bool(data.get("is_required", False)),
        minimum_duration=int(data.get("minimum_duration") or 0),
        maximum_duration=int(data.get("maximum_duration") or 0),
    )


def tolerance_to_dict(tolerance: Tolerance) -> dict[str, int]:
    return {
        "entry_minutes": tolerance.entry_minutes,
        "exit_minutes": tolerance.exit_minutes,
        "lunch_minutes": tolerance.lunch_minutes,
    }


def tolerance_from_dict(data: dict[str, Any] | None) -> Tolerance:
    data = data or {}
    return Tolerance(
        entry_minutes=int(data.get("entry_minutes") or 0),
        exit_minutes=int(data.get("exit_minutes") or 0),
        lunch_minutes=int(data.get("lunch_minutes") or 0),
    )


def work_days_to_list(work_days: tuple[WorkDay, ...]) -> list[dict[str, Any]]:
    return [
        {
            "day_of_week": d.day_of_week,
            "is_work_day": d.is_work_day,
            "shifts": [shift_to_dict(s) for s in d.shifts],
        }
        for d in work_days
    ]


def work_days_from_list(items: list[dict[str, Any]] | None) -> tuple[WorkDay, ...]:
    return tuple(
        WorkDay(
            day_of_week=int(d["day_of_week"]),
            is_work_day=bool(d.get("is_work_day", True)),
            shifts=tuple(shift_from_dict(s) for s in d.get("shifts") or []),
        )
        for d in items or []
    )


def schedule_to_dict(schedule: WorkSchedule) -> dict[str, Any]:
    return {
        "schedule_id": schedule.schedule_id,
        "name": schedule.name,
        "description": schedule.description,
        "type": schedule.schedule_type.value,
        "is_active": schedule.is_active,
        "work_days": work_days_to_list(schedule.work_days),
        "tolerance": tolerance_to_dict(schedule.tolerance),
        "breaks": [break_config_to_dict(b) for b in schedule.breaks],
        "allow_overtime": schedule.allow_overtime,
        "require_justification": schedule.require_justification,
    }


def schedule_from_dict(data: dict[str, Any]) -> WorkSchedule:
    return WorkSchedule(
        schedule_id=int(data.get("schedule_id", 0)),
        name=str(data["name"]),
        description=data.get("description"),
        schedule_type=ScheduleType(data.get("type", ScheduleType.FIXED.value)),
        is_active=bool(data.get("is_active", True)),
        work_days=work_days_from_list(data.get("work_days")),
        tolerance=tolerance_from_dict(data.get("tolerance")),
        breaks=tuple(break_config_from_dict(b) for b in data.get("breaks") or []),
        allow_overtime=bool(data.get("allow_overtime", True)),
        require_justification=bool(data.get("require_justification", False)),
    )


def resolved_day_to_dict(day: ResolvedDay) -> dict[str, Any]:
    return {
        "employee_id": day.employee_id,
        "work_date": day.work_date.isoformat(),
        "schedule_id": day.schedule_id,
        "shifts": [shift_to_dict(s) for s in day.shifts],
        "breaks": [break_config_to_dict(b) for b in day.breaks],
        "tolerance": tolerance_to_dict(day.tolerance),
        "expected_minutes": day.expected_minutes,
        "allow_overtime": day.allow_overtime,
        "require_justification": day.require_justification,
        "warnings": list(day.warnings),
    }
