from __future__ import annotations

from typing import Any, Optional

from ..common.datetime_utils import parse_iso_datetime
from ..core.enums import BreakType, ClockRecordType, ComplianceFlag
from .model import BreakRecord, ClockRecord, GeoLocation, TimeClockSession, TodayStats


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def location_to_dict(location: Optional[GeoLocation]) -> Optional[dict[str, Any]]:
    if location is None:
        return None
    return {
        "latitude": location.latitude,
        "longitude": location.longitude,
        "accuracy": location.accuracy,
        "address": location.address,
    }


def location_from_dict(data: Optional[dict[str, Any]]) -> Optional[GeoLocation]:
    if not data:
        return None
    return GeoLocation(
        latitude=float(data["latitude"]),
        longitude=float(data["longitude"]),
        accuracy=float(data.get("accuracy") or 0.0),
        address=data.get("address"),
    )


def clock_record_to_dict(record: Optional[ClockRecord]) -> Optional[dict[str, Any]]:
    if record is None:
        return None
    return {
        "timestamp": record.timestamp.isoformat(),
        "type": record.record_type.value,
        "location": location_to_dict(record.location),
        "ip_address": record.ip_address,
        "is_manual": record.is_manual,
        "manual_reason": record.manual_reason,
        "registered_by": record.registered_by,
    }


def clock_record_from_dict(data: Optional[dict[str, Any]]) -> Optional[ClockRecord]:
    if not data:
        return None
    return ClockRecord(
        timestamp=parse_iso_datetime(data["timestamp"]),
        record_type=ClockRecordType(data["type"]),
        location=location_from_dict(data.get("location")),
        ip_address=data.get("ip_address"),
        is_manual=bool(data.get("is_manual", False)),
        manual_reason=data.get("manual_reason"),
        registered_by=data.get("registered_by"),
    )


def break_record_to_dict(record: BreakRecord) -> dict[str, Any]:
    return {
        "type": record.break_type.value,
        "start_time": record.start_time.isoformat(),
        "end_time": _iso(record.end_time),
        "duration": record.duration_minutes,
        "is_paid": record.is_paid,
        "break_config_id": record.break_config_id,
        "flags": [f.value for f in record.flags],
    }


def break_record_from_dict(data: dict[str, Any]) -> BreakRecord:
    end = data.get("end_time")
    return BreakRecord(
        break_type=BreakType(data.get("type", BreakType.OTHER.value)),
        start_time=parse_iso_datetime(data["start_time"]),
        end_time=parse_iso_datetime(end) if end else None,
        is_paid=bool(data.get("is_paid", False)),
        break_config_id=data.get("break_config_id"),
        flags=flags_from_list(data.get("flags")),
    )


def flags_from_list(values) -> tuple[ComplianceFlag, ...]:
    return tuple(ComplianceFlag(v) for v in values or [])


def session_to_dict(session: TimeClockSession) -> dict[str, Any]:
    return {
        "session_id": session.session_id,
        "employee_id": session.employee_id,
        "work_date": session.work_date.isoformat(),
        "status": session.status.value,
        "state": session.state.value,
        "clock_in": clock_record_to_dict(session.clock_in),
        "clock_out": clock_record_to_dict(session.clock_out),
        "breaks": [break_record_to_dict(b) for b in session.breaks],
        "expected_minutes": session.expected_minutes,
        "total_worked_minutes": session.total_worked_minutes,
        "break_minutes": session.break_minutes,
        "overtime_minutes": session.overtime_minutes,
        "overtime_billable": session.overtime_billable,
        "is_late": session.is_late,
        "minutes_late": session.minutes_late,
        "justification": session.justification,
        "flags": [f.value for f in session.flags],
        "schedule_id": session.schedule_id,
        "created_at": _iso(session.created_at),
        "updated_at": _iso(session.updated_at),
    }


def today_stats_to_dict(stats: TodayStats) -> dict[str, Any]:
    return {
        "state": stats.state.value,
        "worked_minutes": stats.worked_minutes,
        "expected_minutes": stats.expected_minutes,
        "break_minutes": stats.break_minutes,
        "remaining_minutes": stats.remaining_minutes,
        "overtime_minutes": stats.overtime_minutes,
    }
