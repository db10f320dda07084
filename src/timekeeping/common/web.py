from __future__ import annotations

import logging
from datetime import date, datetime
from functools import wraps
from typing import Any, Optional

from flask import Flask, jsonify, request, session

from .datetime_utils import parse_iso_date, parse_iso_datetime
from ..core.enums import Role
from ..core.exceptions import (
    AlreadyClockedIn,
    AlreadyResolved,
    AuthorizationError,
    DomainError,
    DuplicateReference,
    MaterializationError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Most specific first.
_STATUS_CODES: tuple[tuple[type[DomainError], int], ...] = (
    (MaterializationError, 503),
    (AlreadyClockedIn, 409),
    (DuplicateReference, 409),
    (AlreadyResolved, 409),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ValidationError, 400),
)


def current_user_id() -> int:
    return int(session["user_id"])


def current_role() -> Optional[Role]:
    value = session.get("role")
    return Role(value) if value else None


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"success": False, "message": "Login required"}), 401
        return view(*args, **kwargs)

    return wrapper


def roles_required(*roles: Role):
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if "user_id" not in session:
                return jsonify({"success": False, "message": "Login required"}), 401
            if current_role() not in roles:
                return jsonify({"success": False, "message": "Forbidden"}), 403
            return view(*args, **kwargs)

        return wrapper

    return decorator


def json_body() -> dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("JSON object expected")
    return data


def ok(data: Any = None, status: int = 200):
    return jsonify({"success": True, "data": data}), status


def date_arg(value: Optional[str], field_name: str) -> Optional[date]:
    if not value:
        return None
    try:
        return parse_iso_date(value)
    except ValueError as e:
        raise ValidationError(f"{field_name} must be YYYY-MM-DD") from e


def datetime_arg(value: Optional[str], field_name: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        return parse_iso_datetime(value)
    except ValueError as e:
        raise ValidationError(f"{field_name} must be an ISO-8601 timestamp") from e


def status_for(error: DomainError) -> int:
    for kind, status in _STATUS_CODES:
        if isinstance(error, kind):
            return status
    return 400


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(error: DomainError):
        status = status_for(error)
        if status >= 500:
            logger.error("request failed: %s", error)
        body = {"success": False, "error": type(error).__name__, "message": str(error)}
        if isinstance(error, MaterializationError):
            body["request_id"] = error.request_id
        return jsonify(body), status


def target_employee_id(requested: Optional[int]) -> int:
    """Own id, or the requested employee's id when the caller is a manager."""
    user_id = current_user_id()
    if not requested or int(requested) == user_id:
        return user_id
    if current_role() in (None, Role.EMPLOYEE):
        raise AuthorizationError("Not allowed to view another employee's data")
    return int(requested)
