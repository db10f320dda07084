from __future__ import annotations

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_min_length(value: str, field_name: str, min_len: int) -> str:
    if value is None or len(value.strip()) < min_len:
        raise ValidationError(f"{field_name} must have at least {min_len} characters")
    return value.strip()


def require_positive_id(value: int, field_name: str) -> int:
    if int(value) <= 0:
        raise ValidationError(f"{field_name} is not valid")
    return int(value)
