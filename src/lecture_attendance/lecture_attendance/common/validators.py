from __future__ import annotations

from typing import Any

from ..core.enums import AttendanceStatus, Role
from ..core.exceptions import AuthorizationError, ValidationError


def require_role(value: Any) -> Role:
    if isinstance(value, Role):
        return value
    try:
        return Role(str(value or "").strip().lower())
    except ValueError:
        raise AuthorizationError(f"Unknown role {value!r}")


def require_positive_int(value: Any, field_name: str, *, error=ValidationError) -> int:
    # bool is an int subclass; True must not pass as lecture number 1.
    if isinstance(value, bool):
        raise error(f"{field_name} must be a positive integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise error(f"{field_name} must be a positive integer")
    if number <= 0 or (isinstance(value, float) and not value.is_integer()):
        raise error(f"{field_name} must be a positive integer")
    return number


def require_attendance_status(value: Any) -> AttendanceStatus:
    if isinstance(value, AttendanceStatus):
        return value
    try:
        return AttendanceStatus(str(value or "").strip().upper())
    except ValueError:
        raise ValidationError(f"Attendance status must be PRESENT or ABSENT, got {value!r}")
