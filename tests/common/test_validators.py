from __future__ import annotations

import pytest

from src.lecture_attendance.lecture_attendance.common.datetime_utils import parse_iso_date
from src.lecture_attendance.lecture_attendance.common.validators import (
    require_attendance_status,
    require_positive_int,
    require_role,
)
from src.lecture_attendance.lecture_attendance.core.enums import AttendanceStatus, Role
from src.lecture_attendance.lecture_attendance.core.exceptions import (
    AuthorizationError,
    InvalidSession,
    ValidationError,
)


def test_positive_int_accepts_numeric_strings():
    assert require_positive_int("12", "lecture_number") == 12
    assert require_positive_int(3.0, "lecture_number") == 3


@pytest.mark.parametrize("value", [0, -1, True, 2.5, "x", None, ""])
def test_positive_int_rejects(value):
    with pytest.raises(InvalidSession):
        require_positive_int(value, "lecture_number", error=InvalidSession)


def test_attendance_status_is_binary():
    assert require_attendance_status("present") is AttendanceStatus.PRESENT
    assert require_attendance_status(AttendanceStatus.ABSENT) is AttendanceStatus.ABSENT
    with pytest.raises(ValidationError):
        require_attendance_status("LATE")


def test_role_parsing():
    assert require_role("HOD") is Role.HOD
    with pytest.raises(AuthorizationError):
        require_role("janitor")


def test_parse_iso_date_rejects_other_formats():
    assert parse_iso_date(" 2026-03-02 ").isoformat() == "2026-03-02"
    with pytest.raises(ValidationError):
        parse_iso_date("03/02/2026")
