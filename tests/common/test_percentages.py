from __future__ import annotations

import pytest

from src.lecture_attendance.lecture_attendance.common.percentages import attendance_percentage


@pytest.mark.parametrize(
    "present, total, expected",
    [
        (3, 5, 60),
        (0, 0, 0),
        (0, 7, 0),
        (7, 7, 100),
        (1, 8, 13),  # 12.5 rounds half up
        (1, 3, 33),
        (2, 3, 67),
        (5, 12, 42),  # 41.67
    ],
)
def test_attendance_percentage(present, total, expected):
    assert attendance_percentage(present, total) == expected
