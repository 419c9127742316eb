from __future__ import annotations

import pytest

from src.lecture_attendance.lecture_attendance.roster.provider import (
    StaticCourseCatalog,
    StaticRosterProvider,
    parse_rosters,
)
from src.lecture_attendance.lecture_attendance.sessions.model import LectureInfo


def test_roster_is_sorted_and_unique():
    roster = StaticRosterProvider(rosters={1: [3, 1, 3, 2]})

    assert roster.get_enrolled_students(1) == [1, 2, 3]
    assert roster.get_enrolled_students(9) == []


def test_catalog_adds_subject_labels_when_known():
    catalog = StaticCourseCatalog(
        courses={1: LectureInfo(department_id=1, department_name="CS", course_name="B.Tech")},
        subjects={7: ("Networks", "CS310")},
    )

    info = catalog.describe_lecture(course_id=1, subject_id=7)
    assert (info.course_name, info.subject_name, info.subject_code) == ("B.Tech", "Networks", "CS310")
    assert catalog.describe_lecture(course_id=1, subject_id=None).subject_name is None
    assert catalog.describe_lecture(course_id=2, subject_id=7) is None


def test_parse_rosters_from_settings_text():
    assert parse_rosters("1:101,102; 2:201 ;3:") == {1: [101, 102], 2: [201], 3: []}
    assert parse_rosters("") == {}

    with pytest.raises(ValueError):
        parse_rosters("1-101")
    with pytest.raises(ValueError):
        parse_rosters("1:abc")
