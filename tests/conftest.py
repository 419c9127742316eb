from __future__ import annotations

from datetime import date, datetime

import pytest

from src.lecture_attendance.lecture_attendance.lifecycle.service import SessionLifecycleService
from src.lecture_attendance.lecture_attendance.records.memory_record_repository import (
    InMemoryAttendanceRecordRepository,
)
from src.lecture_attendance.lecture_attendance.reports.service import ReportService
from src.lecture_attendance.lecture_attendance.roster.provider import StaticCourseCatalog, StaticRosterProvider
from src.lecture_attendance.lecture_attendance.sessions.memory_session_repository import InMemorySessionRepository
from src.lecture_attendance.lecture_attendance.sessions.model import LectureInfo

TEACHER_ID = 10
OTHER_TEACHER_ID = 11
ADMIN_ID = 1
COURSE_ID = 1
EMPTY_COURSE_ID = 3
LECTURE_DAY = date(2026, 3, 2)


class FixedClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def fixed_now():
    return FixedClock(datetime(2026, 3, 2, 9, 0, 0))


@pytest.fixture
def roster():
    return StaticRosterProvider(
        rosters={
            COURSE_ID: [101, 102, 103, 104, 105],
            2: [201, 202],
            EMPTY_COURSE_ID: [],
        }
    )


@pytest.fixture
def catalog():
    return StaticCourseCatalog(
        courses={
            COURSE_ID: LectureInfo(
                department_id=1,
                department_name="Computer Science",
                course_name="B.Tech CSE",
            ),
            2: LectureInfo(department_id=2, department_name="Mathematics", course_name="B.Sc Maths"),
        },
        subjects={1: ("Data Structures", "CS201"), 3: ("Calculus", "MA101")},
    )


@pytest.fixture
def sessions_repo():
    return InMemorySessionRepository()


@pytest.fixture
def records_repo(sessions_repo):
    return InMemoryAttendanceRecordRepository(sessions_repo)


@pytest.fixture
def lifecycle(sessions_repo, records_repo, roster, catalog, fixed_now):
    return SessionLifecycleService(sessions_repo, records_repo, roster, catalog=catalog, clock=fixed_now)


@pytest.fixture
def reports(sessions_repo, records_repo):
    return ReportService(sessions_repo, records_repo)


@pytest.fixture
def open_session(lifecycle):
    def _open(*, course_id=COURSE_ID, teacher_id=TEACHER_ID, lecture_date=LECTURE_DAY, lecture_number=1, subject_id=1):
        return lifecycle.open_session(
            actor_id=teacher_id,
            actor_role="teacher",
            teacher_id=teacher_id,
            course_id=course_id,
            lecture_date=lecture_date,
            lecture_number=lecture_number,
            subject_id=subject_id,
        )

    return _open
