from __future__ import annotations

import threading
from datetime import date, datetime

import pytest

from src.lecture_attendance.lecture_attendance.core.enums import AttendanceStatus, SessionStatus, WriteOutcome
from src.lecture_attendance.lecture_attendance.core.exceptions import InvalidSession
from src.lecture_attendance.lecture_attendance.sessions.memory_session_repository import InMemorySessionRepository
from src.lecture_attendance.lecture_attendance.sessions.model import LectureInfo, NewSession, SessionAggregate

NOW = datetime(2026, 3, 2, 9, 0, 0)
AGG = SessionAggregate(total_students=2, present=1, absent=1)


def _draft(**overrides):
    values = dict(
        course_id=1,
        teacher_id=10,
        lecture_date=date(2026, 3, 2),
        lecture_number=1,
        created_at=NOW,
        info=LectureInfo(department_id=4, department_name="CS"),
    )
    values.update(overrides)
    return NewSession(**values)


def test_create_assigns_ids_and_initial_state():
    repo = InMemorySessionRepository()

    a = repo.create(_draft())
    b = repo.create(_draft())

    s = repo.get(a)
    assert a != b
    assert s.status == SessionStatus.OPEN
    assert s.version == 1
    assert s.aggregate is None
    assert s.department_id == 4


def test_create_requires_course_and_teacher():
    repo = InMemorySessionRepository()

    with pytest.raises(InvalidSession):
        repo.create(_draft(course_id=None))
    with pytest.raises(InvalidSession):
        repo.create(_draft(teacher_id=0))


def test_close_if_version_outcomes():
    repo = InMemorySessionRepository()
    sid = repo.create(_draft())

    assert repo.close_if_version(sid, expected_version=7, aggregate=AGG, closed_at=NOW) == WriteOutcome.VERSION_CONFLICT
    assert repo.get(sid).is_open

    assert repo.close_if_version(sid, expected_version=1, aggregate=AGG, closed_at=NOW) == WriteOutcome.APPLIED
    closed = repo.get(sid)
    assert closed.status == SessionStatus.CLOSED
    assert closed.aggregate == AGG
    assert closed.closed_at == NOW
    assert closed.version == 2

    assert repo.close_if_version(sid, expected_version=2, aggregate=AGG, closed_at=NOW) == WriteOutcome.ALREADY_CLOSED
    assert repo.close_if_version(99, expected_version=1, aggregate=AGG, closed_at=NOW) == WriteOutcome.NOT_FOUND


def test_reschedule_is_version_guarded():
    repo = InMemorySessionRepository()
    sid = repo.create(_draft())

    assert repo.reschedule(sid, expected_version=3, lecture_date=date(2026, 3, 9), lecture_number=2) == (
        WriteOutcome.VERSION_CONFLICT
    )
    assert repo.reschedule(sid, expected_version=1, lecture_date=date(2026, 3, 9), lecture_number=2) == (
        WriteOutcome.APPLIED
    )
    s = repo.get(sid)
    assert (s.lecture_date, s.lecture_number, s.version) == (date(2026, 3, 9), 2, 2)


def test_lists_are_newest_first_with_id_tiebreak():
    repo = InMemorySessionRepository()
    old = repo.create(_draft(lecture_date=date(2026, 2, 1)))
    new_a = repo.create(_draft(lecture_date=date(2026, 3, 1)))
    new_b = repo.create(_draft(lecture_date=date(2026, 3, 1), lecture_number=2))
    repo.create(_draft(teacher_id=11, info=LectureInfo(department_id=5)))

    assert [s.session_id for s in repo.list_by_teacher(10)] == [new_a, new_b, old]
    assert [s.session_id for s in repo.list_by_department(4)] == [new_a, new_b, old]
    assert [s.session_id for s in repo.get_many([old, new_b, 999])] == [new_b, old]


def test_find_duplicates_matches_course_date_and_number():
    repo = InMemorySessionRepository()
    sid = repo.create(_draft())
    repo.create(_draft(lecture_number=2))

    found = repo.find_duplicates(course_id=1, lecture_date=date(2026, 3, 2), lecture_number=1)

    assert [s.session_id for s in found] == [sid]


def test_create_stores_roster_with_the_session():
    repo = InMemorySessionRepository()

    sid = repo.create(_draft(opened_by=1), [102, 101])

    records = repo.record_rows[sid]
    assert sorted(records) == [101, 102]
    assert {(r.status, r.marked_by, r.marked_at) for r in records.values()} == {(AttendanceStatus.ABSENT, 1, NOW)}
    assert repo.get(sid).version == 1


def test_rejected_create_leaves_no_records():
    repo = InMemorySessionRepository()

    with pytest.raises(InvalidSession):
        repo.create(_draft(teacher_id=None), [101])

    assert repo.record_rows == {}
    assert repo.list_by_teacher(10) == []


def test_readers_never_see_a_session_before_its_roster():
    repo = InMemorySessionRepository()
    stop = threading.Event()
    bare = []

    def watch():
        while not stop.is_set():
            for s in repo.list_by_teacher(10):
                if len(repo.record_rows.get(s.session_id, {})) != 2:
                    bare.append(s.session_id)

    watcher = threading.Thread(target=watch)
    watcher.start()
    try:
        for _ in range(200):
            repo.create(_draft(), [101, 102])
    finally:
        stop.set()
        watcher.join(timeout=10)

    assert bare == []
    assert len(repo.list_by_teacher(10)) == 200
