from __future__ import annotations

from datetime import datetime

import pytest

from src.lecture_attendance.lecture_attendance.core.enums import AttendanceStatus, WriteOutcome
from src.lecture_attendance.lecture_attendance.core.exceptions import SessionClosed, StudentNotInSession
from src.lecture_attendance.lecture_attendance.database.connection import DBConfig
from src.lecture_attendance.lecture_attendance.records.model import Mark
from src.lecture_attendance.lecture_attendance.records.mysql_record_repository import MySQLAttendanceRecordRepository
from src.lecture_attendance.lecture_attendance.sessions.model import NewSession, SessionAggregate
from src.lecture_attendance.lecture_attendance.sessions.mysql_session_repository import MySQLSessionRepository

NOW = datetime(2026, 3, 2, 9, 0, 0)


class FakeCursor:
    """Scripted cursor: each execute pops the next (rowcount, rows) answer."""

    def __init__(self, answers):
        self._answers = list(answers)
        self.executed = []
        self.rowcount = 0
        self.lastrowid = 0
        self._rows = []

    def execute(self, sql, params=None):
        self.executed.append((" ".join(sql.split()), params))
        self.rowcount, self._rows = self._answers.pop(0) if self._answers else (0, [])

    def executemany(self, sql, seq_params):
        self.execute(sql, list(seq_params))

    def fetchone(self):
        return self._rows[0] if self._rows else None

    def fetchall(self):
        return list(self._rows)

    def close(self):
        pass


class FakeConnection:
    def __init__(self, cursor):
        self._cursor = cursor
        self.committed = False
        self.rolled_back = False

    def cursor(self, dictionary=True):
        return self._cursor

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        pass


class FakeFactory:
    config = DBConfig(host="db", port=3306, user="u", password="p", database="lecture_attendance")

    def __init__(self, *answers):
        self.cursor = FakeCursor(answers)
        self.conn = FakeConnection(self.cursor)

    def connect(self, *, with_database=True):
        return self.conn


AGG = SessionAggregate(total_students=5, present=3, absent=2)


def test_close_applies_with_single_guarded_update():
    factory = FakeFactory((1, []))

    outcome = MySQLSessionRepository(factory).close_if_version(1, expected_version=4, aggregate=AGG, closed_at=NOW)

    assert outcome == WriteOutcome.APPLIED
    sql, params = factory.cursor.executed[0]
    assert sql.startswith("UPDATE attendance_sessions SET status=%s, version=version+1")
    assert "WHERE session_id=%s AND status=%s AND version=%s" in sql
    assert params[-3:] == (1, "OPEN", 4)
    assert factory.conn.committed


@pytest.mark.parametrize(
    "status_rows, expected",
    [
        ([], WriteOutcome.NOT_FOUND),
        ([{"status": "CLOSED"}], WriteOutcome.ALREADY_CLOSED),
        ([{"status": "OPEN"}], WriteOutcome.VERSION_CONFLICT),
    ],
)
def test_close_miss_is_explained(status_rows, expected):
    factory = FakeFactory((0, []), (len(status_rows), status_rows))

    outcome = MySQLSessionRepository(factory).close_if_version(1, expected_version=4, aggregate=AGG, closed_at=NOW)

    assert outcome == expected


def test_upsert_locks_session_row_and_bumps_version():
    factory = FakeFactory(
        (1, [{"status": "OPEN"}]),
        (2, [{"student_id": 101}, {"student_id": 102}]),
        (1, []),
        (0, []),
        (1, []),
    )

    changed = MySQLAttendanceRecordRepository(factory).upsert_many(
        7,
        [Mark(101, AttendanceStatus.PRESENT), Mark(102, AttendanceStatus.ABSENT)],
        marked_by=10,
        marked_at=NOW,
    )

    statements = [sql for sql, _ in factory.cursor.executed]
    assert changed == 1
    assert statements[0].endswith("FOR UPDATE")
    assert statements[-1].startswith("UPDATE attendance_sessions SET version=version+1")
    assert factory.conn.committed


def test_upsert_on_closed_session_rolls_back():
    factory = FakeFactory((1, [{"status": "CLOSED"}]))

    with pytest.raises(SessionClosed):
        MySQLAttendanceRecordRepository(factory).upsert_many(
            7, [Mark(101, AttendanceStatus.PRESENT)], marked_by=10, marked_at=NOW
        )

    assert factory.conn.rolled_back
    assert not factory.conn.committed


def test_upsert_unknown_student_writes_nothing():
    factory = FakeFactory((1, [{"status": "OPEN"}]), (1, [{"student_id": 101}]))

    with pytest.raises(StudentNotInSession):
        MySQLAttendanceRecordRepository(factory).upsert_many(
            7, [Mark(555, AttendanceStatus.PRESENT)], marked_by=10, marked_at=NOW
        )

    assert len(factory.cursor.executed) == 2
    assert factory.conn.rolled_back


def _draft():
    return NewSession(course_id=1, teacher_id=10, lecture_date=NOW.date(), lecture_number=1, created_at=NOW, opened_by=1)


def test_create_inserts_session_and_roster_in_one_transaction():
    factory = FakeFactory((1, []), (3, []))
    factory.cursor.lastrowid = 41

    sid = MySQLSessionRepository(factory).create(_draft(), [101, 102, 103])

    assert sid == 41
    (session_sql, session_params), (records_sql, rows) = factory.cursor.executed
    assert session_sql.startswith("INSERT INTO attendance_sessions")
    assert session_params[6:8] == ("OPEN", 1)
    assert records_sql.startswith("INSERT INTO attendance_records")
    assert rows == [(41, 101, "ABSENT", NOW, 1), (41, 102, "ABSENT", NOW, 1), (41, 103, "ABSENT", NOW, 1)]
    assert factory.conn.committed


def test_create_rolls_back_session_when_roster_insert_fails():
    factory = FakeFactory((1, []))
    factory.cursor.lastrowid = 41

    def lost_connection(sql, seq_params):
        raise ConnectionError("lost connection during insert")

    factory.cursor.executemany = lost_connection

    with pytest.raises(ConnectionError):
        MySQLSessionRepository(factory).create(_draft(), [101, 102])

    assert factory.conn.rolled_back
    assert not factory.conn.committed
