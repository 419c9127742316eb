from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.constants import INITIAL_SESSION_VERSION
from ..core.enums import AttendanceStatus, SessionStatus, WriteOutcome
from ..core.exceptions import InvalidSession
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import NewSession, Session, SessionAggregate
from .repository import SessionRepository

_COLUMNS = """
    session_id, course_id, teacher_id, department_id, subject_id,
    lecture_date, lecture_number, status, version, created_at, closed_at,
    total_students, present_count, absent_count,
    subject_name, subject_code, course_name, department_name
"""

_ORDER = "ORDER BY lecture_date DESC, session_id ASC"


def _to_session(r: dict) -> Session:
    aggregate = None
    if r.get("total_students") is not None:
        aggregate = SessionAggregate(
            total_students=int(r["total_students"]),
            present=int(r["present_count"]),
            absent=int(r["absent_count"]),
        )
    return Session(
        session_id=int(r["session_id"]),
        course_id=int(r["course_id"]),
        teacher_id=int(r["teacher_id"]),
        department_id=int(r["department_id"]) if r.get("department_id") is not None else None,
        subject_id=int(r["subject_id"]) if r.get("subject_id") is not None else None,
        lecture_date=r["lecture_date"],
        lecture_number=int(r["lecture_number"]),
        status=SessionStatus(r["status"]),
        version=int(r["version"]),
        created_at=r["created_at"],
        closed_at=r.get("closed_at"),
        aggregate=aggregate,
        subject_name=r.get("subject_name"),
        subject_code=r.get("subject_code"),
        course_name=r.get("course_name"),
        department_name=r.get("department_name"),
    )


def _outcome_for_miss(cur, session_id: int) -> WriteOutcome:
    # The guarded UPDATE matched nothing; find out why inside the same transaction.
    cur.execute("SELECT status FROM attendance_sessions WHERE session_id=%s", (int(session_id),))
    r = fetchone(cur)
    if not r:
        return WriteOutcome.NOT_FOUND
    if r["status"] == SessionStatus.CLOSED.value:
        return WriteOutcome.ALREADY_CLOSED
    return WriteOutcome.VERSION_CONFLICT


class MySQLSessionRepository(SessionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, draft: NewSession, student_ids: Sequence[int] = ()) -> int:
        if not draft.course_id or not draft.teacher_id:
            raise InvalidSession("course_id and teacher_id are required")

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_sessions(
                    course_id, teacher_id, department_id, subject_id,
                    lecture_date, lecture_number, status, version, created_at,
                    subject_name, subject_code, course_name, department_name
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(draft.course_id),
                    int(draft.teacher_id),
                    draft.info.department_id,
                    draft.subject_id,
                    draft.lecture_date,
                    int(draft.lecture_number),
                    SessionStatus.OPEN.value,
                    INITIAL_SESSION_VERSION,
                    draft.created_at,
                    draft.info.subject_name,
                    draft.info.subject_code,
                    draft.info.course_name,
                    draft.info.department_name,
                ),
            )
            session_id = int(cur.lastrowid)
            if student_ids:
                marked_by = int(draft.opened_by or draft.teacher_id)
                cur.executemany(
                    """
                    INSERT INTO attendance_records(session_id, student_id, status, marked_at, marked_by)
                    VALUES(%s,%s,%s,%s,%s)
                    """,
                    [
                        (session_id, int(sid), AttendanceStatus.ABSENT.value, draft.created_at, marked_by)
                        for sid in student_ids
                    ],
                )
            return session_id

    def get(self, session_id: int) -> Optional[Session]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_sessions WHERE session_id=%s", (int(session_id),))
            r = fetchone(cur)
            return _to_session(r) if r else None

    def get_many(self, session_ids: Sequence[int]) -> Sequence[Session]:
        ids = sorted({int(sid) for sid in session_ids})
        if not ids:
            return []
        placeholders = ",".join(["%s"] * len(ids))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_sessions WHERE session_id IN ({placeholders}) {_ORDER}",
                tuple(ids),
            )
            return [_to_session(r) for r in fetchall(cur)]

    def close_if_version(
        self,
        session_id: int,
        *,
        expected_version: int,
        aggregate: SessionAggregate,
        closed_at: datetime,
    ) -> WriteOutcome:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_sessions
                SET status=%s, version=version+1, closed_at=%s,
                    total_students=%s, present_count=%s, absent_count=%s
                WHERE session_id=%s AND status=%s AND version=%s
                """,
                (
                    SessionStatus.CLOSED.value,
                    closed_at,
                    int(aggregate.total_students),
                    int(aggregate.present),
                    int(aggregate.absent),
                    int(session_id),
                    SessionStatus.OPEN.value,
                    int(expected_version),
                ),
            )
            if cur.rowcount > 0:
                return WriteOutcome.APPLIED
            return _outcome_for_miss(cur, session_id)

    def reschedule(
        self,
        session_id: int,
        *,
        expected_version: int,
        lecture_date: date,
        lecture_number: int,
    ) -> WriteOutcome:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_sessions
                SET lecture_date=%s, lecture_number=%s, version=version+1
                WHERE session_id=%s AND status=%s AND version=%s
                """,
                (
                    lecture_date,
                    int(lecture_number),
                    int(session_id),
                    SessionStatus.OPEN.value,
                    int(expected_version),
                ),
            )
            if cur.rowcount > 0:
                return WriteOutcome.APPLIED
            return _outcome_for_miss(cur, session_id)

    def list_by_teacher(self, teacher_id: int) -> Sequence[Session]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_sessions WHERE teacher_id=%s {_ORDER}", (int(teacher_id),))
            return [_to_session(r) for r in fetchall(cur)]

    def list_by_department(self, department_id: int) -> Sequence[Session]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_sessions WHERE department_id=%s {_ORDER}",
                (int(department_id),),
            )
            return [_to_session(r) for r in fetchall(cur)]

    def find_duplicates(self, *, course_id: int, lecture_date: date, lecture_number: int) -> Sequence[Session]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM attendance_sessions
                WHERE course_id=%s AND lecture_date=%s AND lecture_number=%s
                {_ORDER}
                """,
                (int(course_id), lecture_date, int(lecture_number)),
            )
            return [_to_session(r) for r in fetchall(cur)]
