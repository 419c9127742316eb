from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from ..sessions.model import LectureInfo
from .provider import CourseCatalog, RosterProvider


class MySQLRosterProvider(RosterProvider):
    """Reads approved enrolments from the admin-owned ``students`` table."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_enrolled_students(self, course_id: int) -> Sequence[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT student_id
                FROM students
                WHERE course_id=%s AND status='APPROVED'
                ORDER BY student_id ASC
                """,
                (int(course_id),),
            )
            return [int(r["student_id"]) for r in fetchall(cur)]


class MySQLCourseCatalog(CourseCatalog):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def describe_lecture(self, *, course_id: int, subject_id: Optional[int]) -> Optional[LectureInfo]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT c.course_name, d.department_id, d.department_name,
                       s.subject_name, s.subject_code
                FROM courses c
                LEFT JOIN departments d ON d.department_id = c.department_id
                LEFT JOIN subjects s ON s.subject_id = %s AND s.course_id = c.course_id
                WHERE c.course_id=%s
                """,
                (subject_id, int(course_id)),
            )
            r = fetchone(cur)
            if not r:
                return None
            return LectureInfo(
                department_id=int(r["department_id"]) if r.get("department_id") is not None else None,
                department_name=r.get("department_name"),
                course_name=r.get("course_name"),
                subject_name=r.get("subject_name"),
                subject_code=r.get("subject_code"),
            )
