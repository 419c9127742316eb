from __future__ import annotations

from datetime import datetime
from typing import Sequence

from ..core.enums import AttendanceStatus, SessionStatus
from ..core.exceptions import SessionClosed, SessionNotFound, StudentNotInSession
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import AttendanceRecord, Mark
from .repository import AttendanceRecordRepository


def _to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        session_id=int(r["session_id"]),
        student_id=int(r["student_id"]),
        status=AttendanceStatus(r["status"]),
        marked_at=r["marked_at"],
        marked_by=int(r["marked_by"]),
    )


def _lock_open_session(cur, session_id: int) -> None:
    # Row lock held until commit; the close CAS UPDATE waits on it.
    cur.execute(
        "SELECT status FROM attendance_sessions WHERE session_id=%s FOR UPDATE",
        (int(session_id),),
    )
    r = fetchone(cur)
    if not r:
        raise SessionNotFound(session_id)
    if r["status"] == SessionStatus.CLOSED.value:
        raise SessionClosed(session_id)


def _bump_version(cur, session_id: int) -> None:
    cur.execute(
        "UPDATE attendance_sessions SET version=version+1 WHERE session_id=%s",
        (int(session_id),),
    )


class MySQLAttendanceRecordRepository(AttendanceRecordRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def upsert_many(
        self,
        session_id: int,
        marks: Sequence[Mark],
        *,
        marked_by: int,
        marked_at: datetime,
    ) -> int:
        wanted = {int(m.student_id): m.status for m in marks}

        with db_cursor(self._conn_factory) as (_, cur):
            _lock_open_session(cur, session_id)

            cur.execute("SELECT student_id FROM attendance_records WHERE session_id=%s", (int(session_id),))
            roster = {int(r["student_id"]) for r in fetchall(cur)}
            unknown = set(wanted) - roster
            if unknown:
                raise StudentNotInSession(session_id, unknown)

            changed = 0
            for student_id, status in wanted.items():
                cur.execute(
                    """
                    UPDATE attendance_records
                    SET status=%s, marked_at=%s, marked_by=%s
                    WHERE session_id=%s AND student_id=%s AND status<>%s
                    """,
                    (status.value, marked_at, int(marked_by), int(session_id), student_id, status.value),
                )
                changed += cur.rowcount

            if changed:
                _bump_version(cur, session_id)
            return changed

    def list_by_session(self, session_id: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT session_id, student_id, status, marked_at, marked_by
                FROM attendance_records
                WHERE session_id=%s
                ORDER BY student_id ASC
                """,
                (int(session_id),),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_by_sessions(self, session_ids: Sequence[int]) -> Sequence[AttendanceRecord]:
        ids = sorted({int(sid) for sid in session_ids})
        if not ids:
            return []
        placeholders = ",".join(["%s"] * len(ids))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT session_id, student_id, status, marked_at, marked_by
                FROM attendance_records
                WHERE session_id IN ({placeholders})
                ORDER BY session_id ASC, student_id ASC
                """,
                tuple(ids),
            )
            return [_to_record(r) for r in fetchall(cur)]

    def list_for_student(self, student_id: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT session_id, student_id, status, marked_at, marked_by
                FROM attendance_records
                WHERE student_id=%s
                ORDER BY session_id ASC
                """,
                (int(student_id),),
            )
            return [_to_record(r) for r in fetchall(cur)]
