from __future__ import annotations

from datetime import datetime
from typing import Dict, Sequence

from ..core.enums import SessionStatus
from ..core.exceptions import SessionClosed, SessionNotFound, StudentNotInSession
from ..sessions.memory_session_repository import InMemorySessionRepository
from .model import AttendanceRecord, Mark
from .repository import AttendanceRecordRepository


class InMemoryAttendanceRecordRepository(AttendanceRecordRepository):
    def __init__(self, sessions: InMemorySessionRepository):
        self._sessions = sessions
        self._by_session: Dict[int, Dict[int, AttendanceRecord]] = sessions.record_rows

    def _writable(self, session_id: int, row) -> None:
        if row is None:
            raise SessionNotFound(session_id)
        if row.status == SessionStatus.CLOSED:
            raise SessionClosed(session_id)

    def upsert_many(
        self,
        session_id: int,
        marks: Sequence[Mark],
        *,
        marked_by: int,
        marked_at: datetime,
    ) -> int:
        wanted = {int(m.student_id): m.status for m in marks}

        with self._sessions.locked(session_id) as row:
            self._writable(session_id, row)
            records = self._by_session.get(session_id, {})

            unknown = set(wanted) - set(records)
            if unknown:
                raise StudentNotInSession(session_id, unknown)

            changed = 0
            for student_id, status in wanted.items():
                current = records[student_id]
                if current.status == status:
                    continue
                records[student_id] = AttendanceRecord(
                    session_id=session_id,
                    student_id=student_id,
                    status=status,
                    marked_at=marked_at,
                    marked_by=int(marked_by),
                )
                changed += 1

            if changed:
                self._sessions.bump_version(session_id)
            return changed

    def list_by_session(self, session_id: int) -> Sequence[AttendanceRecord]:
        records = dict(self._by_session.get(session_id, {}))
        return [records[sid] for sid in sorted(records)]

    def list_by_sessions(self, session_ids: Sequence[int]) -> Sequence[AttendanceRecord]:
        out: list[AttendanceRecord] = []
        for session_id in sorted(set(session_ids)):
            out.extend(self.list_by_session(session_id))
        return out

    def list_for_student(self, student_id: int) -> Sequence[AttendanceRecord]:
        out = []
        for session_id in sorted(self._by_session):
            rec = self._by_session[session_id].get(int(student_id))
            if rec is not None:
                out.append(rec)
        return out
