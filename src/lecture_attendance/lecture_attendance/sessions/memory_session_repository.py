from __future__ import annotations

import itertools
import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime
from typing import Dict, Iterator, Optional, Sequence

from ..core.constants import INITIAL_SESSION_VERSION
from ..core.enums import AttendanceStatus, SessionStatus, WriteOutcome
from ..core.exceptions import InvalidSession
from ..records.model import AttendanceRecord
from .model import NewSession, Session, SessionAggregate
from .repository import SessionRepository


def _newest_first(sessions) -> list[Session]:
    return sorted(sessions, key=lambda s: (-s.lecture_date.toordinal(), s.session_id))


class InMemorySessionRepository(SessionRepository):
    """Process-local session store.

    Each session has its own lock; the record store shares it so a status
    check and the write it guards happen under the same lock as the close CAS.
    Records live in ``record_rows`` so a session and its roster are created
    in one step.
    """

    def __init__(self):
        self._rows: Dict[int, Session] = {}
        self.record_rows: Dict[int, Dict[int, AttendanceRecord]] = {}
        self._locks: Dict[int, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self._ids = itertools.count(1)

    @contextmanager
    def locked(self, session_id: int) -> Iterator[Optional[Session]]:
        """Hold the session lock and yield the current row (None if absent)."""
        with self._registry_lock:
            lock = self._locks.get(session_id)
        if lock is None:
            yield None
            return
        with lock:
            yield self._rows.get(session_id)

    def bump_version(self, session_id: int) -> None:
        # Caller must hold the session lock (see ``locked``).
        row = self._rows[session_id]
        self._rows[session_id] = replace(row, version=row.version + 1)

    def create(self, draft: NewSession, student_ids: Sequence[int] = ()) -> int:
        if not draft.course_id or not draft.teacher_id:
            raise InvalidSession("course_id and teacher_id are required")

        marked_by = int(draft.opened_by or draft.teacher_id)
        with self._registry_lock:
            session_id = next(self._ids)
            # Records go in before the row: readers find sessions through _rows.
            self.record_rows[session_id] = {
                int(sid): AttendanceRecord(
                    session_id=session_id,
                    student_id=int(sid),
                    status=AttendanceStatus.ABSENT,
                    marked_at=draft.created_at,
                    marked_by=marked_by,
                )
                for sid in student_ids
            }
            self._locks[session_id] = threading.Lock()
            self._rows[session_id] = Session(
                session_id=session_id,
                course_id=int(draft.course_id),
                teacher_id=int(draft.teacher_id),
                department_id=draft.info.department_id,
                subject_id=draft.subject_id,
                lecture_date=draft.lecture_date,
                lecture_number=int(draft.lecture_number),
                status=SessionStatus.OPEN,
                version=INITIAL_SESSION_VERSION,
                created_at=draft.created_at,
                subject_name=draft.info.subject_name,
                subject_code=draft.info.subject_code,
                course_name=draft.info.course_name,
                department_name=draft.info.department_name,
            )
        return session_id

    def get(self, session_id: int) -> Optional[Session]:
        return self._rows.get(session_id)

    def get_many(self, session_ids: Sequence[int]) -> Sequence[Session]:
        rows = (self._rows.get(sid) for sid in set(session_ids))
        return _newest_first(r for r in rows if r is not None)

    def close_if_version(
        self,
        session_id: int,
        *,
        expected_version: int,
        aggregate: SessionAggregate,
        closed_at: datetime,
    ) -> WriteOutcome:
        with self.locked(session_id) as row:
            if row is None:
                return WriteOutcome.NOT_FOUND
            if row.status == SessionStatus.CLOSED:
                return WriteOutcome.ALREADY_CLOSED
            if row.version != expected_version:
                return WriteOutcome.VERSION_CONFLICT

            self._rows[session_id] = replace(
                row,
                status=SessionStatus.CLOSED,
                version=row.version + 1,
                closed_at=closed_at,
                aggregate=aggregate,
            )
            return WriteOutcome.APPLIED

    def reschedule(
        self,
        session_id: int,
        *,
        expected_version: int,
        lecture_date: date,
        lecture_number: int,
    ) -> WriteOutcome:
        with self.locked(session_id) as row:
            if row is None:
                return WriteOutcome.NOT_FOUND
            if row.status == SessionStatus.CLOSED:
                return WriteOutcome.ALREADY_CLOSED
            if row.version != expected_version:
                return WriteOutcome.VERSION_CONFLICT

            self._rows[session_id] = replace(
                row,
                lecture_date=lecture_date,
                lecture_number=int(lecture_number),
                version=row.version + 1,
            )
            return WriteOutcome.APPLIED

    def list_by_teacher(self, teacher_id: int) -> Sequence[Session]:
        return _newest_first(s for s in list(self._rows.values()) if s.teacher_id == teacher_id)

    def list_by_department(self, department_id: int) -> Sequence[Session]:
        return _newest_first(s for s in list(self._rows.values()) if s.department_id == department_id)

    def find_duplicates(self, *, course_id: int, lecture_date: date, lecture_number: int) -> Sequence[Session]:
        return _newest_first(
            s
            for s in list(self._rows.values())
            if s.course_id == course_id and s.lecture_date == lecture_date and s.lecture_number == lecture_number
        )
