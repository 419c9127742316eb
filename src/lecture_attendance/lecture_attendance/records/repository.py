from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence

from .model import AttendanceRecord, Mark


class AttendanceRecordRepository(Protocol):
    """Per-student records. They are created with their session by the
    session store; this store only updates and reads them."""

    def upsert_many(
        self,
        session_id: int,
        marks: Sequence[Mark],
        *,
        marked_by: int,
        marked_at: datetime,
    ) -> int:
        """Apply marks to existing records and return how many actually changed.

        The session status is read under the same lock/transaction as the
        write. Raises SessionNotFound, SessionClosed or StudentNotInSession;
        nothing is written when any of them is raised. Bumps the session
        version when at least one record changed.
        """

        raise NotImplementedError

    def list_by_session(self, session_id: int) -> Sequence[AttendanceRecord]:
        """Records ordered by student id."""

        raise NotImplementedError

    def list_by_sessions(self, session_ids: Sequence[int]) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_for_student(self, student_id: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError
