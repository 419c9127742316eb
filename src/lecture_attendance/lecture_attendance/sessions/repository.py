from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import WriteOutcome
from .model import NewSession, Session, SessionAggregate


class SessionRepository(Protocol):
    def create(self, draft: NewSession, student_ids: Sequence[int] = ()) -> int:
        """Persist an OPEN session with version 1 plus one ABSENT record per
        roster student, and return its id.

        Row and records become visible together or not at all.
        """

        raise NotImplementedError

    def get(self, session_id: int) -> Optional[Session]:
        raise NotImplementedError

    def get_many(self, session_ids: Sequence[int]) -> Sequence[Session]:
        raise NotImplementedError

    def close_if_version(
        self,
        session_id: int,
        *,
        expected_version: int,
        aggregate: SessionAggregate,
        closed_at: datetime,
    ) -> WriteOutcome:
        """Compare-and-set OPEN -> CLOSED together with the aggregate.

        The only sanctioned way to close a session. Status, aggregate and
        closed_at are written in one atomic step.
        """

        raise NotImplementedError

    def reschedule(
        self,
        session_id: int,
        *,
        expected_version: int,
        lecture_date: date,
        lecture_number: int,
    ) -> WriteOutcome:
        raise NotImplementedError

    def list_by_teacher(self, teacher_id: int) -> Sequence[Session]:
        """Newest lecture first, ties broken by ascending session id."""

        raise NotImplementedError

    def list_by_department(self, department_id: int) -> Sequence[Session]:
        raise NotImplementedError

    def find_duplicates(self, *, course_id: int, lecture_date: date, lecture_number: int) -> Sequence[Session]:
        raise NotImplementedError
