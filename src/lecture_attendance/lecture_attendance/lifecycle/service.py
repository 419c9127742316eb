from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence, Union

from ..common.datetime_utils import now_local, parse_iso_date
from ..common.validators import require_attendance_status, require_positive_int, require_role
from ..core.constants import DEFAULT_CLOSE_MAX_ATTEMPTS
from ..core.enums import Role, WriteOutcome
from ..core.exceptions import (
    AuthorizationError,
    CloseConflict,
    ConflictError,
    DuplicateSession,
    InvalidSession,
    NotOwner,
    RosterUnavailable,
    SessionAlreadyClosed,
    SessionClosed,
    SessionNotFound,
    ValidationError,
)
from ..records.model import AttendanceRecord, Mark, tally
from ..records.repository import AttendanceRecordRepository
from ..roster.provider import CourseCatalog, RosterProvider
from ..sessions.model import LectureInfo, NewSession, Session, SessionAggregate
from ..sessions.repository import SessionRepository

logger = logging.getLogger(__name__)

MarkInput = Union[Mark, Mapping[str, Any]]


def _lecture_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return parse_iso_date(value if isinstance(value, str) else "")
    except ValidationError:
        raise InvalidSession(f"lecture_date must be a date (YYYY-MM-DD), got {value!r}")


class SessionLifecycleService:
    """Open, mark, edit, close. The only writer of sessions and records."""

    def __init__(
        self,
        sessions: SessionRepository,
        records: AttendanceRecordRepository,
        roster: RosterProvider,
        *,
        catalog: Optional[CourseCatalog] = None,
        close_max_attempts: int = DEFAULT_CLOSE_MAX_ATTEMPTS,
        reject_duplicates: bool = False,
        clock: Callable[[], datetime] = now_local,
    ):
        self._sessions = sessions
        self._records = records
        self._roster = roster
        self._catalog = catalog
        self._close_max_attempts = max(1, int(close_max_attempts))
        self._reject_duplicates = bool(reject_duplicates)
        self._clock = clock

    @staticmethod
    def _require_owner(session: Session, actor_id: int, actor_role: Role) -> None:
        if actor_role == Role.ADMIN:
            return
        if int(actor_id) != session.teacher_id:
            raise NotOwner(f"Session {session.session_id} belongs to another teacher")

    def _load_owned(self, session_id: int, actor_id: int, actor_role: Any) -> Session:
        role = require_role(actor_role)
        session = self._sessions.get(int(session_id))
        if session is None:
            raise SessionNotFound(session_id)
        self._require_owner(session, actor_id, role)
        return session

    def _describe(self, course_id: int, subject_id: Optional[int]) -> LectureInfo:
        if self._catalog is None:
            return LectureInfo()
        try:
            info = self._catalog.describe_lecture(course_id=course_id, subject_id=subject_id)
        except Exception:
            logger.warning("Course catalog lookup failed for course %s; labels left empty", course_id, exc_info=True)
            return LectureInfo()
        return info or LectureInfo()

    def _check_duplicates(
        self, *, course_id: int, lecture_date: date, lecture_number: int, ignore_id: Optional[int] = None
    ) -> None:
        if not self._reject_duplicates:
            return
        clashes = [
            s
            for s in self._sessions.find_duplicates(
                course_id=course_id, lecture_date=lecture_date, lecture_number=lecture_number
            )
            if s.session_id != ignore_id
        ]
        if clashes:
            raise DuplicateSession(
                f"Lecture {lecture_number} of course {course_id} on {lecture_date:%Y-%m-%d} "
                f"already has session {clashes[0].session_id}"
            )

    @staticmethod
    def _normalize_marks(marks: Iterable[MarkInput]) -> list[Mark]:
        if marks is None or isinstance(marks, (str, bytes, Mapping)):
            raise ValidationError("marks must be a list of {studentId, status}")

        latest: dict[int, Mark] = {}
        for item in marks:
            if isinstance(item, Mark):
                student_id, status = item.student_id, item.status
            elif isinstance(item, Mapping):
                student_id = item.get("student_id", item.get("studentId"))
                status = item.get("status")
            else:
                raise ValidationError(f"Invalid mark {item!r}")
            sid = require_positive_int(student_id, "student_id")
            # Last mark for a student wins; re-insert keeps its final position.
            latest.pop(sid, None)
            latest[sid] = Mark(student_id=sid, status=require_attendance_status(status))
        return list(latest.values())

    def open_session(
        self,
        *,
        actor_id: int,
        actor_role: Any,
        teacher_id: int,
        course_id: int,
        lecture_date: Any,
        lecture_number: Any,
        subject_id: Optional[int] = None,
    ) -> Session:
        role = require_role(actor_role)
        if role == Role.STUDENT:
            raise AuthorizationError("Students cannot open attendance sessions")

        teacher_id = require_positive_int(teacher_id, "teacher_id", error=InvalidSession)
        course_id = require_positive_int(course_id, "course_id", error=InvalidSession)
        lecture_number = require_positive_int(lecture_number, "lecture_number", error=InvalidSession)
        lecture_day = _lecture_date(lecture_date)
        if subject_id is not None:
            subject_id = require_positive_int(subject_id, "subject_id", error=InvalidSession)

        if role != Role.ADMIN and int(actor_id) != teacher_id:
            raise NotOwner("Only admins may open a session on behalf of another teacher")

        self._check_duplicates(course_id=course_id, lecture_date=lecture_day, lecture_number=lecture_number)

        try:
            student_ids = sorted({int(sid) for sid in self._roster.get_enrolled_students(course_id)})
        except Exception as e:
            logger.warning("Roster lookup failed for course %s: %s", course_id, e)
            raise RosterUnavailable(f"Roster for course {course_id} is unavailable") from e

        info = self._describe(course_id, subject_id)
        now = self._clock()
        session_id = self._sessions.create(
            NewSession(
                course_id=course_id,
                teacher_id=teacher_id,
                lecture_date=lecture_day,
                lecture_number=lecture_number,
                created_at=now,
                subject_id=subject_id,
                info=info,
                opened_by=int(actor_id),
            ),
            student_ids,
        )

        logger.info(
            "Opened session %s (course=%s lecture=%s date=%s students=%s) by %s",
            session_id,
            course_id,
            lecture_number,
            lecture_day,
            len(student_ids),
            actor_id,
        )
        return self._sessions.get(session_id)

    def mark_attendance(
        self, session_id: int, *, actor_id: int, actor_role: Any, marks: Iterable[MarkInput]
    ) -> int:
        session = self._load_owned(session_id, actor_id, actor_role)
        normalized = self._normalize_marks(marks)
        if not session.is_open:
            raise SessionClosed(session.session_id)
        if not normalized:
            return 0

        changed = self._records.upsert_many(
            session.session_id,
            normalized,
            marked_by=int(actor_id),
            marked_at=self._clock(),
        )
        logger.info("Session %s: %s of %s marks changed by %s", session.session_id, changed, len(normalized), actor_id)
        return changed

    def edit_attendance(
        self, session_id: int, *, actor_id: int, actor_role: Any, marks: Iterable[MarkInput]
    ) -> int:
        return self.mark_attendance(session_id, actor_id=actor_id, actor_role=actor_role, marks=marks)

    def close_session(self, session_id: int, *, actor_id: int, actor_role: Any) -> SessionAggregate:
        for attempt in range(1, self._close_max_attempts + 1):
            session = self._load_owned(session_id, actor_id, actor_role)
            if not session.is_open:
                raise SessionAlreadyClosed(session.session_id, session.aggregate)

            aggregate = tally(self._records.list_by_session(session.session_id))
            outcome = self._sessions.close_if_version(
                session.session_id,
                expected_version=session.version,
                aggregate=aggregate,
                closed_at=self._clock(),
            )

            if outcome == WriteOutcome.APPLIED:
                logger.info(
                    "Closed session %s: %s/%s present (attempt %s)",
                    session.session_id,
                    aggregate.present,
                    aggregate.total_students,
                    attempt,
                )
                return aggregate
            if outcome == WriteOutcome.ALREADY_CLOSED:
                current = self._sessions.get(session.session_id)
                raise SessionAlreadyClosed(session.session_id, current.aggregate if current else None)
            if outcome == WriteOutcome.NOT_FOUND:
                raise SessionNotFound(session.session_id)

            logger.info("Close of session %s lost version %s, retrying", session.session_id, session.version)

        logger.warning("Giving up closing session %s after %s attempts", session_id, self._close_max_attempts)
        raise CloseConflict(int(session_id), self._close_max_attempts)

    def reschedule_session(
        self,
        session_id: int,
        *,
        actor_id: int,
        actor_role: Any,
        lecture_date: Any = None,
        lecture_number: Any = None,
    ) -> Session:
        if lecture_date is None and lecture_number is None:
            raise InvalidSession("Nothing to change: give lecture_date and/or lecture_number")

        for _ in range(self._close_max_attempts):
            session = self._load_owned(session_id, actor_id, actor_role)
            if not session.is_open:
                raise SessionClosed(session.session_id)

            new_date = session.lecture_date if lecture_date is None else _lecture_date(lecture_date)
            new_number = (
                session.lecture_number
                if lecture_number is None
                else require_positive_int(lecture_number, "lecture_number", error=InvalidSession)
            )
            self._check_duplicates(
                course_id=session.course_id,
                lecture_date=new_date,
                lecture_number=new_number,
                ignore_id=session.session_id,
            )

            outcome = self._sessions.reschedule(
                session.session_id,
                expected_version=session.version,
                lecture_date=new_date,
                lecture_number=new_number,
            )
            if outcome == WriteOutcome.APPLIED:
                logger.info("Rescheduled session %s to %s #%s", session.session_id, new_date, new_number)
                return self._sessions.get(session.session_id)
            if outcome == WriteOutcome.ALREADY_CLOSED:
                raise SessionClosed(session.session_id)
            if outcome == WriteOutcome.NOT_FOUND:
                raise SessionNotFound(session.session_id)

        raise ConflictError(f"Session {session_id} kept changing, retry the reschedule")

    def get_session(self, session_id: int) -> Optional[Session]:
        return self._sessions.get(int(session_id))

    def list_sessions(self, teacher_id: int) -> Sequence[Session]:
        return self._sessions.list_by_teacher(int(teacher_id))

    def list_department_sessions(self, department_id: int) -> Sequence[Session]:
        return self._sessions.list_by_department(int(department_id))

    def get_records(self, session_id: int) -> Sequence[AttendanceRecord]:
        return self._records.list_by_session(int(session_id))
