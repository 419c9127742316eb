from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from typing import Iterable, Optional, Sequence

from ..common.percentages import attendance_percentage
from ..core.constants import NOT_AVAILABLE
from ..core.exceptions import ValidationError
from ..records.model import tally
from ..records.repository import AttendanceRecordRepository
from ..sessions.model import Session, SessionAggregate
from ..sessions.repository import SessionRepository
from .model import AttendanceReport, ReportRow, StudentLecture, StudentReport, SubjectSummary

logger = logging.getLogger(__name__)


class ReportService:
    """Read-only aggregation over sessions and records.

    Closed sessions report their frozen aggregate. Open sessions are counted
    live from their records, so their numbers may still move.
    """

    def __init__(self, sessions: SessionRepository, records: AttendanceRecordRepository):
        self._sessions = sessions
        self._records = records

    @staticmethod
    def _filter(
        sessions: Iterable[Session],
        *,
        course_id: Optional[int],
        subject_id: Optional[int],
        start: Optional[date],
        end: Optional[date],
    ) -> list[Session]:
        if start and end and start > end:
            raise ValidationError("Start date must be on or before end date")

        out = []
        for s in sessions:
            if course_id is not None and s.course_id != int(course_id):
                continue
            if subject_id is not None and s.subject_id != int(subject_id):
                continue
            if start and s.lecture_date < start:
                continue
            if end and s.lecture_date > end:
                continue
            out.append(s)
        return out

    def _live_aggregates(self, sessions: Sequence[Session]) -> dict[int, SessionAggregate]:
        open_ids = [s.session_id for s in sessions if s.is_open]
        if not open_ids:
            return {}
        by_session = defaultdict(list)
        for r in self._records.list_by_sessions(open_ids):
            by_session[r.session_id].append(r)
        return {sid: tally(by_session.get(sid, [])) for sid in open_ids}

    def _rows(self, sessions: Sequence[Session]) -> AttendanceReport:
        live = self._live_aggregates(sessions)
        rows = []
        for s in sessions:
            agg = s.aggregate if not s.is_open else live[s.session_id]
            if agg is None:
                # Schema CHECK forbids this; report the row as empty.
                logger.warning("Closed session %s has no aggregate", s.session_id)
                agg = SessionAggregate(total_students=0, present=0, absent=0)
            rows.append(
                ReportRow(
                    session_id=s.session_id,
                    lecture_date=s.lecture_date,
                    lecture_number=s.lecture_number,
                    subject=s.subject_name or NOT_AVAILABLE,
                    subject_code=s.subject_code or NOT_AVAILABLE,
                    course=s.course_name or NOT_AVAILABLE,
                    department=s.department_name or NOT_AVAILABLE,
                    status=s.status.value,
                    total_students=agg.total_students,
                    present=agg.present,
                    absent=agg.absent,
                    attendance_percentage=attendance_percentage(agg.present, agg.total_students),
                )
            )
        return AttendanceReport(rows=rows)

    def build_report(
        self,
        teacher_id: int,
        *,
        course_id: Optional[int] = None,
        subject_id: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> AttendanceReport:
        sessions = self._filter(
            self._sessions.list_by_teacher(int(teacher_id)),
            course_id=course_id,
            subject_id=subject_id,
            start=start,
            end=end,
        )
        return self._rows(sessions)

    def build_department_report(
        self,
        department_id: int,
        *,
        course_id: Optional[int] = None,
        subject_id: Optional[int] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> AttendanceReport:
        sessions = self._filter(
            self._sessions.list_by_department(int(department_id)),
            course_id=course_id,
            subject_id=subject_id,
            start=start,
            end=end,
        )
        return self._rows(sessions)

    def build_student_report(self, student_id: int) -> StudentReport:
        """A student's own history with a per-subject breakdown.

        Only CLOSED sessions count: an open lecture still shows every student
        ABSENT. Subjects under the low-attendance threshold carry
        ``warning=True``.
        """
        records = {r.session_id: r for r in self._records.list_for_student(int(student_id))}
        if not records:
            return StudentReport(student_id=int(student_id))

        lectures = []
        counts: dict[tuple[str, str], list[int]] = {}
        for s in self._sessions.get_many(list(records)):
            if s.is_open:
                continue
            rec = records[s.session_id]
            subject = s.subject_name or s.course_name or NOT_AVAILABLE
            code = s.subject_code or NOT_AVAILABLE
            lectures.append(
                StudentLecture(
                    session_id=s.session_id,
                    lecture_date=s.lecture_date,
                    lecture_number=s.lecture_number,
                    subject=subject,
                    subject_code=code,
                    course=s.course_name or NOT_AVAILABLE,
                    session_status=s.status.value,
                    status=rec.status.value,
                )
            )
            c = counts.setdefault((subject, code), [0, 0])
            c[0] += 1
            if rec.is_present:
                c[1] += 1

        subjects = [
            SubjectSummary(subject=name, subject_code=code, total=total, present=present)
            for (name, code), (total, present) in sorted(counts.items())
        ]
        return StudentReport(student_id=int(student_id), lectures=lectures, subjects=subjects)
