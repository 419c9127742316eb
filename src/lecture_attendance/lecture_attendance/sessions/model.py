from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.enums import SessionStatus


@dataclass(frozen=True)
class SessionAggregate:
    """Counts frozen once at close."""

    total_students: int
    present: int
    absent: int

    def to_dict(self) -> dict:
        return {
            "totalStudents": self.total_students,
            "present": self.present,
            "absent": self.absent,
        }


@dataclass(frozen=True)
class LectureInfo:
    """Labels copied onto a session at open so reports survive catalog renames."""

    department_id: Optional[int] = None
    department_name: Optional[str] = None
    course_name: Optional[str] = None
    subject_name: Optional[str] = None
    subject_code: Optional[str] = None


@dataclass(frozen=True)
class NewSession:
    """Input to the session store. The store assigns id, version and status."""

    course_id: int
    teacher_id: int
    lecture_date: date
    lecture_number: int
    created_at: datetime
    subject_id: Optional[int] = None
    info: LectureInfo = field(default_factory=LectureInfo)
    opened_by: Optional[int] = None


@dataclass(frozen=True)
class Session:
    """Domain entity: one lecture's attendance-taking unit."""

    session_id: int
    course_id: int
    teacher_id: int
    department_id: Optional[int]
    subject_id: Optional[int]
    lecture_date: date
    lecture_number: int
    status: SessionStatus
    version: int
    created_at: datetime
    closed_at: Optional[datetime] = None
    aggregate: Optional[SessionAggregate] = None
    subject_name: Optional[str] = None
    subject_code: Optional[str] = None
    course_name: Optional[str] = None
    department_name: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.status == SessionStatus.OPEN

    def to_dict(self) -> dict:
        return {
            "sessionId": self.session_id,
            "courseId": self.course_id,
            "teacherId": self.teacher_id,
            "departmentId": self.department_id,
            "subjectId": self.subject_id,
            "lectureDate": self.lecture_date.strftime("%Y-%m-%d"),
            "lectureNumber": self.lecture_number,
            "status": self.status.value,
            "version": self.version,
            "createdAt": self.created_at.isoformat(timespec="seconds"),
            "closedAt": self.closed_at.isoformat(timespec="seconds") if self.closed_at else None,
            "aggregate": self.aggregate.to_dict() if self.aggregate else None,
            "subject": {"name": self.subject_name, "code": self.subject_code},
            "course": self.course_name,
            "department": self.department_name,
        }
