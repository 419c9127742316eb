from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from ..common.percentages import attendance_percentage
from ..core.constants import LOW_ATTENDANCE_THRESHOLD
from ..core.enums import AttendanceStatus


@dataclass(frozen=True)
class ReportRow:
    session_id: int
    lecture_date: date
    lecture_number: int
    subject: str
    subject_code: str
    course: str
    department: str
    status: str
    total_students: int
    present: int
    absent: int
    attendance_percentage: int

    def to_dict(self) -> dict:
        return {
            "sessionId": self.session_id,
            "lectureDate": self.lecture_date.strftime("%Y-%m-%d"),
            "lectureNumber": self.lecture_number,
            "subject": self.subject,
            "subjectCode": self.subject_code,
            "course": self.course,
            "department": self.department,
            "status": self.status,
            "totalStudents": self.total_students,
            "present": self.present,
            "absent": self.absent,
            "attendancePercentage": self.attendance_percentage,
        }

    def to_csv_row(self) -> dict:
        return {
            "session_id": self.session_id,
            "lecture_date": self.lecture_date.strftime("%Y-%m-%d"),
            "lecture_number": self.lecture_number,
            "subject": self.subject,
            "subject_code": self.subject_code,
            "course": self.course,
            "department": self.department,
            "status": self.status,
            "total_students": self.total_students,
            "present": self.present,
            "absent": self.absent,
            "attendance_percentage": self.attendance_percentage,
        }


CSV_FIELDS = [
    "session_id",
    "lecture_date",
    "lecture_number",
    "subject",
    "subject_code",
    "course",
    "department",
    "status",
    "total_students",
    "present",
    "absent",
    "attendance_percentage",
]


@dataclass(frozen=True)
class AttendanceReport:
    """Per-lecture rows plus student-weighted totals."""

    rows: list[ReportRow] = field(default_factory=list)

    @property
    def total_lectures(self) -> int:
        return len(self.rows)

    @property
    def total_students(self) -> int:
        return sum(r.total_students for r in self.rows)

    @property
    def total_present(self) -> int:
        return sum(r.present for r in self.rows)

    @property
    def total_absent(self) -> int:
        return sum(r.absent for r in self.rows)

    @property
    def overall_percentage(self) -> int:
        # Weighted by students, not an average of row percentages.
        return attendance_percentage(self.total_present, self.total_students)

    def to_dict(self) -> dict:
        return {
            "totalLectures": self.total_lectures,
            "totalStudents": self.total_students,
            "totalPresent": self.total_present,
            "totalAbsent": self.total_absent,
            "overallPercentage": self.overall_percentage,
            "rows": [r.to_dict() for r in self.rows],
        }


@dataclass(frozen=True)
class StudentLecture:
    session_id: int
    lecture_date: date
    lecture_number: int
    subject: str
    subject_code: str
    course: str
    session_status: str
    status: str

    def to_dict(self) -> dict:
        return {
            "sessionId": self.session_id,
            "lectureDate": self.lecture_date.strftime("%Y-%m-%d"),
            "lectureNumber": self.lecture_number,
            "subject": self.subject,
            "subjectCode": self.subject_code,
            "course": self.course,
            "sessionStatus": self.session_status,
            "status": self.status,
        }


@dataclass(frozen=True)
class SubjectSummary:
    subject: str
    subject_code: str
    total: int
    present: int

    @property
    def percentage(self) -> int:
        return attendance_percentage(self.present, self.total)

    @property
    def warning(self) -> bool:
        return self.total > 0 and self.percentage < LOW_ATTENDANCE_THRESHOLD

    def to_dict(self) -> dict:
        return {
            "subject": self.subject,
            "subjectCode": self.subject_code,
            "total": self.total,
            "present": self.present,
            "absent": self.total - self.present,
            "percentage": self.percentage,
            "warning": self.warning,
        }


@dataclass(frozen=True)
class StudentReport:
    student_id: int
    lectures: list[StudentLecture] = field(default_factory=list)
    subjects: list[SubjectSummary] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.lectures)

    @property
    def present(self) -> int:
        return sum(1 for lec in self.lectures if lec.status == AttendanceStatus.PRESENT.value)

    @property
    def percentage(self) -> int:
        return attendance_percentage(self.present, self.total)

    @property
    def warning(self) -> bool:
        return self.total > 0 and self.percentage < LOW_ATTENDANCE_THRESHOLD

    def to_dict(self) -> dict:
        return {
            "studentId": self.student_id,
            "total": self.total,
            "present": self.present,
            "absent": self.total - self.present,
            "percentage": self.percentage,
            "warning": self.warning,
            "subjects": [s.to_dict() for s in self.subjects],
            "lectures": [lec.to_dict() for lec in self.lectures],
        }
