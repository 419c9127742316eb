from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from ..core.enums import AttendanceStatus
from ..sessions.model import SessionAggregate


@dataclass(frozen=True)
class Mark:
    """One requested change: set ``student_id`` to ``status``."""

    student_id: int
    status: AttendanceStatus


@dataclass(frozen=True)
class AttendanceRecord:
    """A single student's mark within a session."""

    session_id: int
    student_id: int
    status: AttendanceStatus
    marked_at: datetime
    marked_by: int

    @property
    def is_present(self) -> bool:
        return self.status == AttendanceStatus.PRESENT

    def to_dict(self) -> dict:
        return {
            "sessionId": self.session_id,
            "studentId": self.student_id,
            "status": self.status.value,
            "markedAt": self.marked_at.isoformat(timespec="seconds"),
            "markedBy": self.marked_by,
        }


def tally(records: Iterable[AttendanceRecord]) -> SessionAggregate:
    total = 0
    present = 0
    for r in records:
        total += 1
        if r.is_present:
            present += 1
    return SessionAggregate(total_students=total, present=present, absent=total - present)
