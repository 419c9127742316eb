from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol, Sequence, Tuple

from ..sessions.model import LectureInfo


class RosterProvider(Protocol):
    """External collaborator: who is enrolled in a course right now."""

    def get_enrolled_students(self, course_id: int) -> Sequence[int]:
        raise NotImplementedError


class CourseCatalog(Protocol):
    """External collaborator: display labels for a course/subject pair."""

    def describe_lecture(self, *, course_id: int, subject_id: Optional[int]) -> Optional[LectureInfo]:
        raise NotImplementedError


@dataclass
class StaticRosterProvider(RosterProvider):
    """Roster held in memory, used by the memory backend and tests."""

    rosters: Dict[int, Sequence[int]] = field(default_factory=dict)

    def get_enrolled_students(self, course_id: int) -> Sequence[int]:
        return sorted({int(sid) for sid in self.rosters.get(int(course_id), ())})


def parse_rosters(text: str) -> Dict[int, list[int]]:
    """Parse ``"1:101,102;2:201"`` into ``{1: [101, 102], 2: [201]}``.

    Used to give the memory backend a roster from configuration.
    """
    rosters: Dict[int, list[int]] = {}
    for chunk in (text or "").split(";"):
        chunk = chunk.strip()
        if not chunk:
            continue
        course, sep, students = chunk.partition(":")
        if not sep:
            raise ValueError(f"Roster entry {chunk!r} must look like course:student,student")
        rosters[int(course)] = [int(s) for s in students.split(",") if s.strip()]
    return rosters


@dataclass
class StaticCourseCatalog(CourseCatalog):
    courses: Dict[int, LectureInfo] = field(default_factory=dict)
    subjects: Dict[int, Tuple[str, str]] = field(default_factory=dict)

    def describe_lecture(self, *, course_id: int, subject_id: Optional[int]) -> Optional[LectureInfo]:
        info = self.courses.get(int(course_id))
        if info is None:
            return None
        if subject_id is not None and int(subject_id) in self.subjects:
            name, code = self.subjects[int(subject_id)]
            return LectureInfo(
                department_id=info.department_id,
                department_name=info.department_name,
                course_name=info.course_name,
                subject_name=name,
                subject_code=code,
            )
        return info
