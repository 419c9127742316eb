from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Actor roles supplied by the identity provider."""

    ADMIN = "admin"
    HOD = "hod"
    TEACHER = "teacher"
    STUDENT = "student"


class SessionStatus(str, Enum):
    """Lifecycle of a lecture session. OPEN -> CLOSED only."""

    OPEN = "OPEN"
    CLOSED = "CLOSED"


class AttendanceStatus(str, Enum):
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"


class WriteOutcome(str, Enum):
    """Result of a version-guarded write on a session row."""

    APPLIED = "APPLIED"
    VERSION_CONFLICT = "VERSION_CONFLICT"
    ALREADY_CLOSED = "ALREADY_CLOSED"
    NOT_FOUND = "NOT_FOUND"
