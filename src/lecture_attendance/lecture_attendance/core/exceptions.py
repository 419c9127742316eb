from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..sessions.model import SessionAggregate


class DomainError(Exception):
    """Base exception for business rule violations."""

    code = "DOMAIN_ERROR"


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "VALIDATION_ERROR"


class AuthorizationError(DomainError):
    """Raised when an actor lacks permission for an action."""

    code = "FORBIDDEN"


class NotFoundError(DomainError):
    code = "NOT_FOUND"


class ConflictError(DomainError):
    """Raised when a write loses a race or hits a terminal state."""

    code = "CONFLICT"


class UpstreamUnavailableError(DomainError):
    code = "UPSTREAM_UNAVAILABLE"


class InvalidSession(ValidationError):
    code = "INVALID_SESSION"


class StudentNotInSession(ValidationError):
    code = "STUDENT_NOT_IN_SESSION"

    def __init__(self, session_id: int, student_ids):
        self.session_id = session_id
        self.student_ids = sorted(student_ids)
        super().__init__(f"Students {self.student_ids} are not on the roster of session {session_id}")


class NotOwner(AuthorizationError):
    code = "NOT_OWNER"


class SessionNotFound(NotFoundError):
    code = "SESSION_NOT_FOUND"

    def __init__(self, session_id: int):
        self.session_id = session_id
        super().__init__(f"Attendance session {session_id} not found")


class SessionClosed(ConflictError):
    """A mark arrived after the session was closed. Marks are never queued."""

    code = "SESSION_CLOSED"

    def __init__(self, session_id: int):
        self.session_id = session_id
        super().__init__(f"Attendance session {session_id} is closed")


class SessionAlreadyClosed(ConflictError):
    """Close on a closed session. Carries the frozen aggregate."""

    code = "SESSION_ALREADY_CLOSED"

    def __init__(self, session_id: int, aggregate: Optional["SessionAggregate"] = None):
        self.session_id = session_id
        self.aggregate = aggregate
        super().__init__(f"Attendance session {session_id} is already closed")


class CloseConflict(ConflictError):
    """Close kept losing the version race; the caller may retry."""

    code = "CLOSE_CONFLICT"

    def __init__(self, session_id: int, attempts: int):
        self.session_id = session_id
        self.attempts = attempts
        super().__init__(f"Could not close session {session_id} after {attempts} attempts, retry")


class DuplicateSession(ConflictError):
    code = "DUPLICATE_SESSION"


class RosterUnavailable(UpstreamUnavailableError):
    code = "ROSTER_UNAVAILABLE"
