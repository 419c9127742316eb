from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .common.datetime_utils import now_local
from .core.constants import DEFAULT_CLOSE_MAX_ATTEMPTS
from .database.connection import DBConfig, DatabaseConnection
from .lifecycle.service import SessionLifecycleService
from .records.memory_record_repository import InMemoryAttendanceRecordRepository
from .records.mysql_record_repository import MySQLAttendanceRecordRepository
from .records.repository import AttendanceRecordRepository
from .reports.service import ReportService
from .roster.mysql_roster_provider import MySQLCourseCatalog, MySQLRosterProvider
from .roster.provider import CourseCatalog, RosterProvider, StaticCourseCatalog, StaticRosterProvider
from .sessions.memory_session_repository import InMemorySessionRepository
from .sessions.mysql_session_repository import MySQLSessionRepository
from .sessions.repository import SessionRepository

BACKENDS = ("mysql", "memory")


@dataclass(frozen=True)
class Container:
    conn: Optional[DatabaseConnection]

    sessions_repo: SessionRepository
    records_repo: AttendanceRecordRepository
    roster: RosterProvider
    catalog: Optional[CourseCatalog]

    lifecycle_service: SessionLifecycleService
    report_service: ReportService


def build_container(
    *,
    db_config: Optional[dict] = None,
    backend: str = "mysql",
    roster: Optional[RosterProvider] = None,
    catalog: Optional[CourseCatalog] = None,
    close_max_attempts: int = DEFAULT_CLOSE_MAX_ATTEMPTS,
    reject_duplicates: bool = False,
    clock=now_local,
) -> Container:
    backend = (backend or "mysql").strip().lower()
    if backend not in BACKENDS:
        raise ValueError(f"Unknown storage backend {backend!r}, expected one of {BACKENDS}")

    conn = None
    if backend == "mysql":
        conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config or {}))
        sessions_repo = MySQLSessionRepository(conn)
        records_repo = MySQLAttendanceRecordRepository(conn)
        roster = roster or MySQLRosterProvider(conn)
        catalog = catalog or MySQLCourseCatalog(conn)
    else:
        sessions_repo = InMemorySessionRepository()
        records_repo = InMemoryAttendanceRecordRepository(sessions_repo)
        roster = roster or StaticRosterProvider()
        catalog = catalog or StaticCourseCatalog()

    lifecycle_service = SessionLifecycleService(
        sessions_repo,
        records_repo,
        roster,
        catalog=catalog,
        close_max_attempts=close_max_attempts,
        reject_duplicates=reject_duplicates,
        clock=clock,
    )
    report_service = ReportService(sessions_repo, records_repo)

    return Container(
        conn=conn,
        sessions_repo=sessions_repo,
        records_repo=records_repo,
        roster=roster,
        catalog=catalog,
        lifecycle_service=lifecycle_service,
        report_service=report_service,
    )
