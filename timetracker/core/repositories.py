"""
SQLModel-backed implementations of the store protocols.

Each call opens its own short-lived session; no transaction spans more than
one write.
"""

from collections.abc import Sequence
from datetime import datetime
from typing import Optional

from sqlalchemy import func, update
from sqlmodel import Session, select

from timetracker.core.logging import get_logger
from timetracker.models.alert import AlertRecord
from timetracker.models.attendance import AttendanceSession
from timetracker.models.employee import Employee
from timetracker.models.summary import DailySummaryRecord

logger = get_logger(__name__)


class SQLAttendanceStore:
    def __init__(self, engine):
        self._engine = engine

    async def list_active_sessions(
        self, employee_id: str, date: str
    ) -> Sequence[AttendanceSession]:
        statement = select(AttendanceSession).where(
            (AttendanceSession.employee_id == employee_id)
            & (AttendanceSession.date == date)
            & (AttendanceSession.session_active == True)  # noqa: E712
        )
        with Session(self._engine) as session:
            return list(session.exec(statement).all())

    async def list_for_date(self, date: str) -> Sequence[AttendanceSession]:
        statement = (
            select(AttendanceSession)
            .where(AttendanceSession.date == date)
            .order_by(AttendanceSession.clock_in_timestamp.desc())
        )
        with Session(self._engine) as session:
            return list(session.exec(statement).all())

    async def deactivate_session(
        self, session_id: str, *, reason: str, actor: str, at: datetime
    ) -> bool:
        # Conditional write: only flips rows that are still active
        statement = (
            update(AttendanceSession)
            .where(AttendanceSession.id == session_id)
            .where(AttendanceSession.session_active == True)  # noqa: E712
            .values(
                session_active=False,
                deactivation_reason=reason,
                deactivated_by=actor,
                deactivated_at=at,
                updated_at=datetime.utcnow(),
            )
        )
        with Session(self._engine) as session:
            result = session.execute(statement)
            session.commit()
            changed = result.rowcount == 1
        if not changed:
            logger.info(f"Session {session_id} was not active, left unchanged")
        return changed


class SQLDirectoryStore:
    def __init__(self, engine):
        self._engine = engine

    async def get(self, employee_id: str) -> Optional[Employee]:
        with Session(self._engine) as session:
            return session.get(Employee, employee_id)

    async def list_active(self) -> Sequence[Employee]:
        statement = select(Employee).where(Employee.is_active == True)  # noqa: E712
        with Session(self._engine) as session:
            return list(session.exec(statement).all())

    async def list_all(self) -> Sequence[Employee]:
        statement = select(Employee).order_by(Employee.name)
        with Session(self._engine) as session:
            return list(session.exec(statement).all())


class SQLAlertLog:
    def __init__(self, engine):
        self._engine = engine

    async def append(self, record: AlertRecord) -> int:
        with Session(self._engine) as session:
            session.add(record)
            session.commit()
            session.refresh(record)
            return record.id

    async def count(self, alert_type: str, date: str) -> int:
        statement = select(func.count()).select_from(AlertRecord).where(
            (AlertRecord.type == alert_type) & (AlertRecord.date == date)
        )
        with Session(self._engine) as session:
            return session.exec(statement).one()

    async def list_recent(self, since: datetime, limit: int) -> Sequence[AlertRecord]:
        statement = (
            select(AlertRecord)
            .where(AlertRecord.created_at >= since)
            .order_by(AlertRecord.created_at.desc(), AlertRecord.id.desc())
            .limit(limit)
        )
        with Session(self._engine) as session:
            return list(session.exec(statement).all())


class SQLSummaryStore:
    def __init__(self, engine):
        self._engine = engine

    async def save(self, summary: DailySummaryRecord) -> int:
        with Session(self._engine) as session:
            session.add(summary)
            session.commit()
            session.refresh(summary)
            return summary.id

    async def list_for_date(self, date: str) -> Sequence[DailySummaryRecord]:
        statement = (
            select(DailySummaryRecord)
            .where(DailySummaryRecord.date == date)
            .order_by(DailySummaryRecord.generated_at.desc())
        )
        with Session(self._engine) as session:
            return list(session.exec(statement).all())
