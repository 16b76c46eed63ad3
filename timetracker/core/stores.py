"""
Narrow capability interfaces the core components depend on.

The conflict reconciler, reminder engine and daily aggregator receive
implementations of these protocols through their constructors. Production
wiring uses the SQLModel repositories in ``timetracker.core.repositories``
and the push gateway client; tests use in-memory fakes.
"""

from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime
from typing import Optional, Protocol

from timetracker.core.events import EventEnvelope
from timetracker.models.alert import AlertRecord
from timetracker.models.attendance import AttendanceSession
from timetracker.models.employee import Employee
from timetracker.models.notification import DeliveryResult, PushMessage
from timetracker.models.summary import DailySummaryRecord


class AttendanceStore(Protocol):
    async def list_active_sessions(
        self, employee_id: str, date: str
    ) -> Sequence[AttendanceSession]: ...

    async def list_for_date(self, date: str) -> Sequence[AttendanceSession]:
        """Sessions for a date, newest clock-in first."""
        ...

    async def deactivate_session(
        self, session_id: str, *, reason: str, actor: str, at: datetime
    ) -> bool:
        """
        Close a session only if it is still active.

        Returns False when the session is missing or was already inactive.
        """
        ...


class DirectoryStore(Protocol):
    async def get(self, employee_id: str) -> Optional[Employee]: ...

    async def list_active(self) -> Sequence[Employee]: ...

    async def list_all(self) -> Sequence[Employee]:
        """All employees ordered by name."""
        ...


class AlertLog(Protocol):
    async def append(self, record: AlertRecord) -> int: ...

    async def count(self, alert_type: str, date: str) -> int: ...

    async def list_recent(self, since: datetime, limit: int) -> Sequence[AlertRecord]:
        """Records created at or after ``since``, newest first."""
        ...


class SummaryStore(Protocol):
    async def save(self, summary: DailySummaryRecord) -> int: ...

    async def list_for_date(self, date: str) -> Sequence[DailySummaryRecord]: ...


class Dispatcher(Protocol):
    async def send(self, message: PushMessage) -> DeliveryResult: ...

    async def send_all(self, messages: Sequence[PushMessage]) -> list[DeliveryResult]: ...


class RunGuard(Protocol):
    async def claim(self, trigger: str, date: str) -> bool:
        """True if this invocation owns the (trigger, date) slot."""
        ...

    async def release(self, trigger: str, date: str) -> None:
        """Give up a slot so that a failed run can be retried the same day."""
        ...


EventPublisher = Callable[[str, EventEnvelope], Awaitable[None]]
