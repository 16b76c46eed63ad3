"""
Shared fixtures: in-memory stores and a fake push dispatcher.

Environment overrides are applied before the service package is imported so
that settings, the engine and the Redis switch pick them up.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CACHE_ENABLED", "false")
os.environ.setdefault("REMINDER_DEDUP_ENABLED", "false")
os.environ.setdefault("KAFKA_ENABLED", "false")
os.environ.setdefault("TRIGGER_TOKEN", "test-trigger-token")

from datetime import datetime
from itertools import count
from zoneinfo import ZoneInfo

import pytest

from timetracker.core.container import build_container
from timetracker.models.alert import AlertRecord
from timetracker.models.attendance import AttendanceSession
from timetracker.models.employee import Employee
from timetracker.models.notification import DeliveryResult

NAIROBI = ZoneInfo("Africa/Nairobi")

# Monday 10 March 2025
TODAY = "2025-03-10"


def at(hour: int, minute: int = 0) -> datetime:
    return datetime(2025, 3, 10, hour, minute, tzinfo=NAIROBI)


class InMemoryAttendanceStore:
    def __init__(self, sessions=()):
        self.sessions = {s.id: s for s in sessions}
        self.deactivations = []

    def add(self, *sessions):
        for s in sessions:
            self.sessions[s.id] = s

    async def list_active_sessions(self, employee_id, date):
        return [
            s
            for s in self.sessions.values()
            if s.employee_id == employee_id and s.date == date and s.session_active
        ]

    async def list_for_date(self, date):
        rows = [s for s in self.sessions.values() if s.date == date]
        return sorted(rows, key=lambda s: s.clock_in_time or "", reverse=True)

    async def deactivate_session(self, session_id, *, reason, actor, at):
        record = self.sessions.get(session_id)
        if record is None or not record.session_active:
            return False
        record.session_active = False
        record.deactivation_reason = reason
        record.deactivated_by = actor
        record.deactivated_at = at
        self.deactivations.append(session_id)
        return True


class InMemoryDirectory:
    def __init__(self, employees=()):
        self.employees = {e.id: e for e in employees}

    def add(self, *employees):
        for e in employees:
            self.employees[e.id] = e

    async def get(self, employee_id):
        return self.employees.get(employee_id)

    async def list_active(self):
        return [e for e in self.employees.values() if e.is_active]

    async def list_all(self):
        return sorted(self.employees.values(), key=lambda e: e.name)


class InMemoryAlertLog:
    def __init__(self):
        self.records = []
        self._ids = count(1)

    async def append(self, record):
        record.id = next(self._ids)
        self.records.append(record)
        return record.id

    async def count(self, alert_type, date):
        return sum(1 for r in self.records if r.type == alert_type and r.date == date)

    async def list_recent(self, since, limit):
        rows = [r for r in self.records if r.created_at >= since]
        return sorted(rows, key=lambda r: (r.created_at, r.id), reverse=True)[:limit]

    def of_type(self, alert_type) -> list[AlertRecord]:
        return [r for r in self.records if r.type == alert_type]


class InMemorySummaryStore:
    def __init__(self):
        self.records = []
        self._ids = count(1)

    async def save(self, summary):
        self.records.append(summary)
        return next(self._ids)

    async def list_for_date(self, date):
        return [r for r in self.records if r.date == date]


class FakeDispatcher:
    """Records every message; tokens in ``failing_tokens`` are rejected."""

    def __init__(self, failing_tokens=()):
        self.failing_tokens = set(failing_tokens)
        self.sent = []

    async def send(self, message):
        self.sent.append(message)
        if message.token in self.failing_tokens:
            return DeliveryResult(delivered=False, error="registration-token-not-registered")
        return DeliveryResult(delivered=True, message_id=f"msg-{len(self.sent)}")

    async def send_all(self, messages):
        return [await self.send(m) for m in messages]


class RecordingPublisher:
    def __init__(self):
        self.events = []

    async def __call__(self, topic, event):
        self.events.append((topic, event))


class StaticRunGuard:
    def __init__(self, allow: bool):
        self.allow = allow
        self.claims = []
        self.releases = []

    async def claim(self, trigger, date):
        self.claims.append((trigger, date))
        return self.allow

    async def release(self, trigger, date):
        self.releases.append((trigger, date))


class SlotRunGuard:
    """Grants each (trigger, date) slot once until it is released."""

    def __init__(self):
        self.claimed = set()

    async def claim(self, trigger, date):
        if (trigger, date) in self.claimed:
            return False
        self.claimed.add((trigger, date))
        return True

    async def release(self, trigger, date):
        self.claimed.discard((trigger, date))


def make_employee(employee_id: str, **overrides) -> Employee:
    values = {
        "id": employee_id,
        "name": f"Employee {employee_id}",
        "pf_number": f"PF-{employee_id}",
        "department": "Operations",
        "emp_category": "Permanent",
        "push_token": f"token-{employee_id}",
        "has_password": True,
    }
    values.update(overrides)
    return Employee(**values)


def make_session(session_id: str, employee_id: str, **overrides) -> AttendanceSession:
    values = {
        "id": session_id,
        "employee_id": employee_id,
        "date": TODAY,
        "clock_in_time": "08:00:00",
        "session_active": True,
        "device_id": "device-a",
        "device_name": "Pixel 7",
    }
    values.update(overrides)
    return AttendanceSession(**values)


@pytest.fixture
def attendance():
    return InMemoryAttendanceStore()


@pytest.fixture
def directory():
    return InMemoryDirectory()


@pytest.fixture
def alert_log():
    return InMemoryAlertLog()


@pytest.fixture
def summaries():
    return InMemorySummaryStore()


@pytest.fixture
def dispatcher():
    return FakeDispatcher()


@pytest.fixture
def publisher():
    return RecordingPublisher()


@pytest.fixture
def container(attendance, directory, alert_log, summaries, dispatcher, publisher):
    return build_container(
        attendance=attendance,
        directory=directory,
        alert_log=alert_log,
        summaries=summaries,
        dispatcher=dispatcher,
        publisher=publisher,
    )
