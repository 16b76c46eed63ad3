"""
Tests for the scheduled reminder runs.
"""

import asyncio

import pytest

from conftest import (
    TODAY,
    FakeDispatcher,
    SlotRunGuard,
    StaticRunGuard,
    at,
    make_employee,
    make_session,
)
from timetracker.core.events import EventType
from timetracker.core.reminders import ReminderEngine, ReminderTrigger
from timetracker.core.topics import KafkaTopics
from timetracker.models.alert import AlertType, Severity


def build_engine(attendance, directory, alert_log, dispatcher, **kwargs):
    return ReminderEngine(attendance, directory, alert_log, dispatcher, **kwargs)


@pytest.mark.asyncio
async def test_clock_in_reminder_targets_only_pending_employees(
    attendance, directory, alert_log, dispatcher, publisher
):
    directory.add(
        make_employee("e1", name="Amina Wanjiru"),
        make_employee("e2"),
        make_employee("admin", role="Admin"),
        make_employee("e4", is_active=False),
        make_employee("e5", push_token=None),
    )
    attendance.add(make_session("s2", "e2"))
    engine = build_engine(attendance, directory, alert_log, dispatcher, publisher=publisher)

    summary = await engine.send_clock_in_reminders(now=at(8))

    assert [m.token for m in dispatcher.sent] == ["token-e1"]
    message = dispatcher.sent[0]
    assert message.title == "Time to Clock In"
    assert "Amina" in message.body
    assert message.data["type"] == ReminderTrigger.CLOCK_IN.value
    assert message.data["date"] == TODAY

    assert (summary.sent, summary.errors, summary.total) == (1, 0, 1)
    assert summary.outcome == "success"

    runs = alert_log.of_type(AlertType.NOTIFICATION_RUN.value)
    assert len(runs) == 1
    assert runs[0].payload == {
        "trigger": "CLOCK_IN_REMINDER",
        "date": TODAY,
        "sent": 1,
        "errors": 0,
        "total": 1,
    }

    topic, event = publisher.events[0]
    assert topic == KafkaTopics.NOTIFICATION_RUN_COMPLETED
    assert event.event_type == EventType.NOTIFICATION_RUN_COMPLETED


@pytest.mark.asyncio
async def test_session_without_clock_in_still_gets_reminder(
    attendance, directory, alert_log, dispatcher
):
    directory.add(make_employee("e1"))
    attendance.add(make_session("s1", "e1", clock_in_time=None))
    engine = build_engine(attendance, directory, alert_log, dispatcher)

    summary = await engine.send_clock_in_reminders(now=at(8))

    assert summary.sent == 1


@pytest.mark.asyncio
async def test_one_failing_delivery_does_not_stop_the_run(attendance, directory, alert_log):
    directory.add(*(make_employee(f"e{i}") for i in range(1, 6)))
    dispatcher = FakeDispatcher(failing_tokens={"token-e3"})
    engine = build_engine(attendance, directory, alert_log, dispatcher, concurrency=2)

    summary = await engine.send_clock_in_reminders(now=at(8))

    assert len(dispatcher.sent) == 5
    assert (summary.sent, summary.errors, summary.total) == (4, 1, 5)
    assert summary.outcome == "partial"
    run = alert_log.of_type(AlertType.NOTIFICATION_RUN.value)[0]
    assert run.severity == Severity.MEDIUM.value
    assert run.outcome == "partial"


class SlowDispatcher(FakeDispatcher):
    """Holds every send briefly and records the most sends in flight at once."""

    def __init__(self):
        super().__init__()
        self.in_flight = 0
        self.peak = 0

    async def send(self, message):
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(0.01)
            return await super().send(message)
        finally:
            self.in_flight -= 1


@pytest.mark.asyncio
async def test_fan_out_respects_concurrency_limit(attendance, directory, alert_log):
    directory.add(*(make_employee(f"e{i}") for i in range(1, 6)))
    dispatcher = SlowDispatcher()
    engine = build_engine(attendance, directory, alert_log, dispatcher, concurrency=2)

    summary = await engine.send_clock_in_reminders(now=at(8))

    assert dispatcher.peak == 2
    assert len(dispatcher.sent) == 5
    assert summary.sent == 5


@pytest.mark.asyncio
async def test_late_arrival_alert_lists_late_employees(
    attendance, directory, alert_log, dispatcher
):
    directory.add(
        make_employee("e1", name="Amina Wanjiru", pf_number="PF001", department="Finance"),
        make_employee("e2", name="Brian Otieno", pf_number="PF002", department=None),
        make_employee("e3"),
    )
    attendance.add(make_session("s3", "e3"))
    engine = build_engine(
        attendance, directory, alert_log, dispatcher, late_threshold_minutes=15
    )

    summary = await engine.send_late_arrival_alerts(now=at(8, 15))

    assert summary.sent == 2
    assert sorted(m.token for m in dispatcher.sent) == ["token-e1", "token-e2"]
    message = dispatcher.sent[0]
    assert message.title == "Late Arrival Alert"
    assert message.android.channel_id == "attendance_alerts"
    assert message.android.color == "#DC2626"
    assert message.data["minutesLate"] == "15"

    run = alert_log.of_type(AlertType.NOTIFICATION_RUN.value)[0]
    late = sorted(run.payload["lateEmployees"], key=lambda row: row["employeeId"])
    assert late == [
        {"employeeId": "e1", "name": "Amina Wanjiru", "pfNumber": "PF001", "department": "Finance"},
        {"employeeId": "e2", "name": "Brian Otieno", "pfNumber": "PF002", "department": "Unknown"},
    ]


@pytest.mark.asyncio
async def test_clock_out_reminder_reports_hours_worked(
    attendance, directory, alert_log, dispatcher
):
    directory.add(make_employee("e1", name="Amina Wanjiru"), make_employee("e2"))
    attendance.add(
        make_session("s1", "e1", clock_in_time="08:00:00"),
        make_session("s2", "e2", clock_in_time="08:10:00", clock_out_time="16:00:00"),
        make_session("s3", "e2", clock_in_time="07:55:00", session_active=False),
    )
    engine = build_engine(attendance, directory, alert_log, dispatcher)

    summary = await engine.send_clock_out_reminders(now=at(17, 30))

    assert (summary.sent, summary.errors, summary.total) == (1, 0, 1)
    message = dispatcher.sent[0]
    assert message.token == "token-e1"
    assert message.title == "Time to Clock Out"
    assert "9h 30m" in message.body
    assert message.data["hoursWorked"] == "9h 30m"
    assert message.data["attendanceId"] == "s1"
    assert message.data["time"] == "17:30"


@pytest.mark.asyncio
async def test_clock_out_counts_missing_profile_and_token_as_errors(
    attendance, directory, alert_log, dispatcher
):
    directory.add(make_employee("e1"), make_employee("e2", push_token=None))
    attendance.add(
        make_session("s1", "e1"),
        make_session("s2", "e2"),
        make_session("s3", "ghost"),
    )
    engine = build_engine(attendance, directory, alert_log, dispatcher)

    summary = await engine.send_clock_out_reminders(now=at(17))

    assert (summary.sent, summary.errors, summary.total) == (1, 2, 3)
    assert [m.token for m in dispatcher.sent] == ["token-e1"]


@pytest.mark.asyncio
async def test_no_candidates_still_writes_summary(attendance, directory, alert_log, dispatcher):
    engine = build_engine(attendance, directory, alert_log, dispatcher)

    summary = await engine.send_clock_out_reminders(now=at(17))

    assert summary.total == 0
    assert summary.outcome == "no_candidates"
    assert len(alert_log.of_type(AlertType.NOTIFICATION_RUN.value)) == 1


@pytest.mark.asyncio
async def test_claimed_slot_is_skipped(attendance, directory, alert_log, dispatcher):
    directory.add(make_employee("e1"))
    guard = StaticRunGuard(allow=False)
    engine = build_engine(attendance, directory, alert_log, dispatcher, run_guard=guard)

    summary = await engine.send_clock_in_reminders(now=at(8))

    assert summary.skipped is True
    assert guard.claims == [("CLOCK_IN_REMINDER", TODAY)]
    assert dispatcher.sent == []
    assert alert_log.records == []


@pytest.mark.asyncio
async def test_granted_slot_runs(attendance, directory, alert_log, dispatcher):
    directory.add(make_employee("e1"))
    guard = StaticRunGuard(allow=True)
    engine = build_engine(attendance, directory, alert_log, dispatcher, run_guard=guard)

    summary = await engine.send_late_arrival_alerts(now=at(8, 15))

    assert summary.skipped is False
    assert guard.claims == [("LATE_ARRIVAL_ALERT", TODAY)]
    assert summary.sent == 1


@pytest.mark.asyncio
async def test_completed_slot_is_not_run_twice(attendance, directory, alert_log, dispatcher):
    directory.add(make_employee("e1"))
    engine = build_engine(
        attendance, directory, alert_log, dispatcher, run_guard=SlotRunGuard()
    )

    first = await engine.send_clock_in_reminders(now=at(8))
    second = await engine.send_clock_in_reminders(now=at(8, 5))

    assert first.sent == 1
    assert second.skipped is True
    assert len(dispatcher.sent) == 1


@pytest.mark.asyncio
async def test_failed_run_releases_its_slot(
    attendance, directory, alert_log, dispatcher, monkeypatch
):
    directory.add(make_employee("e1"))
    guard = SlotRunGuard()
    engine = build_engine(attendance, directory, alert_log, dispatcher, run_guard=guard)
    list_for_date = attendance.list_for_date
    calls = []

    async def flaky(date):
        calls.append(date)
        if len(calls) == 1:
            raise ConnectionError("attendance store offline")
        return await list_for_date(date)

    monkeypatch.setattr(attendance, "list_for_date", flaky)

    first = await engine.send_clock_in_reminders(now=at(8))
    second = await engine.send_clock_in_reminders(now=at(8, 10))

    assert first is None
    assert second.skipped is False
    assert second.sent == 1
    assert [m.token for m in dispatcher.sent] == ["token-e1"]
    assert guard.claimed == {("CLOCK_IN_REMINDER", TODAY)}


@pytest.mark.asyncio
async def test_forced_run_ignores_claimed_slot(attendance, directory, alert_log, dispatcher):
    directory.add(make_employee("e1"))
    guard = StaticRunGuard(allow=False)
    engine = build_engine(attendance, directory, alert_log, dispatcher, run_guard=guard)

    summary = await engine.send_clock_out_reminders(now=at(17), force=True)

    assert summary.skipped is False
    assert guard.claims == []


class BrokenDirectory:
    async def list_active(self):
        raise ConnectionError("directory offline")


@pytest.mark.asyncio
async def test_run_failure_is_recorded_and_swallowed(attendance, alert_log, dispatcher):
    engine = build_engine(attendance, BrokenDirectory(), alert_log, dispatcher)

    summary = await engine.send_clock_in_reminders(now=at(8))

    assert summary is None
    errors = alert_log.of_type(AlertType.FUNCTION_ERROR.value)
    assert len(errors) == 1
    assert errors[0].function_name == "send_clock_in_reminders"
    assert errors[0].payload["errorType"] == "ConnectionError"
