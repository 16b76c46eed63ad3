"""
Tests for the session created Kafka handler.
"""

import pytest

from conftest import make_session
from timetracker.core.handlers.attendance_handlers import (
    handle_session_created,
    parse_session_created,
    register_attendance_handlers,
)
from timetracker.core.kafka import KafkaConsumer
from timetracker.core.topics import KafkaTopics


def test_parse_accepts_camel_case_fields():
    event_data = {
        "event_type": "attendance.session.created",
        "data": {
            "sessionId": "s2",
            "employeeDocId": "e1",
            "employeeName": "Amina Wanjiru",
            "date": "2025-03-10",
            "clockInTime": "08:05:00",
            "sessionActive": True,
            "deviceId": "device-b",
            "deviceName": "Galaxy A54",
        },
    }

    trigger = parse_session_created(event_data)

    assert trigger.session_id == "s2"
    assert trigger.employee_id == "e1"
    assert trigger.device_name == "Galaxy A54"
    record = trigger.to_session()
    assert record.id == "s2"
    assert record.session_active is True
    assert record.clock_in_time == "08:05:00"


def test_parse_accepts_snake_case_fields():
    trigger = parse_session_created(
        {"data": {"session_id": "s1", "employee_id": "e1", "date": "2025-03-10"}}
    )
    assert trigger.session_id == "s1"
    assert trigger.device_id is None


def test_parse_rejects_incomplete_payload():
    assert parse_session_created({"data": {"sessionId": "s1"}}) is None
    assert parse_session_created({}) is None


@pytest.mark.asyncio
async def test_handle_session_created_runs_conflict_check(container, attendance, alert_log):
    attendance.add(make_session("s1", "e1", device_id="device-a"))
    event_data = {
        "data": {
            "sessionId": "s2",
            "employeeId": "e1",
            "date": "2025-03-10",
            "clockInTime": "08:05:00",
            "deviceId": "device-b",
        }
    }

    outcome = await handle_session_created(event_data, container.conflict_reconciler)

    assert outcome.deactivated_session_ids == ["s1"]
    assert len(alert_log.records) == 1


@pytest.mark.asyncio
async def test_handle_session_created_ignores_bad_payload(container, alert_log):
    outcome = await handle_session_created({"data": {}}, container.conflict_reconciler)

    assert outcome is None
    assert alert_log.records == []


def test_registration_skipped_when_kafka_disabled(monkeypatch):
    monkeypatch.setattr(KafkaConsumer, "_handlers", {})

    register_attendance_handlers()

    assert KafkaTopics.ATTENDANCE_SESSION_CREATED not in KafkaConsumer._handlers


@pytest.mark.asyncio
async def test_consumer_dispatch_isolates_handler_failures(monkeypatch):
    seen = []

    def broken(event_data):
        raise ValueError("bad handler")

    async def working(event_data):
        seen.append(event_data)

    monkeypatch.setattr(KafkaConsumer, "_handlers", {})
    KafkaConsumer.register_handler("topic-a", broken)
    KafkaConsumer.register_handler("topic-a", working)

    await KafkaConsumer.dispatch("topic-a", {"data": {}})

    assert seen == [{"data": {}}]
