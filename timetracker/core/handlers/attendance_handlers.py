"""
Attendance event handlers.

These handlers consume session lifecycle events written by the clock-in flow
and run the device conflict check for every newly created session.
"""

from typing import Any, Optional

from pydantic import ValidationError

from timetracker.core.config import settings
from timetracker.core.conflicts import ConflictOutcome, ConflictReconciler
from timetracker.core.container import get_container
from timetracker.core.kafka import KafkaConsumer
from timetracker.core.logging import get_logger
from timetracker.core.topics import KafkaTopics
from timetracker.models.attendance import SessionCreatedTrigger

logger = get_logger(__name__)


def parse_session_created(event_data: dict[str, Any]) -> Optional[SessionCreatedTrigger]:
    """
    Extract the session snapshot from an event envelope.

    Accepts both snake_case and the camelCase field names written by the
    mobile app.
    """
    data = event_data.get("data", {})
    payload = {
        "session_id": data.get("session_id") or data.get("sessionId") or data.get("id"),
        "employee_id": data.get("employee_id") or data.get("employeeDocId") or data.get("employeeId"),
        "employee_name": data.get("employee_name") or data.get("employeeName"),
        "date": data.get("date"),
        "clock_in_time": data.get("clock_in_time") or data.get("clockInTime"),
        "clock_out_time": data.get("clock_out_time") or data.get("clockOutTime"),
        "session_active": data.get("session_active", data.get("sessionActive", True)),
        "device_id": data.get("device_id") or data.get("deviceId"),
        "device_name": data.get("device_name") or data.get("deviceName"),
    }
    try:
        return SessionCreatedTrigger.model_validate(payload)
    except ValidationError as e:
        logger.error(f"Session created event is missing required fields: {e}")
        return None


async def handle_session_created(
    event_data: dict[str, Any],
    reconciler: Optional[ConflictReconciler] = None,
) -> Optional[ConflictOutcome]:
    """
    Handle attendance.session.created.

    Runs the device conflict check; the reconciler records its own failures.
    """
    trigger = parse_session_created(event_data)
    if trigger is None:
        return None

    logger.info(
        f"Processing session created event {trigger.session_id} "
        f"for employee {trigger.employee_id}"
    )
    reconciler = reconciler or get_container().conflict_reconciler
    return await reconciler.handle_session_created(
        trigger.session_id, trigger.to_session()
    )


def register_attendance_handlers():
    """
    Register attendance event handlers with the Kafka consumer.

    Called during application startup.
    """
    if not settings.KAFKA_ENABLED:
        logger.info("Kafka is disabled, skipping attendance handler registration")
        return

    KafkaConsumer.register_handler(
        KafkaTopics.ATTENDANCE_SESSION_CREATED, handle_session_created
    )
    logger.info(
        f"Registered handlers for topics: {KafkaTopics.ATTENDANCE_SESSION_CREATED}"
    )
