"""
Event definitions for the TimeTracker attendance service.

Defines all event types and their data structures for Kafka publishing:
- Device conflict events from the conflict reconciler
- Notification run events from the reminder engine
- Daily summary events from the aggregator
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """All event types produced by the service."""

    ATTENDANCE_CONFLICT_DETECTED = "attendance.conflict.detected"
    NOTIFICATION_RUN_COMPLETED = "notification.run.completed"
    NOTIFICATION_SENT = "notification.sent"
    ATTENDANCE_DAILY_SUMMARY = "attendance.summary.daily"


class EventMetadata(BaseModel):
    """Metadata attached to every event for tracing and correlation."""

    source_service: str = "timetracker-attendance-service"
    correlation_id: str = Field(default_factory=lambda: str(uuid4()))
    causation_id: Optional[str] = None
    actor_user_id: Optional[str] = None
    actor_role: Optional[str] = None


class EventEnvelope(BaseModel):
    """
    Standard envelope for all events.
    Provides consistent structure for Kafka messages.
    """

    event_id: str = Field(default_factory=lambda: str(uuid4()))
    event_type: EventType
    timestamp: str = Field(default_factory=lambda: datetime.utcnow().isoformat())
    version: str = "1.0"
    data: dict[str, Any]
    metadata: EventMetadata = Field(default_factory=EventMetadata)


class DeviceConflictEvent(BaseModel):
    """Data for attendance.conflict.detected event."""

    employee_id: str
    employee_name: Optional[str] = None
    date: str
    session_id: str
    device_id: Optional[str] = None
    conflicting_session_ids: list[str]
    deactivated_session_ids: list[str]


class NotificationRunEvent(BaseModel):
    """Data for notification.run.completed event."""

    trigger: str
    date: str
    sent: int
    errors: int
    total: int


class NotificationSentEvent(BaseModel):
    """Data for notification.sent event (admin initiated)."""

    notification_type: str
    employee_id: Optional[str] = None
    title: str
    sent: int
    failed: int


class DailySummaryEvent(BaseModel):
    """Data for attendance.summary.daily event."""

    date: str
    total_employees: int
    present_count: int
    absent_count: int
    late_count: int
    still_clocked_in_count: int
    attendance_rate: float
    average_hours_worked: float
    device_conflict_count: int


def create_event(
    event_type: EventType,
    data: BaseModel,
    actor_user_id: Optional[str] = None,
    actor_role: Optional[str] = None,
    correlation_id: Optional[str] = None,
) -> EventEnvelope:
    """
    Helper function to create an event envelope with proper metadata.

    Args:
        event_type: Type of the event
        data: Event data as a Pydantic model
        actor_user_id: ID of the user performing the action
        actor_role: Role of the user performing the action
        correlation_id: Optional correlation ID for tracing

    Returns:
        EventEnvelope ready for publishing
    """
    metadata = EventMetadata(
        actor_user_id=actor_user_id,
        actor_role=actor_role,
        correlation_id=correlation_id or str(uuid4()),
    )

    return EventEnvelope(
        event_type=event_type,
        data=data.model_dump(mode="json"),
        metadata=metadata,
    )


# Actor recorded on system-initiated changes
SYSTEM_ACTOR = "system"
