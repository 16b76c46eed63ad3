"""
Attendance session models and schemas.

A session is created when an employee clocks in from a device and closed
when they clock out. The derived fields (``total_hours``, ``is_late``,
``late_minutes``, ``status``) are computed by the clock-in/out flow and are
trusted as stored.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import uuid4

from sqlmodel import Field, SQLModel


class AttendanceStatus(str, Enum):
    """Status of an attendance session."""

    PRESENT = "Present"
    LATE = "Late"
    ABSENT = "Absent"


PRESENT_STATUSES = (AttendanceStatus.PRESENT.value, AttendanceStatus.LATE.value)


# Database Model


class AttendanceSession(SQLModel, table=True):
    """
    ORM model for the attendance table.

    Tracks:
    - Clock-in/Clock-out times (local time of day)
    - The device the session was opened from
    - Whether the session is still active
    - Reconciliation stamps when a session is superseded
    """

    __tablename__ = "attendance"

    id: str = Field(default_factory=lambda: uuid4().hex, primary_key=True, max_length=64)

    # Employee reference
    employee_id: str = Field(index=True, nullable=False, max_length=128)
    employee_name: Optional[str] = Field(default=None, max_length=255)

    # Date and times
    date: str = Field(index=True, nullable=False, max_length=10)  # YYYY-MM-DD format
    clock_in_time: Optional[str] = Field(default=None, max_length=8)  # HH:MM:SS
    clock_in_timestamp: Optional[datetime] = Field(default=None, index=True)
    clock_out_time: Optional[str] = Field(default=None, max_length=8)

    # Session state
    session_active: bool = Field(default=True, index=True)
    device_id: Optional[str] = Field(default=None, max_length=255)
    device_name: Optional[str] = Field(default=None, max_length=255)

    # Derived fields
    total_hours: Optional[float] = Field(default=None)
    is_late: bool = Field(default=False)
    late_minutes: int = Field(default=0)
    status: str = Field(default=AttendanceStatus.PRESENT.value, max_length=20)

    # Reconciliation
    deactivation_reason: Optional[str] = Field(default=None, max_length=500)
    deactivated_by: Optional[str] = Field(default=None, max_length=64)
    deactivated_at: Optional[datetime] = Field(default=None)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)

    @property
    def device_label(self) -> str:
        return self.device_name or self.device_id or "Unknown device"


# Request Schemas


class SessionCreatedTrigger(SQLModel):
    """Payload delivered when a new session document is written."""

    session_id: str = Field(min_length=1)
    employee_id: str = Field(min_length=1)
    date: str = Field(min_length=10, max_length=10)
    clock_in_time: Optional[str] = None
    clock_out_time: Optional[str] = None
    session_active: bool = True
    device_id: Optional[str] = None
    device_name: Optional[str] = None
    employee_name: Optional[str] = None

    def to_session(self) -> AttendanceSession:
        return AttendanceSession(
            id=self.session_id,
            employee_id=self.employee_id,
            employee_name=self.employee_name,
            date=self.date,
            clock_in_time=self.clock_in_time,
            clock_out_time=self.clock_out_time,
            session_active=self.session_active,
            device_id=self.device_id,
            device_name=self.device_name,
        )


# Response Schemas


class AttendancePublic(SQLModel):
    """Schema for attendance responses on the dashboard."""

    id: str
    employee_id: str
    employee_name: Optional[str] = None
    date: str
    clock_in_time: Optional[str] = None
    clock_out_time: Optional[str] = None
    session_active: bool
    device_id: Optional[str] = None
    device_name: Optional[str] = None
    total_hours: Optional[float] = None
    is_late: bool = False
    late_minutes: int = 0
    status: str
    deactivation_reason: Optional[str] = None
