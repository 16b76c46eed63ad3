"""
Alert log model.

Every notification run, device conflict, manual notification and caught
function error is appended here as a write-once record. Administrators read
the log from the dashboard; nothing in the service updates a record after
it is written.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


class AlertType(str, Enum):
    DEVICE_CONFLICT = "device_conflict"
    FUNCTION_ERROR = "function_error"
    NOTIFICATION_RUN = "notification_run"
    MANUAL_NOTIFICATION = "manual_notification"
    BROADCAST_NOTIFICATION = "broadcast_notification"


class Severity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class AlertRecord(SQLModel, table=True):
    __tablename__ = "alerts"

    id: Optional[int] = Field(default=None, primary_key=True)
    type: str = Field(index=True, max_length=50)
    severity: str = Field(default=Severity.LOW.value, max_length=20)
    employee_id: Optional[str] = Field(default=None, index=True, max_length=128)
    date: str = Field(index=True, max_length=10)  # local YYYY-MM-DD
    title: Optional[str] = Field(default=None, max_length=255)
    payload: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    outcome: Optional[str] = Field(default=None, max_length=50)
    critical: bool = Field(default=False)
    requires_action: bool = Field(default=False)
    function_name: Optional[str] = Field(default=None, max_length=100)
    created_at: datetime = Field(default_factory=datetime.utcnow, index=True)


class AlertPublic(SQLModel):
    id: int
    type: str
    severity: str
    employee_id: Optional[str] = None
    date: str
    title: Optional[str] = None
    payload: dict[str, Any] = {}
    outcome: Optional[str] = None
    critical: bool = False
    requires_action: bool = False
    function_name: Optional[str] = None
    created_at: datetime
