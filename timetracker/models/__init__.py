"""
Database models and schemas module.
Contains all SQLModel table definitions and Pydantic schemas.
"""

from timetracker.models.alert import AlertPublic, AlertRecord, AlertType, Severity
from timetracker.models.attendance import (
    AttendancePublic,
    AttendanceSession,
    AttendanceStatus,
    SessionCreatedTrigger,
)
from timetracker.models.employee import Employee, EmployeePublic, EmployeeRole
from timetracker.models.summary import DailySummaryPublic, DailySummaryRecord

__all__ = [
    "AlertPublic",
    "AlertRecord",
    "AlertType",
    "Severity",
    "AttendancePublic",
    "AttendanceSession",
    "AttendanceStatus",
    "SessionCreatedTrigger",
    "Employee",
    "EmployeePublic",
    "EmployeeRole",
    "DailySummaryPublic",
    "DailySummaryRecord",
]
