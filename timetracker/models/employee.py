"""
Employee directory model.

Profiles are created and updated by the mobile app and the HR back office;
this service only reads them to decide who gets notified and to resolve
names, PF numbers and departments for reports.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel


class EmployeeRole(str, Enum):
    EMPLOYEE = "Employee"
    ADMIN = "Admin"


class Employee(SQLModel, table=True):
    """
    Employee profile.

    ``push_token`` is the device registration token used for push delivery;
    an employee without one cannot be notified.
    """

    __tablename__ = "employees"

    id: str = Field(primary_key=True, max_length=128, description="Opaque employee id")
    name: str = Field(max_length=255, description="Display name")
    pf_number: Optional[str] = Field(
        default=None, index=True, max_length=64, description="Payroll/personnel file number"
    )
    email: Optional[str] = Field(default=None, index=True, max_length=255)
    is_active: bool = Field(default=True, index=True)
    role: str = Field(default=EmployeeRole.EMPLOYEE.value, max_length=32)
    department: Optional[str] = Field(default=None, max_length=255)
    emp_category: Optional[str] = Field(
        default=None, max_length=100, description="Employment category"
    )
    push_token: Optional[str] = Field(default=None, max_length=512)
    has_password: bool = Field(default=False)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == EmployeeRole.ADMIN.value

    @property
    def first_name(self) -> str:
        parts = (self.name or "").split()
        return parts[0] if parts else "there"


class EmployeePublic(SQLModel):
    """
    Public schema for dashboard employee listings (no push token).
    """

    id: str
    name: str
    pf_number: Optional[str] = None
    email: Optional[str] = None
    is_active: bool
    role: str
    department: Optional[str] = None
    emp_category: Optional[str] = None
    has_password: bool = False
