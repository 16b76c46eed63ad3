"""
Daily attendance summary model.

Summaries are recomputed wholesale on every run and appended; two runs on
the same day produce two records.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


class DailySummaryRecord(SQLModel, table=True):
    __tablename__ = "daily_summaries"

    id: Optional[int] = Field(default=None, primary_key=True)
    date: str = Field(index=True, max_length=10)
    generated_at: datetime = Field(default_factory=datetime.utcnow)

    total_employees: int = 0
    present_count: int = 0
    late_count: int = 0
    absent_count: int = 0
    still_clocked_in_count: int = 0
    attendance_rate: float = 0.0  # Percentage, one decimal
    total_hours_worked: float = 0.0
    avg_hours_worked: float = 0.0
    device_conflict_count: int = 0

    details: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))


class DailySummaryPublic(SQLModel):
    id: int
    date: str
    generated_at: datetime
    total_employees: int
    present_count: int
    late_count: int
    absent_count: int
    still_clocked_in_count: int
    attendance_rate: float
    total_hours_worked: float
    avg_hours_worked: float
    device_conflict_count: int
    details: list[dict[str, Any]] = []
