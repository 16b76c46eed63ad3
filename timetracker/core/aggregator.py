"""
End-of-day attendance aggregation.

Reduces the day's sessions into one DailySummaryRecord. Every run computes
the summary from scratch and appends a new record.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from timetracker.core.alerts import record_function_error
from timetracker.core.events import DailySummaryEvent, EventType, create_event
from timetracker.core.logging import get_logger
from timetracker.core.stores import (
    AlertLog,
    AttendanceStore,
    DirectoryStore,
    EventPublisher,
    SummaryStore,
)
from timetracker.core.timeutils import date_string, local_now
from timetracker.core.topics import KafkaTopics
from timetracker.models.alert import AlertType
from timetracker.models.attendance import PRESENT_STATUSES, AttendanceSession
from timetracker.models.employee import Employee
from timetracker.models.summary import DailySummaryRecord

logger = get_logger(__name__)


@dataclass(frozen=True)
class AttendanceCounters:
    total_employees: int
    present_count: int
    late_count: int
    absent_count: int
    still_clocked_in_count: int
    attendance_rate: float
    total_hours_worked: float
    avg_hours_worked: float


def compute_counters(
    total_employees: int, sessions: list[AttendanceSession]
) -> AttendanceCounters:
    """
    Reduce a day's sessions against the active headcount.

    Rates and averages are 0 when their denominator is 0.
    """
    present = sum(1 for s in sessions if s.status in PRESENT_STATUSES)
    late = sum(1 for s in sessions if s.is_late)
    still_clocked_in = sum(1 for s in sessions if s.session_active)
    total_hours = sum(s.total_hours or 0.0 for s in sessions)

    rate = round(present / total_employees * 100, 1) if total_employees else 0.0
    average = round(total_hours / present, 1) if present else 0.0

    return AttendanceCounters(
        total_employees=total_employees,
        present_count=present,
        late_count=late,
        # Sessions of admins or inactive employees can push present above the headcount
        absent_count=max(total_employees - present, 0),
        still_clocked_in_count=still_clocked_in,
        attendance_rate=rate,
        total_hours_worked=round(total_hours, 2),
        avg_hours_worked=average,
    )


def _detail_row(record: AttendanceSession, employee: Optional[Employee]) -> dict[str, Any]:
    return {
        "employeeId": record.employee_id,
        "name": (employee.name if employee else None) or record.employee_name,
        "pfNumber": employee.pf_number if employee else None,
        "department": employee.department if employee else None,
        "clockIn": record.clock_in_time,
        "clockOut": record.clock_out_time,
        "hours": record.total_hours or 0.0,
        "status": record.status,
        "isLate": record.is_late,
        "lateMinutes": record.late_minutes,
        "device": record.device_label,
        "sessionActive": record.session_active,
    }


class DailyAggregator:
    def __init__(
        self,
        attendance: AttendanceStore,
        directory: DirectoryStore,
        alert_log: AlertLog,
        summaries: SummaryStore,
        publisher: Optional[EventPublisher] = None,
    ):
        self._attendance = attendance
        self._directory = directory
        self._alert_log = alert_log
        self._summaries = summaries
        self._publisher = publisher

    async def generate_daily_summary(
        self, *, now: Optional[datetime] = None
    ) -> DailySummaryRecord:
        """
        Build and store today's summary.

        Any failure is recorded as a critical function error and re-raised
        so the scheduler sees the run as failed.
        """
        now = now or local_now()
        today = date_string(now)
        logger.info(f"Generating daily attendance summary for {today}")

        try:
            summary = await self._build(today, now)
            summary.id = await self._summaries.save(summary)
        except Exception as e:
            logger.error(f"Daily summary for {today} failed: {e}", exc_info=True)
            await record_function_error(
                self._alert_log, "generate_daily_summary", e, now, context={"date": today}
            )
            raise

        logger.info(
            f"Daily summary {today}: {summary.present_count}/{summary.total_employees} present, "
            f"{summary.late_count} late, rate {summary.attendance_rate}%"
        )
        await self._publish(summary)
        return summary

    async def _build(self, today: str, now: datetime) -> DailySummaryRecord:
        active = await self._directory.list_active()
        workforce = [employee for employee in active if not employee.is_admin]
        sessions = list(await self._attendance.list_for_date(today))
        conflicts = await self._alert_log.count(AlertType.DEVICE_CONFLICT.value, today)

        counters = compute_counters(len(workforce), sessions)
        by_id = {employee.id: employee for employee in active}

        return DailySummaryRecord(
            date=today,
            generated_at=now,
            total_employees=counters.total_employees,
            present_count=counters.present_count,
            late_count=counters.late_count,
            absent_count=counters.absent_count,
            still_clocked_in_count=counters.still_clocked_in_count,
            attendance_rate=counters.attendance_rate,
            total_hours_worked=counters.total_hours_worked,
            avg_hours_worked=counters.avg_hours_worked,
            device_conflict_count=conflicts,
            details=[_detail_row(s, by_id.get(s.employee_id)) for s in sessions],
        )

    async def _publish(self, summary: DailySummaryRecord) -> None:
        if self._publisher is None:
            return
        try:
            event = create_event(
                EventType.ATTENDANCE_DAILY_SUMMARY,
                DailySummaryEvent(
                    date=summary.date,
                    total_employees=summary.total_employees,
                    present_count=summary.present_count,
                    absent_count=summary.absent_count,
                    late_count=summary.late_count,
                    still_clocked_in_count=summary.still_clocked_in_count,
                    attendance_rate=summary.attendance_rate,
                    average_hours_worked=summary.avg_hours_worked,
                    device_conflict_count=summary.device_conflict_count,
                ),
            )
            await self._publisher(KafkaTopics.ATTENDANCE_DAILY_SUMMARY, event)
        except Exception as e:
            logger.warning(f"Failed to publish daily summary event: {e}")
