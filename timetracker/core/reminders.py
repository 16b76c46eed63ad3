"""
Scheduled push reminders.

Three fixed-time runs share one shape: pick a candidate population, keep the
members that qualify against today's attendance, send one push per member
and write one run summary to the alert log. Each member is an independent
unit; a failing unit is counted and never stops the others.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from timetracker.core.alerts import record_function_error
from timetracker.core.config import settings
from timetracker.core.events import EventType, NotificationRunEvent, create_event
from timetracker.core.exceptions import (
    DeliveryError,
    EmployeeNotFoundError,
    MissingPushAddressError,
)
from timetracker.core.logging import get_logger
from timetracker.core.stores import (
    AlertLog,
    AttendanceStore,
    Dispatcher,
    DirectoryStore,
    EventPublisher,
    RunGuard,
)
from timetracker.core.timeutils import date_string, format_elapsed, local_now, time_string
from timetracker.core.topics import KafkaTopics
from timetracker.models.alert import AlertRecord, AlertType, Severity
from timetracker.models.attendance import AttendanceSession
from timetracker.models.employee import Employee
from timetracker.models.notification import AndroidOptions, PushMessage

logger = get_logger(__name__)


class ReminderTrigger(str, Enum):
    CLOCK_IN = "CLOCK_IN_REMINDER"
    LATE_ARRIVAL = "LATE_ARRIVAL_ALERT"
    CLOCK_OUT = "CLOCK_OUT_REMINDER"


REMINDER_STYLE = AndroidOptions(color="#2563EB")
LATE_STYLE = AndroidOptions(icon="ic_warning", color="#DC2626", channel_id="attendance_alerts")
CLOCK_OUT_STYLE = AndroidOptions(color="#EA580C")

Unit = tuple[str, Callable[[], Awaitable[None]]]


@dataclass
class RunSummary:
    trigger: str
    date: str
    sent: int = 0
    errors: int = 0
    total: int = 0
    skipped: bool = False
    affected: list[dict[str, Any]] = field(default_factory=list)

    @property
    def outcome(self) -> str:
        if self.total == 0:
            return "no_candidates"
        if self.errors == 0:
            return "success"
        if self.sent == 0:
            return "failed"
        return "partial"


class ReminderEngine:
    def __init__(
        self,
        attendance: AttendanceStore,
        directory: DirectoryStore,
        alert_log: AlertLog,
        dispatcher: Dispatcher,
        *,
        publisher: Optional[EventPublisher] = None,
        run_guard: Optional[RunGuard] = None,
        concurrency: int = settings.NOTIFICATION_CONCURRENCY,
        late_threshold_minutes: int = settings.LATE_THRESHOLD_MINUTES,
    ):
        self._attendance = attendance
        self._directory = directory
        self._alert_log = alert_log
        self._dispatcher = dispatcher
        self._publisher = publisher
        self._run_guard = run_guard
        self._concurrency = max(1, concurrency)
        self._late_threshold = late_threshold_minutes

    # Public runs

    async def send_clock_in_reminders(
        self, *, now: Optional[datetime] = None, force: bool = False
    ):
        return await self._run(ReminderTrigger.CLOCK_IN, now, self._clock_in_run, force)

    async def send_late_arrival_alerts(
        self, *, now: Optional[datetime] = None, force: bool = False
    ):
        return await self._run(
            ReminderTrigger.LATE_ARRIVAL, now, self._late_arrival_run, force
        )

    async def send_clock_out_reminders(
        self, *, now: Optional[datetime] = None, force: bool = False
    ):
        return await self._run(ReminderTrigger.CLOCK_OUT, now, self._clock_out_run, force)

    async def _run(
        self,
        trigger: ReminderTrigger,
        now: Optional[datetime],
        body: Callable[[datetime, RunSummary], Awaitable[None]],
        force: bool = False,
    ) -> Optional[RunSummary]:
        """
        Shared run wrapper.

        Returns the run summary, a skipped summary when the slot was already
        claimed, or None when the run failed before it could finish. A failed
        run releases its slot; ``force`` runs without claiming one.
        """
        now = now or local_now()
        summary = RunSummary(trigger=trigger.value, date=date_string(now))
        logger.info(f"Starting {trigger.value} run for {summary.date}")

        guard = None if force else self._run_guard
        claimed = False
        try:
            if guard is not None:
                claimed = await guard.claim(trigger.value, summary.date)
                if not claimed:
                    logger.warning(
                        f"{trigger.value} already ran for {summary.date}, skipping"
                    )
                    summary.skipped = True
                    return summary

            await body(now, summary)
            await self._write_summary(summary)
        except Exception as e:
            logger.error(f"Error running {trigger.value}: {e}", exc_info=True)
            await record_function_error(
                self._alert_log, _function_name(trigger), e, now
            )
            if claimed:
                await self._release(guard, trigger, summary.date)
            return None

        logger.info(
            f"{trigger.value}: sent {summary.sent}, {summary.errors} failed "
            f"of {summary.total} candidates"
        )
        await self._publish(summary)
        return summary

    async def _release(self, guard: RunGuard, trigger: ReminderTrigger, date: str) -> None:
        try:
            await guard.release(trigger.value, date)
        except Exception as e:
            logger.warning(f"Could not release {trigger.value} slot for {date}: {e}")

    # Run bodies

    async def _clock_in_run(self, now: datetime, summary: RunSummary) -> None:
        today = summary.date
        pending = await self._employees_without_session(today)
        units = [
            (
                employee.id,
                self._send_unit(employee.id, self._clock_in_message(employee, today)),
            )
            for employee in pending
        ]
        await self._fan_out(summary, units)

    async def _late_arrival_run(self, now: datetime, summary: RunSummary) -> None:
        today = summary.date
        pending = await self._employees_without_session(today)
        summary.affected = [
            {
                "employeeId": employee.id,
                "name": employee.name,
                "pfNumber": employee.pf_number,
                "department": employee.department or "Unknown",
            }
            for employee in pending
        ]
        units = [
            (
                employee.id,
                self._send_unit(employee.id, self._late_message(employee, today)),
            )
            for employee in pending
        ]
        await self._fan_out(summary, units)

    async def _clock_out_run(self, now: datetime, summary: RunSummary) -> None:
        sessions = await self._attendance.list_for_date(summary.date)
        open_sessions = [
            record
            for record in sessions
            if record.session_active and record.clock_in_time and not record.clock_out_time
        ]
        units = [
            (record.employee_id, self._clock_out_unit(record, now))
            for record in open_sessions
        ]
        await self._fan_out(summary, units)

    # Population

    async def _employees_without_session(self, today: str) -> list[Employee]:
        employees = await self._directory.list_active()
        sessions = await self._attendance.list_for_date(today)
        clocked_in = {record.employee_id for record in sessions if record.clock_in_time}
        return [
            employee
            for employee in employees
            if not employee.is_admin
            and employee.push_token
            and employee.id not in clocked_in
        ]

    # Units

    async def _fan_out(self, summary: RunSummary, units: Sequence[Unit]) -> None:
        """Run every unit, bounded by the concurrency limit, and count outcomes."""
        semaphore = asyncio.Semaphore(self._concurrency)

        async def bounded(job: Callable[[], Awaitable[None]]) -> None:
            async with semaphore:
                await job()

        outcomes = await asyncio.gather(
            *(bounded(job) for _, job in units), return_exceptions=True
        )

        summary.total = len(units)
        for (employee_id, _), outcome in zip(units, outcomes):
            if isinstance(outcome, Exception):
                summary.errors += 1
                logger.warning(
                    f"{summary.trigger} failed for employee {employee_id}: {outcome}"
                )
            else:
                summary.sent += 1

    def _send_unit(self, employee_id: str, message: PushMessage):
        async def job() -> None:
            await self._deliver(employee_id, message)

        return job

    def _clock_out_unit(self, record: AttendanceSession, now: datetime):
        async def job() -> None:
            employee = await self._directory.get(record.employee_id)
            if employee is None:
                raise EmployeeNotFoundError(record.employee_id)
            if not employee.push_token:
                raise MissingPushAddressError(record.employee_id)
            message = self._clock_out_message(employee, record, now)
            await self._deliver(employee.id, message)

        return job

    async def _deliver(self, employee_id: str, message: PushMessage) -> None:
        result = await self._dispatcher.send(message)
        if not result.delivered:
            raise DeliveryError(employee_id, result.error)

    # Messages

    def _clock_in_message(self, employee: Employee, today: str) -> PushMessage:
        return PushMessage(
            token=employee.push_token,
            title="Time to Clock In",
            body=f"Good morning {employee.first_name}! Don't forget to clock in for work.",
            data={
                "type": ReminderTrigger.CLOCK_IN.value,
                "employeeId": employee.id,
                "time": settings.CLOCK_IN_REMINDER_TIME,
                "date": today,
            },
            android=REMINDER_STYLE,
        )

    def _late_message(self, employee: Employee, today: str) -> PushMessage:
        return PushMessage(
            token=employee.push_token,
            title="Late Arrival Alert",
            body=(
                f"{employee.first_name}, you're running late! "
                "Please clock in as soon as you arrive."
            ),
            data={
                "type": ReminderTrigger.LATE_ARRIVAL.value,
                "employeeId": employee.id,
                "minutesLate": str(self._late_threshold),
                "date": today,
            },
            android=LATE_STYLE,
        )

    def _clock_out_message(
        self, employee: Employee, record: AttendanceSession, now: datetime
    ) -> PushMessage:
        worked = format_elapsed(record.clock_in_time, time_string(now))
        return PushMessage(
            token=employee.push_token,
            title="Time to Clock Out",
            body=(
                f"{employee.first_name}, it's {now.strftime('%H:%M')}! "
                f"You've worked {worked}. Don't forget to clock out."
            ),
            data={
                "type": ReminderTrigger.CLOCK_OUT.value,
                "employeeId": employee.id,
                "attendanceId": record.id,
                "hoursWorked": worked,
                "time": now.strftime("%H:%M"),
                "date": record.date,
            },
            android=CLOCK_OUT_STYLE,
        )

    # Reporting

    async def _write_summary(self, summary: RunSummary) -> None:
        payload: dict[str, Any] = {
            "trigger": summary.trigger,
            "date": summary.date,
            "sent": summary.sent,
            "errors": summary.errors,
            "total": summary.total,
        }
        if summary.trigger == ReminderTrigger.LATE_ARRIVAL.value:
            payload["lateEmployees"] = summary.affected

        await self._alert_log.append(
            AlertRecord(
                type=AlertType.NOTIFICATION_RUN.value,
                severity=(Severity.MEDIUM if summary.errors else Severity.LOW).value,
                date=summary.date,
                title=f"{summary.trigger} run",
                payload=payload,
                outcome=summary.outcome,
            )
        )

    async def _publish(self, summary: RunSummary) -> None:
        if self._publisher is None:
            return
        try:
            event = create_event(
                EventType.NOTIFICATION_RUN_COMPLETED,
                NotificationRunEvent(
                    trigger=summary.trigger,
                    date=summary.date,
                    sent=summary.sent,
                    errors=summary.errors,
                    total=summary.total,
                ),
            )
            await self._publisher(KafkaTopics.NOTIFICATION_RUN_COMPLETED, event)
        except Exception as e:
            logger.warning(f"Failed to publish notification run event: {e}")


def _function_name(trigger: ReminderTrigger) -> str:
    return {
        ReminderTrigger.CLOCK_IN: "send_clock_in_reminders",
        ReminderTrigger.LATE_ARRIVAL: "send_late_arrival_alerts",
        ReminderTrigger.CLOCK_OUT: "send_clock_out_reminders",
    }[trigger]
