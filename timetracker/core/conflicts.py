"""
Device conflict detection.

When a new attendance session is written, the employee may still hold
active sessions for the same day on other devices. The newest clock-in
wins: older sessions on other devices are closed and an alert is logged
for administrators. The alert is written after the deactivations so that
its outcome reflects any that failed.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from timetracker.core.alerts import record_function_error
from timetracker.core.events import (
    SYSTEM_ACTOR,
    DeviceConflictEvent,
    EventType,
    create_event,
)
from timetracker.core.logging import get_logger
from timetracker.core.stores import AlertLog, AttendanceStore, DirectoryStore, EventPublisher
from timetracker.core.timeutils import local_now
from timetracker.core.topics import KafkaTopics
from timetracker.models.alert import AlertRecord, AlertType, Severity
from timetracker.models.attendance import AttendanceSession

logger = get_logger(__name__)

DEACTIVATION_REASON = "Superseded by clock-in on another device"


@dataclass
class ConflictOutcome:
    session_id: str
    alert_id: int
    conflicting_session_ids: list[str]
    deactivated_session_ids: list[str] = field(default_factory=list)
    failed_session_ids: list[str] = field(default_factory=list)


def _reconcile_outcome(conflicts: int, failures: int) -> str:
    if failures == 0:
        return "reconciled"
    if failures == conflicts:
        return "failed"
    return "partial"


def _device_descriptor(record: AttendanceSession) -> dict:
    return {"deviceId": record.device_id, "deviceName": record.device_label}


class ConflictReconciler:
    def __init__(
        self,
        attendance: AttendanceStore,
        directory: DirectoryStore,
        alert_log: AlertLog,
        publisher: Optional[EventPublisher] = None,
    ):
        self._attendance = attendance
        self._directory = directory
        self._alert_log = alert_log
        self._publisher = publisher

    async def handle_session_created(
        self,
        session_id: str,
        record: AttendanceSession,
        *,
        now: Optional[datetime] = None,
    ) -> Optional[ConflictOutcome]:
        """
        Check a newly created session for active sessions on other devices.

        Returns the outcome when a conflict was reconciled, otherwise None.
        Errors are logged and recorded, never raised.
        """
        now = now or local_now()
        try:
            return await self._reconcile(session_id, record, now)
        except Exception as e:
            logger.error(
                f"Device conflict check failed for session {session_id}: {e}",
                exc_info=True,
            )
            await record_function_error(
                self._alert_log,
                "handle_session_created",
                e,
                now,
                context={"sessionId": session_id, "employeeId": record.employee_id},
            )
            return None

    async def _reconcile(
        self, session_id: str, record: AttendanceSession, now: datetime
    ) -> Optional[ConflictOutcome]:
        active = await self._attendance.list_active_sessions(
            record.employee_id, record.date
        )
        conflicting = [
            other
            for other in active
            if other.id != session_id and other.device_id != record.device_id
        ]
        if not conflicting:
            return None

        logger.warning(
            f"Device conflict for employee {record.employee_id} on {record.date}: "
            f"{len(conflicting)} active session(s) on other devices"
        )

        employee = await self._directory.get(record.employee_id)
        employee_name = (employee.name if employee else None) or record.employee_name
        department = (employee.department if employee else None) or "Unknown"

        reason = f"{DEACTIVATION_REASON} ({record.device_label}, session {session_id})"
        results = await asyncio.gather(
            *(
                self._attendance.deactivate_session(
                    other.id, reason=reason, actor=SYSTEM_ACTOR, at=now
                )
                for other in conflicting
            ),
            return_exceptions=True,
        )
        deactivated, failed = [], []
        for other, result in zip(conflicting, results):
            if isinstance(result, Exception):
                logger.error(f"Could not deactivate session {other.id}: {result}")
                failed.append(other.id)
            elif result:
                deactivated.append(other.id)

        alert = AlertRecord(
            type=AlertType.DEVICE_CONFLICT.value,
            severity=Severity.HIGH.value,
            employee_id=record.employee_id,
            date=record.date,
            title=f"Multiple active sessions for {employee_name or record.employee_id}",
            payload={
                "employee": {
                    "id": record.employee_id,
                    "name": employee_name,
                    "department": department,
                },
                "newSession": {
                    "sessionId": session_id,
                    "clockInTime": record.clock_in_time,
                    **_device_descriptor(record),
                },
                "conflictingSessions": [
                    {
                        "sessionId": other.id,
                        "clockInTime": other.clock_in_time,
                        **_device_descriptor(other),
                    }
                    for other in conflicting
                ],
                "deactivatedSessionIds": deactivated,
                "failedSessionIds": failed,
            },
            outcome=_reconcile_outcome(len(conflicting), len(failed)),
            requires_action=True,
        )
        alert_id = await self._alert_log.append(alert)

        outcome = ConflictOutcome(
            session_id=session_id,
            alert_id=alert_id,
            conflicting_session_ids=[other.id for other in conflicting],
            deactivated_session_ids=deactivated,
            failed_session_ids=failed,
        )
        logger.info(
            f"Deactivated {len(deactivated)} superseded session(s) "
            f"for employee {record.employee_id}, {len(failed)} failed"
        )

        await self._publish(record, employee_name, outcome)
        return outcome

    async def _publish(
        self, record: AttendanceSession, employee_name: Optional[str], outcome: ConflictOutcome
    ) -> None:
        if self._publisher is None:
            return
        try:
            event = create_event(
                EventType.ATTENDANCE_CONFLICT_DETECTED,
                DeviceConflictEvent(
                    employee_id=record.employee_id,
                    employee_name=employee_name,
                    date=record.date,
                    session_id=outcome.session_id,
                    device_id=record.device_id,
                    conflicting_session_ids=outcome.conflicting_session_ids,
                    deactivated_session_ids=outcome.deactivated_session_ids,
                ),
                actor_user_id=SYSTEM_ACTOR,
            )
            await self._publisher(KafkaTopics.ATTENDANCE_CONFLICT_DETECTED, event)
        except Exception as e:
            logger.warning(f"Failed to publish device conflict event: {e}")
