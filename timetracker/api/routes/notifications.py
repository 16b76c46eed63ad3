from datetime import datetime, timedelta
from typing import Annotated

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from timetracker.api.dependencies import AdminUserDep, ContainerDep
from timetracker.core.events import EventType, NotificationSentEvent, create_event
from timetracker.core.kafka import publish_event
from timetracker.core.logging import get_logger
from timetracker.core.timeutils import date_string, local_now
from timetracker.core.topics import KafkaTopics
from timetracker.models.alert import AlertPublic, AlertRecord, AlertType, Severity
from timetracker.models.notification import (
    BroadcastRequest,
    ManualNotificationRequest,
    PushMessage,
)

logger = get_logger(__name__)

router = APIRouter(
    prefix="/notifications",
    tags=["notifications"],
)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


async def _publish_sent(event_data: NotificationSentEvent, actor: str) -> None:
    try:
        event = create_event(EventType.NOTIFICATION_SENT, event_data, actor_user_id=actor)
        await publish_event(KafkaTopics.NOTIFICATION_SENT, event)
    except Exception as e:
        logger.warning(f"Failed to publish notification sent event: {e}")


@router.post("/send")
async def send_notification(
    request: ManualNotificationRequest,
    container: ContainerDep,
    current_user: AdminUserDep,
):
    """
    Send a push notification to one employee.

    Body: ``{type, employeeId, title, body}``. Returns 400 when a field is
    missing, 200 on delivery and 500 otherwise.

    **RBAC:** Admin only.
    """
    missing = request.missing_fields()
    if missing:
        return _error(400, f"Missing required fields: {', '.join(missing)}")

    employee = await container.directory.get(request.employeeId)
    if employee is None or not employee.push_token:
        logger.warning(f"Manual notification target {request.employeeId} cannot be notified")
        return _error(500, f"Employee {request.employeeId} has no registered device")

    now = local_now()
    message = PushMessage(
        token=employee.push_token,
        title=request.title,
        body=request.body,
        data={
            "type": request.type,
            "employeeId": employee.id,
            "date": date_string(now),
        },
    )

    try:
        result = await container.dispatcher.send(message)
    except Exception as e:
        logger.error(f"Manual notification to {employee.id} failed: {e}", exc_info=True)
        result = None
        error = str(e)
    else:
        error = result.error

    delivered = result is not None and result.delivered
    await container.alert_log.append(
        AlertRecord(
            type=AlertType.MANUAL_NOTIFICATION.value,
            severity=Severity.LOW.value,
            employee_id=employee.id,
            date=date_string(now),
            title=request.title,
            payload={
                "notificationType": request.type,
                "body": request.body,
                "sentBy": current_user.email or current_user.sub,
                "error": None if delivered else error,
            },
            outcome="success" if delivered else "failed",
        )
    )
    await _publish_sent(
        NotificationSentEvent(
            notification_type=request.type,
            employee_id=employee.id,
            title=request.title,
            sent=1 if delivered else 0,
            failed=0 if delivered else 1,
        ),
        current_user.sub,
    )

    if not delivered:
        return _error(500, error or "Notification was not delivered")

    logger.info(f"Manual {request.type} notification delivered to {employee.id}")
    return {"success": True, "messageId": result.message_id}


@router.post("/broadcast")
async def broadcast_notification(
    request: BroadcastRequest,
    container: ContainerDep,
    current_user: AdminUserDep,
):
    """
    Send one message to every active employee with a registered device.

    **RBAC:** Admin only.
    """
    employees = await container.directory.list_active()
    recipients = [employee for employee in employees if employee.push_token]
    now = local_now()
    messages = [
        PushMessage(
            token=employee.push_token,
            title=request.title,
            body=request.body,
            data={"type": "BROADCAST", "employeeId": employee.id, "date": date_string(now)},
        )
        for employee in recipients
    ]

    results = await container.dispatcher.send_all(messages) if messages else []
    sent = sum(1 for r in results if r.delivered)
    failed = len(results) - sent

    await container.alert_log.append(
        AlertRecord(
            type=AlertType.BROADCAST_NOTIFICATION.value,
            severity=Severity.LOW.value,
            date=date_string(now),
            title=request.title,
            payload={
                "body": request.body,
                "sent": sent,
                "failed": failed,
                "total": len(messages),
                "sentBy": current_user.email or current_user.sub,
            },
            outcome="success" if failed == 0 else "partial",
        )
    )
    await _publish_sent(
        NotificationSentEvent(
            notification_type="BROADCAST", title=request.title, sent=sent, failed=failed
        ),
        current_user.sub,
    )
    logger.info(f"Broadcast delivered to {sent} of {len(messages)} recipients")
    return {"success": failed == 0, "sent": sent, "failed": failed, "total": len(messages)}


@router.get("/logs")
async def get_notification_logs(
    container: ContainerDep,
    current_user: AdminUserDep,
    days: Annotated[int, Query(ge=1, le=90)] = 7,
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
):
    """
    Alert log records from the last ``days`` days, newest first.

    **RBAC:** Admin only.
    """
    since = datetime.utcnow() - timedelta(days=days)
    try:
        records = await container.alert_log.list_recent(since, limit)
    except Exception as e:
        logger.error(f"Error fetching notification logs: {e}", exc_info=True)
        return _error(500, str(e))

    return {
        "success": True,
        "logs": [AlertPublic.model_validate(r).model_dump(mode="json") for r in records],
        "count": len(records),
    }
