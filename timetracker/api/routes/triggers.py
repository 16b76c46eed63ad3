"""
Trigger endpoints called by the external scheduler and by the clock-in flow.

Each endpoint runs one handler and returns its result. Schedule triggers are
skipped outside the configured workdays unless ``force`` is set; ``force`` also
re-runs a reminder slot that already ran today.
"""

from typing import Optional

from fastapi import APIRouter, Query

from timetracker.api.dependencies import ContainerDep, TriggerAuthDep
from timetracker.core.logging import get_logger
from timetracker.core.reminders import RunSummary
from timetracker.core.timeutils import date_string, is_workday, local_now
from timetracker.models.attendance import SessionCreatedTrigger
from timetracker.models.summary import DailySummaryPublic

logger = get_logger(__name__)

router = APIRouter(
    prefix="/triggers",
    tags=["triggers"],
)


def _not_a_workday(trigger: str) -> Optional[dict]:
    now = local_now()
    if is_workday(now):
        return None
    logger.info(f"{trigger} skipped, {date_string(now)} is not a workday")
    return {"status": "skipped", "reason": "not_a_workday", "date": date_string(now)}


def _run_response(summary: Optional[RunSummary]) -> dict:
    if summary is None:
        return {"status": "failed"}
    if summary.skipped:
        return {"status": "skipped", "reason": "already_ran", "date": summary.date}
    return {
        "status": "completed",
        "trigger": summary.trigger,
        "date": summary.date,
        "sent": summary.sent,
        "errors": summary.errors,
        "total": summary.total,
        "outcome": summary.outcome,
    }


@router.post("/session-created")
async def session_created(
    trigger: SessionCreatedTrigger,
    container: ContainerDep,
    _: TriggerAuthDep,
):
    """Run the device conflict check for a newly created session."""
    outcome = await container.conflict_reconciler.handle_session_created(
        trigger.session_id, trigger.to_session()
    )
    if outcome is None:
        return {"conflict": False, "sessionId": trigger.session_id}
    return {
        "conflict": True,
        "sessionId": outcome.session_id,
        "alertId": outcome.alert_id,
        "conflictingSessionIds": outcome.conflicting_session_ids,
        "deactivatedSessionIds": outcome.deactivated_session_ids,
        "failedSessionIds": outcome.failed_session_ids,
    }


@router.post("/clock-in-reminders")
async def clock_in_reminders(
    container: ContainerDep,
    _: TriggerAuthDep,
    force: bool = Query(False),
):
    if not force and (skipped := _not_a_workday("clock-in-reminders")):
        return skipped
    summary = await container.reminder_engine.send_clock_in_reminders(force=force)
    return _run_response(summary)


@router.post("/late-arrival-alerts")
async def late_arrival_alerts(
    container: ContainerDep,
    _: TriggerAuthDep,
    force: bool = Query(False),
):
    if not force and (skipped := _not_a_workday("late-arrival-alerts")):
        return skipped
    summary = await container.reminder_engine.send_late_arrival_alerts(force=force)
    return _run_response(summary)


@router.post("/clock-out-reminders")
async def clock_out_reminders(
    container: ContainerDep,
    _: TriggerAuthDep,
    force: bool = Query(False),
):
    if not force and (skipped := _not_a_workday("clock-out-reminders")):
        return skipped
    summary = await container.reminder_engine.send_clock_out_reminders(force=force)
    return _run_response(summary)


@router.post("/daily-summary")
async def daily_summary(
    container: ContainerDep,
    _: TriggerAuthDep,
    force: bool = Query(False),
):
    """
    Generate and store today's attendance summary.

    Failures propagate and surface as a 500 so the scheduler can retry.
    """
    if not force and (skipped := _not_a_workday("daily-summary")):
        return skipped
    summary = await container.daily_aggregator.generate_daily_summary()
    return {
        "status": "completed",
        "summary": DailySummaryPublic.model_validate(summary).model_dump(mode="json"),
    }
