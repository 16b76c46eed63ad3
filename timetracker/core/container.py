from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from timetracker.api.clients.push_gateway import build_push_client
from timetracker.core.aggregator import DailyAggregator
from timetracker.core.cache import RedisRunGuard
from timetracker.core.config import settings
from timetracker.core.conflicts import ConflictReconciler
from timetracker.core.kafka import publish_event
from timetracker.core.reminders import ReminderEngine
from timetracker.core.repositories import (
    SQLAlertLog,
    SQLAttendanceStore,
    SQLDirectoryStore,
    SQLSummaryStore,
)
from timetracker.core.stores import (
    AlertLog,
    AttendanceStore,
    Dispatcher,
    DirectoryStore,
    EventPublisher,
    RunGuard,
    SummaryStore,
)


@dataclass(frozen=True)
class Container:
    attendance: AttendanceStore
    directory: DirectoryStore
    alert_log: AlertLog
    summaries: SummaryStore
    dispatcher: Dispatcher

    conflict_reconciler: ConflictReconciler
    reminder_engine: ReminderEngine
    daily_aggregator: DailyAggregator


def build_container(
    *,
    attendance: AttendanceStore,
    directory: DirectoryStore,
    alert_log: AlertLog,
    summaries: SummaryStore,
    dispatcher: Dispatcher,
    publisher: Optional[EventPublisher] = None,
    run_guard: Optional[RunGuard] = None,
) -> Container:
    return Container(
        attendance=attendance,
        directory=directory,
        alert_log=alert_log,
        summaries=summaries,
        dispatcher=dispatcher,
        conflict_reconciler=ConflictReconciler(
            attendance, directory, alert_log, publisher=publisher
        ),
        reminder_engine=ReminderEngine(
            attendance,
            directory,
            alert_log,
            dispatcher,
            publisher=publisher,
            run_guard=run_guard,
            concurrency=settings.NOTIFICATION_CONCURRENCY,
            late_threshold_minutes=settings.LATE_THRESHOLD_MINUTES,
        ),
        daily_aggregator=DailyAggregator(
            attendance, directory, alert_log, summaries, publisher=publisher
        ),
    )


@lru_cache
def get_container() -> Container:
    """Production wiring: SQL stores, push gateway, Kafka, Redis run guard."""
    from timetracker.core.database import engine

    return build_container(
        attendance=SQLAttendanceStore(engine),
        directory=SQLDirectoryStore(engine),
        alert_log=SQLAlertLog(engine),
        summaries=SQLSummaryStore(engine),
        dispatcher=build_push_client(),
        publisher=publish_event,
        run_guard=RedisRunGuard() if settings.REMINDER_DEDUP_ENABLED else None,
    )
