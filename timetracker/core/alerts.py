"""
Helpers for writing alert log records.
"""

from datetime import datetime
from typing import Any, Optional

from timetracker.core.logging import get_logger
from timetracker.core.stores import AlertLog
from timetracker.core.timeutils import date_string
from timetracker.models.alert import AlertRecord, AlertType, Severity

logger = get_logger(__name__)


async def record_function_error(
    alert_log: AlertLog,
    function_name: str,
    error: BaseException,
    now: datetime,
    context: Optional[dict[str, Any]] = None,
) -> None:
    """
    Persist a critical function_error alert.

    Never raises: a failure to log is itself only logged, so the caller's
    own error handling decides what propagates.
    """
    record = AlertRecord(
        type=AlertType.FUNCTION_ERROR.value,
        severity=Severity.CRITICAL.value,
        date=date_string(now),
        title=f"{function_name} failed",
        payload={
            "functionName": function_name,
            "error": str(error),
            "errorType": type(error).__name__,
            **(context or {}),
        },
        outcome="failed",
        critical=True,
        function_name=function_name,
    )
    try:
        await alert_log.append(record)
    except Exception as e:
        logger.error(
            f"Could not record function error for {function_name}: {e}", exc_info=True
        )
