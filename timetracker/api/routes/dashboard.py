from collections import Counter
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException

from timetracker.api.dependencies import AdminUserDep, ContainerDep
from timetracker.core.aggregator import compute_counters
from timetracker.core.cache import RedisClient, stats_cache_key
from timetracker.core.logging import get_logger
from timetracker.core.timeutils import date_string, local_now
from timetracker.models.attendance import AttendancePublic, AttendanceSession
from timetracker.models.employee import Employee, EmployeePublic
from timetracker.models.summary import DailySummaryPublic, DailySummaryRecord

logger = get_logger(__name__)

router = APIRouter(
    prefix="/dashboard",
    tags=["dashboard"],
)


def _resolve_date(date: Optional[str]) -> str:
    target_date = date or date_string(local_now())
    try:
        datetime.strptime(target_date, "%Y-%m-%d")
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail="date must be in YYYY-MM-DD format",
        )
    return target_date


@router.get("/attendance", response_model=list[AttendancePublic])
async def get_attendance_by_date(
    container: ContainerDep,
    current_user: AdminUserDep,
    date: Optional[str] = None,
) -> list[AttendanceSession]:
    """
    Get all attendance sessions for a date (defaults to today), newest clock-in first.

    **RBAC:** Admin only.
    """
    target_date = _resolve_date(date)
    records = await container.attendance.list_for_date(target_date)
    logger.info(
        f"Admin {current_user.email or current_user.sub} fetched {len(records)} "
        f"attendance record(s) for {target_date}"
    )
    return list(records)


@router.get("/employees", response_model=list[EmployeePublic])
async def get_employees(
    container: ContainerDep,
    current_user: AdminUserDep,
) -> list[Employee]:
    """
    Get all employees ordered by name.

    **RBAC:** Admin only.
    """
    employees = await container.directory.list_all()
    logger.info(f"Retrieved {len(employees)} employee(s)")
    return list(employees)


@router.get("/stats", response_model=dict)
async def get_attendance_stats(
    container: ContainerDep,
    current_user: AdminUserDep,
    date: Optional[str] = None,
):
    """
    Headline attendance statistics for a date, cached in Redis.

    **RBAC:** Admin only.
    """
    target_date = _resolve_date(date)
    cache_key = stats_cache_key(target_date)

    cached = RedisClient.get_json(cache_key)
    if cached is not None:
        logger.debug(f"Stats cache hit for {target_date}")
        return cached

    active = await container.directory.list_active()
    workforce = [employee for employee in active if not employee.is_admin]
    records = list(await container.attendance.list_for_date(target_date))
    counters = compute_counters(len(workforce), records)

    stats = {
        "date": target_date,
        "totalEmployees": counters.total_employees,
        "presentToday": counters.present_count,
        "lateToday": counters.late_count,
        "absentToday": counters.absent_count,
        "stillClockedIn": counters.still_clocked_in_count,
        "attendanceRate": counters.attendance_rate,
    }
    RedisClient.set_json(cache_key, stats)
    return stats


@router.get("/breakdown", response_model=dict)
async def get_employee_breakdown(
    container: ContainerDep,
    current_user: AdminUserDep,
):
    """
    Employee distribution by department and employment category.

    **RBAC:** Admin only.
    """
    employees = list(await container.directory.list_all())
    total = len(employees)

    def distribution(values: list[Optional[str]]) -> list[dict]:
        counts = Counter(value for value in values if value)
        return [
            {
                "name": name,
                "count": count,
                "percentage": round(count / total * 100, 1) if total else 0.0,
            }
            for name, count in counts.most_common()
        ]

    return {
        "totalEmployees": total,
        "departments": distribution([e.department for e in employees]),
        "categories": distribution([e.emp_category for e in employees]),
        "passwordPending": sum(1 for e in employees if not e.has_password),
    }


@router.get("/summaries", response_model=list[DailySummaryPublic])
async def get_daily_summaries(
    container: ContainerDep,
    current_user: AdminUserDep,
    date: Optional[str] = None,
) -> list[DailySummaryRecord]:
    """
    Stored daily summaries for a date, newest first.

    **RBAC:** Admin only.
    """
    target_date = _resolve_date(date)
    return list(await container.summaries.list_for_date(target_date))
