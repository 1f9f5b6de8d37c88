"""
CiviSure - Admin Dashboard, User Management and Analytics
"""

import logging
from collections import defaultdict
from statistics import mean
from typing import List, Optional

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession

from civisure.auth import AuthContext, get_user_by_id
from civisure.errors import InvalidInput, NotFound
from civisure.models.crime_report import CrimeReport, ReportStatus
from civisure.models.sos_alert import SOSAlert, SOSStatus
from civisure.models.user import User, UserRole
from civisure.reports import count_by
from civisure.timestamps import days_ago

logger = logging.getLogger(__name__)

RECENT_REPORTS_LIMIT = 5
ACTIVITY_WINDOW_DAYS = 7
TOP_LOCATIONS_LIMIT = 10


# =============================================================================
# DASHBOARD
# =============================================================================

async def get_dashboard(db: AsyncSession) -> dict:
    total_users = await db.scalar(
        select(func.count(User.id)).where(User.role == UserRole.USER)
    )
    total_reports = await db.scalar(select(func.count(CrimeReport.id)))
    pending_reports = await db.scalar(
        select(func.count(CrimeReport.id)).where(CrimeReport.status == ReportStatus.PENDING)
    )
    active_sos = await db.scalar(
        select(func.count(SOSAlert.id)).where(SOSAlert.status == SOSStatus.ACTIVE)
    )

    recent = await db.execute(
        select(
            CrimeReport.id,
            CrimeReport.category,
            CrimeReport.location_address,
            CrimeReport.status,
            CrimeReport.created_at,
        )
        .order_by(CrimeReport.created_at.desc(), CrimeReport.id.desc())
        .limit(RECENT_REPORTS_LIMIT)
    )

    day = func.date(CrimeReport.created_at).label("date")
    activity = await db.execute(
        select(day, func.count(CrimeReport.id).label("count"))
        .where(CrimeReport.created_at >= days_ago(ACTIVITY_WINDOW_DAYS))
        .group_by(day)
        .order_by(day)
    )

    return {
        "counts": {
            "total_users": total_users,
            "total_reports": total_reports,
            "pending_reports": pending_reports,
            "active_sos": active_sos,
        },
        "recent_reports": [dict(row._mapping) for row in recent.all()],
        "reports_by_category": await count_by(db, CrimeReport.category, order_by_count=True),
        "reports_by_status": await count_by(db, CrimeReport.status),
        "recent_activity": [dict(row._mapping) for row in activity.all()],
    }


# =============================================================================
# USERS
# =============================================================================

async def list_users(db: AsyncSession, limit: int = 50, offset: int = 0) -> tuple[List[dict], int]:
    """Public user projection (never the password hash) and the total count."""
    result = await db.execute(
        select(User)
        .order_by(User.created_at.desc(), User.id.desc())
        .limit(limit)
        .offset(offset)
    )
    users = [
        {
            "id": user.id,
            "email": user.email,
            "full_name": user.full_name,
            "phone": user.phone,
            "role": user.role,
            "created_at": user.created_at,
            "last_login": user.last_login,
        }
        for user in result.scalars().all()
    ]
    total = await db.scalar(select(func.count(User.id)))
    return users, total


async def delete_user(db: AsyncSession, auth: AuthContext, user_id: int) -> None:
    """
    Remove an account.

    Sessions, chat history, reviews and consultation requests go with it;
    the user's crime reports and SOS alerts are kept without an owner.
    """
    if user_id == auth.user_id:
        raise InvalidInput("Cannot delete your own account")

    user = await get_user_by_id(db, user_id)
    if user is None:
        raise NotFound("User not found")

    await db.execute(delete(User).where(User.id == user_id))
    await db.commit()
    logger.info(f"Admin {auth.user_id} deleted user {user_id}")


# =============================================================================
# ANALYTICS
# =============================================================================

def _average(values: List[float]) -> Optional[float]:
    return mean(values) if values else None


async def get_crime_trends(db: AsyncSession, period: int) -> List[dict]:
    day = func.date(CrimeReport.created_at).label("date")
    result = await db.execute(
        select(day, CrimeReport.category, func.count(CrimeReport.id).label("count"))
        .where(CrimeReport.created_at >= days_ago(period))
        .group_by(day, CrimeReport.category)
        .order_by(day, CrimeReport.category)
    )
    return [dict(row._mapping) for row in result.all()]


async def get_top_locations(db: AsyncSession) -> List[dict]:
    count = func.count(CrimeReport.id).label("count")
    result = await db.execute(
        select(
            CrimeReport.location_address,
            count,
            func.avg(CrimeReport.location_lat).label("lat"),
            func.avg(CrimeReport.location_lng).label("lng"),
        )
        .where(CrimeReport.location_address.is_not(None))
        .group_by(CrimeReport.location_address)
        .order_by(count.desc())
        .limit(TOP_LOCATIONS_LIMIT)
    )
    return [dict(row._mapping) for row in result.all()]


async def get_response_times(db: AsyncSession) -> List[dict]:
    """Mean days from submission to last update for resolved reports, per category."""
    result = await db.execute(
        select(CrimeReport.category, CrimeReport.created_at, CrimeReport.updated_at)
        .where(CrimeReport.status == ReportStatus.RESOLVED)
    )
    durations = defaultdict(list)
    for category, created_at, updated_at in result.all():
        durations[category].append((updated_at - created_at).total_seconds() / 86400)

    return [
        {"category": category, "avg_days": _average(days), "count": len(days)}
        for category, days in sorted(durations.items())
    ]


async def get_sos_stats(db: AsyncSession, period: int) -> List[dict]:
    """Per-status alert counts within the window and mean minutes to resolution."""
    result = await db.execute(
        select(SOSAlert.status, SOSAlert.created_at, SOSAlert.resolved_at)
        .where(SOSAlert.created_at >= days_ago(period))
    )
    counts = defaultdict(int)
    minutes = defaultdict(list)
    for status, created_at, resolved_at in result.all():
        counts[status] += 1
        if resolved_at is not None:
            minutes[status].append((resolved_at - created_at).total_seconds() / 60)

    return [
        {
            "status": status,
            "count": counts[status],
            "avg_response_minutes": _average(minutes[status]),
        }
        for status in sorted(counts)
    ]


async def get_analytics(db: AsyncSession, period: int = 30) -> dict:
    return {
        "crime_trends": await get_crime_trends(db, period),
        "top_locations": await get_top_locations(db),
        "response_time_analysis": await get_response_times(db),
        "sos_stats": await get_sos_stats(db, period),
    }
