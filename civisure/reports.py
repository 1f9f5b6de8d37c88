"""
CiviSure - Crime Report Logic
"""

import csv
import io
import json
import logging
from datetime import datetime
from typing import Optional, List, Iterator

from fastapi import UploadFile
from pydantic import TypeAdapter, ValidationError
from sqlalchemy import select, update, func
from sqlalchemy.ext.asyncio import AsyncSession

from civisure.auth import AuthContext
from civisure.errors import InvalidInput, NotFound
from civisure.evidence import store_evidence, delete_stored_files
from civisure.models.crime_report import CrimeReport, ReportStatus
from civisure.models.user import User
from civisure.timestamps import now_utc, days_ago, to_naive_utc

logger = logging.getLogger(__name__)

TRUTHY_FORM_VALUES = ("true", "on", "1", "yes")

CSV_HEADERS = ["ID", "Category", "Description", "Location", "Date/Time", "Status", "Created At"]


def parse_flag(value: Optional[str]) -> bool:
    """Interpret an HTML form checkbox/string as a boolean."""
    return (value or "").strip().lower() in TRUTHY_FORM_VALUES


def parse_coordinate(value) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise InvalidInput("Location must be numeric latitude and longitude")


DATETIME_ADAPTER = TypeAdapter(datetime)


def parse_datetime(value: Optional[str]) -> datetime:
    """Parse an ISO-8601 form value, including the Z suffix browsers send."""
    try:
        return to_naive_utc(DATETIME_ADAPTER.validate_python(value.strip()))
    except (AttributeError, ValidationError):
        raise InvalidInput("Invalid date/time")


def serialize_report(
    report: CrimeReport,
    reporter: Optional[User] = None,
    include_phone: bool = False,
) -> dict:
    """
    Report as returned to admins.

    Reporter identity is always null for anonymous reports.
    """
    data = {
        "id": report.id,
        "user_id": report.user_id,
        "category": report.category,
        "description": report.description,
        "location_lat": report.location_lat,
        "location_lng": report.location_lng,
        "location_address": report.location_address,
        "date_time": report.date_time,
        "evidence_files": report.evidence_list,
        "status": report.status,
        "anonymous": report.anonymous,
        "created_at": report.created_at,
        "updated_at": report.updated_at,
    }

    visible = reporter if (reporter is not None and not report.anonymous) else None
    data["reporter_email"] = visible.email if visible else None
    data["reporter_name"] = visible.full_name if visible else None
    if include_phone:
        data["reporter_phone"] = visible.phone if visible else None
    return data


# =============================================================================
# SUBMIT
# =============================================================================

async def submit_report(
    db: AsyncSession,
    auth: AuthContext,
    category: Optional[str],
    description: Optional[str],
    location_lat: Optional[str],
    location_lng: Optional[str],
    date_time: Optional[str],
    location_address: Optional[str] = None,
    anonymous: bool = False,
    evidence: Optional[List[UploadFile]] = None,
) -> CrimeReport:
    """
    Store a new crime report with its evidence files.

    Anonymous reports are stored without an owner even though the caller
    is logged in.
    """
    if (
        not category or not category.strip()
        or not description or not description.strip()
        or location_lat in (None, "") or location_lng in (None, "")
        or not date_time
    ):
        raise InvalidInput("All required fields must be provided")

    lat = parse_coordinate(location_lat)
    lng = parse_coordinate(location_lng)
    occurred_at = parse_datetime(date_time)

    stored_files = await store_evidence(evidence)

    now = now_utc()
    report = CrimeReport(
        user_id=None if anonymous else auth.user_id,
        category=category.strip(),
        description=description.strip(),
        location_lat=lat,
        location_lng=lng,
        location_address=location_address.strip() if location_address else None,
        date_time=occurred_at,
        evidence_files=json.dumps(stored_files) if stored_files else None,
        status=ReportStatus.PENDING,
        anonymous=anonymous,
        created_at=now,
        updated_at=now,
    )
    db.add(report)
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        delete_stored_files(stored_files)
        raise
    await db.refresh(report)

    logger.info(f"Crime report {report.id} submitted ({report.category}, anonymous={anonymous})")
    return report


# =============================================================================
# READ
# =============================================================================

async def list_reports(
    db: AsyncSession,
    status: Optional[str] = None,
    category: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[dict]:
    """Reports joined with their reporter, newest first."""
    query = (
        select(CrimeReport, User)
        .outerjoin(User, CrimeReport.user_id == User.id)
    )
    if status:
        query = query.where(CrimeReport.status == status)
    if category:
        query = query.where(CrimeReport.category == category)

    query = query.order_by(CrimeReport.created_at.desc(), CrimeReport.id.desc()).limit(limit).offset(offset)
    result = await db.execute(query)
    return [serialize_report(report, reporter) for report, reporter in result.all()]


async def get_report(db: AsyncSession, report_id: int) -> dict:
    """A single report with reporter contact details (redacted if anonymous)."""
    result = await db.execute(
        select(CrimeReport, User)
        .outerjoin(User, CrimeReport.user_id == User.id)
        .where(CrimeReport.id == report_id)
    )
    row = result.first()
    if row is None:
        raise NotFound("Report not found")
    report, reporter = row
    return serialize_report(report, reporter, include_phone=True)


async def get_map_reports(
    db: AsyncSession,
    category: Optional[str] = None,
    days: int = 30,
) -> List[dict]:
    """Minimal public view of reports created within the last `days` days."""
    query = (
        select(
            CrimeReport.id,
            CrimeReport.category,
            CrimeReport.location_lat,
            CrimeReport.location_lng,
            CrimeReport.location_address,
            CrimeReport.date_time,
            CrimeReport.status,
        )
        .where(CrimeReport.created_at >= days_ago(days))
    )
    if category:
        query = query.where(CrimeReport.category == category)
    query = query.order_by(CrimeReport.created_at.desc())

    result = await db.execute(query)
    return [dict(row._mapping) for row in result.all()]


# =============================================================================
# STATUS WORKFLOW
# =============================================================================

async def update_report_status(db: AsyncSession, report_id: int, status: Optional[str]) -> None:
    """
    Set a report's status.

    Any status may be set from any other status.
    """
    if status not in ReportStatus.ALL:
        raise InvalidInput("Invalid status")

    result = await db.execute(
        update(CrimeReport)
        .where(CrimeReport.id == report_id)
        .values(status=status, updated_at=now_utc())
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFound("Report not found")
    await db.commit()
    logger.info(f"Crime report {report_id} status set to {status}")


# =============================================================================
# STATISTICS
# =============================================================================

async def count_by(db: AsyncSession, column, order_by_count: bool = False) -> List[dict]:
    """Group crime reports by a column and count them."""
    count = func.count(CrimeReport.id).label("count")
    query = select(column, count).group_by(column)
    if order_by_count:
        query = query.order_by(count.desc())
    result = await db.execute(query)
    return [{column.key: value, "count": n} for value, n in result.all()]


async def get_report_stats(db: AsyncSession) -> dict:
    total = await db.scalar(select(func.count(CrimeReport.id)))
    pending = await db.scalar(
        select(func.count(CrimeReport.id)).where(CrimeReport.status == ReportStatus.PENDING)
    )
    resolved = await db.scalar(
        select(func.count(CrimeReport.id)).where(CrimeReport.status == ReportStatus.RESOLVED)
    )
    return {
        "total": total,
        "pending": pending,
        "resolved": resolved,
        "by_category": await count_by(db, CrimeReport.category, order_by_count=True),
        "by_status": await count_by(db, CrimeReport.status),
    }


# =============================================================================
# CSV EXPORT
# =============================================================================

async def get_reports_for_export(
    db: AsyncSession,
    status: Optional[str] = None,
    category: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> List[CrimeReport]:
    query = select(CrimeReport)
    if status:
        query = query.where(CrimeReport.status == status)
    if category:
        query = query.where(CrimeReport.category == category)
    if start_date:
        query = query.where(CrimeReport.created_at >= to_naive_utc(start_date))
    if end_date:
        query = query.where(CrimeReport.created_at <= to_naive_utc(end_date))
    query = query.order_by(CrimeReport.created_at.desc())

    result = await db.execute(query)
    return list(result.scalars().all())


def _csv_line(values: list) -> str:
    buffer = io.StringIO()
    csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC).writerow(values)
    return buffer.getvalue()


def iter_reports_csv(reports: List[CrimeReport]) -> Iterator[str]:
    """
    Yield the export as CSV lines: a header row, then one row per report.

    Text fields are quoted and embedded quotes doubled (RFC 4180).
    """
    yield _csv_line(CSV_HEADERS)
    for report in reports:
        yield _csv_line([
            report.id,
            report.category,
            report.description,
            report.location_address or "N/A",
            report.date_time.isoformat(sep=" "),
            report.status,
            report.created_at.isoformat(sep=" ", timespec="seconds"),
        ])
