"""
CiviSure - Crime Report Routes
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Form, UploadFile, File, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from civisure.database import get_db
from civisure.auth import AuthContext, require_auth, require_admin
from civisure.reports import (
    parse_flag,
    submit_report,
    list_reports,
    get_report,
    get_map_reports,
    update_report_status,
    get_report_stats,
    get_reports_for_export,
    iter_reports_csv,
)
from civisure.schemas import StatusUpdateRequest
from civisure.timestamps import MAX_WINDOW_DAYS


router = APIRouter()

EXPORT_FILENAME = "crime_reports.csv"


# =============================================================================
# SUBMIT
# =============================================================================

@router.post("", status_code=201)
async def submit(
    category: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    location_lat: Optional[str] = Form(None, alias="locationLat"),
    location_lng: Optional[str] = Form(None, alias="locationLng"),
    location_address: Optional[str] = Form(None, alias="locationAddress"),
    date_time: Optional[str] = Form(None, alias="dateTime"),
    anonymous: Optional[str] = Form(None),
    evidence: List[UploadFile] = File(None),
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    """Submit a crime report with optional evidence attachments."""
    report = await submit_report(
        db=db,
        auth=auth,
        category=category,
        description=description,
        location_lat=location_lat,
        location_lng=location_lng,
        location_address=location_address,
        date_time=date_time,
        anonymous=parse_flag(anonymous),
        evidence=evidence,
    )
    return {
        "success": True,
        "message": "Crime report submitted successfully",
        "report_id": report.id,
    }


# =============================================================================
# PUBLIC MAP
# =============================================================================

@router.get("/map")
async def map_feed(
    category: Optional[str] = None,
    days: int = Query(30, ge=1, le=MAX_WINDOW_DAYS),
    db: AsyncSession = Depends(get_db),
):
    reports = await get_map_reports(db, category=category, days=days)
    return {"success": True, "reports": reports}


# =============================================================================
# ADMIN
# =============================================================================

async def export_reports(
    status: Optional[str] = None,
    category: Optional[str] = None,
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    auth: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Download matching reports as a CSV attachment."""
    reports = await get_reports_for_export(
        db,
        status=status,
        category=category,
        start_date=start_date,
        end_date=end_date,
    )
    return StreamingResponse(
        iter_reports_csv(reports),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={EXPORT_FILENAME}"},
    )


router.add_api_route("/export", export_reports, methods=["GET"])


@router.get("/stats/summary")
async def stats_summary(
    auth: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    stats = await get_report_stats(db)
    return {"success": True, "stats": stats}


@router.get("")
async def list_all(
    status: Optional[str] = None,
    category: Optional[str] = None,
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
    auth: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    reports = await list_reports(db, status=status, category=category, limit=limit, offset=offset)
    return {"success": True, "reports": reports, "total": len(reports)}


@router.get("/{report_id}")
async def get_one(
    report_id: int,
    auth: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    report = await get_report(db, report_id)
    return {"success": True, "report": report}


@router.put("/{report_id}")
async def update_status(
    report_id: int,
    body: StatusUpdateRequest,
    auth: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await update_report_status(db, report_id, body.status)
    return {"success": True, "message": "Report status updated"}
