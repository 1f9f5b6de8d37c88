"""
CiviSure - SOS Alert Routes
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from civisure.database import get_db
from civisure.auth import AuthContext, require_auth, require_admin
from civisure.realtime import AlertBroadcaster, get_broadcaster
from civisure.schemas import SOSRequest, StatusUpdateRequest
from civisure.sos import (
    raise_alert,
    list_alerts,
    list_active_alerts,
    get_alert,
    update_alert_status,
    get_user_alert_history,
)


router = APIRouter()


@router.post("", status_code=201)
async def send_sos(
    body: SOSRequest,
    auth: AuthContext = Depends(require_auth),
    publisher: AlertBroadcaster = Depends(get_broadcaster),
    db: AsyncSession = Depends(get_db),
):
    """Raise an emergency alert and notify connected admins."""
    alert = await raise_alert(
        db,
        auth,
        publisher,
        location_lat=body.location_lat,
        location_lng=body.location_lng,
        location_address=body.location_address,
        message=body.message,
    )
    return {
        "success": True,
        "message": "SOS alert sent successfully",
        "alert_id": alert.id,
    }


@router.get("/active")
async def active_alerts(
    auth: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    alerts = await list_active_alerts(db)
    return {"success": True, "alerts": alerts}


@router.get("/user/history")
async def user_history(
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    alerts = await get_user_alert_history(db, auth)
    return {"success": True, "alerts": alerts}


@router.get("")
async def all_alerts(
    status: Optional[str] = None,
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
    auth: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    alerts = await list_alerts(db, status=status, limit=limit, offset=offset)
    return {"success": True, "alerts": alerts}


@router.get("/{alert_id}")
async def get_one(
    alert_id: int,
    auth: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    alert = await get_alert(db, alert_id)
    return {"success": True, "alert": alert}


@router.put("/{alert_id}")
async def update_status(
    alert_id: int,
    body: StatusUpdateRequest,
    auth: AuthContext = Depends(require_admin),
    publisher: AlertBroadcaster = Depends(get_broadcaster),
    db: AsyncSession = Depends(get_db),
):
    await update_alert_status(db, publisher, alert_id, body.status)
    return {"success": True, "message": "SOS alert status updated"}
