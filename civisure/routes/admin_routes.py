"""
CiviSure - Admin Routes

Every endpoint here requires an admin session.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from civisure.database import get_db
from civisure.admin import get_dashboard, list_users, delete_user, get_analytics
from civisure.auth import AuthContext, require_admin, update_user_role
from civisure.lawyers import (
    create_lawyer,
    list_consultations,
    update_consultation_status,
    serialize_lawyer,
)
from civisure.routes.report_routes import export_reports
from civisure.schemas import RoleUpdateRequest, LawyerCreateRequest, StatusUpdateRequest
from civisure.timestamps import MAX_WINDOW_DAYS


router = APIRouter(dependencies=[Depends(require_admin)])


# =============================================================================
# DASHBOARD & ANALYTICS
# =============================================================================

@router.get("/dashboard")
async def dashboard(db: AsyncSession = Depends(get_db)):
    return {"success": True, "dashboard": await get_dashboard(db)}


@router.get("/analytics")
async def analytics(
    period: int = Query(30, ge=1, le=MAX_WINDOW_DAYS),
    db: AsyncSession = Depends(get_db),
):
    """Trends over the trailing `period` days."""
    return {"success": True, "analytics": await get_analytics(db, period)}


router.add_api_route("/export/reports", export_reports, methods=["GET"])


# =============================================================================
# USERS
# =============================================================================

@router.get("/users")
async def users(
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    users, total = await list_users(db, limit=limit, offset=offset)
    return {"success": True, "users": users, "total": total}


@router.put("/users/{user_id}/role")
async def change_role(
    user_id: int,
    body: RoleUpdateRequest,
    auth: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await update_user_role(db, auth, user_id, body.role)
    return {"success": True, "message": "User role updated"}


@router.delete("/users/{user_id}")
async def remove_user(
    user_id: int,
    auth: AuthContext = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await delete_user(db, auth, user_id)
    return {"success": True, "message": "User deleted"}


# =============================================================================
# LEGAL DIRECTORY
# =============================================================================

@router.post("/lawyers", status_code=201)
async def add_lawyer(
    body: LawyerCreateRequest,
    db: AsyncSession = Depends(get_db),
):
    lawyer = await create_lawyer(db, body)
    return {
        "success": True,
        "message": "Lawyer added",
        "lawyer": serialize_lawyer(lawyer),
    }


@router.get("/consultations")
async def consultations(
    status: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    return {"success": True, "consultations": await list_consultations(db, status=status)}


@router.put("/consultations/{request_id}")
async def change_consultation_status(
    request_id: int,
    body: StatusUpdateRequest,
    db: AsyncSession = Depends(get_db),
):
    await update_consultation_status(db, request_id, body.status)
    return {"success": True, "message": "Consultation status updated"}
