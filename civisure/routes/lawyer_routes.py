"""
CiviSure - Legal Directory Routes
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from civisure.database import get_db
from civisure.auth import AuthContext, require_auth
from civisure.lawyers import (
    search_lawyers,
    get_lawyer_profile,
    get_specializations,
    submit_review,
    request_consultation,
    get_user_consultations,
)
from civisure.schemas import ReviewRequest, ConsultationRequestBody


router = APIRouter()


# =============================================================================
# DIRECTORY
# =============================================================================

@router.get("")
async def search(
    specialization: Optional[str] = None,
    city: Optional[str] = None,
    min_rating: Optional[float] = Query(None, alias="minRating"),
    search: Optional[str] = None,
    limit: int = Query(50, ge=1),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    lawyers = await search_lawyers(
        db,
        specialization=specialization,
        city=city,
        min_rating=min_rating,
        search=search,
        limit=limit,
        offset=offset,
    )
    return {"success": True, "lawyers": lawyers, "total": len(lawyers)}


@router.get("/meta/specializations")
async def specializations(db: AsyncSession = Depends(get_db)):
    return {"success": True, "specializations": await get_specializations(db)}


@router.get("/user/consultations")
async def my_consultations(
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    consultations = await get_user_consultations(db, auth)
    return {"success": True, "consultations": consultations}


@router.get("/{lawyer_id}")
async def get_one(lawyer_id: int, db: AsyncSession = Depends(get_db)):
    lawyer, reviews = await get_lawyer_profile(db, lawyer_id)
    return {"success": True, "lawyer": lawyer, "reviews": reviews}


# =============================================================================
# REVIEWS & CONSULTATIONS
# =============================================================================

@router.post("/{lawyer_id}/reviews", status_code=201)
async def review(
    lawyer_id: int,
    body: ReviewRequest,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    """Rate a lawyer. Each user may review a lawyer once."""
    await submit_review(db, auth, lawyer_id, body.rating, body.review_text)
    return {"success": True, "message": "Review submitted successfully"}


@router.post("/{lawyer_id}/consultation", status_code=201)
async def consultation(
    lawyer_id: int,
    body: ConsultationRequestBody,
    auth: AuthContext = Depends(require_auth),
    db: AsyncSession = Depends(get_db),
):
    request = await request_consultation(
        db,
        auth,
        lawyer_id,
        case_type=body.case_type,
        description=body.description,
        preferred_date=body.preferred_date,
    )
    return {
        "success": True,
        "message": "Consultation request sent successfully",
        "request_id": request.id,
    }
