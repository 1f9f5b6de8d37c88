"""
CiviSure - Legal Directory Logic

Lawyer search, reviews with rating recompute, and consultation requests.
"""

import logging
from typing import Optional, List

from sqlalchemy import select, update, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from civisure.auth import AuthContext
from civisure.errors import InvalidInput, NotFound, Conflict
from civisure.models.lawyer import Lawyer, LawyerReview, ConsultationRequest, ConsultationStatus
from civisure.models.user import User
from civisure.schemas import LawyerCreateRequest

logger = logging.getLogger(__name__)

RECENT_REVIEWS_LIMIT = 10

LAWYER_REQUIRED_FIELDS = (
    "full_name", "email", "phone", "specialization", "education",
    "bar_registration", "office_address", "city", "state",
)


def serialize_lawyer(lawyer: Lawyer) -> dict:
    return {
        "id": lawyer.id,
        "full_name": lawyer.full_name,
        "email": lawyer.email,
        "phone": lawyer.phone,
        "specialization": lawyer.specialization,
        "experience_years": lawyer.experience_years,
        "education": lawyer.education,
        "bar_registration": lawyer.bar_registration,
        "office_address": lawyer.office_address,
        "city": lawyer.city,
        "state": lawyer.state,
        "bio": lawyer.bio,
        "languages": lawyer.languages,
        "rating": lawyer.rating,
        "total_reviews": lawyer.total_reviews,
        "consultation_fee": lawyer.consultation_fee,
        "availability": lawyer.availability,
        "created_at": lawyer.created_at,
    }


def serialize_consultation(request: ConsultationRequest) -> dict:
    return {
        "id": request.id,
        "user_id": request.user_id,
        "lawyer_id": request.lawyer_id,
        "case_type": request.case_type,
        "description": request.description,
        "preferred_date": request.preferred_date,
        "status": request.status,
        "created_at": request.created_at,
    }


async def get_lawyer_by_id(db: AsyncSession, lawyer_id: int) -> Optional[Lawyer]:
    result = await db.execute(
        select(Lawyer)
        .where(Lawyer.id == lawyer_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def require_lawyer(db: AsyncSession, lawyer_id: int) -> Lawyer:
    lawyer = await get_lawyer_by_id(db, lawyer_id)
    if lawyer is None:
        raise NotFound("Lawyer not found")
    return lawyer


# =============================================================================
# DIRECTORY
# =============================================================================

async def search_lawyers(
    db: AsyncSession,
    specialization: Optional[str] = None,
    city: Optional[str] = None,
    min_rating: Optional[float] = None,
    search: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
) -> List[dict]:
    """Filter the directory; best rated and most reviewed first."""
    query = select(Lawyer)
    if specialization:
        query = query.where(Lawyer.specialization == specialization)
    if city:
        query = query.where(Lawyer.city.ilike(f"%{city}%"))
    if min_rating is not None:
        query = query.where(Lawyer.rating >= min_rating)
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(
            Lawyer.full_name.ilike(pattern),
            Lawyer.bio.ilike(pattern),
            Lawyer.specialization.ilike(pattern),
        ))

    query = query.order_by(Lawyer.rating.desc(), Lawyer.total_reviews.desc()).limit(limit).offset(offset)
    result = await db.execute(query)
    return [serialize_lawyer(lawyer) for lawyer in result.scalars().all()]


async def get_lawyer_profile(db: AsyncSession, lawyer_id: int) -> tuple[dict, List[dict]]:
    """Lawyer details plus the most recent reviews with reviewer names."""
    lawyer = await require_lawyer(db, lawyer_id)

    result = await db.execute(
        select(LawyerReview, User.full_name)
        .join(User, LawyerReview.user_id == User.id)
        .where(LawyerReview.lawyer_id == lawyer_id)
        .order_by(LawyerReview.created_at.desc(), LawyerReview.id.desc())
        .limit(RECENT_REVIEWS_LIMIT)
    )
    reviews = [
        {
            "id": review.id,
            "lawyer_id": review.lawyer_id,
            "user_id": review.user_id,
            "rating": review.rating,
            "review_text": review.review_text,
            "created_at": review.created_at,
            "user_name": user_name,
        }
        for review, user_name in result.all()
    ]
    return serialize_lawyer(lawyer), reviews


async def get_specializations(db: AsyncSession) -> List[dict]:
    count = func.count(Lawyer.id).label("count")
    result = await db.execute(
        select(Lawyer.specialization, count)
        .group_by(Lawyer.specialization)
        .order_by(count.desc())
    )
    return [{"specialization": name, "count": n} for name, n in result.all()]


# =============================================================================
# REVIEWS
# =============================================================================

async def submit_review(
    db: AsyncSession,
    auth: AuthContext,
    lawyer_id: int,
    rating: Optional[int],
    review_text: Optional[str] = None,
) -> LawyerReview:
    """
    Add the caller's review and recompute the lawyer's aggregate rating.

    The insert and the recompute commit together. The recompute is a single
    UPDATE whose AVG/COUNT subqueries are evaluated by the database at write
    time, so concurrent reviews cannot overwrite each other's contribution.
    """
    if rating is None or rating < 1 or rating > 5:
        raise InvalidInput("Rating must be between 1 and 5")

    await require_lawyer(db, lawyer_id)

    existing = await db.execute(
        select(LawyerReview.id)
        .where(LawyerReview.lawyer_id == lawyer_id)
        .where(LawyerReview.user_id == auth.user_id)
    )
    if existing.first() is not None:
        raise Conflict("You have already reviewed this lawyer")

    review = LawyerReview(
        lawyer_id=lawyer_id,
        user_id=auth.user_id,
        rating=rating,
        review_text=review_text.strip() if review_text and review_text.strip() else None,
    )
    db.add(review)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        raise Conflict("You have already reviewed this lawyer")

    average = (
        select(func.avg(LawyerReview.rating))
        .where(LawyerReview.lawyer_id == lawyer_id)
        .scalar_subquery()
    )
    total = (
        select(func.count(LawyerReview.id))
        .where(LawyerReview.lawyer_id == lawyer_id)
        .scalar_subquery()
    )
    await db.execute(
        update(Lawyer)
        .where(Lawyer.id == lawyer_id)
        .values(rating=func.coalesce(average, 0.0), total_reviews=total)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    await db.refresh(review)

    logger.info(f"User {auth.user_id} reviewed lawyer {lawyer_id} ({rating}/5)")
    return review


# =============================================================================
# CONSULTATIONS
# =============================================================================

async def request_consultation(
    db: AsyncSession,
    auth: AuthContext,
    lawyer_id: int,
    case_type: Optional[str],
    description: Optional[str],
    preferred_date: Optional[str] = None,
) -> ConsultationRequest:
    if not case_type or not case_type.strip() or not description or not description.strip():
        raise InvalidInput("Case type and description are required")

    await require_lawyer(db, lawyer_id)

    request = ConsultationRequest(
        user_id=auth.user_id,
        lawyer_id=lawyer_id,
        case_type=case_type.strip(),
        description=description.strip(),
        preferred_date=preferred_date or None,
        status=ConsultationStatus.PENDING,
    )
    db.add(request)
    await db.commit()
    await db.refresh(request)

    logger.info(f"Consultation request {request.id} sent to lawyer {lawyer_id}")
    return request


async def get_user_consultations(db: AsyncSession, auth: AuthContext) -> List[dict]:
    """The caller's consultation requests with the lawyer's contact details."""
    result = await db.execute(
        select(ConsultationRequest, Lawyer)
        .join(Lawyer, ConsultationRequest.lawyer_id == Lawyer.id)
        .where(ConsultationRequest.user_id == auth.user_id)
        .order_by(ConsultationRequest.created_at.desc(), ConsultationRequest.id.desc())
    )
    consultations = []
    for request, lawyer in result.all():
        data = serialize_consultation(request)
        data.update({
            "lawyer_name": lawyer.full_name,
            "specialization": lawyer.specialization,
            "lawyer_phone": lawyer.phone,
            "lawyer_email": lawyer.email,
        })
        consultations.append(data)
    return consultations


async def list_consultations(db: AsyncSession, status: Optional[str] = None) -> List[dict]:
    """All consultation requests with requester and lawyer names (admin view)."""
    query = (
        select(ConsultationRequest, User.full_name, User.email, Lawyer.full_name)
        .join(User, ConsultationRequest.user_id == User.id)
        .join(Lawyer, ConsultationRequest.lawyer_id == Lawyer.id)
    )
    if status:
        query = query.where(ConsultationRequest.status == status)
    query = query.order_by(ConsultationRequest.created_at.desc(), ConsultationRequest.id.desc())

    result = await db.execute(query)
    consultations = []
    for request, user_name, user_email, lawyer_name in result.all():
        data = serialize_consultation(request)
        data.update({
            "user_name": user_name,
            "user_email": user_email,
            "lawyer_name": lawyer_name,
        })
        consultations.append(data)
    return consultations


async def update_consultation_status(db: AsyncSession, request_id: int, status: Optional[str]) -> None:
    if status not in ConsultationStatus.ALL:
        raise InvalidInput("Invalid status")

    result = await db.execute(
        update(ConsultationRequest)
        .where(ConsultationRequest.id == request_id)
        .values(status=status)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise NotFound("Consultation request not found")
    await db.commit()
    logger.info(f"Consultation request {request_id} status set to {status}")


# =============================================================================
# DIRECTORY MANAGEMENT
# =============================================================================

async def create_lawyer(db: AsyncSession, data: LawyerCreateRequest) -> Lawyer:
    """Add a lawyer to the directory. Ratings start empty."""
    missing = [
        name for name in LAWYER_REQUIRED_FIELDS
        if not (getattr(data, name) or "").strip()
    ]
    if missing:
        raise InvalidInput("Missing required fields: " + ", ".join(missing))

    email = data.email.lower().strip()
    existing = await db.execute(select(Lawyer.id).where(Lawyer.email == email))
    if existing.first() is not None:
        raise Conflict("A lawyer with this email already exists")

    lawyer = Lawyer(
        full_name=data.full_name.strip(),
        email=email,
        phone=data.phone.strip(),
        specialization=data.specialization.strip(),
        experience_years=data.experience_years,
        education=data.education.strip(),
        bar_registration=data.bar_registration.strip(),
        office_address=data.office_address.strip(),
        city=data.city.strip(),
        state=data.state.strip(),
        bio=data.bio,
        languages=data.languages,
        consultation_fee=data.consultation_fee,
    )
    if data.availability:
        lawyer.availability = data.availability.strip()

    db.add(lawyer)
    await db.commit()
    await db.refresh(lawyer)
    logger.info(f"Added lawyer {lawyer.id} ({lawyer.specialization})")
    return lawyer
