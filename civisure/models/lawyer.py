"""
CiviSure - Lawyer Directory Models
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import (
    String, Integer, Float, DateTime, ForeignKey, Text, CheckConstraint, UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column
from civisure.database import Base
from civisure.timestamps import now_utc


class ConsultationStatus:
    """Consultation request status constants."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COMPLETED = "completed"

    ALL = (PENDING, ACCEPTED, REJECTED, COMPLETED)


class Lawyer(Base):
    """A lawyer listed in the legal directory."""

    __tablename__ = "lawyers"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    phone: Mapped[str] = mapped_column(String(50), nullable=False)

    # Practice
    specialization: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    experience_years: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    education: Mapped[str] = mapped_column(Text, nullable=False)
    bar_registration: Mapped[str] = mapped_column(String(100), nullable=False)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    languages: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    # Office
    office_address: Mapped[str] = mapped_column(Text, nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    state: Mapped[str] = mapped_column(String(100), nullable=False)

    # Derived from lawyer_reviews, recomputed on every review
    rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_reviews: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    consultation_fee: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    availability: Mapped[str] = mapped_column(String(255), nullable=False, default="Mon-Fri, 10 AM - 6 PM")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc)

    def __repr__(self) -> str:
        return f"<Lawyer {self.full_name} ({self.specialization})>"


class LawyerReview(Base):
    """A user's rating of a lawyer. One per (lawyer, user)."""

    __tablename__ = "lawyer_reviews"
    __table_args__ = (
        UniqueConstraint("lawyer_id", "user_id", name="uq_lawyer_reviews_lawyer_user"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_lawyer_reviews_rating"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    lawyer_id: Mapped[int] = mapped_column(
        ForeignKey("lawyers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    review_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc)

    def __repr__(self) -> str:
        return f"<LawyerReview lawyer={self.lawyer_id} rating={self.rating}>"


class ConsultationRequest(Base):
    """A user's request for a consultation with a lawyer."""

    __tablename__ = "consultation_requests"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'accepted', 'rejected', 'completed')",
            name="ck_consultation_requests_status",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    lawyer_id: Mapped[int] = mapped_column(
        ForeignKey("lawyers.id", ondelete="CASCADE"), nullable=False, index=True
    )
    case_type: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    preferred_date: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default=ConsultationStatus.PENDING, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc)

    def __repr__(self) -> str:
        return f"<ConsultationRequest {self.id} ({self.status})>"
