"""
CiviSure - Crime Report Model
"""

import json
from datetime import datetime
from typing import Optional, List
from sqlalchemy import String, Boolean, DateTime, Float, ForeignKey, Text, CheckConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column
from civisure.database import Base
from civisure.timestamps import now_utc


class ReportStatus:
    """Crime report status constants."""
    PENDING = "pending"
    INVESTIGATING = "investigating"
    RESOLVED = "resolved"
    REJECTED = "rejected"

    ALL = (PENDING, INVESTIGATING, RESOLVED, REJECTED)


class CrimeReport(Base):
    """A crime report, optionally anonymous, with location and evidence."""

    __tablename__ = "crime_reports"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'investigating', 'resolved', 'rejected')",
            name="ck_crime_reports_status",
        ),
        Index("idx_reports_status", "status"),
        Index("idx_reports_category", "category"),
        Index("idx_reports_created", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Reporter (null for anonymous reports, or once the account is deleted)
    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # Incident
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    location_lat: Mapped[float] = mapped_column(Float, nullable=False)
    location_lng: Mapped[float] = mapped_column(Float, nullable=False)
    location_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    date_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # JSON-encoded list of stored evidence filenames
    evidence_files: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(String(20), default=ReportStatus.PENDING, nullable=False)
    anonymous: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc)

    def __repr__(self) -> str:
        return f"<CrimeReport {self.id}: {self.category} ({self.status})>"

    @property
    def evidence_list(self) -> Optional[List[str]]:
        """Decode the stored evidence filename list."""
        if not self.evidence_files:
            return None
        try:
            return json.loads(self.evidence_files)
        except json.JSONDecodeError:
            return None
