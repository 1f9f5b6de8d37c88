"""
CiviSure - SOS Alert Model
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import String, DateTime, Float, ForeignKey, Text, CheckConstraint, Index
from sqlalchemy.orm import Mapped, mapped_column
from civisure.database import Base
from civisure.timestamps import now_utc


DEFAULT_SOS_MESSAGE = "Emergency! Need immediate assistance!"


class SOSStatus:
    """SOS alert status constants."""
    ACTIVE = "active"
    RESPONDED = "responded"
    RESOLVED = "resolved"
    FALSE_ALARM = "false_alarm"

    ALL = (ACTIVE, RESPONDED, RESOLVED, FALSE_ALARM)
    # Statuses that close an alert and stamp resolved_at
    CLOSED = (RESOLVED, FALSE_ALARM)


class SOSAlert(Base):
    """An emergency alert raised by a logged-in user."""

    __tablename__ = "sos_alerts"
    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'responded', 'resolved', 'false_alarm')",
            name="ck_sos_alerts_status",
        ),
        Index("idx_sos_status", "status"),
        Index("idx_sos_created", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    location_lat: Mapped[float] = mapped_column(Float, nullable=False)
    location_lng: Mapped[float] = mapped_column(Float, nullable=False)
    location_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(String(20), default=SOSStatus.ACTIVE, nullable=False)
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=now_utc)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<SOSAlert {self.id} ({self.status})>"
