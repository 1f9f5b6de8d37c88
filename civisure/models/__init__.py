# CiviSure - Models Package

from civisure.models.user import User, UserSession, UserRole
from civisure.models.crime_report import CrimeReport, ReportStatus
from civisure.models.sos_alert import SOSAlert, SOSStatus
from civisure.models.chat import ChatConversation
from civisure.models.lawyer import Lawyer, LawyerReview, ConsultationRequest, ConsultationStatus

__all__ = [
    "User",
    "UserSession",
    "UserRole",
    "CrimeReport",
    "ReportStatus",
    "SOSAlert",
    "SOSStatus",
    "ChatConversation",
    "Lawyer",
    "LawyerReview",
    "ConsultationRequest",
    "ConsultationStatus",
]
