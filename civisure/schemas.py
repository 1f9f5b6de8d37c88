"""
CiviSure - Request Schemas

JSON request bodies. Fields accept both snake_case names and the camelCase
names sent by the browser frontend (fullName, locationLat, ...).
Required-field checks live in the service functions so that a missing
field is reported as InvalidInput with a specific message.
"""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RequestModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -------------------- Auth --------------------

class RegisterRequest(RequestModel):
    email: Optional[str] = None
    password: Optional[str] = None
    full_name: Optional[str] = None
    phone: Optional[str] = None


class LoginRequest(RequestModel):
    email: Optional[str] = None
    password: Optional[str] = None


# -------------------- Status updates --------------------

class StatusUpdateRequest(RequestModel):
    status: Optional[str] = None


class RoleUpdateRequest(RequestModel):
    role: Optional[str] = None


# -------------------- SOS --------------------

class SOSRequest(RequestModel):
    location_lat: Optional[float] = None
    location_lng: Optional[float] = None
    location_address: Optional[str] = None
    message: Optional[str] = None


# -------------------- Lawyers --------------------

class ReviewRequest(RequestModel):
    rating: Optional[int] = None
    review_text: Optional[str] = None


class ConsultationRequestBody(RequestModel):
    case_type: Optional[str] = None
    description: Optional[str] = None
    preferred_date: Optional[str] = None


class LawyerCreateRequest(RequestModel):
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    specialization: Optional[str] = None
    experience_years: int = Field(0, ge=0)
    education: Optional[str] = None
    bar_registration: Optional[str] = None
    office_address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    bio: Optional[str] = None
    languages: Optional[str] = None
    consultation_fee: Optional[float] = Field(None, ge=0)
    availability: Optional[str] = None


# -------------------- Chatbot --------------------

class ChatTurn(RequestModel):
    role: str
    content: str


class ChatMessageRequest(RequestModel):
    message: Optional[str] = None
    conversation_history: List[ChatTurn] = Field(default_factory=list)
