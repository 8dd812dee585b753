from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, EmailStr, Field, field_validator

from campushub.constants.constants import RegistrationType, RsvpStatus, VerificationStatus
from campushub.services.RsvpCodeGenerator import normalize_rsvp_number


class RsvpRequest(BaseModel):
    status: RsvpStatus = RsvpStatus.attending
    registration_type: RegistrationType = RegistrationType.audience
    form_data: Optional[Dict[str, Any]] = None


class RsvpResponse(BaseModel):
    rsvp_id: str
    event_id: str
    user_id: str
    status: RsvpStatus
    registration_type: RegistrationType
    rsvp_number: str
    form_data: Optional[Dict[str, Any]] = None
    verification_status: VerificationStatus
    checked_in_at: Optional[datetime] = None
    checked_in_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class AttendeeRsvpResponse(RsvpResponse):
    """RSVP row with the attendee's identity, for staff lists."""
    attendee_name: str
    attendee_email: str


class MyRsvpResponse(RsvpResponse):
    event_title: str
    event_start_date: datetime
    event_location: Optional[str] = None


# ==================== CHECK-IN SCHEMAS ====================

class ScanRequest(BaseModel):
    rsvp_number: str = Field(..., min_length=1, max_length=64)
    event_id: str

    @field_validator("rsvp_number")
    @classmethod
    def normalize(cls, v):
        return normalize_rsvp_number(v)


class ManualCheckInRequest(BaseModel):
    email: EmailStr
    event_id: str


class CheckInResponse(BaseModel):
    success: bool = True
    already_checked_in: bool
    message: str
    rsvp: RsvpResponse
    attendee_name: str
    attendee_email: str


class CheckInSummaryResponse(BaseModel):
    event_id: str
    max_attendees: Optional[int] = None
    registered: int
    remaining: Optional[int] = None
    attending: int
    maybe: int
    not_attending: int
    verified: int
    attended: int


class RsvpQRCodeResponse(BaseModel):
    rsvp_number: str
    event_id: str
    qr_code: str  # data URI
