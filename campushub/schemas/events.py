from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from datetime import datetime
from decimal import Decimal

from campushub.constants.constants import (
    ApprovalStatus, EventCategory, EventStatus, EventType, UserRole,
)
from campushub.utils.intervals import as_naive_utc


# ==================== EVENT SCHEMAS ====================

class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    category: EventCategory

    start_date: datetime
    end_date: datetime
    location: Optional[str] = Field(None, max_length=255)

    max_attendees: Optional[int] = Field(None, gt=0)
    budget: Optional[Decimal] = Field(None, ge=0)
    club_id: Optional[str] = None

    event_type: EventType = EventType.audience
    division_restriction: Optional[str] = None
    department_restriction: Optional[str] = None
    registration_deadline: Optional[datetime] = None
    equipment_required: List[str] = []
    special_instructions: Optional[str] = None

    @field_validator("start_date", "end_date", "registration_deadline")
    @classmethod
    def to_naive_utc(cls, v):
        return as_naive_utc(v)


class EventUpdate(BaseModel):
    """Partial update; status changes go through the workflow endpoints."""
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    category: Optional[EventCategory] = None

    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    location: Optional[str] = Field(None, max_length=255)

    max_attendees: Optional[int] = Field(None, gt=0)
    budget: Optional[Decimal] = Field(None, ge=0)

    event_type: Optional[EventType] = None
    division_restriction: Optional[str] = None
    department_restriction: Optional[str] = None
    registration_deadline: Optional[datetime] = None
    equipment_required: Optional[List[str]] = None
    special_instructions: Optional[str] = None

    @field_validator("start_date", "end_date", "registration_deadline")
    @classmethod
    def to_naive_utc(cls, v):
        return as_naive_utc(v)


class EventResponse(BaseModel):
    event_id: str
    title: str
    description: Optional[str] = None
    category: EventCategory

    start_date: datetime
    end_date: datetime
    location: Optional[str] = None

    max_attendees: Optional[int] = None
    budget: Optional[Decimal] = None
    status: EventStatus
    requires_approval: bool
    organizer_id: str
    club_id: Optional[str] = None

    event_type: EventType
    division_restriction: Optional[str] = None
    department_restriction: Optional[str] = None
    registration_deadline: Optional[datetime] = None
    equipment_required: List[str] = []
    special_instructions: Optional[str] = None

    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# ==================== APPROVAL SCHEMAS ====================

class ApprovalDecisionRequest(BaseModel):
    comments: Optional[str] = Field(None, max_length=2000)
    # Only needed by roles that may sign more than one stage (admin)
    stage: Optional[UserRole] = None


class EventApprovalResponse(BaseModel):
    approval_id: str
    event_id: str
    approver_role: UserRole
    approver_id: Optional[str] = None
    status: ApprovalStatus
    comments: Optional[str] = None
    decided_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ApprovalDecisionResponse(BaseModel):
    event: EventResponse
    approval: EventApprovalResponse


class PendingApprovalResponse(BaseModel):
    approval: EventApprovalResponse
    event: EventResponse
