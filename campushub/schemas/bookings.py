from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from campushub.constants.constants import BookingStatus
from campushub.utils.intervals import as_naive_utc


class BookingConflict(BaseModel):
    """What a rejected booking attempt clashed with."""
    booking_id: Optional[str] = None
    event_id: Optional[str] = None
    event_title: Optional[str] = None
    start_time: datetime
    end_time: datetime
    quantity: Optional[int] = None


# ==================== VENUE BOOKING SCHEMAS ====================

class ResourceBookingCreate(BaseModel):
    event_id: Optional[str] = None
    start_time: datetime
    end_time: datetime
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("start_time", "end_time")
    @classmethod
    def to_naive_utc(cls, v):
        return as_naive_utc(v)


class ResourceBookingResponse(BaseModel):
    booking_id: str
    venue_id: str
    event_id: Optional[str] = None
    user_id: str
    start_time: datetime
    end_time: datetime
    status: BookingStatus
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ConflictingEvent(BaseModel):
    event_id: str
    title: str
    start_date: datetime
    end_date: datetime

    class Config:
        from_attributes = True


class VenueAvailabilityResponse(BaseModel):
    venue_id: str
    start: datetime
    end: datetime
    available: bool
    is_available: bool
    conflicting_bookings: List[ResourceBookingResponse] = []
    conflicting_events: List[ConflictingEvent] = []


# ==================== EQUIPMENT BOOKING SCHEMAS ====================

class EquipmentBookingCreate(BaseModel):
    equipment_id: str
    quantity: int = Field(..., gt=0)
    event_id: Optional[str] = None
    start_time: datetime
    end_time: datetime
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("start_time", "end_time")
    @classmethod
    def to_naive_utc(cls, v):
        return as_naive_utc(v)


class EquipmentBookingResponse(BaseModel):
    booking_id: str
    equipment_id: str
    event_id: Optional[str] = None
    user_id: str
    quantity: int
    start_time: datetime
    end_time: datetime
    status: BookingStatus
    notes: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class EquipmentAvailabilityResponse(BaseModel):
    equipment_id: str
    requested_quantity: int
    start: datetime
    end: datetime
    available: bool
    available_quantity: int
    booked_quantity: int
    remaining_quantity: int
    conflicting_bookings: List[EquipmentBookingResponse] = []


# ==================== REVIEW SCHEMAS ====================

class BookingStatusUpdate(BaseModel):
    status: BookingStatus


class BookingListResponse(BaseModel):
    venue: List[ResourceBookingResponse] = []
    equipment: List[EquipmentBookingResponse] = []
