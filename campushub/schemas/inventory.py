from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from campushub.constants.constants import MaintenanceStatus, VenueType


# ==================== VENUE SCHEMAS ====================

class VenueCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    venue_type: VenueType = VenueType.hall
    capacity: int = Field(..., gt=0)
    location: Optional[str] = Field(None, max_length=255)
    amenities: List[str] = []
    is_available: bool = True
    booking_rules: Optional[str] = None


class VenueAvailabilityUpdate(BaseModel):
    is_available: bool


class VenueResponse(BaseModel):
    venue_id: str
    name: str
    venue_type: VenueType
    capacity: int
    location: Optional[str] = None
    amenities: List[str] = []
    is_available: bool
    booking_rules: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


# ==================== EQUIPMENT SCHEMAS ====================

class EquipmentCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    equipment_type: str = Field(..., min_length=1, max_length=100)
    quantity: int = Field(..., ge=0)
    available_quantity: Optional[int] = Field(None, ge=0)
    specifications: Optional[Dict[str, Any]] = None
    maintenance_status: MaintenanceStatus = MaintenanceStatus.good


class EquipmentUpdate(BaseModel):
    """Request schema for adjusting an equipment pool."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    quantity: Optional[int] = Field(None, ge=0)
    available_quantity: Optional[int] = Field(None, ge=0)
    specifications: Optional[Dict[str, Any]] = None
    maintenance_status: Optional[MaintenanceStatus] = None


class EquipmentResponse(BaseModel):
    equipment_id: str
    name: str
    equipment_type: str
    quantity: int
    available_quantity: int
    specifications: Optional[Dict[str, Any]] = None
    maintenance_status: MaintenanceStatus
    created_at: datetime

    class Config:
        from_attributes = True
