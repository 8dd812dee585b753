"""Equipment router: unit pools and availability lookups."""

from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from campushub.constants.constants import Capability, MaintenanceStatus
from campushub.core.database import aget_db
from campushub.core.security import get_current_user, require_capability
from campushub.models.user import User
from campushub.schemas.bookings import EquipmentAvailabilityResponse
from campushub.schemas.inventory import EquipmentCreate, EquipmentResponse, EquipmentUpdate
from campushub.services.AvailabilityService import AvailabilityService
from campushub.services.InventoryService import InventoryService

router = APIRouter(
    prefix="/equipment",
    tags=["equipment"]
)


@router.post("", response_model=EquipmentResponse, status_code=status.HTTP_201_CREATED)
async def create_equipment(
    request: EquipmentCreate,
    current_user: User = Depends(require_capability(Capability.inventory_manage)),
    db: AsyncSession = Depends(aget_db)
):
    return await InventoryService(db).create_equipment(request.model_dump(), current_user)


@router.get("", response_model=List[EquipmentResponse])
async def list_equipment(
    equipment_type: Optional[str] = None,
    maintenance_status: Optional[MaintenanceStatus] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    return await InventoryService(db).list_equipment(equipment_type, maintenance_status)


@router.patch("/{equipment_id}", response_model=EquipmentResponse)
async def update_equipment(
    equipment_id: str,
    request: EquipmentUpdate,
    current_user: User = Depends(require_capability(Capability.inventory_manage)),
    db: AsyncSession = Depends(aget_db)
):
    """Adjust the pool: total units, units withdrawn for maintenance, condition."""
    changes = request.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No fields to update"
        )
    return await InventoryService(db).update_equipment(equipment_id, changes, current_user)


@router.get("/{equipment_id}/availability", response_model=EquipmentAvailabilityResponse)
async def check_equipment_availability(
    equipment_id: str,
    start: datetime,
    end: datetime,
    quantity: int = Query(1, gt=0),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    result = await AvailabilityService(db).equipment_availability(equipment_id, quantity, start, end)
    return {
        "equipment_id": equipment_id,
        "requested_quantity": quantity,
        "start": result.start,
        "end": result.end,
        "available": result.available,
        "available_quantity": result.equipment.available_quantity,
        "booked_quantity": result.booked_quantity,
        "remaining_quantity": result.remaining_quantity,
        "conflicting_bookings": result.conflicting_bookings,
    }
