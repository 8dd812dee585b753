"""Booking router: venue and equipment reservations and their review."""

import logging
from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from campushub.constants.constants import BookingKind, BookingStatus, Capability
from campushub.core.database import aget_db
from campushub.core.exceptions import CampusHubError
from campushub.core.security import get_current_user, require_capability
from campushub.models.user import User
from campushub.schemas.bookings import (
    BookingListResponse, BookingStatusUpdate, EquipmentBookingCreate, EquipmentBookingResponse,
    ResourceBookingCreate, ResourceBookingResponse,
)
from campushub.services.AvailabilityService import AvailabilityService
from campushub.services.InventoryService import InventoryService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["bookings"])


@router.post(
    "/resources/{venue_id}/book",
    response_model=ResourceBookingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def book_venue(
    venue_id: str,
    request: ResourceBookingCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """
    Reserve a venue for [start_time, end_time).
    Returns 409 with the clashing bookings when the venue is taken.
    """
    try:
        return await AvailabilityService(db).create_resource_booking(
            venue_id,
            current_user,
            request.start_time,
            request.end_time,
            event_id=request.event_id,
            notes=request.notes,
        )
    except (HTTPException, CampusHubError):
        raise
    except Exception as e:
        await db.rollback()
        logger.exception(f"Error booking venue {venue_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to book venue"
        )


@router.get("/resources/{venue_id}/bookings", response_model=List[ResourceBookingResponse])
async def list_venue_bookings(
    venue_id: str,
    booking_status: Optional[BookingStatus] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    await InventoryService(db).get_venue(venue_id)
    bookings = await AvailabilityService(db).list_bookings(
        kind=BookingKind.venue, resource_id=venue_id, status=booking_status, start=start, end=end
    )
    return bookings[BookingKind.venue.value]


@router.post(
    "/equipment-bookings",
    response_model=EquipmentBookingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def book_equipment(
    request: EquipmentBookingCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """Reserve units from an equipment pool for [start_time, end_time)."""
    try:
        return await AvailabilityService(db).create_equipment_booking(
            request.equipment_id,
            current_user,
            request.quantity,
            request.start_time,
            request.end_time,
            event_id=request.event_id,
            notes=request.notes,
        )
    except (HTTPException, CampusHubError):
        raise
    except Exception as e:
        await db.rollback()
        logger.exception(f"Error booking equipment {request.equipment_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to book equipment"
        )


@router.get("/bookings", response_model=BookingListResponse)
async def list_bookings(
    kind: Optional[BookingKind] = None,
    event_id: Optional[str] = None,
    booking_status: Optional[BookingStatus] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    return await AvailabilityService(db).list_bookings(
        kind=kind, event_id=event_id, status=booking_status, start=start, end=end
    )


@router.patch("/bookings/{kind}/{booking_id}/status")
async def review_booking(
    kind: BookingKind,
    booking_id: str,
    request: BookingStatusUpdate,
    current_user: User = Depends(require_capability(Capability.booking_review)),
    db: AsyncSession = Depends(aget_db)
):
    """Approve or reject a booking. Approval re-checks availability."""
    booking = await AvailabilityService(db).update_booking_status(kind, booking_id, request.status, current_user)
    if kind == BookingKind.venue:
        return ResourceBookingResponse.model_validate(booking)
    return EquipmentBookingResponse.model_validate(booking)
