"""Venue router: inventory and availability lookups."""

import logging
from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from campushub.constants.constants import Capability, VenueType
from campushub.core.database import aget_db
from campushub.core.security import get_current_user, require_capability
from campushub.models.user import User
from campushub.schemas.bookings import VenueAvailabilityResponse
from campushub.schemas.inventory import VenueAvailabilityUpdate, VenueCreate, VenueResponse
from campushub.services.AvailabilityService import AvailabilityService
from campushub.services.InventoryService import InventoryService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/venues",
    tags=["venues"]
)


@router.post("", response_model=VenueResponse, status_code=status.HTTP_201_CREATED)
async def create_venue(
    request: VenueCreate,
    current_user: User = Depends(require_capability(Capability.inventory_manage)),
    db: AsyncSession = Depends(aget_db)
):
    return await InventoryService(db).create_venue(request.model_dump(), current_user)


@router.get("", response_model=List[VenueResponse])
async def list_venues(
    venue_type: Optional[VenueType] = None,
    min_capacity: Optional[int] = Query(None, gt=0),
    available_only: bool = False,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    return await InventoryService(db).list_venues(venue_type, min_capacity, available_only)


@router.patch("/{venue_id}/availability", response_model=VenueResponse)
async def set_venue_availability(
    venue_id: str,
    request: VenueAvailabilityUpdate,
    current_user: User = Depends(require_capability(Capability.inventory_manage)),
    db: AsyncSession = Depends(aget_db)
):
    """Open or close a venue for new bookings (maintenance, exams, ...)."""
    venue = await InventoryService(db).set_venue_availability(venue_id, request.is_available, current_user)
    logger.info(f"Venue {venue.name} is_available={venue.is_available}")
    return venue


@router.get("/{venue_id}/availability", response_model=VenueAvailabilityResponse)
async def check_venue_availability(
    venue_id: str,
    start: datetime,
    end: datetime,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """
    Whether the venue is free for [start, end).
    Lists the approved bookings and events that overlap the window.
    """
    result = await AvailabilityService(db).venue_availability(venue_id, start, end)
    return {
        "venue_id": venue_id,
        "start": result.start,
        "end": result.end,
        "available": result.available,
        "is_available": result.venue.is_available,
        "conflicting_bookings": result.conflicting_bookings,
        "conflicting_events": result.conflicting_events,
    }
