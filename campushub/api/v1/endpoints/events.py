"""Event router: creation, listing, edits and lifecycle transitions."""

import logging
from datetime import datetime
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from campushub.constants.constants import Capability, EventCategory, EventStatus
from campushub.core.database import aget_db
from campushub.core.exceptions import CampusHubError
from campushub.core.security import get_current_user, require_capability
from campushub.models.user import User
from campushub.schemas.events import EventCreate, EventResponse, EventUpdate
from campushub.services.ApprovalWorkflow import ApprovalWorkflow

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/events",
    tags=["events"]
)


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    request: EventCreate,
    current_user: User = Depends(require_capability(Capability.event_create)),
    db: AsyncSession = Depends(aget_db)
):
    """
    Create an event.
    - HOD: event is approved immediately
    - Everyone else: event is pending until the required reviewers approve
    """
    try:
        return await ApprovalWorkflow(db).create_event(request.model_dump(), current_user)
    except (HTTPException, CampusHubError):
        raise
    except Exception as e:
        await db.rollback()
        logger.exception(f"Error creating event: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create event"
        )


@router.get("", response_model=List[EventResponse])
async def list_events(
    event_status: Optional[EventStatus] = Query(None, alias="status"),
    organizer_id: Optional[str] = None,
    club_id: Optional[str] = None,
    category: Optional[EventCategory] = None,
    starts_after: Optional[datetime] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    return await ApprovalWorkflow(db).list_events(
        status=event_status,
        organizer_id=organizer_id,
        club_id=club_id,
        category=category,
        starts_after=starts_after,
        skip=skip,
        limit=limit,
    )


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    return await ApprovalWorkflow(db).get_event(event_id)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: str,
    request: EventUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """Edit an event. Moving it in time or place re-runs the location check for live events."""
    changes = request.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No fields to update"
        )
    try:
        return await ApprovalWorkflow(db).update_event(event_id, changes, current_user)
    except (HTTPException, CampusHubError):
        raise
    except Exception as e:
        await db.rollback()
        logger.exception(f"Error updating event {event_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update event"
        )


@router.delete("/{event_id}")
async def delete_event(
    event_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    await ApprovalWorkflow(db).delete_event(event_id, current_user)
    return {"message": "Event deleted successfully", "event_id": event_id}


@router.post("/{event_id}/publish", response_model=EventResponse)
async def publish_event(
    event_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    return await ApprovalWorkflow(db).publish_event(event_id, current_user)


@router.post("/{event_id}/cancel", response_model=EventResponse)
async def cancel_event(
    event_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """Cancel an approved or published event; its venue and equipment bookings are released."""
    return await ApprovalWorkflow(db).cancel_event(event_id, current_user)
