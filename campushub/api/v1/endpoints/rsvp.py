"""RSVP router: registration, door check-in and badges."""

import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from campushub.constants.constants import VerificationStatus
from campushub.core.config import settings
from campushub.core.database import aget_db
from campushub.core.exceptions import CampusHubError, ForbiddenError
from campushub.core.ratelimit import limiter
from campushub.core.security import get_current_user
from campushub.models.event import Event
from campushub.models.user import User
from campushub.schemas.rsvp import (
    AttendeeRsvpResponse, CheckInResponse, CheckInSummaryResponse, ManualCheckInRequest,
    MyRsvpResponse, RsvpQRCodeResponse, RsvpRequest, RsvpResponse, ScanRequest,
)
from campushub.services.RsvpLedger import CheckInResult, RsvpLedger
from campushub.services.RsvpQRCodeGenerator import RsvpQRCodeGenerator
from campushub.utils.check_capability import can_check_in

logger = logging.getLogger(__name__)

router = APIRouter(tags=["rsvp"])

qr_generator = RsvpQRCodeGenerator()


def _check_in_response(result: CheckInResult) -> dict:
    attendee = result.attendee
    if result.already_checked_in:
        message = f"{attendee.full_name} is already checked in"
    else:
        message = f"{attendee.full_name} checked in successfully"
    return {
        "already_checked_in": result.already_checked_in,
        "message": message,
        "rsvp": result.rsvp,
        "attendee_name": attendee.full_name,
        "attendee_email": attendee.email,
    }


@router.post("/events/{event_id}/rsvp", response_model=RsvpResponse)
async def rsvp_to_event(
    event_id: str,
    request: RsvpRequest,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """
    Register for an event, or update an existing registration.
    The RSVP number is kept across updates.
    """
    try:
        rsvp, created = await RsvpLedger(db).rsvp(
            event_id,
            current_user,
            status=request.status,
            registration_type=request.registration_type,
            form_data=request.form_data,
        )
    except (HTTPException, CampusHubError):
        raise
    except Exception as e:
        await db.rollback()
        logger.exception(f"Error saving RSVP for event {event_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save RSVP"
        )
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return rsvp


@router.get("/events/{event_id}/rsvps", response_model=List[AttendeeRsvpResponse])
async def list_event_rsvps(
    event_id: str,
    verification_status: Optional[VerificationStatus] = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    rows = await RsvpLedger(db).list_rsvps(event_id, current_user, verification_status)
    return [
        {
            **RsvpResponse.model_validate(rsvp).model_dump(),
            "attendee_name": user.full_name,
            "attendee_email": user.email,
        }
        for rsvp, user in rows
    ]


@router.get("/events/{event_id}/checkins", response_model=CheckInSummaryResponse)
async def check_in_summary(
    event_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    return await RsvpLedger(db).check_in_summary(event_id, current_user)


@router.post("/rsvp/scan", response_model=CheckInResponse)
@limiter.limit(settings.SCAN_RATE_LIMIT)
async def scan_rsvp(
    request: Request,
    payload: ScanRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """
    Check an attendee in by RSVP number.
    A repeated scan succeeds with already_checked_in=true.
    """
    result = await RsvpLedger(db).scan_rsvp(payload.rsvp_number, payload.event_id, current_user)
    return _check_in_response(result)


@router.post("/rsvp/manual-checkin", response_model=CheckInResponse)
async def manual_check_in(
    payload: ManualCheckInRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """Check an attendee in by email when the code cannot be scanned."""
    result = await RsvpLedger(db).manual_check_in(payload.email, payload.event_id, current_user)
    return _check_in_response(result)


@router.get("/rsvp/me", response_model=List[MyRsvpResponse])
async def my_rsvps(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    rows = await RsvpLedger(db).my_rsvps(current_user)
    return [
        {
            **RsvpResponse.model_validate(rsvp).model_dump(),
            "event_title": event.title,
            "event_start_date": event.start_date,
            "event_location": event.location,
        }
        for rsvp, event in rows
    ]


@router.post("/rsvp/{rsvp_id}/verify", response_model=RsvpResponse)
async def verify_registration(
    rsvp_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    return await RsvpLedger(db).verify_registration(rsvp_id, current_user)


@router.get("/rsvp/{rsvp_number}/qr", response_model=RsvpQRCodeResponse)
async def rsvp_qr_code(
    rsvp_number: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(aget_db)
):
    """Badge QR code for an RSVP. Visible to the attendee and to event staff."""
    rsvp = await RsvpLedger(db).get_by_number(rsvp_number)
    if rsvp.user_id != current_user.user_id:
        event = await db.get(Event, rsvp.event_id)
        if not can_check_in(current_user, event):
            raise ForbiddenError("You cannot view this RSVP")

    return {
        "rsvp_number": rsvp.rsvp_number,
        "event_id": rsvp.event_id,
        "qr_code": qr_generator.generate_qr_code_data_uri(rsvp.rsvp_number, rsvp.event_id),
    }
