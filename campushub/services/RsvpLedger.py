"""
RSVP / Check-in Ledger
Registrations for events, capacity enforcement and door check-in.

One row per (event, user). Re-RSVPing updates the row in place and keeps its
rsvp_number. Check-in (by scanned code or by email) always goes through the
same transition: pending/verified -> attended, never back.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from campushub.constants.constants import RegistrationType, RsvpStatus, VerificationStatus
from campushub.core.config import settings
from campushub.core.exceptions import (
    CapacityExceeded, ConflictError, ForbiddenError, InvalidStateError, NotFoundError,
)
from campushub.models.event import Event
from campushub.models.rsvp import EventRsvp
from campushub.models.user import User
from campushub.services.RsvpCodeGenerator import RsvpCodeGenerator, normalize_rsvp_number
from campushub.utils.check_capability import can_check_in

logger = logging.getLogger(__name__)

# Same message for an unknown code and a code from another event
RSVP_NOT_FOUND = "RSVP not found for this event"


@dataclass
class CheckInResult:
    rsvp: EventRsvp
    attendee: User
    already_checked_in: bool


def counted_statuses() -> List[RsvpStatus]:
    """RSVP statuses that occupy a capacity slot."""
    return [RsvpStatus(status) for status in settings.RSVP_COUNTED_STATUSES]


class RsvpLedger:

    def __init__(self, db: AsyncSession, code_generator: Optional[RsvpCodeGenerator] = None):
        self.db = db
        self.code_generator = code_generator or RsvpCodeGenerator()

    async def _get_event(self, event_id: str, lock: bool = False, detail: str = "Event not found") -> Event:
        query = select(Event).where(Event.event_id == event_id)
        if lock:
            query = query.with_for_update()
        event = (await self.db.execute(query)).scalar_one_or_none()
        if not event:
            raise NotFoundError(detail)
        return event

    async def _count_slots(self, event_id: str) -> int:
        return (await self.db.execute(
            select(func.count()).select_from(EventRsvp).where(
                EventRsvp.event_id == event_id,
                EventRsvp.status.in_(counted_statuses()),
            )
        )).scalar_one()

    # ==================== REGISTRATION ====================

    async def rsvp(
        self,
        event_id: str,
        user: User,
        status: RsvpStatus = RsvpStatus.attending,
        registration_type: RegistrationType = RegistrationType.audience,
        form_data: Optional[Dict] = None,
    ) -> Tuple[EventRsvp, bool]:
        """Create or update `user`'s RSVP. Returns the row and whether it was created.

        The event row is locked for the whole check-and-write so concurrent
        registrations cannot push the event past max_attendees.
        """
        status = RsvpStatus(status)
        user_id = user.user_id
        try:
            event = await self._get_event(event_id, lock=True)

            if event.division_restriction and user.division != event.division_restriction:
                raise ForbiddenError(f"This event is restricted to {event.division_restriction} students")
            if event.department_restriction and user.department != event.department_restriction:
                raise ForbiddenError(f"This event is restricted to the {event.department_restriction} department")

            if not event.is_live:
                raise InvalidStateError(f"Event is not open for registration (status: {event.status.value})")
            if event.registration_closed(datetime.utcnow()):
                raise InvalidStateError("Registration deadline has passed")

            existing = (await self.db.execute(
                select(EventRsvp).where(
                    EventRsvp.event_id == event_id,
                    EventRsvp.user_id == user.user_id,
                )
            )).scalar_one_or_none()

            counted = counted_statuses()
            holds_slot = existing is not None and existing.status in counted
            if event.max_attendees is not None and status in counted and not holds_slot:
                taken = await self._count_slots(event_id)
                if taken >= event.max_attendees:
                    raise CapacityExceeded(
                        "Event is at full capacity",
                        max_attendees=event.max_attendees,
                        registered=taken,
                    )

            created = existing is None
            if existing:
                existing.status = status
                existing.registration_type = registration_type
                if form_data is not None:
                    existing.form_data = form_data
                rsvp = existing
            else:
                rsvp = EventRsvp(
                    event_id=event_id,
                    user_id=user.user_id,
                    status=status,
                    registration_type=registration_type,
                    form_data=form_data,
                    rsvp_number=await self.code_generator.generate_unique(self.db),
                )
                self.db.add(rsvp)

            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"RSVP constraint violation for event {event_id}, user {user_id}: {e.orig}")
            raise ConflictError("An RSVP for this event already exists, please retry")
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            f"RSVP {'created' if created else 'updated'}: {rsvp.rsvp_number} "
            f"event={event_id} user={user_id} status={status.value}"
        )
        return rsvp, created

    # ==================== CHECK-IN ====================

    async def _check_in(self, rsvp: EventRsvp, staff: User) -> CheckInResult:
        already = rsvp.is_checked_in
        if not already:
            rsvp.verification_status = VerificationStatus.attended
            rsvp.checked_in_at = datetime.utcnow()
            rsvp.checked_in_by = staff.user_id

        attendee = (await self.db.execute(
            select(User).where(User.user_id == rsvp.user_id)
        )).scalar_one()
        await self.db.commit()

        if already:
            logger.info(f"Duplicate check-in for {rsvp.rsvp_number} by {staff.user_id}")
        else:
            logger.info(f"Checked in {rsvp.rsvp_number} ({attendee.email}) by {staff.user_id}")
        return CheckInResult(rsvp=rsvp, attendee=attendee, already_checked_in=already)

    async def _event_for_check_in(self, event_id: str, staff: User, detail: str) -> Event:
        event = await self._get_event(event_id, detail=detail)
        if not can_check_in(staff, event):
            raise ForbiddenError("Only event staff can check attendees in")
        if event.is_terminal:
            raise InvalidStateError(f"Cannot check in to a {event.status.value} event")
        return event

    async def scan_rsvp(self, rsvp_number: str, event_id: str, staff: User) -> CheckInResult:
        """Check in by scanned or typed code."""
        code = normalize_rsvp_number(rsvp_number)
        try:
            await self._event_for_check_in(event_id, staff, RSVP_NOT_FOUND)
            rsvp = (await self.db.execute(
                select(EventRsvp)
                .where(EventRsvp.rsvp_number == code, EventRsvp.event_id == event_id)
                .with_for_update()
            )).scalar_one_or_none()
            if not rsvp:
                raise NotFoundError(RSVP_NOT_FOUND)
            return await self._check_in(rsvp, staff)
        except Exception:
            await self.db.rollback()
            raise

    async def manual_check_in(self, email: str, event_id: str, staff: User) -> CheckInResult:
        """Check in by attendee email, for lost or unreadable codes."""
        try:
            await self._event_for_check_in(event_id, staff, "Event not found")
            attendee = (await self.db.execute(
                select(User).where(func.lower(User.email) == email.strip().lower())
            )).scalar_one_or_none()
            rsvp = None
            if attendee:
                rsvp = (await self.db.execute(
                    select(EventRsvp)
                    .where(EventRsvp.event_id == event_id, EventRsvp.user_id == attendee.user_id)
                    .with_for_update()
                )).scalar_one_or_none()
            if not rsvp:
                raise NotFoundError("No RSVP found for this email")
            return await self._check_in(rsvp, staff)
        except Exception:
            await self.db.rollback()
            raise

    async def verify_registration(self, rsvp_id: str, staff: User) -> EventRsvp:
        """Mark a pending registration as verified. Attended registrations are left as they are."""
        try:
            rsvp = (await self.db.execute(
                select(EventRsvp).where(EventRsvp.rsvp_id == rsvp_id).with_for_update()
            )).scalar_one_or_none()
            if not rsvp:
                raise NotFoundError("RSVP not found")
            event = await self._get_event(rsvp.event_id)
            if not can_check_in(staff, event):
                raise ForbiddenError("Only event staff can verify registrations")

            verified = rsvp.verification_status == VerificationStatus.pending
            if verified:
                rsvp.verification_status = VerificationStatus.verified
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        if verified:
            logger.info(f"Registration verified: {rsvp.rsvp_number} by {staff.user_id}")
        return rsvp

    # ==================== QUERIES ====================

    async def get_by_number(self, rsvp_number: str) -> EventRsvp:
        rsvp = (await self.db.execute(
            select(EventRsvp).where(EventRsvp.rsvp_number == normalize_rsvp_number(rsvp_number))
        )).scalar_one_or_none()
        if not rsvp:
            raise NotFoundError("RSVP not found")
        return rsvp

    async def list_rsvps(
        self,
        event_id: str,
        staff: User,
        verification_status: Optional[VerificationStatus] = None,
    ) -> List[Tuple[EventRsvp, User]]:
        event = await self._get_event(event_id)
        if not can_check_in(staff, event):
            raise ForbiddenError("Only event staff can view registrations")

        query = (
            select(EventRsvp, User)
            .join(User, User.user_id == EventRsvp.user_id)
            .where(EventRsvp.event_id == event_id)
            .order_by(EventRsvp.created_at)
        )
        if verification_status:
            query = query.where(EventRsvp.verification_status == verification_status)
        return [(rsvp, user) for rsvp, user in (await self.db.execute(query)).all()]

    async def check_in_summary(self, event_id: str, staff: User) -> Dict:
        event = await self._get_event(event_id)
        if not can_check_in(staff, event):
            raise ForbiddenError("Only event staff can view check-in progress")

        by_status = dict((await self.db.execute(
            select(EventRsvp.status, func.count())
            .where(EventRsvp.event_id == event_id)
            .group_by(EventRsvp.status)
        )).all())
        by_verification = dict((await self.db.execute(
            select(EventRsvp.verification_status, func.count())
            .where(EventRsvp.event_id == event_id)
            .group_by(EventRsvp.verification_status)
        )).all())

        registered = sum(by_status.get(s, 0) for s in counted_statuses())
        return {
            "event_id": event_id,
            "max_attendees": event.max_attendees,
            "registered": registered,
            "remaining": None if event.max_attendees is None else max(event.max_attendees - registered, 0),
            "attending": by_status.get(RsvpStatus.attending, 0),
            "maybe": by_status.get(RsvpStatus.maybe, 0),
            "not_attending": by_status.get(RsvpStatus.not_attending, 0),
            "verified": by_verification.get(VerificationStatus.verified, 0),
            "attended": by_verification.get(VerificationStatus.attended, 0),
        }

    async def my_rsvps(self, user: User) -> List[Tuple[EventRsvp, Event]]:
        result = await self.db.execute(
            select(EventRsvp, Event)
            .join(Event, Event.event_id == EventRsvp.event_id)
            .where(EventRsvp.user_id == user.user_id)
            .order_by(Event.start_date)
        )
        return [(rsvp, event) for rsvp, event in result.all()]
