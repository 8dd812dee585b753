"""
Venue / Equipment Availability Service
Answers "is this resource free for [start, end)?" and reserves it atomically.

Every reservation locks the parent venue or equipment row before re-checking
availability, so concurrent requests for the same resource are serialized and
the check and the insert commit together.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import func, select, text, update
from sqlalchemy.ext.asyncio import AsyncSession

from campushub.constants.constants import (
    LIVE_EVENT_STATUSES, BookingKind, BookingStatus, Capability,
)
from campushub.core.config import settings
from campushub.core.exceptions import (
    ForbiddenError, InvalidStateError, NotFoundError, ResourceConflict, ValidationError,
)
from campushub.models.equipment import Equipment, EquipmentBooking
from campushub.models.event import Event
from campushub.models.user import User
from campushub.models.venue import ResourceBooking, Venue
from campushub.utils.check_capability import has_capability
from campushub.utils.intervals import as_naive_utc, find_conflicts, validate_window

logger = logging.getLogger(__name__)

ACTIVE_BOOKING_STATUSES = (BookingStatus.pending, BookingStatus.approved)


@dataclass
class VenueAvailability:
    venue: Venue
    start: datetime
    end: datetime
    available: bool
    conflicting_bookings: List[ResourceBooking] = field(default_factory=list)
    conflicting_events: List[Event] = field(default_factory=list)


@dataclass
class EquipmentAvailability:
    equipment: Equipment
    requested_quantity: int
    start: datetime
    end: datetime
    available: bool
    booked_quantity: int = 0
    remaining_quantity: int = 0
    conflicting_bookings: List[EquipmentBooking] = field(default_factory=list)


def describe_conflicts(bookings, events: List[Event]) -> List[Dict]:
    """Serializable description of what a booking attempt clashed with."""
    titles = {e.event_id: e.title for e in events}
    described = []
    for booking in bookings:
        entry = {
            "booking_id": booking.booking_id,
            "event_id": booking.event_id,
            "event_title": titles.get(booking.event_id),
            "start_time": booking.start_time,
            "end_time": booking.end_time,
        }
        if isinstance(booking, EquipmentBooking):
            entry["quantity"] = booking.quantity
        described.append(entry)
    return described


def describe_events(events: List[Event]) -> List[Dict]:
    return [
        {
            "event_id": e.event_id,
            "event_title": e.title,
            "location": e.location,
            "start_time": e.start_date,
            "end_time": e.end_date,
        }
        for e in events
    ]


class AvailabilityService:
    """Availability checks and atomic reservations for venues and equipment."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== LOOKUPS ====================

    async def _get_venue(self, venue_id: str, lock: bool = False) -> Venue:
        query = select(Venue).where(Venue.venue_id == venue_id)
        if lock:
            query = query.with_for_update()
        venue = (await self.db.execute(query)).scalar_one_or_none()
        if not venue:
            raise NotFoundError("Venue not found")
        return venue

    async def _get_equipment(self, equipment_id: str, lock: bool = False) -> Equipment:
        query = select(Equipment).where(Equipment.equipment_id == equipment_id)
        if lock:
            query = query.with_for_update()
        equipment = (await self.db.execute(query)).scalar_one_or_none()
        if not equipment:
            raise NotFoundError("Equipment not found")
        return equipment

    async def _get_bookable_event(self, event_id: str) -> Event:
        event = (await self.db.execute(
            select(Event).where(Event.event_id == event_id)
        )).scalar_one_or_none()
        if not event:
            raise NotFoundError("Event not found")
        if event.is_terminal:
            raise InvalidStateError(f"Cannot book resources for a {event.status.value} event")
        return event

    async def _events_by_id(self, event_ids) -> List[Event]:
        event_ids = {event_id for event_id in event_ids if event_id}
        if not event_ids:
            return []
        result = await self.db.execute(select(Event).where(Event.event_id.in_(event_ids)))
        return list(result.scalars().all())

    def _ensure_can_book(self, user: User, event: Optional[Event]) -> None:
        if has_capability(user.role, Capability.booking_create):
            return
        if event is not None and event.organizer_id == user.user_id:
            return
        raise ForbiddenError("Only organizers can book venues and equipment")

    async def _approved_venue_bookings(self, venue_id: str, after: datetime) -> List[ResourceBooking]:
        # Bookings that ended before the window can never overlap it
        result = await self.db.execute(
            select(ResourceBooking).where(
                ResourceBooking.venue_id == venue_id,
                ResourceBooking.status == BookingStatus.approved,
                ResourceBooking.end_time > after,
            ).order_by(ResourceBooking.start_time)
        )
        return list(result.scalars().all())

    async def _approved_equipment_bookings(self, equipment_id: str, after: datetime) -> List[EquipmentBooking]:
        result = await self.db.execute(
            select(EquipmentBooking).where(
                EquipmentBooking.equipment_id == equipment_id,
                EquipmentBooking.status == BookingStatus.approved,
                EquipmentBooking.end_time > after,
            ).order_by(EquipmentBooking.start_time)
        )
        return list(result.scalars().all())

    # ==================== AVAILABILITY ====================

    async def venue_availability(
        self,
        venue_id: str,
        start: datetime,
        end: datetime,
        lock: bool = False,
        exclude_booking_id: Optional[str] = None,
    ) -> VenueAvailability:
        """Detailed venue check: only approved bookings block, and the manual flag must be on."""
        start, end = as_naive_utc(start), as_naive_utc(end)
        validate_window(start, end)

        venue = await self._get_venue(venue_id, lock=lock)
        bookings = [
            b for b in await self._approved_venue_bookings(venue_id, start)
            if b.booking_id != exclude_booking_id
        ]
        conflicts = find_conflicts(start, end, bookings)
        events = await self._events_by_id(b.event_id for b in conflicts)

        return VenueAvailability(
            venue=venue,
            start=start,
            end=end,
            available=bool(venue.is_available) and not conflicts,
            conflicting_bookings=conflicts,
            conflicting_events=events,
        )

    async def check_venue_availability(self, venue_id: str, start: datetime, end: datetime) -> bool:
        return (await self.venue_availability(venue_id, start, end)).available

    async def equipment_availability(
        self,
        equipment_id: str,
        quantity: int,
        start: datetime,
        end: datetime,
        lock: bool = False,
        exclude_booking_id: Optional[str] = None,
    ) -> EquipmentAvailability:
        """Detailed pool check.

        Units withdrawn from `available_quantity` fail the request outright;
        otherwise every approved booking overlapping the window draws from the
        same pool and the remainder must cover the request.
        """
        start, end = as_naive_utc(start), as_naive_utc(end)
        validate_window(start, end)
        if quantity is None or quantity <= 0:
            raise ValidationError("Requested quantity must be a positive number")

        equipment = await self._get_equipment(equipment_id, lock=lock)
        if equipment.available_quantity < quantity:
            return EquipmentAvailability(
                equipment=equipment,
                requested_quantity=quantity,
                start=start,
                end=end,
                available=False,
                remaining_quantity=equipment.available_quantity,
            )

        bookings = [
            b for b in await self._approved_equipment_bookings(equipment_id, start)
            if b.booking_id != exclude_booking_id
        ]
        conflicts = find_conflicts(start, end, bookings)
        booked = sum(b.quantity for b in conflicts)
        remaining = equipment.available_quantity - booked

        return EquipmentAvailability(
            equipment=equipment,
            requested_quantity=quantity,
            start=start,
            end=end,
            available=remaining >= quantity,
            booked_quantity=booked,
            remaining_quantity=max(remaining, 0),
            conflicting_bookings=conflicts,
        )

    async def check_equipment_availability(
        self, equipment_id: str, quantity: int, start: datetime, end: datetime
    ) -> bool:
        return (await self.equipment_availability(equipment_id, quantity, start, end)).available

    # ==================== RESERVATIONS ====================

    def _initial_booking_status(self) -> BookingStatus:
        return BookingStatus.approved if settings.BOOKINGS_AUTO_APPROVE else BookingStatus.pending

    async def _assert_venue_free(self, venue_id, start, end, exclude_booking_id=None) -> Venue:
        availability = await self.venue_availability(
            venue_id, start, end, lock=True, exclude_booking_id=exclude_booking_id
        )
        venue = availability.venue
        if availability.conflicting_bookings:
            logger.info(
                f"Venue conflict on {venue.name}: {len(availability.conflicting_bookings)} booking(s) overlap "
                f"{availability.start} - {availability.end}"
            )
            raise ResourceConflict(
                f"Venue '{venue.name}' is already booked during this time",
                conflicts=describe_conflicts(availability.conflicting_bookings, availability.conflicting_events),
            )
        if not venue.is_available:
            raise ResourceConflict(f"Venue '{venue.name}' is currently unavailable")
        return venue

    async def _assert_equipment_free(self, equipment_id, quantity, start, end, exclude_booking_id=None) -> Equipment:
        availability = await self.equipment_availability(
            equipment_id, quantity, start, end, lock=True, exclude_booking_id=exclude_booking_id
        )
        equipment = availability.equipment
        if not availability.available:
            events = await self._events_by_id(b.event_id for b in availability.conflicting_bookings)
            logger.info(
                f"Equipment conflict on {equipment.name}: requested {quantity}, "
                f"{availability.remaining_quantity} of {equipment.available_quantity} free"
            )
            raise ResourceConflict(
                f"Only {availability.remaining_quantity} unit(s) of '{equipment.name}' are free during this time",
                conflicts=describe_conflicts(availability.conflicting_bookings, events),
                requested_quantity=quantity,
                remaining_quantity=availability.remaining_quantity,
            )
        return equipment

    async def create_resource_booking(
        self,
        venue_id: str,
        user: User,
        start_time: datetime,
        end_time: datetime,
        event_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> ResourceBooking:
        """Reserve a venue. Raises ResourceConflict (and commits nothing) when the window is taken."""
        start_time, end_time = as_naive_utc(start_time), as_naive_utc(end_time)
        validate_window(start_time, end_time, "booking window")

        try:
            event = await self._get_bookable_event(event_id) if event_id else None
            self._ensure_can_book(user, event)
            venue = await self._assert_venue_free(venue_id, start_time, end_time)

            booking = ResourceBooking(
                venue_id=venue_id,
                event_id=event_id,
                user_id=user.user_id,
                start_time=start_time,
                end_time=end_time,
                status=self._initial_booking_status(),
                notes=notes,
            )
            self.db.add(booking)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"Venue {venue.name} booked {start_time} - {end_time} ({booking.status.value}) by {user.user_id}")
        return booking

    async def create_equipment_booking(
        self,
        equipment_id: str,
        user: User,
        quantity: int,
        start_time: datetime,
        end_time: datetime,
        event_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> EquipmentBooking:
        """Reserve `quantity` units from an equipment pool."""
        start_time, end_time = as_naive_utc(start_time), as_naive_utc(end_time)
        validate_window(start_time, end_time, "booking window")
        if quantity is None or quantity <= 0:
            raise ValidationError("Booking quantity must be a positive number")

        try:
            event = await self._get_bookable_event(event_id) if event_id else None
            self._ensure_can_book(user, event)
            equipment = await self._assert_equipment_free(equipment_id, quantity, start_time, end_time)

            booking = EquipmentBooking(
                equipment_id=equipment_id,
                event_id=event_id,
                user_id=user.user_id,
                quantity=quantity,
                start_time=start_time,
                end_time=end_time,
                status=self._initial_booking_status(),
                notes=notes,
            )
            self.db.add(booking)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            f"Equipment {equipment.name} x{quantity} booked {start_time} - {end_time} "
            f"({booking.status.value}) by {user.user_id}"
        )
        return booking

    async def update_booking_status(
        self, kind: BookingKind, booking_id: str, new_status: BookingStatus, reviewer: User
    ):
        """Approve (re-validated under lock) or reject a venue/equipment booking."""
        if not has_capability(reviewer.role, Capability.booking_review):
            raise ForbiddenError("Only inventory staff can review bookings")
        if new_status == BookingStatus.pending:
            raise ValidationError("A booking can only be approved or rejected")

        model = ResourceBooking if kind == BookingKind.venue else EquipmentBooking
        try:
            booking = (await self.db.execute(
                select(model).where(model.booking_id == booking_id)
            )).scalar_one_or_none()
            if not booking:
                raise NotFoundError("Booking not found")

            if booking.status == new_status:
                return booking

            if new_status == BookingStatus.approved:
                if booking.event_id:
                    await self._get_bookable_event(booking.event_id)
                if kind == BookingKind.venue:
                    await self._assert_venue_free(
                        booking.venue_id, booking.start_time, booking.end_time, exclude_booking_id=booking.booking_id
                    )
                else:
                    await self._assert_equipment_free(
                        booking.equipment_id, booking.quantity, booking.start_time, booking.end_time,
                        exclude_booking_id=booking.booking_id,
                    )

            booking.status = new_status
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"{kind.value.capitalize()} booking {booking_id} -> {new_status.value} by {reviewer.user_id}")
        return booking

    async def release_event_bookings(self, event_id: str) -> None:
        """Reject every active booking of an event. Runs inside the caller's transaction."""
        for model in (ResourceBooking, EquipmentBooking):
            await self.db.execute(
                update(model)
                .where(model.event_id == event_id, model.status.in_(ACTIVE_BOOKING_STATUSES))
                .values(status=BookingStatus.rejected)
            )

    async def list_bookings(
        self,
        kind: Optional[BookingKind] = None,
        resource_id: Optional[str] = None,
        event_id: Optional[str] = None,
        status: Optional[BookingStatus] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Dict[str, list]:
        """Venue and equipment bookings, optionally restricted to those overlapping [start, end)."""
        start, end = as_naive_utc(start), as_naive_utc(end)
        if start is not None and end is not None:
            validate_window(start, end)

        results = {}
        for booking_kind, model, resource_column in (
            (BookingKind.venue, ResourceBooking, ResourceBooking.venue_id),
            (BookingKind.equipment, EquipmentBooking, EquipmentBooking.equipment_id),
        ):
            if kind is not None and kind != booking_kind:
                continue
            query = select(model).order_by(model.start_time)
            if resource_id:
                query = query.where(resource_column == resource_id)
            if event_id:
                query = query.where(model.event_id == event_id)
            if status:
                query = query.where(model.status == status)
            bookings = list((await self.db.execute(query)).scalars().all())
            if start is not None and end is not None:
                bookings = find_conflicts(start, end, bookings)
            results[booking_kind.value] = bookings
        return results

    # ==================== EVENT LOCATIONS ====================

    async def check_location_conflicts(
        self,
        location: Optional[str],
        start: datetime,
        end: datetime,
        exclude_event_id: Optional[str] = None,
    ) -> List[Event]:
        """Approved/published events that use the same free-text location in an overlapping window."""
        if not location or not location.strip():
            return []
        start, end = as_naive_utc(start), as_naive_utc(end)

        query = select(Event).where(
            func.lower(func.trim(Event.location)) == location.strip().lower(),
            Event.status.in_(LIVE_EVENT_STATUSES),
            Event.end_date > start,
        )
        if exclude_event_id:
            query = query.where(Event.event_id != exclude_event_id)
        candidates = list((await self.db.execute(query)).scalars().all())
        return find_conflicts(start, end, candidates, window=lambda e: (e.start_date, e.end_date))

    async def lock_location(self, location: Optional[str]) -> None:
        """Serialize location checks for one free-text location until the transaction ends.

        Event rows are locked one at a time, so two events claiming the same
        place need a shared lock. SQLite transactions already hold the write
        lock (BEGIN IMMEDIATE); on PostgreSQL a transaction-scoped advisory
        lock keyed on the normalized location is taken.
        """
        if not location or not location.strip():
            return
        if self.db.get_bind().dialect.name != "postgresql":
            return
        await self.db.execute(
            text("SELECT pg_advisory_xact_lock(hashtext(:key))"),
            {"key": f"location:{location.strip().lower()}"},
        )

    async def ensure_location_free(
        self,
        location: Optional[str],
        start: datetime,
        end: datetime,
        exclude_event_id: Optional[str] = None,
    ) -> None:
        await self.lock_location(location)
        clashes = await self.check_location_conflicts(location, start, end, exclude_event_id)
        if clashes:
            raise ResourceConflict(
                f"Venue conflict: {location.strip()} is already booked during this time",
                conflicts=describe_events(clashes),
            )
