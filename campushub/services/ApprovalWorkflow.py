"""
Event Approval Workflow
Multi-stage review of events before they can hold bookings and take RSVPs.

    pending -> approved -> published
       |          |           |
       v          v           v
    rejected   cancelled   cancelled

Each required reviewer stage gets one EventApproval row. A single rejection
vetoes the event; the event is approved once the ApprovalPolicy is satisfied.
The event row is locked for every decision so concurrent reviewers see each
other's verdicts.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from campushub.constants.constants import (
    APPROVAL_STAGE_DELEGATES, LIVE_EVENT_STATUSES, ApprovalStatus, BookingStatus,
    Capability, EventCategory, EventStatus, UserRole,
)
from campushub.core.config import settings
from campushub.core.exceptions import (
    ConflictError, ForbiddenError, InvalidStateError, NotFoundError, ValidationError,
)
from campushub.models.equipment import EquipmentBooking
from campushub.models.event import Event, EventApproval
from campushub.models.rsvp import EventRsvp
from campushub.models.user import User
from campushub.models.venue import ResourceBooking
from campushub.services.AvailabilityService import ACTIVE_BOOKING_STATUSES, AvailabilityService
from campushub.utils.check_capability import can_manage_event, ensure_capability, has_capability
from campushub.utils.intervals import as_naive_utc, validate_window

logger = logging.getLogger(__name__)

# Event columns an edit may change but never set to null
NON_NULLABLE_EVENT_FIELDS = ("title", "category", "start_date", "end_date", "event_type", "equipment_required")


class ApprovalPolicy:
    """Which stages an event needs, and when their verdicts add up to approval."""

    def __init__(
        self,
        required_roles: Iterable[str],
        budget_roles: Iterable[str] = (),
        quorum: Optional[int] = None,
    ):
        self.required_roles = [UserRole(role) for role in required_roles]
        self.budget_roles = [UserRole(role) for role in budget_roles]
        self.quorum = quorum

    @classmethod
    def from_settings(cls) -> "ApprovalPolicy":
        return cls(
            settings.APPROVAL_REQUIRED_ROLES,
            settings.APPROVAL_BUDGET_ROLES,
            settings.APPROVAL_QUORUM,
        )

    def required_stages(self, event: Event) -> List[UserRole]:
        roles = list(self.required_roles)
        if event.requests_budget:
            roles.extend(self.budget_roles)
        stages = []
        for role in roles:
            if role not in stages:
                stages.append(role)
        return stages

    def is_rejected(self, approvals: Iterable[EventApproval]) -> bool:
        return any(a.status == ApprovalStatus.rejected for a in approvals)

    def is_satisfied(self, approvals: Iterable[EventApproval]) -> bool:
        approvals = list(approvals)
        if self.is_rejected(approvals):
            return False
        approved = sum(1 for a in approvals if a.status == ApprovalStatus.approved)
        if self.quorum is None:
            return approved == len(approvals)
        return approved >= min(self.quorum, len(approvals))


class ApprovalWorkflow:
    """Event lifecycle: creation, reviewer decisions, publishing, cancellation and CRUD."""

    def __init__(self, db: AsyncSession, policy: Optional[ApprovalPolicy] = None):
        self.db = db
        self.policy = policy or ApprovalPolicy.from_settings()
        self.availability = AvailabilityService(db)

    # ==================== LOOKUPS ====================

    async def get_event(self, event_id: str, lock: bool = False) -> Event:
        query = select(Event).where(Event.event_id == event_id)
        if lock:
            query = query.with_for_update()
        event = (await self.db.execute(query)).scalar_one_or_none()
        if not event:
            raise NotFoundError("Event not found")
        return event

    async def list_approvals(self, event_id: str) -> List[EventApproval]:
        await self.get_event(event_id)
        return await self._approvals(event_id)

    async def _approvals(self, event_id: str) -> List[EventApproval]:
        result = await self.db.execute(
            select(EventApproval)
            .where(EventApproval.event_id == event_id)
            .order_by(EventApproval.created_at, EventApproval.approval_id)
        )
        return list(result.scalars().all())

    async def list_events(
        self,
        status: Optional[EventStatus] = None,
        organizer_id: Optional[str] = None,
        club_id: Optional[str] = None,
        category: Optional[EventCategory] = None,
        starts_after: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Event]:
        query = select(Event).order_by(Event.start_date)
        if status:
            query = query.where(Event.status == status)
        if organizer_id:
            query = query.where(Event.organizer_id == organizer_id)
        if club_id:
            query = query.where(Event.club_id == club_id)
        if category:
            query = query.where(Event.category == category)
        if starts_after:
            query = query.where(Event.start_date >= as_naive_utc(starts_after))
        result = await self.db.execute(query.offset(skip).limit(limit))
        return list(result.scalars().all())

    async def pending_approvals_for(self, user: User) -> List[Tuple[EventApproval, Event]]:
        """Undecided stages on pending events that `user` is allowed to sign."""
        stages = APPROVAL_STAGE_DELEGATES.get(UserRole(user.role), [])
        if not stages:
            return []
        result = await self.db.execute(
            select(EventApproval, Event)
            .join(Event, Event.event_id == EventApproval.event_id)
            .where(
                Event.status == EventStatus.pending,
                EventApproval.status == ApprovalStatus.pending,
                EventApproval.approver_role.in_(stages),
            )
            .order_by(Event.start_date)
        )
        return [(approval, event) for approval, event in result.all()]

    # ==================== CREATION ====================

    async def create_event(self, data: dict, organizer: User) -> Event:
        """Create an event.

        Roles allowed to bypass review get an approved event straight away;
        everyone else gets a pending event with one approval row per stage.
        """
        ensure_capability(organizer, Capability.event_create, "You are not allowed to create events")

        data = dict(data)
        for key in ("start_date", "end_date", "registration_deadline"):
            if data.get(key) is not None:
                data[key] = as_naive_utc(data[key])
        validate_window(data.get("start_date"), data.get("end_date"), "event window")
        if data.get("max_attendees") is not None and data["max_attendees"] <= 0:
            raise ValidationError("max_attendees must be a positive number")
        data.pop("status", None)
        data.pop("requires_approval", None)

        bypass = has_capability(organizer.role, Capability.event_bypass_approval)
        event = Event(
            **data,
            organizer_id=organizer.user_id,
            status=EventStatus.approved if bypass else EventStatus.pending,
            requires_approval=not bypass,
        )
        stages = [] if bypass else self.policy.required_stages(event)
        if not bypass and not stages:
            event.status = EventStatus.approved

        try:
            await self.availability.ensure_location_free(event.location, event.start_date, event.end_date)

            self.db.add(event)
            await self.db.flush()
            for role in stages:
                self.db.add(EventApproval(event_id=event.event_id, approver_role=role))
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            f"Event created: {event.title} ({event.event_id}) by {organizer.user_id} "
            f"status={event.status.value} stages={[s.value for s in stages]}"
        )
        return event

    # ==================== DECISIONS ====================

    async def submit_decision(
        self,
        event_id: str,
        approver: User,
        decision: ApprovalStatus,
        comments: Optional[str] = None,
        stage: Optional[UserRole] = None,
    ) -> Tuple[Event, EventApproval]:
        """Record one reviewer's verdict and move the event if the verdicts are conclusive."""
        if decision == ApprovalStatus.pending:
            raise ValidationError("Decision must be approved or rejected")
        ensure_capability(approver, Capability.event_approve, "You are not allowed to review events")

        delegates = APPROVAL_STAGE_DELEGATES.get(UserRole(approver.role), [])
        if stage is not None and UserRole(stage) not in delegates:
            raise ForbiddenError(f"You cannot sign the {UserRole(stage).value} stage")
        signable = [UserRole(stage)] if stage is not None else delegates

        try:
            event = await self.get_event(event_id, lock=True)
            if event.status != EventStatus.pending:
                raise InvalidStateError(f"Event is already {event.status.value}")

            approvals = await self._approvals(event_id)
            by_stage = {a.approver_role: a for a in approvals}
            candidates = [by_stage[role] for role in signable if role in by_stage]
            if not candidates:
                raise ForbiddenError("This event has no approval stage for your role")
            undecided = [a for a in candidates if a.status == ApprovalStatus.pending]
            if not undecided:
                raise InvalidStateError("This approval stage has already been decided")

            approval = undecided[0]
            approval.status = decision
            approval.approver_id = approver.user_id
            approval.comments = comments
            approval.decided_at = datetime.utcnow()

            if decision == ApprovalStatus.rejected:
                event.status = EventStatus.rejected
            elif self.policy.is_satisfied(approvals):
                await self.availability.ensure_location_free(
                    event.location, event.start_date, event.end_date, exclude_event_id=event.event_id
                )
                event.status = EventStatus.approved

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(
            f"Approval {approval.approver_role.value}={decision.value} on event {event_id} "
            f"by {approver.user_id}; event is {event.status.value}"
        )
        return event, approval

    async def approve(self, event_id: str, approver: User, comments: Optional[str] = None,
                      stage: Optional[UserRole] = None):
        return await self.submit_decision(event_id, approver, ApprovalStatus.approved, comments, stage)

    async def reject(self, event_id: str, approver: User, comments: Optional[str] = None,
                     stage: Optional[UserRole] = None):
        return await self.submit_decision(event_id, approver, ApprovalStatus.rejected, comments, stage)

    # ==================== LIFECYCLE ====================

    async def publish_event(self, event_id: str, user: User) -> Event:
        try:
            event = await self.get_event(event_id, lock=True)
            if not can_manage_event(user, event):
                raise ForbiddenError("Only the organizer can publish this event")
            if event.status != EventStatus.approved:
                raise InvalidStateError(f"Only approved events can be published (event is {event.status.value})")
            event.status = EventStatus.published
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"Event published: {event.event_id} by {user.user_id}")
        return event

    async def cancel_event(self, event_id: str, user: User) -> Event:
        """Cancel an approved/published event and release its venue and equipment bookings."""
        try:
            event = await self.get_event(event_id, lock=True)
            if not can_manage_event(user, event):
                raise ForbiddenError("Only the organizer can cancel this event")
            if event.status not in LIVE_EVENT_STATUSES:
                raise InvalidStateError(f"Cannot cancel a {event.status.value} event")
            event.status = EventStatus.cancelled
            await self.availability.release_event_bookings(event.event_id)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"Event cancelled: {event.event_id} by {user.user_id}")
        return event

    # ==================== EDITS ====================

    async def update_event(self, event_id: str, changes: dict, user: User) -> Event:
        """Edit event details. Status only moves through the workflow operations."""
        if "status" in changes or "requires_approval" in changes:
            raise ValidationError("Event status cannot be edited directly")
        cleared = [key for key in NON_NULLABLE_EVENT_FIELDS if key in changes and changes[key] is None]
        if cleared:
            raise ValidationError(f"These fields cannot be cleared: {', '.join(cleared)}", fields=cleared)
        changes = dict(changes)
        for key in ("start_date", "end_date", "registration_deadline"):
            if changes.get(key) is not None:
                changes[key] = as_naive_utc(changes[key])

        try:
            event = await self.get_event(event_id, lock=True)
            if not can_manage_event(user, event):
                raise ForbiddenError("Only the organizer can edit this event")
            if event.is_terminal:
                raise InvalidStateError(f"Cannot edit a {event.status.value} event")

            start = changes.get("start_date", event.start_date)
            end = changes.get("end_date", event.end_date)
            validate_window(start, end, "event window")
            if changes.get("max_attendees") is not None and changes["max_attendees"] <= 0:
                raise ValidationError("max_attendees must be a positive number")

            moved = any(key in changes for key in ("start_date", "end_date", "location"))
            for key, value in changes.items():
                setattr(event, key, value)

            if moved:
                await self.availability.ensure_location_free(
                    event.location, event.start_date, event.end_date, exclude_event_id=event.event_id
                )

            if event.status == EventStatus.pending:
                # A newly requested budget adds the budget stages
                existing = {a.approver_role for a in await self._approvals(event_id)}
                for role in self.policy.required_stages(event):
                    if role not in existing:
                        self.db.add(EventApproval(event_id=event.event_id, approver_role=role))

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"Event updated: {event.event_id} ({', '.join(changes)})")
        return event

    async def delete_event(self, event_id: str, user: User) -> None:
        """Delete an event that nothing live depends on."""
        try:
            event = await self.get_event(event_id, lock=True)
            if not can_manage_event(user, event):
                raise ForbiddenError("Only the organizer can delete this event")

            active_bookings = 0
            for model in (ResourceBooking, EquipmentBooking):
                active_bookings += (await self.db.execute(
                    select(func.count()).select_from(model).where(
                        model.event_id == event_id,
                        model.status.in_(ACTIVE_BOOKING_STATUSES),
                    )
                )).scalar_one()
            rsvps = (await self.db.execute(
                select(func.count()).select_from(EventRsvp).where(EventRsvp.event_id == event_id)
            )).scalar_one()
            if active_bookings or rsvps:
                raise ConflictError(
                    "Event has active bookings or RSVPs; cancel it instead",
                    active_bookings=active_bookings,
                    rsvps=rsvps,
                )

            # Rejected bookings stay as history without the event reference
            for model in (ResourceBooking, EquipmentBooking):
                await self.db.execute(
                    update(model)
                    .where(model.event_id == event_id, model.status == BookingStatus.rejected)
                    .values(event_id=None)
                )
            await self.db.execute(delete(EventApproval).where(EventApproval.event_id == event_id))
            await self.db.delete(event)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        logger.info(f"Event deleted: {event_id} by {user.user_id}")
