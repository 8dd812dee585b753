"""Event and EventApproval models."""

from datetime import datetime
from sqlalchemy import (
    JSON, Boolean, CheckConstraint, Column, DateTime, Enum, ForeignKey, Integer,
    Numeric, String, Text, UniqueConstraint,
)

from campushub.constants.constants import (
    ApprovalStatus, EventCategory, EventStatus, EventType, LIVE_EVENT_STATUSES, TERMINAL_EVENT_STATUSES, UserRole,
)
from campushub.models.base import Base, TimestampMixin, new_id


class Event(Base, TimestampMixin):
    """Model representing a campus event and its approval state."""

    __tablename__ = "events"
    __table_args__ = (
        CheckConstraint("start_date < end_date", name="ck_events_window"),
        CheckConstraint("max_attendees IS NULL OR max_attendees > 0", name="ck_events_max_attendees"),
    )

    event_id = Column(String, primary_key=True, index=True, default=new_id)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(Enum(EventCategory), nullable=False)
    start_date = Column(DateTime, nullable=False, index=True)
    end_date = Column(DateTime, nullable=False)
    location = Column(String, nullable=True, index=True)  # free text, not a venue FK
    max_attendees = Column(Integer, nullable=True)  # None = unbounded
    budget = Column(Numeric(10, 2), nullable=True)
    status = Column(Enum(EventStatus), nullable=False, default=EventStatus.pending, index=True)
    requires_approval = Column(Boolean, nullable=False, default=True)
    organizer_id = Column(String, ForeignKey("users.user_id"), nullable=False, index=True)
    club_id = Column(String, nullable=True)
    event_type = Column(Enum(EventType), nullable=False, default=EventType.audience)
    division_restriction = Column(String, nullable=True)
    department_restriction = Column(String, nullable=True)
    registration_deadline = Column(DateTime, nullable=True)
    equipment_required = Column(JSON, nullable=False, default=list)
    special_instructions = Column(Text, nullable=True)

    def __repr__(self):
        return f"<Event {self.title} [{self.status.value if self.status else None}]>"

    @property
    def is_live(self) -> bool:
        """Approved or published: holds bookings and accepts RSVPs."""
        return self.status in LIVE_EVENT_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_EVENT_STATUSES

    @property
    def requests_budget(self) -> bool:
        return self.budget is not None and self.budget > 0

    def registration_closed(self, now: datetime) -> bool:
        return self.registration_deadline is not None and now > self.registration_deadline


class EventApproval(Base, TimestampMixin):
    """One reviewer stage's verdict on an event."""

    __tablename__ = "event_approvals"
    __table_args__ = (
        UniqueConstraint("event_id", "approver_role", name="uq_event_approvals_stage"),
    )

    approval_id = Column(String, primary_key=True, index=True, default=new_id)
    event_id = Column(String, ForeignKey("events.event_id"), nullable=False, index=True)
    approver_role = Column(Enum(UserRole), nullable=False)
    approver_id = Column(String, ForeignKey("users.user_id"), nullable=True)  # who signed the stage
    status = Column(Enum(ApprovalStatus), nullable=False, default=ApprovalStatus.pending)
    comments = Column(Text, nullable=True)
    decided_at = Column(DateTime, nullable=True)

    def __repr__(self):
        return f"<EventApproval {self.event_id} {self.approver_role.value}={self.status.value}>"
