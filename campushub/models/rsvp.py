from sqlalchemy import JSON, Column, DateTime, Enum, ForeignKey, String, UniqueConstraint

from campushub.constants.constants import RegistrationType, RsvpStatus, VerificationStatus
from campushub.models.base import Base, TimestampMixin, new_id


class EventRsvp(Base, TimestampMixin):
    """A user's registration for an event, carrying the confirmation code used at the door."""

    __tablename__ = "event_rsvps"
    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_event_rsvps_event_user"),
    )

    rsvp_id = Column(String, primary_key=True, index=True, default=new_id)
    event_id = Column(String, ForeignKey("events.event_id"), nullable=False, index=True)
    user_id = Column(String, ForeignKey("users.user_id"), nullable=False, index=True)
    status = Column(Enum(RsvpStatus), nullable=False, default=RsvpStatus.attending)
    registration_type = Column(Enum(RegistrationType), nullable=False, default=RegistrationType.audience)
    rsvp_number = Column(String(32), unique=True, nullable=False, index=True)
    form_data = Column(JSON, nullable=True)
    verification_status = Column(Enum(VerificationStatus), nullable=False, default=VerificationStatus.pending)
    checked_in_at = Column(DateTime, nullable=True)
    checked_in_by = Column(String, ForeignKey("users.user_id"), nullable=True)  # staff who checked in

    def __repr__(self):
        return f"<EventRsvp {self.rsvp_number} - {self.verification_status.value}>"

    @property
    def is_checked_in(self) -> bool:
        return self.verification_status == VerificationStatus.attended
