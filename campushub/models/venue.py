"""Venue inventory and venue (resource) bookings."""

from sqlalchemy import JSON, Boolean, CheckConstraint, Column, DateTime, Enum, ForeignKey, Integer, String, Text

from campushub.constants.constants import BookingStatus, VenueType
from campushub.models.base import Base, TimestampMixin, new_id


class Venue(Base, TimestampMixin):
    __tablename__ = "venues"
    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_venues_capacity"),
    )

    venue_id = Column(String, primary_key=True, index=True, default=new_id)
    name = Column(String, unique=True, nullable=False)
    venue_type = Column(Enum(VenueType), nullable=False, default=VenueType.hall)
    capacity = Column(Integer, nullable=False)
    location = Column(String, nullable=True)
    amenities = Column(JSON, nullable=False, default=list)
    is_available = Column(Boolean, nullable=False, default=True)  # manual override, independent of bookings
    booking_rules = Column(Text, nullable=True)
    created_by = Column(String, ForeignKey("users.user_id"), nullable=True)

    def __repr__(self):
        return f"<Venue {self.name} ({self.capacity})>"


class ResourceBooking(Base, TimestampMixin):
    """Reservation of a venue for [start_time, end_time)."""

    __tablename__ = "resource_bookings"
    __table_args__ = (
        CheckConstraint("start_time < end_time", name="ck_resource_bookings_window"),
    )

    booking_id = Column(String, primary_key=True, index=True, default=new_id)
    venue_id = Column(String, ForeignKey("venues.venue_id"), nullable=False, index=True)
    event_id = Column(String, ForeignKey("events.event_id"), nullable=True, index=True)
    user_id = Column(String, ForeignKey("users.user_id"), nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False, index=True)
    status = Column(Enum(BookingStatus), nullable=False, default=BookingStatus.pending, index=True)
    notes = Column(Text, nullable=True)

    def __repr__(self):
        return f"<ResourceBooking {self.venue_id} {self.start_time}-{self.end_time} {self.status.value}>"
