"""Constants for user roles, event and booking statuses, RSVP states, and the role capability table."""

from enum import Enum


class UserRole(str, Enum):
    """Enumeration of user roles on campus."""

    # Students & clubs
    student = "student"
    club_member = "club_member"
    club_head = "club_head"

    # Faculty
    teacher = "teacher"
    hod = "hod"  # Head of Department

    # Administration
    registrar = "registrar"
    financial_head = "financial_head"
    technical_staff = "technical_staff"
    admin = "admin"


class EventStatus(str, Enum):
    """Enumeration of event lifecycle statuses."""

    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"
    published = "published"


class EventCategory(str, Enum):
    """Enumeration of event categories."""

    academic = "academic"
    cultural = "cultural"
    sports = "sports"
    technical = "technical"
    social = "social"


class EventType(str, Enum):
    audience = "audience"
    participation = "participation"
    mixed = "mixed"


class ApprovalStatus(str, Enum):
    """Enumeration of a single reviewer's verdict."""

    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class BookingStatus(str, Enum):
    """Enumeration of venue and equipment booking statuses."""

    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class BookingKind(str, Enum):
    venue = "venue"
    equipment = "equipment"


class MaintenanceStatus(str, Enum):
    good = "good"
    needs_repair = "needs_repair"
    out_of_order = "out_of_order"


class VenueType(str, Enum):
    auditorium = "auditorium"
    hall = "hall"
    classroom = "classroom"
    ground = "ground"
    lab = "lab"


class RsvpStatus(str, Enum):
    """Enumeration of an attendee's intent to attend."""

    attending = "attending"
    maybe = "maybe"
    not_attending = "not_attending"


class RegistrationType(str, Enum):
    audience = "audience"
    participant = "participant"
    volunteer = "volunteer"


class VerificationStatus(str, Enum):
    """Enumeration of RSVP verification states. `attended` is terminal."""

    pending = "pending"
    verified = "verified"
    attended = "attended"


class Capability(str, Enum):
    """Actions gated by role."""

    event_create = "event.create"
    event_approve = "event.approve"
    event_bypass_approval = "event.bypass_approval"
    event_manage_any = "event.manage_any"
    inventory_manage = "inventory.manage"
    booking_create = "booking.create"
    booking_review = "booking.review"
    rsvp_check_in = "rsvp.check_in"


# Statuses in which an event still holds its bookings and accepts RSVPs
LIVE_EVENT_STATUSES = (EventStatus.approved, EventStatus.published)

# Statuses after which no further workflow action is possible
TERMINAL_EVENT_STATUSES = (EventStatus.rejected, EventStatus.cancelled)


ROLE_CAPABILITIES = {
    UserRole.student: {
        Capability.event_create,
    },
    UserRole.club_member: {
        Capability.event_create,
    },
    UserRole.club_head: {
        Capability.event_create,
        Capability.booking_create,
        Capability.rsvp_check_in,
    },
    UserRole.teacher: {
        Capability.event_create,
        Capability.event_approve,
        Capability.booking_create,
        Capability.rsvp_check_in,
    },
    UserRole.hod: {
        Capability.event_create,
        Capability.event_approve,
        Capability.event_bypass_approval,
        Capability.booking_create,
        Capability.rsvp_check_in,
    },
    UserRole.registrar: {
        Capability.event_create,
        Capability.event_approve,
        Capability.booking_create,
        Capability.rsvp_check_in,
    },
    UserRole.financial_head: {
        Capability.event_create,
        Capability.event_approve,
    },
    UserRole.technical_staff: {
        Capability.event_create,
        Capability.inventory_manage,
        Capability.booking_create,
        Capability.booking_review,
        Capability.rsvp_check_in,
    },
    UserRole.admin: {
        Capability.event_create,
        Capability.event_approve,
        Capability.event_manage_any,
        Capability.inventory_manage,
        Capability.booking_create,
        Capability.booking_review,
        Capability.rsvp_check_in,
    },
}

# Approval stages each approving role may sign
APPROVAL_STAGE_DELEGATES = {
    UserRole.teacher: [UserRole.teacher],
    UserRole.hod: [UserRole.teacher],
    UserRole.registrar: [UserRole.registrar],
    UserRole.financial_head: [UserRole.financial_head],
    UserRole.admin: [UserRole.teacher, UserRole.registrar, UserRole.financial_head],
}
