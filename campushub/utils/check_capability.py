from campushub.constants.constants import ROLE_CAPABILITIES, Capability, UserRole
from campushub.core.exceptions import ForbiddenError
from campushub.models.user import User


def has_capability(role, capability: Capability) -> bool:
    """Check whether a role is granted a capability in the role table."""
    try:
        role = UserRole(role)
    except ValueError:
        return False
    return capability in ROLE_CAPABILITIES.get(role, set())


def ensure_capability(user: User, capability: Capability, detail: str = None) -> None:
    if not has_capability(user.role, capability):
        raise ForbiddenError(detail or f"Role '{UserRole(user.role).value}' may not perform {capability.value}")


def can_manage_event(user: User, event) -> bool:
    """Organizer of the event, or a role allowed to manage any event."""
    return event.organizer_id == user.user_id or has_capability(user.role, Capability.event_manage_any)


def can_check_in(user: User, event) -> bool:
    """Door staff, or the event's own organizer."""
    return event.organizer_id == user.user_id or has_capability(user.role, Capability.rsvp_check_in)


def capabilities_for(role) -> list:
    try:
        role = UserRole(role)
    except ValueError:
        return []
    return sorted(ROLE_CAPABILITIES.get(role, set()), key=lambda c: c.value)
