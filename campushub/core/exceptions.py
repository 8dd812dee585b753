"""Domain errors raised by the booking, approval and RSVP services.

Each error carries the HTTP status it maps to; `campushub.main` renders them as
`{"detail": ..., **extra}` responses.
"""

from typing import Any, Dict, List, Optional


class CampusHubError(Exception):
    status_code = 400

    def __init__(self, detail: str, **extra: Any):
        super().__init__(detail)
        self.detail = detail
        self.extra: Dict[str, Any] = extra

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.detail, **self.extra}


class NotFoundError(CampusHubError):
    status_code = 404


class ForbiddenError(CampusHubError):
    status_code = 403


class ConflictError(CampusHubError):
    status_code = 409


class ResourceConflict(ConflictError):
    """A venue/equipment double-booking or location clash. `conflicts` names what clashed."""

    def __init__(self, detail: str, conflicts: Optional[List[Dict[str, Any]]] = None, **extra: Any):
        super().__init__(detail, conflicts=conflicts or [], **extra)

    @property
    def conflicts(self) -> List[Dict[str, Any]]:
        return self.extra["conflicts"]


class CapacityExceeded(CampusHubError):
    status_code = 409


class InvalidStateError(CampusHubError):
    status_code = 409


class ValidationError(CampusHubError):
    status_code = 422
