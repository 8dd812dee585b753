"""Half-open interval helpers shared by venue and equipment booking."""

from datetime import datetime, timezone
from typing import Callable, Iterable, List, Tuple, TypeVar

from campushub.core.exceptions import ValidationError

T = TypeVar("T")


def _booking_window(reservation) -> Tuple[datetime, datetime]:
    return reservation.start_time, reservation.end_time


def overlaps(a_start, a_end, b_start, b_end) -> bool:
    """Whether [a_start, a_end) and [b_start, b_end) share any instant.

    Back-to-back windows (one ends exactly when the other starts) do not overlap.
    """
    return a_start < b_end and b_start < a_end


def find_conflicts(
    start,
    end,
    reservations: Iterable[T],
    window: Callable[[T], Tuple[datetime, datetime]] = _booking_window,
) -> List[T]:
    """Return the reservations whose window overlaps [start, end), in input order."""
    conflicts = []
    for reservation in reservations:
        r_start, r_end = window(reservation)
        if overlaps(start, end, r_start, r_end):
            conflicts.append(reservation)
    return conflicts


def as_naive_utc(value: datetime) -> datetime:
    """Timestamps are stored as naive UTC; convert aware values before comparing."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def validate_window(start, end, label: str = "time window") -> None:
    if start is None or end is None:
        raise ValidationError(f"Both ends of the {label} are required")
    if not start < end:
        raise ValidationError(f"Invalid {label}: start must be before end")
