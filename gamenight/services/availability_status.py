"""Availability status cycle used when a player taps a date.

Cycle: no entry -> available -> unavailable -> maybe -> available ...
Only the stored ``status`` matters; comments and time windows ride along.
"""
from enum import Enum


class AvailabilityStatus(str, Enum):
    AVAILABLE = 'available'
    UNAVAILABLE = 'unavailable'
    MAYBE = 'maybe'


class PlayerState(str, Enum):
    """Per-date state of a roster member, including the unstored pending case."""
    AVAILABLE = 'available'
    MAYBE = 'maybe'
    UNAVAILABLE = 'unavailable'
    PENDING = 'pending'


ALLOWED_STATUSES = {s.value for s in AvailabilityStatus}

FIRST_STATUS = AvailabilityStatus.AVAILABLE

_NEXT_STATUS = {
    AvailabilityStatus.AVAILABLE: AvailabilityStatus.UNAVAILABLE,
    AvailabilityStatus.UNAVAILABLE: AvailabilityStatus.MAYBE,
    AvailabilityStatus.MAYBE: AvailabilityStatus.AVAILABLE,
}


def coerce_status(value):
    """Return the ``AvailabilityStatus`` for a raw value; ``ValueError`` if unknown."""
    if isinstance(value, AvailabilityStatus):
        return value
    return AvailabilityStatus(str(value).strip().lower())


def _status_of(current):
    if isinstance(current, (AvailabilityStatus, str)):
        return current
    if isinstance(current, dict):
        return current.get('status')
    return getattr(current, 'status', None)


def next_status(current):
    """Next status for ``current`` (an entry, a bare status, or ``None``)."""
    if current is None:
        return FIRST_STATUS
    raw = _status_of(current)
    if raw is None:
        return FIRST_STATUS
    return _NEXT_STATUS[coerce_status(raw)]


def player_state(entry):
    """Map an optional availability entry onto a ``PlayerState``."""
    if entry is None:
        return PlayerState.PENDING
    return PlayerState(coerce_status(_status_of(entry)).value)
