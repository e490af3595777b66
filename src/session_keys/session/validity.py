"""Validity evaluation — pure functions over a record and a clock reading.

A key is expired once its threshold has been *reached*: ``expires_at`` equal
to the current reference already counts as expired. A key is valid only
while it is not revoked and not expired.
"""
from __future__ import annotations

from session_keys.errors import InvalidExpiryError
from session_keys.ports.clock import ClockReading
from session_keys.session.record import ExpirationType, SessionKeyRecord


def current_reference(expiration_type: ExpirationType, clock: ClockReading) -> int:
    """Return the clock component *expiration_type* is measured against."""
    if expiration_type is ExpirationType.TIME:
        return clock.unix_timestamp
    return clock.height


def is_expired(record: SessionKeyRecord, clock: ClockReading) -> bool:
    """Return True if *record*'s threshold is at or before the current reference."""
    return record.expires_at <= current_reference(record.expiration_type, clock)


def is_valid(record: SessionKeyRecord, clock: ClockReading) -> bool:
    """Return True if *record* is neither revoked nor expired."""
    return not record.is_revoked and not is_expired(record, clock)


def remaining(record: SessionKeyRecord, clock: ClockReading) -> int:
    """Seconds or height units left before expiry, floored at zero."""
    return max(0, record.expires_at - current_reference(record.expiration_type, clock))


def require_future_expiry(
    expires_at: int,
    expiration_type: ExpirationType,
    clock: ClockReading,
) -> None:
    """Raise :class:`InvalidExpiryError` unless *expires_at* is strictly in the future."""
    current = current_reference(expiration_type, clock)
    if expires_at <= current:
        raise InvalidExpiryError(expires_at, current, expiration_type.value)


def expiry_from_duration(clock: ClockReading, seconds: int) -> int:
    """Return the TIME threshold *seconds* after the clock reading."""
    return clock.unix_timestamp + seconds


__all__ = [
    "current_reference",
    "expiry_from_duration",
    "is_expired",
    "is_valid",
    "remaining",
    "require_future_expiry",
]
