"""Single UTC time source with millisecond granularity.

Every timestamp the token subsystem compares (``iat``, ``exp``, revocation
markers, record expiry) goes through these helpers so that values written and
read back agree to the millisecond.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta


def utcnow() -> datetime:
    """Return the current UTC instant truncated to whole milliseconds."""
    now = datetime.now(UTC)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)


def as_utc(value: datetime) -> datetime:
    """
    Attach UTC to naive datetimes and convert aware ones.

    SQLite hands back naive values for ``DateTime(timezone=True)`` columns; all
    values stored by this application are UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_epoch_ms(value: datetime) -> int:
    """Convert a datetime to integer milliseconds since the Unix epoch."""
    delta = as_utc(value) - datetime(1970, 1, 1, tzinfo=UTC)
    return (delta.days * 86_400_000) + (delta.seconds * 1000) + (delta.microseconds // 1000)


def from_epoch_ms(value: int) -> datetime:
    """Convert epoch milliseconds to an aware UTC datetime."""
    return datetime(1970, 1, 1, tzinfo=UTC) + timedelta(milliseconds=int(value))


def remaining_ms(expires_at: datetime, now: datetime | None = None) -> int:
    """Milliseconds left until ``expires_at`` (negative once it has passed)."""
    return to_epoch_ms(expires_at) - to_epoch_ms(now or utcnow())
